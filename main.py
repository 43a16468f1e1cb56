#!/usr/bin/env python
"""
Particle Exporter CLI - Bake particle effects into skeletal animation packages

Usage:
    python main.py <config> [options]
    python main.py --preset <name> [options]

Examples:
    python main.py effect.yaml                     # Export a settings file
    python main.py --preset fire -o fire.zip       # Export a built-in preset
    python main.py --preset sparks --seed 42       # Reproducible bake
    python main.py effect.yaml --json-only         # Only the animation document
"""

import argparse
import logging
import sys
from pathlib import Path


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Bake particle effects into skeletal animation packages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Archive contents:
  particle.png          - Sprite atlas
  particle.atlas        - Atlas descriptor
  particle_spine.json   - Skeletal animation document
  preview.png           - All baked frames overlaid

Examples:
  %(prog)s effect.yaml                       # Export a settings file
  %(prog)s --preset fire -o fire.zip         # Export a built-in preset
  %(prog)s --preset magic --fps 60           # Override the frame rate
  %(prog)s --list-presets                    # Show all presets
  %(prog)s --preset-info fire                # Show preset details
        """
    )

    parser.add_argument(
        'config',
        type=str,
        nargs='?',  # Optional for --preset, --list-presets and --preset-info
        default=None,
        help='Settings document (YAML or JSON)'
    )

    parser.add_argument(
        '-p', '--preset',
        type=str,
        default=None,
        help='Use a named preset instead of a settings file'
    )

    parser.add_argument(
        '-o', '--output',
        type=str,
        default=None,
        help='Output path (default: particle_export.zip, or particle_spine.json with --json-only)'
    )

    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for a reproducible bake'
    )

    parser.add_argument(
        '--fps',
        type=int,
        default=None,
        help='Override the timeline frame rate'
    )

    parser.add_argument(
        '--duration',
        type=float,
        default=None,
        help='Override the timeline duration in seconds'
    )

    parser.add_argument(
        '--frame-size',
        type=int,
        default=None,
        help='Override the square frame size in pixels'
    )

    parser.add_argument(
        '--no-preview-image',
        action='store_true',
        help='Leave preview.png out of the archive'
    )

    parser.add_argument(
        '--json-only',
        action='store_true',
        help='Write only the animation document'
    )

    parser.add_argument(
        '--list-presets',
        action='store_true',
        help='List available presets'
    )

    parser.add_argument(
        '--preset-info',
        type=str,
        default=None,
        metavar='NAME',
        help='Show details of a preset'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Debug logging and tracebacks on errors'
    )

    args = parser.parse_args(argv)

    from particle_exporter.core import configure_logging, get_preset_manager
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    # Handle preset listing/info (doesn't require a config file)
    if args.list_presets:
        manager = get_preset_manager()

        print("Available Particle Presets:\n")
        for name in manager.list_all():
            preset = manager.get(name)
            desc = preset.description[:50] + "..." if len(preset.description) > 50 else preset.description
            print(f"  {name:<12} - {desc}")

        print(f"\nTotal: {len(manager.list_all())} presets")
        print("\nUsage: --preset <name>")
        print("Details: --preset-info <name>")
        sys.exit(0)

    if args.preset_info:
        info = get_preset_manager().get_preset_info(args.preset_info)
        if not info:
            print(f"Error: Preset '{args.preset_info}' not found")
            print("Use --list-presets to see available presets")
            sys.exit(1)

        print(f"Preset: {info['name']}")
        print(f"Description: {info['description']}")
        print("\nSettings:")
        print(f"  Emitters: {', '.join(info['emitters'])}")
        print(f"  Duration: {info['duration']}s")
        print(f"  FPS: {info['fps']}")
        print(f"  Looping: {'yes' if info['looping'] else 'no'}")
        print(f"\nSource: {'user' if info['is_user'] else 'built-in'}")
        print(f"Tags: {', '.join(info['tags'])}")
        sys.exit(0)

    if not args.config and not args.preset:
        print("Error: A settings file or --preset is required")
        print("Usage: python main.py <config> [options]")
        print("       python main.py --preset <name> [options]")
        print("       python main.py --list-presets")
        sys.exit(1)

    from particle_exporter.core import load_settings
    from particle_exporter.export import ARCHIVE_NAME, ParticleExporter
    from particle_exporter.export.exporter import DOCUMENT_NAME, export_summary

    try:
        if args.config:
            settings = load_settings(args.config)
            print(f"Settings: {args.config}")
        else:
            preset = get_preset_manager().require(args.preset)
            settings = preset.to_settings()
            print(f"Using preset: {preset.name} ({preset.description})")

        settings = settings.with_overrides(
            fps=args.fps,
            duration=args.duration,
            frame_size=args.frame_size,
        )

        summary = export_summary(settings)
        print(
            f"Baking: {summary['emitters']} emitter(s), {summary['frames']} frames "
            f"({summary['duration']}s at {summary['fps']} fps)"
            + (" [loop + prewarm]" if summary['prewarm'] else " [loop]" if summary['looping'] else "")
        )

        exporter = ParticleExporter(
            settings,
            seed=args.seed,
            include_preview=not args.no_preview_image,
        )

        if args.json_only:
            path = exporter.write_json(args.output or DOCUMENT_NAME)
            print(f"Output: {path}")
            print("Done!")
            return

        result = exporter.write(Path(args.output or ARCHIVE_NAME))
        if not result.success:
            print(result.message)
            sys.exit(1)

        print(result.message)
        print(f"Output: {result.path}")
        print("Done!")

    except Exception as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
