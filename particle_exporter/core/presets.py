"""
Effect Presets Library - Pre-configured particle effects
Allows users to export a complete effect with a single flag
"""

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .settings import ParticleSettings

logger = logging.getLogger(__name__)


# ============================================================================
# Preset Data Structures
# ============================================================================

@dataclass
class EffectPreset:
    """A named settings document with a description and tags"""

    name: str
    description: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for YAML serialization"""
        return {
            'name': self.name,
            'description': self.description,
            'tags': list(self.tags),
            'settings': copy.deepcopy(self.settings),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EffectPreset':
        """Create from dictionary"""
        data = dict(data)
        # A preset file may hold the document at top level
        if 'settings' not in data:
            meta = {'name', 'description', 'tags'}
            data['settings'] = {k: v for k, v in data.items() if k not in meta}

        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}

        return cls(**filtered)

    def to_settings(self) -> ParticleSettings:
        """Build the immutable settings document"""
        return ParticleSettings.from_dict(copy.deepcopy(self.settings))


# ============================================================================
# Built-in Presets
# ============================================================================

BUILTIN_PRESETS: Dict[str, Dict[str, Any]] = {
    "fire": {
        "name": "fire",
        "description": "Rising flames that shrink and fade from yellow to red",
        "tags": ["fire", "loop", "ambient"],
        "settings": {
            "duration": 2.0,
            "emitters": [{
                "id": "flames",
                "name": "Flames",
                "shape": {"type": "line", "length": 60},
                "angle": -90,
                "angle_spread": 20,
                "rate": 40,
                "lifetime": [0.6, 1.2],
                "initial_speed_range": [80, 140],
                "size_range": [0.8, 1.2],
                "noise_strength_over_lifetime": [[0, 1], [1, 1]],
                "noise_strength_range": [40, 80],
                "color_over_lifetime": [
                    [0.0, "#fff27aff"],
                    [0.4, "#ff8c00e6"],
                    [1.0, "#b0150000"],
                ],
                "sprite": "glow",
                "prewarm": True,
            }],
        },
    },

    "sparks": {
        "name": "sparks",
        "description": "Fast needle sparks pulled down by gravity",
        "tags": ["fire", "impact", "loop"],
        "settings": {
            "duration": 1.5,
            "emitters": [{
                "id": "sparks",
                "name": "Sparks",
                "angle": -90,
                "angle_spread": 120,
                "rate": 25,
                "lifetime": [0.4, 0.9],
                "initial_speed_range": [200, 320],
                "gravity_range": [300, 400],
                "drag_range": [0.97, 0.99],
                "size_range": [0.4, 0.7],
                "spawn_angle_mode": "alignMotion",
                "color_over_lifetime": [
                    [0.0, "#ffffffff"],
                    [0.5, "#ffd24aff"],
                    [1.0, "#ff640000"],
                ],
                "sprite": "needle",
            }],
        },
    },

    "smoke": {
        "name": "smoke",
        "description": "Slow drifting smoke puffs that grow as they fade",
        "tags": ["smoke", "ambient", "loop"],
        "settings": {
            "duration": 3.0,
            "emitters": [{
                "id": "smoke",
                "name": "Smoke",
                "shape": {"type": "circle", "radius": 15},
                "angle": -90,
                "angle_spread": 25,
                "rate": 8,
                "lifetime": [2.0, 3.0],
                "initial_speed_range": [30, 50],
                "size_over_lifetime": [[0, 0.4], [1, 1]],
                "size_range": [1.0, 1.5],
                "spin_over_lifetime": [[0, 1], [1, 1]],
                "spin_range": [-30, 30],
                "spawn_angle_mode": "random",
                "color_over_lifetime": [
                    [0.0, "#6e6e6e00"],
                    [0.2, "#6e6e6ea0"],
                    [1.0, "#a0a0a000"],
                ],
                "sprite": "smoke",
                "prewarm": True,
            }],
        },
    },

    "snow": {
        "name": "snow",
        "description": "Snowflakes falling across a wide line",
        "tags": ["weather", "ambient", "loop"],
        "settings": {
            "duration": 4.0,
            "emitters": [{
                "id": "snow",
                "name": "Snow",
                "position": [0, -200],
                "shape": {"type": "line", "length": 400, "spread_rotation": 90},
                "angle": 0,
                "angle_spread": 20,
                "rate": 12,
                "lifetime": [3.0, 4.0],
                "initial_speed_range": [40, 70],
                "size_range": [0.3, 0.6],
                "noise_strength_over_lifetime": [[0, 1], [1, 1]],
                "noise_strength_range": [10, 20],
                "angular_velocity_range": [-45, 45],
                "spawn_angle_mode": "random",
                "color_over_lifetime": [
                    [0.0, "#ffffffff"],
                    [0.8, "#ffffffff"],
                    [1.0, "#ffffff00"],
                ],
                "sprite": "snowflake",
                "prewarm": True,
            }],
        },
    },

    "magic": {
        "name": "magic",
        "description": "Swirling stars around a vortex with a glowing core",
        "tags": ["magic", "loop"],
        "settings": {
            "duration": 2.0,
            "emitters": [
                {
                    "id": "stars",
                    "name": "Stars",
                    "shape": {"type": "circle", "radius": 60, "mode": "edge"},
                    "angle_spread": 360,
                    "rate": 20,
                    "lifetime": [1.0, 1.6],
                    "initial_speed_range": [10, 30],
                    "vortex_strength_over_lifetime": [[0, 1], [1, 1]],
                    "vortex_strength_range": [120, 160],
                    "size_range": [0.4, 0.8],
                    "spin_over_lifetime": [[0, 1], [1, 1]],
                    "spin_range": [90, 180],
                    "color_over_lifetime": [
                        [0.0, "#b478ffff"],
                        [1.0, "#78c8ff00"],
                    ],
                    "sprite": "star",
                },
                {
                    "id": "core",
                    "name": "Core",
                    "angle_spread": 360,
                    "rate": 6,
                    "lifetime": [0.8, 1.0],
                    "initial_speed_range": [0, 10],
                    "size_over_lifetime": [[0, 0.5], [0.5, 1], [1, 0.5]],
                    "size_range": [1.2, 1.4],
                    "color_over_lifetime": [
                        [0.0, "#ffffff00"],
                        [0.5, "#dcb4ffc8"],
                        [1.0, "#ffffff00"],
                    ],
                    "sprite": "glow",
                },
            ],
        },
    },

    "rain": {
        "name": "rain",
        "description": "Straight raindrops falling at an angle",
        "tags": ["weather", "loop"],
        "settings": {
            "duration": 1.0,
            "emitters": [{
                "id": "rain",
                "name": "Rain",
                "position": [0, -220],
                "shape": {"type": "line", "length": 450, "spread_rotation": 90},
                "angle": 10,
                "angle_spread": 2,
                "rate": 60,
                "lifetime": [0.5, 0.7],
                "initial_speed_range": [600, 700],
                "size_over_lifetime": [[0, 1], [1, 1]],
                "size_range": [0.5, 0.7],
                "spawn_angle_mode": "alignMotion",
                "color_over_lifetime": [
                    [0.0, "#a0c8ffc0"],
                    [1.0, "#a0c8ff40"],
                ],
                "sprite": "raindrop",
                "prewarm": True,
            }],
        },
    },

    "burst": {
        "name": "burst",
        "description": "One-shot radial explosion",
        "tags": ["impact", "oneshot"],
        "settings": {
            "duration": 1.0,
            "emitters": [{
                "id": "burst",
                "name": "Burst",
                "emission_type": "burst",
                "burst_count": 50,
                "burst_cycles": 1,
                "looping": False,
                "angle_spread": 360,
                "lifetime": [0.5, 0.9],
                "initial_speed_range": [150, 300],
                "drag_range": [0.94, 0.97],
                "color_over_lifetime": [
                    [0.0, "#ffffffff"],
                    [0.3, "#ffe060ff"],
                    [1.0, "#ff500000"],
                ],
                "sprite": "circle",
            }],
        },
    },
}


# ============================================================================
# Preset Manager
# ============================================================================

class PresetManager:
    """
    Manages loading and looking up effect presets.
    """

    def __init__(self, user_presets_dir: Optional[Path] = None):
        """
        Initialize preset manager.

        Args:
            user_presets_dir: Directory for user presets (default: ~/.particle-exporter/presets)
        """
        self.user_presets_dir = Path(user_presets_dir) if user_presets_dir else (
            Path.home() / '.particle-exporter' / 'presets'
        )

        self._builtin: Dict[str, EffectPreset] = {}
        self._user: Dict[str, EffectPreset] = {}

        self._load_builtin_presets()
        self._load_user_presets()

    def _load_builtin_presets(self) -> None:
        for name, data in BUILTIN_PRESETS.items():
            self._builtin[name] = EffectPreset.from_dict(copy.deepcopy(data))

    def _load_user_presets(self) -> None:
        """Load user-defined presets from YAML files"""
        if not self.user_presets_dir.is_dir():
            return

        for yaml_file in sorted(self.user_presets_dir.glob('*.yaml')):
            try:
                with open(yaml_file, 'r') as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Could not load preset file %s: %s", yaml_file, e)
                continue

            if not isinstance(data, dict):
                continue

            if 'presets' in data:
                # Multiple presets in one file
                for name, preset_data in data['presets'].items():
                    preset_data['name'] = name
                    self._user[name] = EffectPreset.from_dict(preset_data)
            else:
                name = data.get('name', yaml_file.stem)
                data['name'] = name
                self._user[name] = EffectPreset.from_dict(data)

        if self._user:
            logger.debug("Loaded %d user presets from %s", len(self._user), self.user_presets_dir)

    def get(self, name: str) -> Optional[EffectPreset]:
        """
        Get a preset by name.
        User presets override built-in presets with same name.
        """
        return self._user.get(name) or self._builtin.get(name)

    def require(self, name: str) -> EffectPreset:
        """Get a preset or raise with the available names"""
        preset = self.get(name)
        if preset is None:
            raise ValueError(f"Unknown preset: {name}. Available: {', '.join(self.list_all())}")
        return preset

    def exists(self, name: str) -> bool:
        return name in self._user or name in self._builtin

    def list_all(self) -> List[str]:
        """List all preset names"""
        return sorted(set(self._builtin) | set(self._user))

    def list_by_tag(self, tag: str) -> List[str]:
        """List presets with a specific tag"""
        matches = []
        for name, preset in {**self._builtin, **self._user}.items():
            if tag.lower() in [t.lower() for t in preset.tags]:
                matches.append(name)
        return sorted(matches)

    def get_preset_info(self, name: str) -> Optional[Dict[str, Any]]:
        """Get detailed info about a preset"""
        preset = self.get(name)
        if not preset:
            return None

        settings = preset.to_settings()
        return {
            'name': preset.name,
            'description': preset.description,
            'tags': preset.tags,
            'emitters': [e.name for e in settings.emitters],
            'duration': settings.duration,
            'fps': settings.fps,
            'looping': any(e.settings.looping for e in settings.emitters),
            'is_builtin': name in self._builtin,
            'is_user': name in self._user,
        }

    def search(self, query: str) -> List[str]:
        """Search presets by name, description, or tags"""
        query = query.lower()
        matches = []

        for name, preset in {**self._builtin, **self._user}.items():
            if (query in name.lower() or
                query in preset.description.lower() or
                any(query in tag.lower() for tag in preset.tags)):
                matches.append(name)

        return sorted(matches)


# ============================================================================
# Global Instance
# ============================================================================

_manager: Optional[PresetManager] = None


def get_preset_manager() -> PresetManager:
    """Get or create global preset manager"""
    global _manager
    if _manager is None:
        _manager = PresetManager()
    return _manager


def list_presets(tag: Optional[str] = None) -> List[str]:
    """List available presets, optionally filtered by tag"""
    manager = get_preset_manager()
    if tag:
        return manager.list_by_tag(tag)
    return manager.list_all()
