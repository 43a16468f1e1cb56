"""Tests for the stored ZIP writer."""

from __future__ import annotations

import io
import struct
import zipfile
import zlib

import pytest

from particle_exporter.export.archive import ArchiveWriter, crc32


def test_crc32_known_values() -> None:
    assert crc32(b"") == 0
    assert crc32(b"123456789") == 0xCBF43926
    assert crc32(b"particle" * 100) == zlib.crc32(b"particle" * 100)


def test_archive_round_trips_through_zipfile() -> None:
    writer = ArchiveWriter()
    writer.add('particle.png', b'\x89PNG fake bytes')
    writer.add_text('particle_spine.json', '{"bones":[]}')

    with zipfile.ZipFile(io.BytesIO(writer.to_bytes())) as zf:
        assert zf.testzip() is None
        assert zf.namelist() == ['particle.png', 'particle_spine.json']
        assert zf.read('particle.png') == b'\x89PNG fake bytes'
        assert zf.read('particle_spine.json').decode() == '{"bones":[]}'
        assert all(info.compress_type == zipfile.ZIP_STORED for info in zf.infolist())


def test_layout_sizes_and_signatures() -> None:
    writer = ArchiveWriter()
    writer.add('a.txt', b'abc')
    writer.add('bb.txt', b'')

    data = writer.to_bytes()

    expected = (30 + 5 + 3) + (30 + 6) + (46 + 5) + (46 + 6) + 22
    assert len(data) == expected
    assert data[:4] == b'PK\x03\x04'
    assert data[-22:-18] == b'PK\x05\x06'

    central_start = 30 + 5 + 3 + 30 + 6
    assert data[central_start:central_start + 4] == b'PK\x01\x02'
    entries, cd_size, cd_offset = struct.unpack('<HII', data[-12:-2])
    assert entries == 2
    assert cd_size == 46 + 5 + 46 + 6
    assert cd_offset == central_start


def test_empty_archive_is_just_the_end_record() -> None:
    data = ArchiveWriter().to_bytes()

    assert len(data) == 22
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        assert zf.namelist() == []


def test_duplicate_and_empty_names_are_rejected() -> None:
    writer = ArchiveWriter()
    writer.add('preview.png', b'1')

    with pytest.raises(ValueError, match="Duplicate"):
        writer.add('preview.png', b'2')
    with pytest.raises(ValueError):
        writer.add('', b'3')
    assert writer.names == ['preview.png']


def test_entries_are_snapshots_of_added_data() -> None:
    writer = ArchiveWriter()
    buffer = bytearray(b'abc')
    entry = writer.add('data.bin', buffer)
    buffer[0] = ord('z')

    assert entry.data == b'abc'
    with pytest.raises(AttributeError):
        entry.name = 'other'  # type: ignore[misc]
