"""
Stored ZIP Archive Writer

Writes uncompressed ZIP archives byte for byte:
- 30-byte local header + name + data per entry
- 46-byte central directory record per entry
- 22-byte end of central directory record

Entries are immutable once added; names must be unique.
"""

import logging
import struct
from dataclasses import dataclass
from typing import List

logger = logging.getLogger(__name__)

LOCAL_HEADER_SIGNATURE = 0x04034b50
CENTRAL_HEADER_SIGNATURE = 0x02014b50
END_OF_CENTRAL_DIR_SIGNATURE = 0x06054b50
ZIP_VERSION = 20

CRC32_POLYNOMIAL = 0xEDB88320


def _crc_table() -> List[int]:
    table = []
    for n in range(256):
        c = n
        for _ in range(8):
            c = (c >> 1) ^ CRC32_POLYNOMIAL if c & 1 else c >> 1
        table.append(c)
    return table


_CRC_TABLE = _crc_table()


def crc32(data: bytes) -> int:
    """Reflected CRC-32 (polynomial 0xEDB88320), as used by ZIP"""
    crc = 0xFFFFFFFF
    for byte in data:
        crc = (crc >> 8) ^ _CRC_TABLE[(crc ^ byte) & 0xFF]
    return crc ^ 0xFFFFFFFF


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    data: bytes


class ArchiveWriter:
    """Collects entries and serializes them as a stored ZIP"""

    def __init__(self):
        self._entries: List[ArchiveEntry] = []

    @property
    def entries(self) -> List[ArchiveEntry]:
        return list(self._entries)

    @property
    def names(self) -> List[str]:
        return [e.name for e in self._entries]

    def add(self, name: str, data: bytes) -> ArchiveEntry:
        """
        Add a binary entry.

        Raises:
            ValueError: empty name or a name already in the archive
        """
        if not name:
            raise ValueError("Archive entry name must not be empty")
        if name in self.names:
            raise ValueError(f"Duplicate archive entry: {name}")

        entry = ArchiveEntry(name, bytes(data))
        self._entries.append(entry)
        logger.debug("Archive entry %s (%d bytes)", name, len(entry.data))
        return entry

    def add_text(self, name: str, text: str) -> ArchiveEntry:
        """Add a UTF-8 text entry"""
        return self.add(name, text.encode('utf-8'))

    def to_bytes(self) -> bytes:
        """Serialize every entry into one archive"""
        body = bytearray()
        central = bytearray()

        for entry in self._entries:
            name = entry.name.encode('utf-8')
            size = len(entry.data)
            crc = crc32(entry.data)
            offset = len(body)

            # signature, version, flags, method, time, date, crc, sizes, name len, extra len
            body += struct.pack(
                '<IHHHHHIIIHH',
                LOCAL_HEADER_SIGNATURE, ZIP_VERSION, 0, 0, 0, 0,
                crc, size, size, len(name), 0,
            )
            body += name
            body += entry.data

            # adds made-by, comment len, disk start, attributes and local header offset
            central += struct.pack(
                '<IHHHHHHIIIHHHHHII',
                CENTRAL_HEADER_SIGNATURE, ZIP_VERSION, ZIP_VERSION, 0, 0, 0, 0,
                crc, size, size, len(name), 0, 0, 0, 0, 0, offset,
            )
            central += name

        end = struct.pack(
            '<IHHHHIIH',
            END_OF_CENTRAL_DIR_SIGNATURE, 0, 0,
            len(self._entries), len(self._entries),
            len(central), len(body), 0,
        )

        return bytes(body + central + end)
