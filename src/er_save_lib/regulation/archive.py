"""Regulation archive codec.

The regulation section holds a compressed archive of named files::

    0x00  magic "DCX\\0"
    0x04  version (u32)
    0x08  entry count (u32)
    0x0C  data offset (u32)         start of the compressed body
    0x10  compressed size (u32)
    0x14  uncompressed size (u32)
    0x18  compression level (u32)
    0x1C  reserved (u32)
    0x20  entry table: count x {name: 64 bytes UTF-8, offset: u32, length: u32}
          compressed body (zlib); entry offsets point into the decompressed body

One entry, ``gameparam.parambnd``, is the aggregate of every param table::

    0x00  magic "PBND"
    0x04  table count (u32)
    0x08  version (u32)
    0x0C  reserved (u32)
    0x10  table list: count x {name: 64 bytes, offset: u32, length: u32, row stride: u32}
          param tables, offsets relative to the start of the aggregate

Repacking keeps the declared entry order, the raw name fields and any bytes
between or after entries, so an archive whose content is unchanged packs to
the exact bytes it was read from. When an entry changes length, the entries
after it move and every offset is recomputed.
"""

import struct
import zlib
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from ..errors import ParamNotFound, RegulationParseError
from ..logging_config import get_logger

logger = get_logger("archive")

ARCHIVE_MAGIC = b"DCX\x00"
ARCHIVE_HEADER = struct.Struct("<4sIIIIIII")
ARCHIVE_ENTRY = struct.Struct("<64sII")

PARAM_AGGREGATE_NAME = "gameparam.parambnd"
AGGREGATE_MAGIC = b"PBND"
AGGREGATE_HEADER = struct.Struct("<4sIII")
AGGREGATE_ENTRY = struct.Struct("<64sIII")

NAME_SIZE = 64


@dataclass
class _Slot:
    """A named blob inside a container, with the bytes that precede it."""
    name: str
    raw_name: bytes
    data: bytes
    offset: int
    row_stride: int = 0
    lead: bytes = b""
    source: bytes = field(default=b"", repr=False)

    @property
    def is_modified(self) -> bool:
        return self.data is not self.source and self.data != self.source


@dataclass(frozen=True)
class ParamFileInfo:
    """Location of one param table inside the aggregate."""
    name: str
    row_stride: int
    size: int


def _decode_name(raw_name: bytes, where: str) -> str:
    try:
        return raw_name.split(b"\x00", 1)[0].decode("utf-8")
    except UnicodeDecodeError as e:
        raise RegulationParseError(f"{where}: undecodable entry name {raw_name!r}") from e


def _encode_name(slot: _Slot) -> bytes:
    if slot.raw_name and _decode_name(slot.raw_name, slot.name) == slot.name:
        return slot.raw_name
    encoded = slot.name.encode("utf-8")
    if len(encoded) >= NAME_SIZE:
        raise ValueError(f"Entry name {slot.name!r} is longer than {NAME_SIZE - 1} bytes")
    return encoded.ljust(NAME_SIZE, b"\x00")


def _split_slots(blob: bytes, origin: int, slots: list[_Slot], where: str) -> bytes:
    """Attach to each slot the bytes preceding it and return the bytes after the last one."""
    pos = origin
    for slot in sorted(slots, key=lambda s: s.offset):
        if slot.offset < pos:
            raise RegulationParseError(f"{where}: entry {slot.name!r} overlaps the previous entry")
        slot.lead = blob[pos:slot.offset]
        pos = slot.offset + len(slot.data)
    return blob[pos:]


def _layout_slots(slots: list[_Slot], origin: int) -> tuple[bytes, dict[str, int]]:
    """Lay slots out in their original physical order, returning the bytes and new offsets."""
    parts = []
    offsets = {}
    pos = origin
    for slot in sorted(slots, key=lambda s: s.offset):
        parts.append(slot.lead)
        pos += len(slot.lead)
        offsets[slot.name] = pos
        parts.append(slot.data)
        pos += len(slot.data)
    return b"".join(parts), offsets


def _read_entries(blob: bytes, start: int, count: int, entry: struct.Struct, where: str) -> list[tuple]:
    end = start + count * entry.size
    if end > len(blob):
        raise RegulationParseError(f"{where}: entry table of {count} entries is truncated")
    return [entry.unpack_from(blob, start + i * entry.size) for i in range(count)]


def _take(blob: bytes, offset: int, length: int, name: str, where: str) -> bytes:
    if offset + length > len(blob):
        raise RegulationParseError(
            f"{where}: entry {name!r} at 0x{offset:X}+0x{length:X} runs past the end (0x{len(blob):X})"
        )
    return blob[offset:offset + length]


class RegulationArchive:
    """Decoded regulation archive: named files plus the param tables of the aggregate."""

    def __init__(self):
        self.version = 0
        self.level = 9
        self.reserved = 0
        self.header_gap = b""
        self.body_tail = b""
        self.aggregate_version = 0
        self.aggregate_reserved = 0
        self.tables_tail = b""
        self._entries: dict[str, _Slot] = {}
        self._tables: dict[str, _Slot] = {}
        self._source_body = b""
        self._source_compressed = b""
        self._source_aggregate = b""

    # Unpacking

    @classmethod
    def unpack(cls, data: bytes) -> "RegulationArchive":
        """Decompress and split the regulation archive.

        Args:
            data: Regulation section plaintext (trailing padding allowed)

        Returns:
            RegulationArchive

        Raises:
            RegulationParseError: On a bad header, truncated table, decompression
                failure or a missing param aggregate
        """
        archive = cls()
        if len(data) < ARCHIVE_HEADER.size:
            raise RegulationParseError(f"Archive header truncated ({len(data)} bytes)")
        (magic, archive.version, entry_count, data_offset, compressed_size,
         uncompressed_size, archive.level, archive.reserved) = ARCHIVE_HEADER.unpack_from(data, 0)
        if magic != ARCHIVE_MAGIC:
            raise RegulationParseError(f"Bad archive magic {magic!r}")

        raw_entries = _read_entries(data, ARCHIVE_HEADER.size, entry_count, ARCHIVE_ENTRY, "archive")
        table_end = ARCHIVE_HEADER.size + entry_count * ARCHIVE_ENTRY.size
        if data_offset < table_end or data_offset + compressed_size > len(data):
            raise RegulationParseError(
                f"Compressed body at 0x{data_offset:X}+0x{compressed_size:X} lies outside the archive"
            )
        archive.header_gap = data[table_end:data_offset]

        compressed = data[data_offset:data_offset + compressed_size]
        try:
            body = zlib.decompress(compressed)
        except zlib.error as e:
            raise RegulationParseError(f"Failed to decompress regulation body: {e}") from e
        if len(body) != uncompressed_size:
            raise RegulationParseError(
                f"Decompressed body is 0x{len(body):X} bytes, header declares 0x{uncompressed_size:X}"
            )
        archive._source_body = body
        archive._source_compressed = compressed

        for raw_name, offset, length in raw_entries:
            name = _decode_name(raw_name, "archive")
            if name in archive._entries:
                raise RegulationParseError(f"Duplicate archive entry {name!r}")
            blob = _take(body, offset, length, name, "archive")
            archive._entries[name] = _Slot(name, raw_name, blob, offset, source=blob)
        archive.body_tail = _split_slots(body, 0, list(archive._entries.values()), "archive")

        aggregate = archive._entries.get(PARAM_AGGREGATE_NAME)
        if aggregate is None:
            raise RegulationParseError(f"Archive has no {PARAM_AGGREGATE_NAME} entry")
        archive._unpack_aggregate(aggregate.data)

        logger.debug(
            "Unpacked regulation: %d entries, %d param tables", len(archive._entries), len(archive._tables)
        )
        return archive

    def _unpack_aggregate(self, blob: bytes) -> None:
        where = PARAM_AGGREGATE_NAME
        if len(blob) < AGGREGATE_HEADER.size:
            raise RegulationParseError(f"{where}: header truncated")
        magic, count, self.aggregate_version, self.aggregate_reserved = AGGREGATE_HEADER.unpack_from(blob, 0)
        if magic != AGGREGATE_MAGIC:
            raise RegulationParseError(f"{where}: bad magic {magic!r}")
        raw_tables = _read_entries(blob, AGGREGATE_HEADER.size, count, AGGREGATE_ENTRY, where)
        for raw_name, offset, length, row_stride in raw_tables:
            name = _decode_name(raw_name, where)
            if name in self._tables:
                raise RegulationParseError(f"{where}: duplicate param table {name!r}")
            table = _take(blob, offset, length, name, where)
            self._tables[name] = _Slot(name, raw_name, table, offset, row_stride=row_stride, source=table)
        origin = AGGREGATE_HEADER.size + count * AGGREGATE_ENTRY.size
        self.tables_tail = _split_slots(blob, origin, list(self._tables.values()), where)
        self._source_aggregate = blob

    # Access

    @property
    def file_names(self) -> list[str]:
        return list(self._entries)

    def get_file(self, name: str) -> bytes:
        try:
            return self._entries[name].data
        except KeyError:
            raise KeyError(f"Archive has no entry {name!r}") from None

    def set_file(self, name: str, data: bytes) -> None:
        """Replace the content of an existing archive entry."""
        if name == PARAM_AGGREGATE_NAME:
            raise ValueError("Param tables are replaced through set_param_file")
        if name not in self._entries:
            raise KeyError(f"Archive has no entry {name!r}")
        self._entries[name].data = bytes(data)

    @property
    def param_files(self) -> Mapping[str, bytes]:
        """Read-only view of param table bytes by table name, in declared order."""
        return MappingProxyType({name: slot.data for name, slot in self._tables.items()})

    def param_info(self, name: str) -> ParamFileInfo:
        """Look up where a param table lives.

        Raises:
            ParamNotFound: If the aggregate has no such table
        """
        slot = self._tables.get(name)
        if slot is None:
            raise ParamNotFound(name)
        return ParamFileInfo(name, slot.row_stride, len(slot.data))

    def get_param_file(self, name: str) -> bytes:
        slot = self._tables.get(name)
        if slot is None:
            raise ParamNotFound(name)
        return slot.data

    def set_param_file(self, name: str, data: bytes) -> None:
        """Replace the bytes of an existing param table."""
        slot = self._tables.get(name)
        if slot is None:
            raise ParamNotFound(name)
        slot.data = bytes(data)

    @property
    def is_modified(self) -> bool:
        return any(s.is_modified for s in self._tables.values()) or any(
            s.is_modified for n, s in self._entries.items() if n != PARAM_AGGREGATE_NAME
        )

    # Repacking

    def _pack_aggregate(self) -> bytes:
        if not any(s.is_modified for s in self._tables.values()):
            return self._source_aggregate
        slots = list(self._tables.values())
        origin = AGGREGATE_HEADER.size + len(slots) * AGGREGATE_ENTRY.size
        body, offsets = _layout_slots(slots, origin)
        header = AGGREGATE_HEADER.pack(
            AGGREGATE_MAGIC, len(slots), self.aggregate_version, self.aggregate_reserved
        )
        toc = b"".join(
            AGGREGATE_ENTRY.pack(_encode_name(s), offsets[s.name], len(s.data), s.row_stride)
            for s in slots
        )
        return header + toc + body + self.tables_tail

    def repack(self) -> bytes:
        """Rebuild the archive bytes from the current entries and tables."""
        self._entries[PARAM_AGGREGATE_NAME].data = self._pack_aggregate()
        slots = list(self._entries.values())
        body, offsets = _layout_slots(slots, 0)
        body += self.body_tail

        if body == self._source_body:
            compressed = self._source_compressed
        else:
            level = self.level if 0 <= self.level <= 9 else -1
            compressed = zlib.compress(body, level)
            logger.debug("Recompressed regulation body: 0x%X -> 0x%X bytes", len(body), len(compressed))

        data_offset = ARCHIVE_HEADER.size + len(slots) * ARCHIVE_ENTRY.size + len(self.header_gap)
        header = ARCHIVE_HEADER.pack(
            ARCHIVE_MAGIC,
            self.version,
            len(slots),
            data_offset,
            len(compressed),
            len(body),
            self.level,
            self.reserved,
        )
        table = b"".join(
            ARCHIVE_ENTRY.pack(_encode_name(s), offsets[s.name], len(s.data)) for s in slots
        )
        return header + table + self.header_gap + compressed
