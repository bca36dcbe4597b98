"""Param table codec.

A param table is a header, one fixed-stride record per row and a trailing
name block::

    0x00  magic "PARM"
    0x04  format version (u16)   1: row id is the row's position
                                 2: row id is read from the schema's id field
    0x06  reserved (u16)
    0x08  row count (u32)
    0x0C  row stride (u32)
    0x10  rows offset (u32)
    0x14  name block offset (u32)
    0x18  reserved (8 bytes)

Rows are decoded through a ``ParamSchema`` describing each field's name,
offset and kind. Bytes a schema does not describe are kept from the source
row, and re-encoding a row only writes the fields that were assigned since it
was decoded, so an untouched row encodes to exactly the bytes it came from.
"""

import struct
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Iterator, Optional, Type, Union

from ..errors import ParamDecodeError, ParamEncodeError
from ..logging_config import get_logger

logger = get_logger("param")

PARAM_MAGIC = b"PARM"
PARAM_HEADER = struct.Struct("<4sHHIIII8s")

FORMAT_INDEXED = 1
FORMAT_KEYED = 2


class FieldKind(Enum):
    """Binary kinds a param field can have"""
    S8 = "s8"
    U8 = "u8"
    S16 = "s16"
    U16 = "u16"
    S32 = "s32"
    U32 = "u32"
    F32 = "f32"
    F64 = "f64"
    FIXSTR = "fixstr"      # byte string in a fixed window
    FIXSTR_W = "fixstrW"   # UTF-16LE string in a fixed window


_NUMERIC_FORMATS = {
    FieldKind.S8: struct.Struct("<b"),
    FieldKind.U8: struct.Struct("<B"),
    FieldKind.S16: struct.Struct("<h"),
    FieldKind.U16: struct.Struct("<H"),
    FieldKind.S32: struct.Struct("<i"),
    FieldKind.U32: struct.Struct("<I"),
    FieldKind.F32: struct.Struct("<f"),
    FieldKind.F64: struct.Struct("<d"),
}

_INTEGER_KINDS = {
    FieldKind.S8, FieldKind.U8, FieldKind.S16, FieldKind.U16, FieldKind.S32, FieldKind.U32,
}


@dataclass(frozen=True)
class ParamField:
    """One field of a row: where it lives and how it is encoded.

    ``width`` is the window size in bytes for string kinds and ignored for
    numeric ones. An ``enum`` turns integer values into members of that enum;
    values the enum does not know decode as plain ints.
    """
    name: str
    offset: int
    kind: FieldKind
    width: int = 0
    enum: Optional[Type[IntEnum]] = None
    encoding: str = "shift_jis"

    @property
    def size(self) -> int:
        if self.kind in _NUMERIC_FORMATS:
            return _NUMERIC_FORMATS[self.kind].size
        return self.width

    def read(self, buf: bytes, base: int = 0):
        start = base + self.offset
        if self.kind in _NUMERIC_FORMATS:
            value = _NUMERIC_FORMATS[self.kind].unpack_from(buf, start)[0]
            if self.enum is not None:
                try:
                    return self.enum(value)
                except ValueError:
                    return value
            return value
        window = bytes(buf[start:start + self.width])
        if self.kind is FieldKind.FIXSTR_W:
            for i in range(0, len(window), 2):
                if window[i:i + 2] == b"\x00\x00":
                    window = window[:i]
                    break
            return window.decode("utf-16-le", errors="replace")
        return window.split(b"\x00", 1)[0].decode(self.encoding, errors="replace")

    def write(self, buf: bytearray, value, base: int = 0) -> None:
        start = base + self.offset
        if self.kind in _NUMERIC_FORMATS:
            if self.kind in _INTEGER_KINDS and isinstance(value, float):
                raise ValueError(f"{self.name} is an integer field, got {value!r}")
            try:
                _NUMERIC_FORMATS[self.kind].pack_into(buf, start, value)
            except struct.error as e:
                raise ValueError(f"Invalid value for {self.name}: {value!r} ({e})") from e
            return
        if self.kind is FieldKind.FIXSTR_W:
            encoded = value.encode("utf-16-le")
        else:
            encoded = value.encode(self.encoding)
        if len(encoded) > self.width:
            raise ValueError(f"{self.name} holds at most {self.width} bytes, got {len(encoded)}")
        buf[start:start + self.width] = encoded.ljust(self.width, b"\x00")


@dataclass(frozen=True)
class ParamSchema:
    """Row layout of one param type.

    ``id_field`` names the field holding the row id in keyed (version 2)
    tables.
    """
    name: str
    row_size: int
    fields: tuple[ParamField, ...]
    id_field: Optional[str] = None
    _by_name: dict = field(default=None, init=False, repr=False, compare=False, hash=False)

    def __post_init__(self):
        by_name = {}
        for f in self.fields:
            if f.name in by_name:
                raise ValueError(f"{self.name}: duplicate field {f.name}")
            if f.offset < 0 or f.offset + f.size > self.row_size:
                raise ValueError(f"{self.name}.{f.name} lies outside the {self.row_size}-byte row")
            by_name[f.name] = f
        spans = sorted((f.offset, f.offset + f.size, f.name) for f in self.fields)
        for (_, end, first), (start, _, second) in zip(spans, spans[1:]):
            if start < end:
                raise ValueError(f"{self.name}: fields {first} and {second} overlap")
        if self.id_field is not None:
            id_def = by_name.get(self.id_field)
            if id_def is None or id_def.kind not in _INTEGER_KINDS:
                raise ValueError(f"{self.name}: id field {self.id_field!r} must be an integer field")
        object.__setattr__(self, "_by_name", by_name)

    def field(self, name: str) -> ParamField:
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"{self.name} has no field {name!r}") from None

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


class ParamRow:
    """A decoded row: field values by name plus the source bytes.

    Fields are available as items (``row["msg_id"]``) and attributes
    (``row.msg_id``).
    """

    __slots__ = ("schema", "_raw", "_values", "_assigned")

    def __init__(self, schema: ParamSchema, raw: Optional[bytes] = None):
        if raw is None:
            raw = bytes(schema.row_size)
        if len(raw) != schema.row_size:
            raise ParamDecodeError(
                f"{schema.name} row is {len(raw)} bytes, schema declares {schema.row_size}"
            )
        object.__setattr__(self, "schema", schema)
        object.__setattr__(self, "_raw", bytes(raw))
        object.__setattr__(self, "_values", {f.name: f.read(raw) for f in schema.fields})
        object.__setattr__(self, "_assigned", set())

    def __getitem__(self, name: str):
        if name not in self._values:
            raise KeyError(f"{self.schema.name} has no field {name!r}")
        return self._values[name]

    def __setitem__(self, name: str, value) -> None:
        param_field = self.schema.field(name)
        # Validate by encoding into a scratch row
        param_field.write(bytearray(self.schema.row_size), value)
        self._values[name] = value
        self._assigned.add(name)

    def __getattr__(self, name: str):
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(f"{self.schema.name} has no field {name!r}") from None

    def __setattr__(self, name: str, value) -> None:
        if name in self._values:
            self[name] = value
        else:
            raise AttributeError(f"{self.schema.name} has no field {name!r}")

    def __eq__(self, other) -> bool:
        if not isinstance(other, ParamRow):
            return NotImplemented
        return self.schema.name == other.schema.name and self.to_bytes() == other.to_bytes()

    def __repr__(self) -> str:
        return f"<{self.schema.name} row {self._values}>"

    @property
    def is_modified(self) -> bool:
        return bool(self._assigned)

    def as_dict(self) -> dict:
        return dict(self._values)

    def to_bytes(self) -> bytes:
        if not self._assigned:
            return self._raw
        buf = bytearray(self._raw)
        for name in self._assigned:
            self.schema.field(name).write(buf, self._values[name])
        return bytes(buf)


class ParamTable(MutableMapping):
    """Rows of one param table keyed by row id.

    Iteration follows source row order, with new rows appended. The header
    fields and every byte outside the rows are kept for re-encoding.
    """

    def __init__(
        self,
        schema: ParamSchema,
        rows: Optional[dict[int, ParamRow]] = None,
        version: int = FORMAT_KEYED,
        reserved: int = 0,
        header_tail: bytes = bytes(8),
        prefix: bytes = b"",
        gap: bytes = b"",
        name_block: bytes = b"",
    ):
        self.schema = schema
        self.rows: dict[int, ParamRow] = dict(rows or {})
        self.version = version
        self.reserved = reserved
        self.header_tail = header_tail
        self.prefix = prefix
        self.gap = gap
        self.name_block = name_block

    def __getitem__(self, row_id: int) -> ParamRow:
        return self.rows[row_id]

    def __setitem__(self, row_id: int, row: ParamRow) -> None:
        if not isinstance(row, ParamRow) or row.schema.name != self.schema.name:
            raise TypeError(f"Expected a {self.schema.name} row, got {row!r}")
        self.rows[row_id] = row

    def __delitem__(self, row_id: int) -> None:
        del self.rows[row_id]

    def __iter__(self) -> Iterator[int]:
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def new_row(self, row_id: int) -> ParamRow:
        """Add a zero-filled row under row_id and return it."""
        if row_id in self.rows:
            raise KeyError(f"{self.schema.name} already has row {row_id}")
        row = ParamRow(self.schema)
        if self.version == FORMAT_KEYED and self.schema.id_field:
            row[self.schema.id_field] = row_id
        self.rows[row_id] = row
        return row


def decode_param(schema: ParamSchema, data: bytes) -> ParamTable:
    """Decode one param table.

    Args:
        schema: Row layout for the table
        data: Raw table bytes

    Returns:
        ParamTable keyed by row id

    Raises:
        ParamDecodeError: If the table is truncated or disagrees with the schema
    """
    if len(data) < PARAM_HEADER.size:
        raise ParamDecodeError(f"{schema.name}: table is only {len(data)} bytes")
    (magic, version, reserved, row_count, row_stride,
     rows_offset, name_block_offset, header_tail) = PARAM_HEADER.unpack_from(data, 0)

    if magic != PARAM_MAGIC:
        raise ParamDecodeError(f"{schema.name}: bad magic {magic!r}")
    if version not in (FORMAT_INDEXED, FORMAT_KEYED):
        raise ParamDecodeError(f"{schema.name}: unsupported format version {version}")
    if row_stride != schema.row_size:
        raise ParamDecodeError(
            f"{schema.name}: row stride {row_stride} does not match schema row size {schema.row_size}"
        )
    if version == FORMAT_KEYED and schema.id_field is None:
        raise ParamDecodeError(f"{schema.name}: keyed table but the schema declares no id field")

    rows_end = rows_offset + row_count * row_stride
    if rows_offset < PARAM_HEADER.size or not rows_end <= name_block_offset <= len(data):
        raise ParamDecodeError(
            f"{schema.name}: {row_count} rows of {row_stride} bytes at 0x{rows_offset:X} "
            f"do not fit before the name block at 0x{name_block_offset:X} ({len(data)} bytes)"
        )

    rows: dict[int, ParamRow] = {}
    for i in range(row_count):
        start = rows_offset + i * row_stride
        row = ParamRow(schema, data[start:start + row_stride])
        row_id = i if version == FORMAT_INDEXED else int(row[schema.id_field])
        if row_id in rows:
            raise ParamDecodeError(f"{schema.name}: duplicate row id {row_id}")
        rows[row_id] = row

    logger.debug("Decoded %s: %d rows", schema.name, row_count)
    return ParamTable(
        schema,
        rows,
        version=version,
        reserved=reserved,
        header_tail=header_tail,
        prefix=bytes(data[PARAM_HEADER.size:rows_offset]),
        gap=bytes(data[rows_end:name_block_offset]),
        name_block=bytes(data[name_block_offset:]),
    )


def encode_param(schema: ParamSchema, table: Union[ParamTable, dict[int, ParamRow]]) -> bytes:
    """Encode rows back into a param table.

    Args:
        schema: Row layout for the table
        table: A decoded ParamTable, or a plain mapping of row id to row

    Returns:
        Raw table bytes

    Raises:
        ParamEncodeError: If a row belongs to another schema or, for indexed
            tables, the row ids are not 0..n-1
    """
    if not isinstance(table, ParamTable):
        version = FORMAT_INDEXED if schema.id_field is None else FORMAT_KEYED
        table = ParamTable(schema, dict(table), version=version)

    if table.version == FORMAT_INDEXED:
        if sorted(table.rows) != list(range(len(table.rows))):
            raise ParamEncodeError(f"{schema.name}: indexed table needs row ids 0..{len(table.rows) - 1}")
        ordered = [(i, table.rows[i]) for i in range(len(table.rows))]
    else:
        ordered = list(table.rows.items())

    body = []
    for row_id, row in ordered:
        if row.schema.name != schema.name or row.schema.row_size != schema.row_size:
            raise ParamEncodeError(f"{schema.name}: row {row_id} belongs to {row.schema.name}")
        if table.version == FORMAT_KEYED and row[schema.id_field] != row_id:
            row[schema.id_field] = row_id
        body.append(row.to_bytes())

    rows_offset = PARAM_HEADER.size + len(table.prefix)
    rows_end = rows_offset + len(ordered) * schema.row_size
    header = PARAM_HEADER.pack(
        PARAM_MAGIC,
        table.version,
        table.reserved,
        len(ordered),
        schema.row_size,
        rows_offset,
        rows_end + len(table.gap),
        table.header_tail,
    )
    return b"".join([header, table.prefix, *body, table.gap, table.name_block])
