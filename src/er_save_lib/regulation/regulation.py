"""Regulation section content with a cache of decoded param tables."""

from typing import Mapping, Optional, Union

from .archive import RegulationArchive
from .param import ParamSchema, ParamTable, decode_param, encode_param
from .paramdefs import resolve_paramdef
from ..errors import ParamDecodeError, SectionCapacityError
from ..logging_config import get_logger

logger = get_logger("regulation")


class Regulation:
    """The regulation archive behind section 11.

    The archive is unpacked on first use, so a save with a damaged regulation
    still loads. Decoded tables are cached by name and written back into the
    archive on ``to_bytes``. The cache is only dropped by ``invalidate`` or
    ``replace``.
    """

    def __init__(self, data: bytes):
        self._data = bytes(data)
        self._archive: Optional[RegulationArchive] = None
        self._tables: dict[str, tuple[ParamSchema, ParamTable]] = {}

    @property
    def capacity(self) -> int:
        return len(self._data)

    @property
    def is_unpacked(self) -> bool:
        return self._archive is not None

    @property
    def archive(self) -> RegulationArchive:
        """The unpacked archive.

        Raises:
            RegulationParseError: If the section does not hold a valid archive
        """
        if self._archive is None:
            logger.debug("Unpacking regulation archive")
            self._archive = RegulationArchive.unpack(self._data)
        return self._archive

    @property
    def param_files(self) -> Mapping[str, bytes]:
        """Raw bytes of every param table, including edits made through cached tables."""
        self._flush()
        return self.archive.param_files

    def get_param(self, token: Union[ParamSchema, str]) -> ParamTable:
        """Decode a param table, or return the cached one.

        Args:
            token: Schema or registered table name

        Returns:
            Live ParamTable; edits are written back on serialize

        Raises:
            ParamNotFound: If the archive has no such table
            ParamDecodeError: If the table disagrees with the schema
        """
        schema = resolve_paramdef(token)
        cached = self._tables.get(schema.name)
        if cached is not None:
            if cached[0] == schema:
                return cached[1]
            # Keep edits made through the table decoded with the other schema
            self.archive.set_param_file(schema.name, encode_param(*cached))
            del self._tables[schema.name]

        info = self.archive.param_info(schema.name)
        if info.row_stride != schema.row_size:
            raise ParamDecodeError(
                f"{schema.name}: archive row stride {info.row_stride} does not match "
                f"schema row size {schema.row_size}"
            )
        table = decode_param(schema, self.archive.get_param_file(schema.name))
        self._tables[schema.name] = (schema, table)
        return table

    def invalidate(self) -> None:
        """Drop decoded tables and the unpacked archive, discarding unsaved table edits."""
        logger.debug("Dropping %d cached param tables", len(self._tables))
        self._tables.clear()
        self._archive = None

    def replace(self, data: bytes) -> None:
        """Swap in a new regulation archive, padded to the section size.

        Raises:
            SectionCapacityError: If data is larger than the section
        """
        if len(data) > self.capacity:
            raise SectionCapacityError(
                f"Regulation of 0x{len(data):X} bytes does not fit the 0x{self.capacity:X}-byte section"
            )
        self._data = bytes(data) + bytes(self.capacity - len(data))
        self.invalidate()

    def _flush(self) -> None:
        if self._archive is None:
            return
        for name, (schema, table) in self._tables.items():
            self._archive.set_param_file(name, encode_param(schema, table))

    def to_bytes(self) -> bytes:
        """Section plaintext, repacked only if a table or file changed.

        Raises:
            SectionCapacityError: If the repacked archive outgrows the section
        """
        if self._archive is None:
            return self._data
        self._flush()
        if not self._archive.is_modified:
            return self._data
        packed = self._archive.repack()
        if len(packed) > self.capacity:
            raise SectionCapacityError(
                f"Repacked regulation is 0x{len(packed):X} bytes, section holds 0x{self.capacity:X}"
            )
        return packed + bytes(self.capacity - len(packed))
