"""Outer save container.

Splits a save file into its header and twelve sections, decodes each one
and reassembles them in fixed file order on write. The header is kept
verbatim.
"""

from pathlib import Path
from typing import Union

from .layout import (
    CHARACTER_SLOT_COUNT,
    PROFILE_SECTION_INDEX,
    REGULATION_SECTION_INDEX,
    SaveLayout,
    SaveType,
    detect_layout,
)
from .section import Section, SectionCodec
from .user_data_10 import UserData10
from .user_data_11 import UserData11
from .user_data_x import UserDataX
from ..errors import ChecksumMismatchError
from ..logging_config import get_logger

logger = get_logger("save")


class Save:
    """A parsed save file."""

    def __init__(
        self,
        header: bytes,
        layout: SaveLayout,
        sections: list[Section],
        user_data_x: list[UserDataX],
        user_data_10: UserData10,
        user_data_11: UserData11,
    ):
        self.header = header
        self.layout = layout
        self.sections = sections
        self.user_data_x = user_data_x
        self.user_data_10 = user_data_10
        self.user_data_11 = user_data_11
        self._codec = SectionCodec(layout)

    @classmethod
    def from_slice(cls, data: bytes, strict: bool = False) -> "Save":
        """Parse a whole save file.

        Args:
            data: Save file contents
            strict: Raise on the first section failing checksum verification

        Returns:
            Save

        Raises:
            SaveParseError: If the file layout is wrong
            ChecksumMismatchError: In strict mode, if a section fails verification
        """
        data = bytes(data)
        layout = detect_layout(data)
        codec = SectionCodec(layout)
        logger.debug("Parsing %s save (0x%X bytes)", layout.save_type.value, len(data))

        sections = []
        for index, start, end in layout.section_spans():
            section = codec.decode(data[start:end], index)
            if strict and not section.is_valid:
                raise ChecksumMismatchError(index)
            sections.append(section)

        user_data_x = [UserDataX.from_section(sections[i]) for i in range(CHARACTER_SLOT_COUNT)]
        user_data_10 = UserData10.from_bytes(sections[PROFILE_SECTION_INDEX].plaintext)
        user_data_11 = UserData11(sections[REGULATION_SECTION_INDEX])

        return cls(
            header=data[:layout.header_size],
            layout=layout,
            sections=sections,
            user_data_x=user_data_x,
            user_data_10=user_data_10,
            user_data_11=user_data_11,
        )

    @classmethod
    def from_path(cls, path: Union[str, Path], strict: bool = False) -> "Save":
        path = Path(path)
        logger.debug("Reading save file %s", path)
        return cls.from_slice(path.read_bytes(), strict=strict)

    def platform(self) -> SaveType:
        return self.layout.save_type

    def invalid_sections(self) -> list[int]:
        """Indices of sections whose checksum did not verify."""
        return [s.index for s in self.sections if not s.is_valid]

    def _section_plaintext(self, index: int) -> bytes:
        if index < CHARACTER_SLOT_COUNT:
            return self.user_data_x[index].to_bytes()
        if index == PROFILE_SECTION_INDEX:
            return self.user_data_10.to_bytes()
        return self.user_data_11.to_bytes()

    def write_to_vec(self) -> bytes:
        """Serialize the save, re-encoding only sections whose content changed."""
        parts = [self.header]
        for section in sorted(self.sections, key=lambda s: s.index):
            parts.append(self._codec.encode(section, self._section_plaintext(section.index)))
        return b"".join(parts)

    def write_to_path(self, path: Union[str, Path]) -> None:
        data = self.write_to_vec()
        path = Path(path)
        path.write_bytes(data)
        logger.info("Wrote save file %s", path)
