"""Fixed layout of the outer save container.

A save file is a header followed by twelve sections in a fixed order:

| Index | Section                   | Plaintext size |
|-------|---------------------------|----------------|
| 0-9   | Character slots           | 0x27FFF0       |
| 10    | Profile summary           | 0x5FFF0        |
| 11    | Regulation archive        | 0x240000       |

Each raw section is ``checksum || IV || ciphertext``. The two platform
variants differ only in header length and checksum width:

| Variant     | Header | Checksum            |
|-------------|--------|---------------------|
| PC          | 0x300  | 16 bytes, HMAC-MD5  |
| PlayStation | 0x6C   | 32 bytes, HMAC-SHA256 |
"""

import struct
from dataclasses import dataclass
from enum import Enum

from ..errors import SaveParseError

PC_HEADER_MAGIC = b"BND4"
PC_HEADER_ENTRY_COUNT = 12

CHARACTER_SLOT_COUNT = 10
PROFILE_SECTION_INDEX = 10
REGULATION_SECTION_INDEX = 11
SECTION_COUNT = 12

IV_SIZE = 0x10
CHARACTER_DATA_SIZE = 0x27FFF0
PROFILE_DATA_SIZE = 0x5FFF0
REGULATION_DATA_SIZE = 0x240000


class SaveType(Enum):
    """Platform variant of a save file"""
    PC = "pc"
    PLAYSTATION = "playstation"


@dataclass(frozen=True)
class SaveLayout:
    """Sizes and offsets for one platform variant."""
    save_type: SaveType
    header_size: int
    checksum_size: int
    digest: str  # hashlib name used for the section HMAC

    @staticmethod
    def data_size(section_index: int) -> int:
        """Plaintext size of a section."""
        if 0 <= section_index < CHARACTER_SLOT_COUNT:
            return CHARACTER_DATA_SIZE
        if section_index == PROFILE_SECTION_INDEX:
            return PROFILE_DATA_SIZE
        if section_index == REGULATION_SECTION_INDEX:
            return REGULATION_DATA_SIZE
        raise ValueError(f"No section {section_index}")

    def section_size(self, section_index: int) -> int:
        """Raw (checksummed, encrypted) size of a section."""
        return self.checksum_size + IV_SIZE + self.data_size(section_index)

    def section_spans(self) -> list[tuple[int, int, int]]:
        """(section_index, start, end) for every section in file order."""
        spans = []
        pos = self.header_size
        for index in range(SECTION_COUNT):
            end = pos + self.section_size(index)
            spans.append((index, pos, end))
            pos = end
        return spans

    @property
    def total_size(self) -> int:
        return self.header_size + sum(self.section_size(i) for i in range(SECTION_COUNT))


PC_LAYOUT = SaveLayout(SaveType.PC, header_size=0x300, checksum_size=0x10, digest="md5")
PLAYSTATION_LAYOUT = SaveLayout(SaveType.PLAYSTATION, header_size=0x6C, checksum_size=0x20, digest="sha256")


def layout_for_header_size(header_size: int) -> SaveLayout:
    """The header length alone decides the variant: 0x6C is PlayStation, anything else PC."""
    if header_size == PLAYSTATION_LAYOUT.header_size:
        return PLAYSTATION_LAYOUT
    return PC_LAYOUT


def detect_layout(data: bytes) -> SaveLayout:
    """Work out the variant of a raw save file and validate its size.

    PC files open with a BND4 header declaring twelve entries; anything else
    is treated as a PlayStation export with the short header.

    Raises:
        SaveParseError: If the header is unrecognized or the size is wrong
    """
    if data[:4] == PC_HEADER_MAGIC:
        if len(data) < PC_LAYOUT.header_size:
            raise SaveParseError(f"Truncated PC header ({len(data)} bytes)")
        entry_count = struct.unpack_from("<I", data, 0x0C)[0]
        if entry_count != PC_HEADER_ENTRY_COUNT:
            raise SaveParseError(
                f"Unrecognized BND4 header: {entry_count} entries, expected {PC_HEADER_ENTRY_COUNT}"
            )
        layout = PC_LAYOUT
    else:
        layout = PLAYSTATION_LAYOUT

    if len(data) != layout.total_size:
        raise SaveParseError(
            f"Unexpected file size 0x{len(data):X} for {layout.save_type.value} save "
            f"(expected 0x{layout.total_size:X})"
        )
    return layout
