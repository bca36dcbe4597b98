"""Character record stored in each of the ten character sections.

Layout of the section plaintext::

    0x000000  version (u32)
    0x000020  player game data (0x1B0 bytes)
    0x0001D0  event flag block (0x1BF99F bytes)
    0x1BFB70  equipped gestures   {count: u32, ids: u32 * count}
              unlocked regions    {count: u32, ids: u32 * count}
              rest                opaque, up to the end of the section

The section has a fixed size, so the two variable-length lists and ``rest``
always add up to the same length. Every edit that grows a list by one id
takes four bytes of zero padding off the end of ``rest``; every edit that
shrinks one gives four zero bytes back.
"""

import struct
from typing import Iterable, Optional

from .event_flags import EventFlagBlock
from .fields import BufferView, StructField, Utf16Field
from ..errors import CorruptSectionError, SaveParseError, SectionCapacityError
from ..logging_config import get_logger

logger = get_logger("user_data_x")

PLAYER_GAME_DATA_OFFSET = 0x20
EVENT_FLAGS_OFFSET = 0x1D0
EVENT_FLAGS_SIZE = 0x1BF99F
FIXED_HEADER_SIZE = 0x1BFB70
CHARACTER_NAME_LENGTH = 16

_U32 = struct.Struct("<I")


class PlayerGameData(BufferView):
    """Identity, vitals, attributes and currency of a character."""
    hp = StructField("<I", 0x08)
    max_hp = StructField("<I", 0x0C)
    base_max_hp = StructField("<I", 0x10)
    fp = StructField("<I", 0x14)
    max_fp = StructField("<I", 0x18)
    base_max_fp = StructField("<I", 0x1C)
    sp = StructField("<I", 0x24)
    max_sp = StructField("<I", 0x28)
    base_max_sp = StructField("<I", 0x2C)
    vigor = StructField("<I", 0x34)
    mind = StructField("<I", 0x38)
    endurance = StructField("<I", 0x3C)
    strength = StructField("<I", 0x40)
    dexterity = StructField("<I", 0x44)
    intelligence = StructField("<I", 0x48)
    faith = StructField("<I", 0x4C)
    arcane = StructField("<I", 0x50)
    level = StructField("<I", 0x60)
    runes = StructField("<I", 0x64)
    runes_memory = StructField("<I", 0x68)
    character_name = Utf16Field(0x94, CHARACTER_NAME_LENGTH)
    gender = StructField("<B", 0xB8)
    archetype = StructField("<B", 0xB9)


def _read_id_list(data: bytes, pos: int, what: str) -> tuple[list[int], int]:
    """Read a {count, ids} list starting at pos, returning the ids and the next position."""
    if pos + 4 > len(data):
        raise SaveParseError(f"Character record truncated before {what}")
    count = _U32.unpack_from(data, pos)[0]
    pos += 4
    end = pos + count * 4
    if end > len(data):
        raise SaveParseError(f"{what} count {count} overruns the character record")
    ids = list(struct.unpack_from(f"<{count}I", data, pos))
    return ids, end


def _pack_id_list(ids: list[int]) -> bytes:
    return struct.pack(f"<I{len(ids)}I", len(ids), *ids)


def _check_ids(ids: Iterable[int]) -> list[int]:
    checked = list(ids)
    for value in checked:
        if not isinstance(value, int) or not 0 <= value <= 0xFFFFFFFF:
            raise ValueError(f"Invalid id {value!r}, expected an unsigned 32-bit integer")
    return checked


class CharacterRecord:
    """Decoded character section.

    The fixed header is kept as one buffer that the player data and event
    flag views point into. ``rest`` is private: only the list edits below
    change its length.
    """

    def __init__(self, fixed: bytearray, gestures: list[int], regions: list[int], rest: bytearray):
        if len(fixed) != FIXED_HEADER_SIZE:
            raise ValueError(f"Fixed header must be 0x{FIXED_HEADER_SIZE:X} bytes")
        self._fixed = fixed
        self._gestures = gestures
        self._regions = regions
        self._rest = rest
        self.capacity = self._current_size()

    @classmethod
    def from_bytes(cls, data: bytes) -> "CharacterRecord":
        """Decode a character section plaintext.

        Raises:
            SaveParseError: If the variable-length lists overrun the section
        """
        if len(data) < FIXED_HEADER_SIZE:
            raise SaveParseError(f"Character record is only {len(data)} bytes")
        pos = FIXED_HEADER_SIZE
        gestures, pos = _read_id_list(data, pos, "equipped gestures")
        regions, pos = _read_id_list(data, pos, "unlocked regions")
        return cls(
            bytearray(data[:FIXED_HEADER_SIZE]),
            gestures,
            regions,
            bytearray(data[pos:]),
        )

    def to_bytes(self) -> bytes:
        data = b"".join((
            self._fixed,
            _pack_id_list(self._gestures),
            _pack_id_list(self._regions),
            self._rest,
        ))
        if len(data) != self.capacity:
            raise SectionCapacityError(
                f"Character record is 0x{len(data):X} bytes, section holds 0x{self.capacity:X}"
            )
        return data

    def _current_size(self) -> int:
        return FIXED_HEADER_SIZE + 8 + 4 * (len(self._gestures) + len(self._regions)) + len(self._rest)

    @property
    def version(self) -> int:
        return _U32.unpack_from(self._fixed, 0)[0]

    @property
    def player_game_data(self) -> PlayerGameData:
        return PlayerGameData(self._fixed, PLAYER_GAME_DATA_OFFSET)

    @property
    def event_flags(self) -> EventFlagBlock:
        return EventFlagBlock(self._fixed, EVENT_FLAGS_OFFSET, EVENT_FLAGS_SIZE)

    @property
    def rest_size(self) -> int:
        return len(self._rest)

    @property
    def rest(self) -> bytes:
        return bytes(self._rest)

    # Variable-length lists

    @property
    def equipped_gestures(self) -> list[int]:
        return list(self._gestures)

    def set_equipped_gestures(self, gestures: Iterable[int]) -> None:
        new = _check_ids(gestures)
        self._resize_rest(len(new) - len(self._gestures))
        self._gestures = new

    @property
    def unlocked_regions(self) -> list[int]:
        return list(self._regions)

    @property
    def regions_count(self) -> int:
        return len(self._regions)

    def add_region(self, region_id: int) -> bool:
        """Unlock a region. Returns False if it was already unlocked."""
        _check_ids([region_id])
        if region_id in self._regions:
            return False
        self._resize_rest(1)
        self._regions.append(region_id)
        return True

    def remove_region(self, region_id: int) -> bool:
        """Lock a region. Returns False if it was not unlocked."""
        if region_id not in self._regions:
            return False
        self._regions.remove(region_id)
        self._resize_rest(-1)
        return True

    def _resize_rest(self, id_delta: int) -> None:
        """Give or take four bytes of ``rest`` for each id added or removed."""
        byte_delta = 4 * id_delta
        if byte_delta > 0:
            if byte_delta > len(self._rest) or any(self._rest[-byte_delta:]):
                raise SectionCapacityError(
                    f"No free padding left for {id_delta} more id(s) in the character record"
                )
            del self._rest[-byte_delta:]
        elif byte_delta < 0:
            self._rest.extend(bytes(-byte_delta))


class UserDataX:
    """One character slot: its section plus the decoded record.

    A slot whose record cannot be decoded is kept only if its checksum already
    failed; its bytes are then written back untouched.
    """

    def __init__(self, section, record: Optional[CharacterRecord], error: Optional[str] = None):
        self.section = section
        self._record = record
        self._error = error

    @classmethod
    def from_section(cls, section) -> "UserDataX":
        try:
            record = CharacterRecord.from_bytes(section.plaintext)
        except SaveParseError as e:
            if section.is_valid:
                raise
            logger.warning("Character slot %d is corrupt and kept as-is: %s", section.index, e)
            return cls(section, None, str(e))
        return cls(section, record)

    @property
    def is_decoded(self) -> bool:
        return self._record is not None

    @property
    def record(self) -> CharacterRecord:
        if self._record is None:
            raise CorruptSectionError(self.section.index, self._error or "undecodable")
        return self._record

    def to_bytes(self) -> bytes:
        if self._record is None:
            return self.section.plaintext
        return self._record.to_bytes()
