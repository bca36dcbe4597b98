"""Profile summary section (section 10).

Holds the account's Steam id and a lightweight summary of every character
slot, shown by the game's load menu. Each profile entry mirrors a few fields
of the matching character record; the character record is authoritative.

Layout of the section plaintext::

    0x0000  version (u32)
    0x0004  steam_id (u64)
    0x014C  active slots, one byte per slot (10)
    0x0158  profile entries, 10 x 0x24C bytes
"""

from .fields import BufferView, StructField, Utf16Field
from .layout import CHARACTER_SLOT_COUNT

ACTIVE_PROFILES_OFFSET = 0x14C
PROFILE_ENTRIES_OFFSET = 0x158
PROFILE_ENTRY_SIZE = 0x24C


class ProfileEntry(BufferView):
    """Load-menu summary of one character slot."""
    character_name = Utf16Field(0x00, 16)
    level = StructField("<I", 0x24)
    seconds_played = StructField("<I", 0x28)
    runes_memory = StructField("<I", 0x2C)
    gender = StructField("<B", 0x240)
    archetype = StructField("<B", 0x241)


class ProfileSummary(BufferView):
    """Active-slot bitmap plus the ten profile entries."""

    def __init__(self, buf: bytearray):
        super().__init__(buf, 0)
        self.profiles = [
            ProfileEntry(buf, PROFILE_ENTRIES_OFFSET + i * PROFILE_ENTRY_SIZE)
            for i in range(CHARACTER_SLOT_COUNT)
        ]

    @property
    def active_profiles(self) -> list[bool]:
        start = ACTIVE_PROFILES_OFFSET
        return [bool(b) for b in self._buf[start:start + CHARACTER_SLOT_COUNT]]

    def set_active(self, index: int, active: bool) -> None:
        if not 0 <= index < CHARACTER_SLOT_COUNT:
            raise IndexError(index)
        self._buf[ACTIVE_PROFILES_OFFSET + index] = 1 if active else 0


class UserData10(BufferView):
    """Decoded profile summary section."""
    version = StructField("<I", 0x00)
    steam_id = StructField("<Q", 0x04)

    def __init__(self, data: bytes):
        super().__init__(bytearray(data), 0)
        self.profile_summary = ProfileSummary(self._buf)

    @classmethod
    def from_bytes(cls, data: bytes) -> "UserData10":
        return cls(data)

    def to_bytes(self) -> bytes:
        return bytes(self._buf)
