"""Event flag storage and flag id resolution.

Event flags are single bits inside a fixed-size block of each character
record. Flag ids are sparse, so they are mapped to bit offsets through an
externally supplied index of ``(flag_id, bit_offset)`` pairs sorted by id.
Within the block, bit ``n`` is byte ``n // 8``, most significant bit first.
"""

import bisect
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Optional

from ..config.paths import LibraryPaths
from ..errors import EventIdNotFound
from ..logging_config import get_logger

logger = get_logger("event_flags")


class EventFlagBlock:
    """Bit array view over part of a character record buffer."""

    def __init__(self, buf: bytearray, base: int, size: int):
        self._buf = buf
        self._base = base
        self.size = size

    def _locate(self, bit_offset: int) -> tuple[int, int]:
        byte_index, bit = divmod(bit_offset, 8)
        if bit_offset < 0 or byte_index >= self.size:
            raise IndexError(
                f"Bit offset {bit_offset} outside event flag block of {self.size} bytes"
            )
        return self._base + byte_index, 0x80 >> bit

    def get(self, bit_offset: int) -> bool:
        position, mask = self._locate(bit_offset)
        return bool(self._buf[position] & mask)

    def set(self, bit_offset: int, on: bool) -> None:
        position, mask = self._locate(bit_offset)
        if on:
            self._buf[position] |= mask
        else:
            self._buf[position] &= ~mask & 0xFF


class FlagIndex:
    """Sorted mapping from event flag id to bit offset.

    Lookups are a binary search over the sorted ids.
    """

    def __init__(self, pairs: Iterable[tuple[int, int]]):
        ordered = sorted(pairs)
        ids: list[int] = []
        offsets: list[int] = []
        for flag_id, bit_offset in ordered:
            if ids and ids[-1] == flag_id:
                if offsets[-1] != bit_offset:
                    raise ValueError(
                        f"Flag id {flag_id} mapped to both {offsets[-1]} and {bit_offset}"
                    )
                continue
            ids.append(flag_id)
            offsets.append(bit_offset)
        self._ids = ids
        self._offsets = offsets

    @classmethod
    def from_file(cls, path: Path) -> "FlagIndex":
        """Load an index from a text file of ``flag_id,bit_offset`` lines.

        Blank lines and lines starting with '#' are ignored.

        Raises:
            ValueError: If a line is malformed
        """
        pairs = []
        with open(path, "r", encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                try:
                    flag_id, bit_offset = (int(part, 0) for part in line.split(","))
                except ValueError as e:
                    raise ValueError(f"{path}:{line_no}: malformed flag index line {line!r}") from e
                pairs.append((flag_id, bit_offset))
        logger.debug("Loaded %d event flag ids from %s", len(pairs), path)
        return cls(pairs)

    def bit_offset(self, flag_id: int) -> int:
        """Resolve a flag id to its bit offset.

        Raises:
            EventIdNotFound: If the id is not in the index
        """
        pos = bisect.bisect_left(self._ids, flag_id)
        if pos == len(self._ids) or self._ids[pos] != flag_id:
            raise EventIdNotFound(flag_id)
        return self._offsets[pos]

    def __contains__(self, flag_id: int) -> bool:
        pos = bisect.bisect_left(self._ids, flag_id)
        return pos < len(self._ids) and self._ids[pos] == flag_id

    def __len__(self) -> int:
        return len(self._ids)


@lru_cache(maxsize=None)
def _load_cached(path: Path) -> FlagIndex:
    return FlagIndex.from_file(path)


def load_flag_index(path: Optional[Path] = None) -> FlagIndex:
    """Load a flag index once per process.

    Args:
        path: Index file, defaults to the packaged sample index

    Returns:
        The shared FlagIndex for that file
    """
    if path is None:
        path = LibraryPaths.EVENT_FLAG_INDEX
    return _load_cached(Path(path).resolve())
