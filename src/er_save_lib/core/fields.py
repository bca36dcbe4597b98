"""Typed field descriptors over a shared byte buffer.

Records with a fixed layout (player game data, profile entries, the profile
summary header) are views over the section's plaintext buffer. Reading a
field unpacks it in place and assigning one packs it back, so every byte the
record does not declare stays exactly as loaded.
"""

import struct


class BufferView:
    """A record located at ``base`` within ``buf``."""

    def __init__(self, buf: bytearray, base: int = 0):
        self._buf = buf
        self._base = base


class StructField:
    """A fixed-width numeric field packed with a ``struct`` format."""

    def __init__(self, fmt: str, offset: int):
        self.fmt = struct.Struct(fmt)
        self.offset = offset
        self.name = ""

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj: BufferView, objtype=None):
        if obj is None:
            return self
        return self.fmt.unpack_from(obj._buf, obj._base + self.offset)[0]

    def __set__(self, obj: BufferView, value):
        # pack_into clears the target before it fails, so pack separately
        try:
            packed = self.fmt.pack(value)
        except struct.error as e:
            raise ValueError(f"Invalid value for {self.name}: {value!r} ({e})") from e
        start = obj._base + self.offset
        obj._buf[start:start + self.fmt.size] = packed


class Utf16Field:
    """A null-terminated UTF-16LE string in a fixed window of max_chars + 1 code units."""

    def __init__(self, offset: int, max_chars: int):
        self.offset = offset
        self.max_chars = max_chars
        self.size = (max_chars + 1) * 2
        self.name = ""

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj: BufferView, objtype=None):
        if obj is None:
            return self
        start = obj._base + self.offset
        raw = bytes(obj._buf[start:start + self.size])
        # Stop at the first null code unit
        for i in range(0, len(raw), 2):
            if raw[i:i + 2] == b"\x00\x00":
                raw = raw[:i]
                break
        return raw.decode("utf-16-le", errors="replace")

    def __set__(self, obj: BufferView, value: str):
        if not isinstance(value, str):
            raise ValueError(f"{self.name} must be a string, got {value!r}")
        encoded = value.encode("utf-16-le")
        if len(encoded) > self.max_chars * 2:
            raise ValueError(f"{self.name} is limited to {self.max_chars} characters: {value!r}")
        start = obj._base + self.offset
        obj._buf[start:start + self.size] = encoded.ljust(self.size, b"\x00")
