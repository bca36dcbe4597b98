"""Section codec: decrypt, verify and re-encrypt one section of the save.

A raw section is laid out as::

    checksum (16 or 32 bytes) | IV (16 bytes) | AES-256-CBC ciphertext

The checksum is an HMAC over ``IV || plaintext`` whose digest depends on the
platform variant. The AES key is derived from a format constant and the
section's index. A failed checksum does not stop decoding: the section is
flagged invalid and its best-effort plaintext is still returned, so tools can
inspect and repair damaged slots.
"""

import hashlib
import hmac
import os
import struct
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .layout import IV_SIZE, SaveLayout
from ..errors import SaveParseError
from ..logging_config import get_logger

logger = get_logger("section")

BLOCK_SIZE = 16

# Format constants, not secrets
SECTION_KEY = bytes.fromhex(
    "99bffc366a6bc8c6f5827d093602d676c42892a01c207fb024d3af4e493fef99"
)
CHECKSUM_KEY = bytes.fromhex("4f2b7a91c06e13d85a3cf14e77b2906d")
_KEY_SALT = b"er_save_lib/section"
_KEY_ITERATIONS = 1000


@lru_cache(maxsize=None)
def derive_section_key(section_index: int) -> bytes:
    """Derive the 32-byte AES key for a section.

    Args:
        section_index: Position of the section in the file (0-11)

    Returns:
        32-byte key
    """
    return hashlib.pbkdf2_hmac(
        "sha256",
        SECTION_KEY,
        _KEY_SALT + struct.pack("<I", section_index),
        iterations=_KEY_ITERATIONS,
        dklen=32,
    )


def compute_checksum(layout: SaveLayout, iv: bytes, plaintext: bytes) -> bytes:
    """Keyed digest over IV || plaintext for the layout's variant."""
    mac = hmac.new(CHECKSUM_KEY, digestmod=layout.digest)
    mac.update(iv)
    mac.update(plaintext)
    return mac.digest()


@dataclass
class Section:
    """One decoded section.

    ``plaintext`` is the current content. ``raw`` and ``source_plaintext``
    describe the bytes this section was last decoded from or encoded to; as
    long as the plaintext matches them the raw bytes are written back as-is.
    """
    index: int
    iv: bytes
    plaintext: bytes
    checksum: bytes
    is_valid: bool
    raw: Optional[bytes] = field(default=None, repr=False)
    source_plaintext: Optional[bytes] = field(default=None, repr=False)
    needs_rehash: bool = False

    @property
    def is_dirty(self) -> bool:
        return (
            self.raw is None
            or self.needs_rehash
            or self.plaintext != self.source_plaintext
        )

    def mark_for_rehash(self) -> None:
        """Recompute the checksum on next encode even if the content is unchanged."""
        self.needs_rehash = True


class SectionCodec:
    """Decodes and encodes sections for one platform variant."""

    def __init__(self, layout: SaveLayout):
        self.layout = layout

    def decode(self, raw: bytes, section_index: int) -> Section:
        """Decrypt and verify one raw section.

        Args:
            raw: Raw section bytes (checksum, IV and ciphertext)
            section_index: Position of the section in the file

        Returns:
            Decoded Section, with is_valid False on checksum mismatch

        Raises:
            SaveParseError: If the ciphertext is not block aligned
        """
        overhead = self.layout.checksum_size + IV_SIZE
        if len(raw) < overhead:
            raise SaveParseError(f"Section {section_index} is truncated ({len(raw)} bytes)")

        checksum = raw[:self.layout.checksum_size]
        iv = raw[self.layout.checksum_size:overhead]
        ciphertext = raw[overhead:]
        if len(ciphertext) % BLOCK_SIZE:
            raise SaveParseError(
                f"Section {section_index} ciphertext is not a multiple of {BLOCK_SIZE} bytes "
                f"({len(ciphertext)})"
            )

        decryptor = self._cipher(section_index, iv).decryptor()
        try:
            plaintext = decryptor.update(ciphertext) + decryptor.finalize()
        except ValueError as e:
            raise SaveParseError(f"Section {section_index} failed to decrypt: {e}") from e

        expected = compute_checksum(self.layout, iv, plaintext)
        is_valid = hmac.compare_digest(expected, checksum)
        if not is_valid:
            logger.warning("Checksum mismatch in section %d", section_index)

        return Section(
            index=section_index,
            iv=iv,
            plaintext=plaintext,
            checksum=checksum,
            is_valid=is_valid,
            raw=raw,
            source_plaintext=plaintext,
        )

    def encode(self, section: Section, plaintext: Optional[bytes] = None) -> bytes:
        """Encrypt and checksum a section.

        An unchanged section returns its original raw bytes. A changed
        plaintext is encrypted under a fresh IV; a section marked for rehash
        keeps its IV. The section is updated to describe the returned bytes.

        Args:
            section: Section to encode
            plaintext: New plaintext, defaults to section.plaintext

        Returns:
            Raw section bytes
        """
        if plaintext is not None:
            section.plaintext = plaintext

        expected_size = self.layout.data_size(section.index)
        if len(section.plaintext) != expected_size:
            raise SaveParseError(
                f"Section {section.index} plaintext is 0x{len(section.plaintext):X} bytes, "
                f"expected 0x{expected_size:X}"
            )

        if not section.is_dirty:
            return section.raw

        if section.plaintext == section.source_plaintext:
            iv = section.iv
        else:
            iv = os.urandom(IV_SIZE)
        logger.debug("Re-encoding section %d", section.index)

        encryptor = self._cipher(section.index, iv).encryptor()
        ciphertext = encryptor.update(section.plaintext) + encryptor.finalize()
        checksum = compute_checksum(self.layout, iv, section.plaintext)
        raw = checksum + iv + ciphertext

        section.iv = iv
        section.checksum = checksum
        section.is_valid = True
        section.raw = raw
        section.source_plaintext = section.plaintext
        section.needs_rehash = False
        return raw

    @staticmethod
    def _cipher(section_index: int, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(derive_section_key(section_index)), modes.CBC(iv))
