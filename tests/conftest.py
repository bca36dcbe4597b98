import hmac
import os
import struct
import sys
import zlib
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes  # noqa: E402

from er_save_lib.core.layout import (  # noqa: E402
    CHARACTER_DATA_SIZE,
    PC_LAYOUT,
    PLAYSTATION_LAYOUT,
    PROFILE_DATA_SIZE,
    REGULATION_DATA_SIZE,
)
from er_save_lib.core.section import CHECKSUM_KEY, derive_section_key  # noqa: E402
from er_save_lib.core.user_data_10 import (  # noqa: E402
    ACTIVE_PROFILES_OFFSET,
    PROFILE_ENTRIES_OFFSET,
    PROFILE_ENTRY_SIZE,
)
from er_save_lib.core.user_data_x import FIXED_HEADER_SIZE, PLAYER_GAME_DATA_OFFSET  # noqa: E402

STEAM_ID = 76561198012345678
GESTURES = [1, 2]
REGIONS = [6100000, 6101000, 6102000]
REST_MARKER = b"REST" * 16
MESSAGE_FILE = b"message archive bytes"

# Player game data values written into every populated slot (offset -> value)
PLAYER_STATS = {
    0x08: 400, 0x0C: 450, 0x10: 450,
    0x14: 80, 0x18: 90, 0x1C: 90,
    0x24: 95, 0x28: 100, 0x2C: 100,
    0x34: 10, 0x38: 11, 0x3C: 12, 0x40: 13,
    0x44: 14, 0x48: 15, 0x4C: 16, 0x50: 17,
    0x64: 1234, 0x68: 5678,
}


def encrypt_section(layout, index, plaintext, iv=None, corrupt=False):
    """Raw section bytes: checksum || IV || AES-256-CBC(plaintext)."""
    iv = iv or os.urandom(16)
    encryptor = Cipher(algorithms.AES(derive_section_key(index)), modes.CBC(iv)).encryptor()
    ciphertext = encryptor.update(plaintext) + encryptor.finalize()
    checksum = hmac.new(CHECKSUM_KEY, iv + plaintext, layout.digest).digest()
    if corrupt:
        checksum = bytes(b ^ 0xFF for b in checksum)
    return checksum + iv + ciphertext


def build_character(name=None, level=1, gestures=(), regions=(), padded=True):
    """Character section plaintext. Without a name the slot is left empty."""
    if name is None:
        return bytes(CHARACTER_DATA_SIZE)
    fixed = bytearray(FIXED_HEADER_SIZE)
    struct.pack_into("<I", fixed, 0, 0xEA)
    base = PLAYER_GAME_DATA_OFFSET
    for offset, value in PLAYER_STATS.items():
        struct.pack_into("<I", fixed, base + offset, value)
    struct.pack_into("<I", fixed, base + 0x60, level)
    encoded = name.encode("utf-16-le")
    fixed[base + 0x94:base + 0x94 + len(encoded)] = encoded
    fixed[base + 0xB8] = 1
    fixed[base + 0xB9] = 3

    lists = struct.pack(f"<I{len(gestures)}I", len(gestures), *gestures)
    lists += struct.pack(f"<I{len(regions)}I", len(regions), *regions)
    rest_size = CHARACTER_DATA_SIZE - FIXED_HEADER_SIZE - len(lists)
    if padded:
        rest = REST_MARKER + bytes(rest_size - len(REST_MARKER))
    else:
        rest = b"\xCD" * rest_size
    return bytes(fixed) + lists + rest


def build_profile(characters):
    """Profile summary plaintext for {slot: (name, level)}."""
    buf = bytearray(PROFILE_DATA_SIZE)
    struct.pack_into("<I", buf, 0x00, 0x11)
    struct.pack_into("<Q", buf, 0x04, STEAM_ID)
    for index, (name, level) in characters.items():
        buf[ACTIVE_PROFILES_OFFSET + index] = 1
        entry = PROFILE_ENTRIES_OFFSET + index * PROFILE_ENTRY_SIZE
        encoded = name.encode("utf-16-le")
        buf[entry:entry + len(encoded)] = encoded
        struct.pack_into("<III", buf, entry + 0x24, level, 3600, 5678)
        buf[entry + 0x240] = 1
        buf[entry + 0x241] = 3
    return bytes(buf)


def build_param(version, row_size, rows, name_block=b"", gap=b"", prefix=b""):
    """Param table bytes in the PARM layout."""
    rows_offset = 0x20 + len(prefix)
    rows_end = rows_offset + len(rows) * row_size
    header = struct.pack(
        "<4sHHIIII8s", b"PARM", version, 0, len(rows), row_size,
        rows_offset, rows_end + len(gap), b"\x00" * 8,
    )
    return header + prefix + b"".join(rows) + gap + name_block


def talk_row(row_id, msg_id, talk_type=0):
    row = bytearray(b"\xEE" * 0x40)
    struct.pack_into("<i", row, 0x00, row_id)
    struct.pack_into("<i", row, 0x08, msg_id)
    row[0x38] = talk_type
    return bytes(row)


def goods_row(row_id, weight, goods_type, sell_value):
    row = bytearray(b"\xCC" * 0x50)
    struct.pack_into("<i", row, 0x00, row_id)
    struct.pack_into("<f", row, 0x0C, weight)
    struct.pack_into("<i", row, 0x14, sell_value)
    row[0x1E] = goods_type
    return bytes(row)


def bonfire_row(bonfire_id, event_flag_id):
    row = bytearray(0x40)
    struct.pack_into("<iI", row, 0x00, bonfire_id, event_flag_id)
    return bytes(row)


def build_param_tables():
    """(name, row stride, table bytes) for every table in the sample regulation."""
    talk = build_param(
        2, 0x40,
        [talk_row(1000, 50001, 0), talk_row(1001, 50002, 1), talk_row(2000, 60001, 2)],
        name_block=b"TALK_PARAM_ST\x00\x00\x00",
        gap=b"GAP!",
    )
    goods = build_param(
        2, 0x50,
        [goods_row(100, 0.5, 0, 10), goods_row(130, 1.25, 1, 0)],
        name_block=b"EQUIP_PARAM_GOODS_ST\x00\x00\x00\x00",
    )
    bonfire = build_param(
        1, 0x40,
        [bonfire_row(9000, 71000), bonfire_row(9001, 71001)],
        name_block=b"BONFIRE_WARP_PARAM_ST\x00\x00\x00",
        prefix=b"\x01\x02\x03\x04",
    )
    return [
        ("TalkParam", 0x40, talk),
        ("EquipParamGoods", 0x50, goods),
        ("BonfireWarpParam", 0x40, bonfire),
    ]


def build_aggregate(tables):
    origin = 16 + 76 * len(tables)
    toc = []
    body = []
    pos = origin
    for name, stride, blob in tables:
        lead = b"\x00" * 8
        pos += len(lead)
        toc.append(struct.pack("<64sIII", name.encode().ljust(64, b"\x00"), pos, len(blob), stride))
        body += [lead, blob]
        pos += len(blob)
    header = struct.pack("<4sIII", b"PBND", len(tables), 1, 0)
    return header + b"".join(toc) + b"".join(body) + b"END!"


def build_archive(entries, level=6, raw_body=None):
    """Regulation archive for [(name, bytes)], entry bodies separated by a filler gap."""
    table = []
    body = b""
    for name, blob in entries:
        if body:
            body += b"\x11" * 5
        table.append(struct.pack("<64sII", name.encode().ljust(64, b"\x00"), len(body), len(blob)))
        body += blob
    body += b"\xFF\xFF"
    if raw_body is not None:
        body = raw_body
    compressed = zlib.compress(body, level)
    data_offset = 0x20 + 72 * len(entries)
    header = struct.pack(
        "<4sIIIIIII", b"DCX\x00", 0x10000, len(entries), data_offset,
        len(compressed), len(body), level, 0,
    )
    return header + b"".join(table) + compressed


def build_regulation():
    """Regulation section plaintext with the sample param tables."""
    archive = build_archive([
        ("gameparam.parambnd", build_aggregate(build_param_tables())),
        ("msg.fmg", MESSAGE_FILE),
    ])
    return archive + bytes(REGULATION_DATA_SIZE - len(archive))


def build_header(layout):
    if layout is PC_LAYOUT:
        header = bytearray(layout.header_size)
        header[0:4] = b"BND4"
        struct.pack_into("<I", header, 0x0C, 12)
        struct.pack_into("<II", header, 0x10, 0x40, 0x20)
        return bytes(header)
    return b"\xCB\x01\x9C\x2C" + bytes(range(0x20, 0x20 + layout.header_size - 4))


def default_characters():
    return {
        0: build_character("Melina", 42, GESTURES, REGIONS),
        1: build_character("Ranni", 7),
    }


def build_save(layout=PC_LAYOUT, characters=None, corrupt=(), regulation=None, profile=None):
    """Whole save file. ``characters`` overrides slot plaintexts by index."""
    slots = default_characters()
    slots.update(characters or {})
    plaintexts = [slots.get(i, build_character()) for i in range(10)]
    plaintexts.append(profile if profile is not None else build_profile({0: ("Melina", 42), 1: ("Ranni", 7)}))
    plaintexts.append(regulation if regulation is not None else build_regulation())
    parts = [build_header(layout)]
    for index, plaintext in enumerate(plaintexts):
        parts.append(encrypt_section(layout, index, plaintext, corrupt=index in corrupt))
    return b"".join(parts)


def section_bytes(data, layout, index):
    _, start, end = layout.section_spans()[index]
    return data[start:end]


@pytest.fixture(scope="session")
def pc_save_bytes():
    return build_save(PC_LAYOUT)


@pytest.fixture(scope="session")
def ps_save_bytes():
    return build_save(PLAYSTATION_LAYOUT)


@pytest.fixture(scope="session")
def regulation_plaintext():
    return build_regulation()


@pytest.fixture
def save_factory():
    return build_save


@pytest.fixture
def save_api(pc_save_bytes):
    from er_save_lib import SaveApi

    return SaveApi.from_slice(pc_save_bytes)
