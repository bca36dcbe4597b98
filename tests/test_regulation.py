import os

import pytest

from conftest import build_aggregate, build_archive, build_param_tables, section_bytes
from er_save_lib import SaveApi
from er_save_lib.core.layout import PC_LAYOUT, REGULATION_DATA_SIZE
from er_save_lib.errors import (
    ParamDecodeError,
    ParamNotFound,
    RegulationParseError,
    SectionCapacityError,
)
from er_save_lib.regulation import Regulation
from er_save_lib.regulation.param import FieldKind, ParamField, ParamSchema
from er_save_lib.regulation.paramdefs import CutSceneTextureLoadParam, EquipParamGoods, TalkParam


def test_regulation_is_unpacked_lazily(save_api):
    regulation = save_api.raw.user_data_11.regulation
    assert not regulation.is_unpacked
    save_api.get_param(TalkParam)
    assert regulation.is_unpacked


def test_get_param_by_schema_or_name(save_api):
    talk = save_api.get_param(TalkParam)
    assert save_api.get_param("TalkParam") is talk
    assert talk[1000].msg_id == 50001


def test_reading_params_keeps_round_trip(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    save_api.get_param(TalkParam)
    save_api.get_param(EquipParamGoods)
    assert save_api.to_vec() == pc_save_bytes


def test_missing_table(save_api):
    with pytest.raises(ParamNotFound):
        save_api.get_param(CutSceneTextureLoadParam)


def test_stride_mismatch(save_api):
    wrong = ParamSchema("TalkParam", 0x44, (ParamField("id", 0, FieldKind.S32),), id_field="id")
    with pytest.raises(ParamDecodeError, match="stride"):
        save_api.get_param(wrong)


def test_param_edit_is_saved(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    goods = save_api.get_param(EquipParamGoods)
    goods[130].sell_value = 4000
    output = save_api.to_vec()

    for index in range(11):
        assert section_bytes(output, PC_LAYOUT, index) == section_bytes(pc_save_bytes, PC_LAYOUT, index)

    reloaded = SaveApi.from_slice(output)
    assert reloaded.get_param(EquipParamGoods)[130].sell_value == 4000
    assert reloaded.get_param(EquipParamGoods)[100].sell_value == 10

    before = {name: blob for name, _, blob in build_param_tables()}
    after = reloaded.get_param_bytes_map()
    assert after["TalkParam"] == before["TalkParam"]
    assert after["BonfireWarpParam"] == before["BonfireWarpParam"]
    assert after["EquipParamGoods"] != before["EquipParamGoods"]
    assert len(after["EquipParamGoods"]) == len(before["EquipParamGoods"])


def test_bytes_map_reflects_cached_edits(save_api):
    talk = save_api.get_param(TalkParam)
    talk[1000].msg_id = 7

    raw = save_api.get_param_bytes_map()["TalkParam"]
    assert raw[0x28:0x2C] == (7).to_bytes(4, "little")


def test_bytes_map(save_api):
    tables = save_api.get_param_bytes_map()
    assert list(tables) == ["TalkParam", "EquipParamGoods", "BonfireWarpParam"]
    assert tables["BonfireWarpParam"].startswith(b"PARM")


def test_invalidate_drops_unsaved_edits(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    talk = save_api.get_param(TalkParam)
    talk[1000].msg_id = 1

    save_api.invalidate_param_cache()

    fresh = save_api.get_param(TalkParam)
    assert fresh is not talk
    assert fresh[1000].msg_id == 50001
    assert save_api.to_vec() == pc_save_bytes


def test_replace_regulation(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    save_api.get_param(TalkParam)
    tables = build_param_tables()[:1]
    archive = build_archive([("gameparam.parambnd", build_aggregate(tables))])
    save_api.replace_regulation(archive)

    with pytest.raises(ParamNotFound):
        save_api.get_param(EquipParamGoods)
    reloaded = SaveApi.from_slice(save_api.to_vec())
    assert list(reloaded.get_param_bytes_map()) == ["TalkParam"]


def test_replace_regulation_too_large(save_api):
    with pytest.raises(SectionCapacityError):
        save_api.replace_regulation(bytes(REGULATION_DATA_SIZE + 1))


def test_corrupt_regulation_fails_only_on_access(save_factory):
    data = save_factory(regulation=bytes(REGULATION_DATA_SIZE))
    save_api = SaveApi.from_slice(data)

    assert save_api.character_name(0) == "Melina"
    with pytest.raises(RegulationParseError):
        save_api.get_param(TalkParam)
    assert save_api.to_vec() == data


def test_repack_that_outgrows_section():
    archive = build_archive([
        ("gameparam.parambnd", build_aggregate(build_param_tables())),
        ("msg.fmg", b"tiny"),
    ])
    regulation = Regulation(archive + bytes(8))
    regulation.archive.set_file("msg.fmg", os.urandom(512))

    with pytest.raises(SectionCapacityError):
        regulation.to_bytes()


def test_switching_schema_keeps_pending_edits(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    save_api.get_param(TalkParam)[1000].msg_id = 777

    narrow = ParamSchema(
        "TalkParam",
        0x40,
        (ParamField("id", 0x00, FieldKind.S32), ParamField("msg_id", 0x08, FieldKind.S32)),
        id_field="id",
    )
    assert save_api.get_param(narrow)[1000].msg_id == 777

    reloaded = SaveApi.from_slice(save_api.to_vec())
    assert reloaded.get_param(TalkParam)[1000].msg_id == 777
