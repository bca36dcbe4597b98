"""Row layouts of the param types the library knows about.

Each schema is registered under its table name; ``resolve_paramdef`` turns a
schema or a table name into the registered schema. Fields not listed here
are carried through unchanged when rows are re-encoded.
"""

from enum import IntEnum
from typing import Union

from .param import FieldKind, ParamField, ParamSchema

PARAMDEFS: dict[str, ParamSchema] = {}


def register_paramdef(schema: ParamSchema) -> ParamSchema:
    """Add a schema to the registry and return it."""
    existing = PARAMDEFS.get(schema.name)
    if existing is not None and existing != schema:
        raise ValueError(f"A different schema is already registered as {schema.name}")
    PARAMDEFS[schema.name] = schema
    return schema


def resolve_paramdef(token: Union[ParamSchema, str]) -> ParamSchema:
    """Look up the registered schema for a schema object or table name.

    Schema objects are returned as they are, registered or not.

    Raises:
        KeyError: If a name is not registered
    """
    if isinstance(token, ParamSchema):
        return token
    try:
        return PARAMDEFS[token]
    except KeyError:
        raise KeyError(f"No param schema registered as {token!r}") from None


class GoodsType(IntEnum):
    NORMAL_ITEM = 0
    KEY_ITEM = 1
    CRAFTING_MATERIAL = 2
    REMEMBRANCE = 3
    SORCERY = 5
    SPIRIT_SUMMON_LESSER = 7
    SPIRIT_SUMMON_GREATER = 8
    WONDROUS_PHYSICK = 9
    WONDROUS_PHYSICK_TEAR = 10
    REGENERATIVE_MATERIAL = 11
    INFO_ITEM = 12
    REINFORCEMENT_MATERIAL = 14
    GREAT_RUNE = 15
    INCANTATION = 16


class TalkType(IntEnum):
    NORMAL = 0
    MENU = 1
    CUTSCENE = 2


TalkParam = register_paramdef(ParamSchema(
    name="TalkParam",
    row_size=0x40,
    id_field="id",
    fields=(
        ParamField("id", 0x00, FieldKind.S32),
        ParamField("disable_param_nt", 0x04, FieldKind.U8),
        ParamField("msg_id", 0x08, FieldKind.S32),
        ParamField("voice_id", 0x0C, FieldKind.S32),
        ParamField("sp_effect_id0", 0x10, FieldKind.S32),
        ParamField("motion_id0", 0x14, FieldKind.S32),
        ParamField("sp_effect_id1", 0x18, FieldKind.S32),
        ParamField("motion_id1", 0x1C, FieldKind.S32),
        ParamField("return_pos", 0x20, FieldKind.S32),
        ParamField("reaction_id", 0x24, FieldKind.S32),
        ParamField("event_id", 0x28, FieldKind.S32),
        ParamField("msg_id_female", 0x2C, FieldKind.S32),
        ParamField("voice_id_female", 0x30, FieldKind.S32),
        ParamField("lip_sync_start", 0x34, FieldKind.S16),
        ParamField("lip_sync_time", 0x36, FieldKind.S16),
        ParamField("talk_type", 0x38, FieldKind.U8, enum=TalkType),
    ),
))

EquipParamGoods = register_paramdef(ParamSchema(
    name="EquipParamGoods",
    row_size=0x50,
    id_field="id",
    fields=(
        ParamField("id", 0x00, FieldKind.S32),
        ParamField("ref_id_default", 0x04, FieldKind.S32),
        ParamField("sfx_variation_id", 0x08, FieldKind.S32),
        ParamField("weight", 0x0C, FieldKind.F32),
        ParamField("basic_price", 0x10, FieldKind.S32),
        ParamField("sell_value", 0x14, FieldKind.S32),
        ParamField("behavior_id", 0x18, FieldKind.S32),
        ParamField("icon_id", 0x1C, FieldKind.U16),
        ParamField("goods_type", 0x1E, FieldKind.U8, enum=GoodsType),
        ParamField("max_num", 0x20, FieldKind.S16),
        ParamField("max_repository_num", 0x22, FieldKind.S16),
        ParamField("sort_id", 0x24, FieldKind.S32),
        ParamField("appearance_replace_item_id", 0x28, FieldKind.S32),
        ParamField("consume_hero_point", 0x2C, FieldKind.S32),
    ),
))

BonfireWarpParam = register_paramdef(ParamSchema(
    name="BonfireWarpParam",
    row_size=0x40,
    id_field="id",
    fields=(
        ParamField("id", 0x00, FieldKind.S32),
        ParamField("event_flag_id", 0x04, FieldKind.U32),
        ParamField("bonfire_entity_id", 0x08, FieldKind.U32),
        ParamField("text_id1", 0x0C, FieldKind.S32),
        ParamField("forbidden_icon_id", 0x10, FieldKind.U16),
        ParamField("area_no", 0x14, FieldKind.U8),
        ParamField("grid_x_no", 0x15, FieldKind.U8),
        ParamField("grid_z_no", 0x16, FieldKind.U8),
        ParamField("pos_x", 0x18, FieldKind.F32),
        ParamField("pos_y", 0x1C, FieldKind.F32),
        ParamField("pos_z", 0x20, FieldKind.F32),
        ParamField("bonfire_sub_category_id", 0x24, FieldKind.S32),
    ),
))

# Only the first four of the sixteen texture slots are named; the rest of
# the row is carried as unknown bytes.
CutSceneTextureLoadParam = register_paramdef(ParamSchema(
    name="CutSceneTextureLoadParam",
    row_size=0x110,
    id_field="id",
    fields=(
        ParamField("id", 0x00, FieldKind.S32),
        ParamField("disable_param_nt", 0x04, FieldKind.U8),
        ParamField("tex_name_00", 0x10, FieldKind.FIXSTR, width=0x10, encoding="ascii"),
        ParamField("tex_name_01", 0x20, FieldKind.FIXSTR, width=0x10, encoding="ascii"),
        ParamField("tex_name_02", 0x30, FieldKind.FIXSTR, width=0x10, encoding="ascii"),
        ParamField("tex_name_03", 0x40, FieldKind.FIXSTR, width=0x10, encoding="ascii"),
    ),
))
