"""Regulation archive and param table codecs.

Submodules:
    archive: RegulationArchive unpack/repack of section 11
    param: schema-driven param table decode/encode
    paramdefs: registry of known param schemas
    regulation: Regulation, the lazily unpacked archive with a table cache
"""

from .archive import PARAM_AGGREGATE_NAME, ParamFileInfo, RegulationArchive
from .param import (
    FieldKind,
    ParamField,
    ParamRow,
    ParamSchema,
    ParamTable,
    decode_param,
    encode_param,
)
from .paramdefs import PARAMDEFS, register_paramdef, resolve_paramdef
from .regulation import Regulation

__all__ = [
    "PARAM_AGGREGATE_NAME",
    "PARAMDEFS",
    "FieldKind",
    "ParamField",
    "ParamFileInfo",
    "ParamRow",
    "ParamSchema",
    "ParamTable",
    "Regulation",
    "RegulationArchive",
    "decode_param",
    "encode_param",
    "register_paramdef",
    "resolve_paramdef",
]
