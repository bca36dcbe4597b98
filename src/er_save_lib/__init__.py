"""er-save-lib - Read, edit and write Elden Ring save files.

This library provides:
    - Decryption, checksum verification and re-encryption of save sections
    - Byte-exact round trips for everything that was not edited
    - Character stats, identity, gestures and unlocked regions
    - Event flags resolved through a flag id index
    - Schema-driven access to the param tables of the embedded regulation
    - Support for both PC and PlayStation save exports

Package Structure:
    api: SaveApi facade and per-character accessors
    config: Settings, XML configuration persistence and default paths
    core: Save container, section codec, character and profile records
    regulation: Regulation archive and param table codecs

Quick Start::

    from er_save_lib import SaveApi

    save_api = SaveApi.from_path("ER0000.sl2")
    save_api.set_character_name(0, "Tarnished")
    save_api.write_to_path("ER0000.sl2")

Configuration:
    - Config file: %APPDATA%/ErSaveLib/configuration.xml (opt-in)
    - Log file: %APPDATA%/ErSaveLib/er_save_lib.log (after setup_logging)
"""

# config must be imported before anything that imports logging_config
from .config import ConfigurationManager, LibraryPaths, Settings
from .api import SaveApi, load
from .core.layout import SaveType
from .errors import (
    CharacterIndexError,
    ChecksumMismatchError,
    CorruptSectionError,
    EventIdNotFound,
    ParamDecodeError,
    ParamEncodeError,
    ParamNotFound,
    RegulationParseError,
    SaveApiError,
    SaveParseError,
    SectionCapacityError,
)
from .logging_config import get_logger, setup_logging
from .regulation import paramdefs

__version__ = "0.3.0"
__app_name__ = "er-save-lib"

__all__ = [
    "CharacterIndexError",
    "ChecksumMismatchError",
    "ConfigurationManager",
    "CorruptSectionError",
    "EventIdNotFound",
    "LibraryPaths",
    "ParamDecodeError",
    "ParamEncodeError",
    "ParamNotFound",
    "RegulationParseError",
    "SaveApi",
    "SaveApiError",
    "SaveParseError",
    "SaveType",
    "SectionCapacityError",
    "Settings",
    "get_logger",
    "load",
    "paramdefs",
    "setup_logging",
]
