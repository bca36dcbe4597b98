"""Save container, section codec and per-section records"""

from .event_flags import EventFlagBlock, FlagIndex, load_flag_index
from .layout import PC_LAYOUT, PLAYSTATION_LAYOUT, SaveLayout, SaveType
from .save import Save
from .section import Section, SectionCodec
from .user_data_10 import ProfileEntry, ProfileSummary, UserData10
from .user_data_11 import UserData11
from .user_data_x import CharacterRecord, PlayerGameData, UserDataX

__all__ = [
    "CharacterRecord",
    "EventFlagBlock",
    "FlagIndex",
    "PC_LAYOUT",
    "PLAYSTATION_LAYOUT",
    "PlayerGameData",
    "ProfileEntry",
    "ProfileSummary",
    "Save",
    "SaveLayout",
    "SaveType",
    "Section",
    "SectionCodec",
    "UserData10",
    "UserData11",
    "UserDataX",
    "load_flag_index",
]
