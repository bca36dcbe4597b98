"""Public save editing API"""

from .character_api import CharacterApi
from .save_api import SaveApi, load

__all__ = [
    "CharacterApi",
    "SaveApi",
    "load",
]
