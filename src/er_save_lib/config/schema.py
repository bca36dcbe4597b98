"""Configuration data models"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class Settings:
    """Library settings.

    strict_checksums: reject a save at load time if any section fails
        checksum verification instead of flagging it.
    flag_index_path: event flag index to use instead of the packaged sample.
    backup_on_write: copy an existing target file to ``<name>.bak`` before
        overwriting it.
    """
    strict_checksums: bool = False
    flag_index_path: Optional[Path] = None
    backup_on_write: bool = False
