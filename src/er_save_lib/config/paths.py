"""Default paths for configuration, logs and packaged resources"""

import os
from pathlib import Path


def _appdata_dir() -> Path:
    """Per-user application data root (%APPDATA% on Windows)."""
    appdata = os.environ.get("APPDATA")
    if appdata:
        return Path(appdata)
    return Path.home() / ".config"


class LibraryPaths:
    """Default paths used by the library.

    Config and log files live in a per-user directory; resources ship inside
    the package.
    """

    # Configuration file location
    CONFIG_DIR = _appdata_dir() / "ErSaveLib"
    CONFIG_FILE = CONFIG_DIR / "configuration.xml"

    # Packaged resources
    RESOURCE_DIR = Path(__file__).resolve().parent.parent / "res"
    EVENT_FLAG_INDEX = RESOURCE_DIR / "eventflag_index.txt"

    @classmethod
    def expand_path(cls, path_str: str) -> Path:
        """Turn a configured path string into a Path.

        Args:
            path_str: Text that may use $VAR, %VAR% or ~

        Returns:
            The expanded path, not resolved
        """
        return Path(os.path.expandvars(path_str)).expanduser()
