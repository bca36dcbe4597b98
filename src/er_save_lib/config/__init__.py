"""Configuration management module.

Submodules:
    manager: ConfigurationManager for loading/saving XML configuration
    schema: Settings dataclass consumed by the save API
    paths: LibraryPaths with the config directory and packaged resources

The configuration is stored as XML in %APPDATA%/ErSaveLib/configuration.xml.
"""

from .paths import LibraryPaths
from .schema import Settings
from .manager import ConfigurationManager

__all__ = [
    "ConfigurationManager",
    "LibraryPaths",
    "Settings",
]
