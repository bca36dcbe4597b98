"""Settings persistence as XML.

The file looks like::

    <ErSaveLib version="1.0">
      <Settings>
        <StrictChecksums>false</StrictChecksums>
        <FlagIndexPath>%APPDATA%/ErSaveLib/eventflags.txt</FlagIndexPath>
        <BackupOnWrite>true</BackupOnWrite>
      </Settings>
    </ErSaveLib>
"""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional
from xml.dom import minidom

from .paths import LibraryPaths
from .schema import Settings
from ..logging_config import get_logger

logger = get_logger("config_manager")

CONFIG_VERSION = "1.0"


class ConfigurationManager:
    """Loads and saves library Settings.

    Nothing reads the file implicitly; callers pass the loaded Settings to
    SaveApi themselves.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else LibraryPaths.CONFIG_FILE
        self.settings: Optional[Settings] = None

    def load(self) -> Settings:
        """Read settings from the XML file.

        Raises:
            FileNotFoundError: If the file does not exist
            ET.ParseError: If the XML is malformed
        """
        logger.debug("Loading configuration from %s", self.config_path)
        root = ET.parse(self.config_path).getroot()

        node = root.find("Settings")
        if node is None:
            self.settings = Settings()
            return self.settings

        self.settings = Settings(
            strict_checksums=self._read_bool(node, "StrictChecksums"),
            flag_index_path=self._read_path(node, "FlagIndexPath"),
            backup_on_write=self._read_bool(node, "BackupOnWrite"),
        )
        return self.settings

    def load_or_default(self) -> Settings:
        """Like load, but a missing or unreadable file yields default settings."""
        try:
            return self.load()
        except (ET.ParseError, FileNotFoundError, ValueError) as e:
            logger.warning("Could not load config, using defaults: %s", e)
            return self.create_default()

    def create_default(self) -> Settings:
        self.settings = Settings()
        return self.settings

    def save(self) -> None:
        """Write the current settings, creating the parent directory as needed."""
        if self.settings is None:
            raise ValueError("No configuration to save")

        root = ET.Element("ErSaveLib", version=CONFIG_VERSION)
        node = ET.SubElement(root, "Settings")
        values = {
            "StrictChecksums": self._format_bool(self.settings.strict_checksums),
            "FlagIndexPath": str(self.settings.flag_index_path or ""),
            "BackupOnWrite": self._format_bool(self.settings.backup_on_write),
        }
        for tag, text in values.items():
            ET.SubElement(node, tag).text = text

        pretty = minidom.parseString(ET.tostring(root, encoding="unicode")).toprettyxml(indent="  ")
        # minidom leaves whitespace-only lines behind
        text = "\n".join(line for line in pretty.splitlines() if line.strip())

        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        self.config_path.write_text(text, encoding="utf-8")
        logger.debug("Saved configuration to %s", self.config_path)

    @staticmethod
    def _format_bool(value: bool) -> str:
        return "true" if value else "false"

    @staticmethod
    def _read_bool(parent: ET.Element, tag: str, default: bool = False) -> bool:
        text = parent.findtext(tag)
        if not text or not text.strip():
            return default
        return text.strip().lower() == "true"

    @staticmethod
    def _read_path(parent: ET.Element, tag: str) -> Optional[Path]:
        text = (parent.findtext(tag) or "").strip()
        return LibraryPaths.expand_path(text) if text else None
