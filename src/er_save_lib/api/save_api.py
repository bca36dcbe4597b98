"""High level save editing facade.

Typical use::

    from er_save_lib import SaveApi

    save_api = SaveApi.from_path("ER0000.sl2")
    save_api.set_steam_id(1234567890)
    save_api.set_event_flag(6223, 0, True)
    save_api.write_to_path("ER0000.sl2")
"""

import shutil
from pathlib import Path
from typing import Mapping, Optional, Union

from .character_api import CharacterApi
from ..config.schema import Settings
from ..core.event_flags import FlagIndex, load_flag_index
from ..core.layout import SaveType
from ..core.save import Save
from ..logging_config import get_logger
from ..regulation.param import ParamSchema, ParamTable

logger = get_logger("api")


class SaveApi(CharacterApi):
    """Load a save, edit it and write it back.

    Args:
        save: Parsed save container
        settings: Library settings, defaults to ``Settings()``
        flag_index: Event flag index, defaults to the one named in settings
            or the packaged sample index
    """

    def __init__(
        self,
        save: Save,
        settings: Optional[Settings] = None,
        flag_index: Optional[FlagIndex] = None,
    ):
        self._raw = save
        self.settings = settings or Settings()
        self._flag_index = flag_index

    @classmethod
    def from_slice(
        cls,
        data: bytes,
        settings: Optional[Settings] = None,
        strict: Optional[bool] = None,
    ) -> "SaveApi":
        """Parse a save held in memory.

        Args:
            data: Save file contents
            settings: Library settings
            strict: Overrides ``settings.strict_checksums`` when given

        Raises:
            SaveParseError: If the file layout is wrong
            ChecksumMismatchError: In strict mode, if a section fails verification
        """
        settings = settings or Settings()
        if strict is None:
            strict = settings.strict_checksums
        return cls(Save.from_slice(data, strict=strict), settings)

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        settings: Optional[Settings] = None,
        strict: Optional[bool] = None,
    ) -> "SaveApi":
        return cls.from_slice(Path(path).read_bytes(), settings=settings, strict=strict)

    @property
    def raw(self) -> Save:
        """The underlying Save container."""
        return self._raw

    # Serialization

    def to_vec(self) -> bytes:
        return self._raw.write_to_vec()

    def write_to_path(self, path: Union[str, Path]) -> None:
        """Serialize and write the save.

        With ``settings.backup_on_write`` an existing file at path is first
        copied to ``<path>.bak``.
        """
        path = Path(path)
        data = self.to_vec()
        if self.settings.backup_on_write and path.exists():
            backup = path.with_name(path.name + ".bak")
            shutil.copy2(path, backup)
            logger.info("Backed up %s to %s", path, backup)
        path.write_bytes(data)
        logger.info("Wrote save file %s", path)

    # Container level

    def platform(self) -> SaveType:
        return self._raw.platform()

    def steam_id(self) -> int:
        return self._raw.user_data_10.steam_id

    def set_steam_id(self, steam_id: int) -> None:
        self._raw.user_data_10.steam_id = steam_id

    def active_characters(self) -> list[bool]:
        return self._raw.user_data_10.profile_summary.active_profiles

    def character_index_from_name(self, name: str) -> Optional[int]:
        """Index of the first profile whose name contains name, or None."""
        for index, profile in enumerate(self._raw.user_data_10.profile_summary.profiles):
            if name in profile.character_name:
                return index
        return None

    def invalid_sections(self) -> list[int]:
        """Indices of sections that failed checksum verification on load."""
        return self._raw.invalid_sections()

    def fix_checksums(self) -> list[int]:
        """Recompute the checksum of every invalid section on the next write.

        Character slots that could not be decoded keep their bad checksum;
        a valid checksum over an undecodable record would fail the next load.

        Returns:
            The indices that will be repaired
        """
        opaque = {slot.section.index for slot in self._raw.user_data_x if not slot.is_decoded}
        repaired = [index for index in self.invalid_sections() if index not in opaque]
        for index in repaired:
            self._raw.sections[index].mark_for_rehash()
        if repaired:
            logger.info("Marked sections %s for checksum repair", repaired)
        skipped = sorted(opaque)
        if skipped:
            logger.warning("Not repairing undecodable character slots %s", skipped)
        return repaired

    # Event flags

    @property
    def flag_index(self) -> FlagIndex:
        if self._flag_index is None:
            self._flag_index = load_flag_index(self.settings.flag_index_path)
        return self._flag_index

    def get_event_flag(self, event_id: int, character_index: int) -> bool:
        """Read an event flag of one character.

        Raises:
            CharacterIndexError: If character_index is outside 0-9
            EventIdNotFound: If the id is not in the flag index
        """
        record = self._record(character_index)
        return record.event_flags.get(self.flag_index.bit_offset(event_id))

    def set_event_flag(self, event_id: int, character_index: int, on: bool) -> None:
        """Set or clear an event flag of one character.

        Raises:
            CharacterIndexError: If character_index is outside 0-9
            EventIdNotFound: If the id is not in the flag index
        """
        record = self._record(character_index)
        record.event_flags.set(self.flag_index.bit_offset(event_id), bool(on))

    # Regulation

    def get_param(self, param: Union[ParamSchema, str]) -> ParamTable:
        """Decoded param table by schema or name. Edits are saved on the next write.

        Raises:
            ParamNotFound: If the regulation has no such table
            ParamDecodeError: If the table disagrees with the schema
            RegulationParseError: If the regulation archive is corrupt
        """
        return self._raw.user_data_11.regulation.get_param(param)

    def get_param_bytes_map(self) -> Mapping[str, bytes]:
        """Raw bytes of every param table by name."""
        return self._raw.user_data_11.regulation.param_files

    def invalidate_param_cache(self) -> None:
        """Forget decoded param tables, dropping edits not yet written."""
        self._raw.user_data_11.regulation.invalidate()

    def replace_regulation(self, data: bytes) -> None:
        """Replace the whole regulation archive and drop cached tables.

        Raises:
            SectionCapacityError: If data is larger than the regulation section
        """
        self._raw.user_data_11.regulation.replace(data)


def load(source: Union[str, Path, bytes, bytearray], settings: Optional[Settings] = None) -> SaveApi:
    """Load a save from a path or from bytes."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return SaveApi.from_slice(bytes(source), settings=settings)
    return SaveApi.from_path(source, settings=settings)
