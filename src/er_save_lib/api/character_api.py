"""Per-character accessors for SaveApi.

Getters and setters take the character slot index first. Stats live only in
the character record. Name, level, gender, archetype and rune memory are also
shown in the profile summary, so their setters go through ``_update_mirrored``,
which writes both copies.
"""

from typing import Iterable

from ..core.layout import CHARACTER_SLOT_COUNT
from ..core.user_data_x import CharacterRecord, PlayerGameData
from ..errors import CharacterIndexError
from ..logging_config import get_logger

logger = get_logger("api")


class CharacterApi:
    """Mixin over ``self.raw`` (a Save)."""

    def _check_index(self, index: int) -> int:
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < CHARACTER_SLOT_COUNT:
            raise CharacterIndexError(index)
        return index

    def _record(self, index: int) -> CharacterRecord:
        return self.raw.user_data_x[self._check_index(index)].record

    def _player(self, index: int) -> PlayerGameData:
        return self._record(index).player_game_data

    def _update_mirrored(self, index: int, field_name: str, value) -> None:
        """Write a field to the character record and its profile summary entry."""
        player = self._player(index)
        setattr(player, field_name, value)
        profile = self.raw.user_data_10.profile_summary.profiles[index]
        setattr(profile, field_name, value)

    # Vitals

    def hp(self, index: int) -> int:
        return self._player(index).hp

    def set_hp(self, index: int, hp: int) -> None:
        self._player(index).hp = hp

    def max_hp(self, index: int) -> int:
        return self._player(index).max_hp

    def set_max_hp(self, index: int, max_hp: int) -> None:
        self._player(index).max_hp = max_hp

    def base_max_hp(self, index: int) -> int:
        return self._player(index).base_max_hp

    def set_base_max_hp(self, index: int, base_max_hp: int) -> None:
        self._player(index).base_max_hp = base_max_hp

    def fp(self, index: int) -> int:
        return self._player(index).fp

    def set_fp(self, index: int, fp: int) -> None:
        self._player(index).fp = fp

    def max_fp(self, index: int) -> int:
        return self._player(index).max_fp

    def set_max_fp(self, index: int, max_fp: int) -> None:
        self._player(index).max_fp = max_fp

    def base_max_fp(self, index: int) -> int:
        return self._player(index).base_max_fp

    def set_base_max_fp(self, index: int, base_max_fp: int) -> None:
        self._player(index).base_max_fp = base_max_fp

    def sp(self, index: int) -> int:
        return self._player(index).sp

    def set_sp(self, index: int, sp: int) -> None:
        self._player(index).sp = sp

    def max_sp(self, index: int) -> int:
        return self._player(index).max_sp

    def set_max_sp(self, index: int, max_sp: int) -> None:
        self._player(index).max_sp = max_sp

    def base_max_sp(self, index: int) -> int:
        return self._player(index).base_max_sp

    def set_base_max_sp(self, index: int, base_max_sp: int) -> None:
        self._player(index).base_max_sp = base_max_sp

    # Attributes

    def vigor(self, index: int) -> int:
        return self._player(index).vigor

    def set_vigor(self, index: int, vigor: int) -> None:
        self._player(index).vigor = vigor

    def mind(self, index: int) -> int:
        return self._player(index).mind

    def set_mind(self, index: int, mind: int) -> None:
        self._player(index).mind = mind

    def endurance(self, index: int) -> int:
        return self._player(index).endurance

    def set_endurance(self, index: int, endurance: int) -> None:
        self._player(index).endurance = endurance

    def strength(self, index: int) -> int:
        return self._player(index).strength

    def set_strength(self, index: int, strength: int) -> None:
        self._player(index).strength = strength

    def dexterity(self, index: int) -> int:
        return self._player(index).dexterity

    def set_dexterity(self, index: int, dexterity: int) -> None:
        self._player(index).dexterity = dexterity

    def intelligence(self, index: int) -> int:
        return self._player(index).intelligence

    def set_intelligence(self, index: int, intelligence: int) -> None:
        self._player(index).intelligence = intelligence

    def faith(self, index: int) -> int:
        return self._player(index).faith

    def set_faith(self, index: int, faith: int) -> None:
        self._player(index).faith = faith

    def arcane(self, index: int) -> int:
        return self._player(index).arcane

    def set_arcane(self, index: int, arcane: int) -> None:
        self._player(index).arcane = arcane

    # Currency

    def runes(self, index: int) -> int:
        return self._player(index).runes

    def set_runes(self, index: int, runes: int) -> None:
        self._player(index).runes = runes

    def runes_memory(self, index: int) -> int:
        return self._player(index).runes_memory

    def set_runes_memory(self, index: int, runes_memory: int) -> None:
        self._update_mirrored(index, "runes_memory", runes_memory)

    # Identity (mirrored in the profile summary)

    def level(self, index: int) -> int:
        return self._player(index).level

    def set_level(self, index: int, level: int) -> None:
        self._update_mirrored(index, "level", level)

    def character_name(self, index: int) -> str:
        return self._player(index).character_name

    def set_character_name(self, index: int, name: str) -> None:
        self._update_mirrored(index, "character_name", name)
        logger.debug("Renamed character %d to %r", index, name)

    def gender(self, index: int) -> int:
        return self._player(index).gender

    def set_gender(self, index: int, gender: int) -> None:
        self._update_mirrored(index, "gender", gender)

    def archetype(self, index: int) -> int:
        return self._player(index).archetype

    def set_archetype(self, index: int, archetype: int) -> None:
        self._update_mirrored(index, "archetype", archetype)

    # Variable-length lists

    def equipped_gestures(self, index: int) -> list[int]:
        return self._record(index).equipped_gestures

    def set_equipped_gestures(self, index: int, gestures: Iterable[int]) -> None:
        """Replace the equipped gesture list.

        Raises:
            SectionCapacityError: If the longer list no longer fits the section
        """
        self._record(index).set_equipped_gestures(gestures)

    def regions(self, index: int) -> list[int]:
        return self._record(index).unlocked_regions

    def regions_count(self, index: int) -> int:
        return self._record(index).regions_count

    def add_region(self, index: int, region_id: int) -> None:
        """Unlock a region; does nothing if it is already unlocked.

        The four bytes for the new id come out of the zero padding at the end
        of the record. A record without that padding is left unchanged rather
        than truncated.

        Raises:
            SectionCapacityError: If the character record has no free padding left
        """
        if not self._record(index).add_region(region_id):
            logger.debug("Region %d already unlocked for character %d", region_id, index)

    def remove_region(self, index: int, region_id: int) -> None:
        """Lock a region; does nothing if it is not unlocked."""
        if not self._record(index).remove_region(region_id):
            logger.debug("Region %d not unlocked for character %d", region_id, index)
