import random

import pytest

from conftest import GESTURES, REGIONS, REST_MARKER, build_character
from er_save_lib import SaveApi
from er_save_lib.core.layout import CHARACTER_DATA_SIZE
from er_save_lib.core.user_data_x import FIXED_HEADER_SIZE, CharacterRecord
from er_save_lib.errors import CharacterIndexError, SectionCapacityError


def test_stat_getters(save_api):
    assert save_api.hp(0) == 400
    assert save_api.max_hp(0) == 450
    assert save_api.base_max_fp(0) == 90
    assert save_api.max_sp(0) == 100
    assert save_api.vigor(0) == 10
    assert save_api.arcane(0) == 17
    assert save_api.runes(0) == 1234
    assert save_api.runes_memory(0) == 5678
    assert save_api.level(0) == 42
    assert save_api.character_name(0) == "Melina"
    assert save_api.gender(0) == 1
    assert save_api.archetype(0) == 3


def test_stat_setters_persist(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    save_api.set_hp(0, 1)
    save_api.set_max_fp(0, 200)
    save_api.set_strength(0, 99)
    save_api.set_faith(1, 40)

    reloaded = SaveApi.from_slice(save_api.to_vec())

    assert reloaded.hp(0) == 1
    assert reloaded.max_fp(0) == 200
    assert reloaded.strength(0) == 99
    assert reloaded.faith(1) == 40
    assert reloaded.dexterity(0) == 14


@pytest.mark.parametrize("index", [10, -1, 99, True, 1.0])
def test_character_index_is_checked(save_api, index):
    with pytest.raises(CharacterIndexError):
        save_api.vigor(index)
    with pytest.raises(IndexError):
        save_api.set_level(index, 3)


def test_stat_out_of_range_is_rejected(save_api):
    profile = save_api.raw.user_data_10.profile_summary.profiles[0]
    with pytest.raises(ValueError):
        save_api.set_vigor(0, -5)
    with pytest.raises(ValueError):
        save_api.set_gender(0, 256)
    with pytest.raises(ValueError):
        save_api.set_level(0, 2 ** 32)
    assert save_api.vigor(0) == 10
    assert save_api.gender(0) == 1
    assert profile.gender == 1
    assert save_api.level(0) == profile.level == 42


def test_rejected_stat_leaves_record_bytes(save_api):
    record = save_api.raw.user_data_x[0].record
    before = record.to_bytes()
    with pytest.raises(ValueError):
        save_api.set_runes(0, -1)
    assert record.to_bytes() == before


def test_character_name_must_be_a_string(save_api):
    with pytest.raises(ValueError):
        save_api.set_character_name(0, 42)
    assert save_api.character_name(0) == "Melina"

@pytest.mark.parametrize(
    "setter, getter, value",
    [
        ("set_level", "level", 150),
        ("set_gender", "gender", 0),
        ("set_archetype", "archetype", 9),
        ("set_runes_memory", "runes_memory", 1000000),
        ("set_character_name", "character_name", "Tarnished"),
    ],
)
def test_mirrored_setters_update_profile(pc_save_bytes, setter, getter, value):
    save_api = SaveApi.from_slice(pc_save_bytes)
    getattr(save_api, setter)(0, value)

    profile = save_api.raw.user_data_10.profile_summary.profiles[0]
    assert getattr(save_api, getter)(0) == value
    assert getattr(profile, getter) == value

    reloaded = SaveApi.from_slice(save_api.to_vec())
    assert getattr(reloaded, getter)(0) == value
    assert getattr(reloaded.raw.user_data_10.profile_summary.profiles[0], getter) == value


def test_character_name_too_long_changes_nothing(save_api):
    with pytest.raises(ValueError):
        save_api.set_character_name(0, "x" * 17)
    assert save_api.character_name(0) == "Melina"
    assert save_api.raw.user_data_10.profile_summary.profiles[0].character_name == "Melina"


def test_active_characters_and_name_lookup(save_api):
    assert save_api.active_characters() == [True, True] + [False] * 8
    assert save_api.character_index_from_name("Ranni") == 1
    assert save_api.character_index_from_name("Mel") == 0
    assert save_api.character_index_from_name("Malenia") is None


def test_equipped_gestures(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    assert save_api.equipped_gestures(0) == GESTURES

    save_api.set_equipped_gestures(0, [7, 8, 9, 10])
    reloaded = SaveApi.from_slice(save_api.to_vec())

    assert reloaded.equipped_gestures(0) == [7, 8, 9, 10]
    assert reloaded.regions(0) == REGIONS


def test_regions(save_api):
    assert save_api.regions(0) == REGIONS
    assert save_api.regions_count(0) == 3
    assert save_api.regions(1) == []


def _record_size(record):
    return FIXED_HEADER_SIZE + 8 + 4 * (len(record.equipped_gestures) + record.regions_count) + record.rest_size


def test_region_edits_keep_record_size(save_api):
    record = save_api.raw.user_data_x[0].record
    original_rest = record.rest

    steps = [
        ("add", 6200000), ("add", 6201000), ("remove", REGIONS[0]),
        ("add", 6200000), ("remove", 6200000), ("remove", 6201000),
    ]
    for action, region_id in steps:
        getattr(save_api, f"{action}_region")(0, region_id)
        assert _record_size(record) == CHARACTER_DATA_SIZE
        assert len(record.to_bytes()) == CHARACTER_DATA_SIZE

    assert record.rest_size == len(original_rest) + 4


def test_add_then_remove_restores_rest_exactly(save_api):
    record = save_api.raw.user_data_x[0].record
    original = record.to_bytes()

    save_api.add_region(0, 6300000)
    assert save_api.regions(0) == REGIONS + [6300000]
    assert record.rest.startswith(REST_MARKER)

    save_api.remove_region(0, 6300000)
    assert record.rest == original[-record.rest_size:]
    assert record.to_bytes() == original


def test_add_existing_and_remove_missing_are_no_ops(save_api):
    record = save_api.raw.user_data_x[0].record
    original = record.to_bytes()

    save_api.add_region(0, REGIONS[1])
    save_api.remove_region(0, 12345)

    assert record.to_bytes() == original


def test_region_edit_survives_serialize(pc_save_bytes):
    save_api = SaveApi.from_slice(pc_save_bytes)
    save_api.add_region(1, 6400000)
    save_api.remove_region(0, REGIONS[2])

    reloaded = SaveApi.from_slice(save_api.to_vec())

    assert reloaded.regions(1) == [6400000]
    assert reloaded.regions(0) == REGIONS[:2]


def test_add_region_without_padding_fails():
    record = CharacterRecord.from_bytes(build_character("Full", 1, regions=[1], padded=False))
    before = record.to_bytes()

    with pytest.raises(SectionCapacityError):
        record.add_region(2)
    with pytest.raises(SectionCapacityError):
        record.set_equipped_gestures([1, 2, 3])

    assert record.unlocked_regions == [1]
    assert record.to_bytes() == before


def test_invalid_region_id_is_rejected(save_api):
    with pytest.raises(ValueError):
        save_api.add_region(0, -1)
    with pytest.raises(ValueError):
        save_api.add_region(0, 2 ** 32)
    assert save_api.regions(0) == REGIONS


REGION_POOL = [6100000 + 1000 * i for i in range(12)]


@pytest.mark.parametrize("seed", range(40))
def test_random_list_edits_keep_record_size(seed):
    rng = random.Random(seed)
    record = CharacterRecord.from_bytes(build_character("Tarnished", 5, GESTURES, REGIONS))
    regions = list(REGIONS)

    for _ in range(60):
        roll = rng.random()
        if roll < 0.4:
            region_id = rng.choice(REGION_POOL)
            before = record.to_bytes()
            added = record.add_region(region_id)
            assert added == (region_id not in regions)
            if added and rng.random() < 0.5:
                assert record.remove_region(region_id)
                assert record.to_bytes() == before
            elif added:
                regions.append(region_id)
        elif roll < 0.8:
            region_id = rng.choice(REGION_POOL)
            assert record.remove_region(region_id) == (region_id in regions)
            if region_id in regions:
                regions.remove(region_id)
        else:
            record.set_equipped_gestures(rng.sample(range(1, 200), rng.randint(0, 6)))

        assert record.unlocked_regions == regions
        assert _record_size(record) == CHARACTER_DATA_SIZE
        assert len(record.to_bytes()) == CHARACTER_DATA_SIZE
        assert record.rest.startswith(REST_MARKER)
