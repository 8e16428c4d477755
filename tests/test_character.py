"""
Unit tests for characters: traits, DNA, memories, leveling, sharing and adoption.

Run with: python -m pytest tests/test_character.py -v
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.models.character import Character, level_for_experience
from src.models.enums import CharacterArchetype, CharacterTraitType, MemoryType, SharingStatus
from src.models.errors import DomainValidationError, BusinessRuleViolation, InvalidStateTransition
from src.models.memory import CharacterMemory
from src.models.tables import reset_domain_tables
from src.models.traits import CharacterDNA, CharacterTrait, experience_for_value

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_character(archetype=CharacterArchetype.EXPLORER, name="Luna", owner="user_1") -> Character:
    character = Character.create(name, owner, CharacterDNA.from_archetype(archetype), now=NOW)
    character.clear_domain_events()
    return character


def make_memory(title="A day at the lake", importance=5, now=NOW) -> CharacterMemory:
    return CharacterMemory.create(title, "Something happened", importance=importance, now=now)


def make_veteran(owner="user_1") -> Character:
    """Character with three stories and level 2, enough for community sharing"""
    character = make_character(owner=owner)
    for i in range(3):
        character.add_experience_from_story(f"story_{i}", 100, now=NOW)
    character.clear_domain_events()
    return character


class TestTraitCurve:

    def setup_method(self):
        reset_domain_tables()

    def test_experience_curve(self):
        assert experience_for_value(1) == 0.0
        assert experience_for_value(2) == pytest.approx(10.0)
        assert experience_for_value(3) == pytest.approx(45.95, abs=0.01)

    def test_new_trait_starts_on_curve(self):
        trait = CharacterTrait.create(CharacterTraitType.COURAGE, 5)

        assert trait.current_value == 5
        assert trait.experience_points == pytest.approx(experience_for_value(5))

    @pytest.mark.parametrize("trait_type,base,expected", [
        (CharacterTraitType.COURAGE, 5, 0.6),
        (CharacterTraitType.CURIOSITY, 5, 0.72),
        (CharacterTraitType.COURAGE, 10, 0.5),
        (CharacterTraitType.CURIOSITY, 1, 1.2),
    ])
    def test_growth_rate(self, trait_type, base, expected):
        trait = CharacterTrait.create(trait_type, base)

        assert trait.growth_rate == pytest.approx(expected)

    def test_invalid_base_value(self):
        with pytest.raises(DomainValidationError):
            CharacterTrait.create(CharacterTraitType.COURAGE, 11)
        with pytest.raises(DomainValidationError):
            CharacterTrait.create(CharacterTraitType.COURAGE, 5, stability_factor=3.0)


class TestCharacterTrait:

    def setup_method(self):
        reset_domain_tables()

    def test_experience_raises_value(self):
        trait = CharacterTrait.create(CharacterTraitType.COURAGE, 1)

        result = trait.add_experience(10, "Crossed the bridge", now=NOW)

        assert result.changed
        assert trait.current_value == 2
        assert trait.stability_factor == pytest.approx(1.05)
        assert trait.recent_experiences == ["Crossed the bridge"]
        assert trait.evolution_history[-1].new_value == 2

    def test_small_experience_never_lowers_value(self):
        trait = CharacterTrait.create(CharacterTraitType.WISDOM, 6)

        result = trait.add_experience(1, now=NOW)

        assert not result.changed
        assert trait.current_value == 6

    def test_non_positive_experience_rejected(self):
        trait = CharacterTrait.create(CharacterTraitType.COURAGE, 5)

        with pytest.raises(DomainValidationError):
            trait.add_experience(0, now=NOW)

    def test_challenge_drops_unstable_trait_to_base(self):
        trait = CharacterTrait.create(CharacterTraitType.HUMOR, 3, stability_factor=0.5)
        trait.adjust_value(2, now=NOW)

        trait.challenge(1.0, now=NOW)
        assert trait.current_value == 4
        trait.challenge(1.0, now=NOW)
        trait.challenge(1.0, now=NOW)
        assert trait.current_value == 3
        assert trait.times_challenged == 3

    def test_stable_trait_resists_challenge(self):
        trait = CharacterTrait.create(CharacterTraitType.HUMOR, 3)
        trait.adjust_value(2, now=NOW)

        result = trait.challenge(1.0, now=NOW)

        assert not result.changed
        with pytest.raises(DomainValidationError):
            trait.challenge(0, now=NOW)

    def test_adjust_value_clamps(self):
        high = CharacterTrait.create(CharacterTraitType.COURAGE, 9)
        low = CharacterTrait.create(CharacterTraitType.COURAGE, 2)

        assert high.adjust_value(5, now=NOW).new_value == 10
        assert low.adjust_value(-5, now=NOW).new_value == 1

    def test_history_is_bounded(self):
        trait = CharacterTrait.create(CharacterTraitType.PATIENCE, 5)
        for i in range(60):
            trait.adjust_value(1 if i % 2 == 0 else -1, now=NOW)

        assert len(trait.evolution_history) == 50

    def test_recognition(self):
        trait = CharacterTrait.create(CharacterTraitType.KINDNESS, 8, stability_factor=1.5)
        for _ in range(4):
            trait.reinforce_positively(now=NOW)
        assert not trait.is_ready_for_recognition()

        trait.reinforce_positively(now=NOW)
        assert trait.is_ready_for_recognition()

    def test_synergy(self):
        trait = CharacterTrait.create(CharacterTraitType.COURAGE, 5)

        assert trait.synergy_with(CharacterTraitType.DETERMINATION)
        assert not trait.synergy_with(CharacterTraitType.HUMOR)

    def test_level_description(self):
        assert CharacterTrait.create(CharacterTraitType.COURAGE, 9).level_description == "exceptional"
        assert CharacterTrait.create(CharacterTraitType.COURAGE, 2).level_description == "budding"


class TestCharacterDNA:

    def setup_method(self):
        reset_domain_tables()

    def test_archetype_preset_with_emphasis(self):
        dna = CharacterDNA.from_archetype(
            CharacterArchetype.EXPLORER,
            emphasized_traits=[CharacterTraitType.COURAGE],
            child_age=5,
            keywords=["Bold", "sunny"],
        )

        assert dna.base_traits[CharacterTraitType.COURAGE] == 9
        assert dna.base_traits[CharacterTraitType.CURIOSITY] == 8
        assert dna.base_traits[CharacterTraitType.HUMOR] == 5
        assert dna.personality_keywords == ["adventurous", "bold", "sunny"]
        assert "violence" in dna.avoided_topics
        assert dna.complexity_preference == 2

    def test_emphasis_capped_at_ten(self):
        dna = CharacterDNA.from_archetype(
            CharacterArchetype.CREATOR, emphasized_traits=[CharacterTraitType.CREATIVITY]
        )

        assert dna.base_traits[CharacterTraitType.CREATIVITY] == 10

    def test_custom_dna_validates_values(self):
        with pytest.raises(DomainValidationError):
            CharacterDNA.custom(CharacterArchetype.HELPER, {CharacterTraitType.KINDNESS: 0})

        dna = CharacterDNA.custom(CharacterArchetype.HELPER, {CharacterTraitType.KINDNESS: 10})
        assert dna.base_traits[CharacterTraitType.KINDNESS] == 10
        assert dna.base_traits[CharacterTraitType.WISDOM] == 5

    def test_copy_is_independent(self):
        dna = CharacterDNA.from_archetype(CharacterArchetype.HERO)
        copy = dna.create_copy()
        copy.base_traits[CharacterTraitType.COURAGE] = 1

        assert dna.base_traits[CharacterTraitType.COURAGE] == 9


class TestCharacterMemory:

    def test_importance_bands(self):
        assert make_memory(importance=9).importance_level == "critical"
        assert make_memory(importance=5).importance_level == "medium"
        assert make_memory(importance=1).importance_level == "trivial"
        assert make_memory(importance=8).decay_resistance == 5

    def test_every_fifth_access_raises_importance(self):
        memory = make_memory(importance=5)
        for _ in range(4):
            memory.access(now=NOW)
        assert memory.importance == 5

        memory.access(now=NOW)
        assert memory.importance == 6
        assert memory.last_accessed_at == NOW

    def test_strength_decays_with_age(self):
        memory = make_memory(importance=8)

        assert memory.memory_strength(NOW) == pytest.approx(0.8)
        assert memory.memory_strength(NOW + timedelta(days=30)) == pytest.approx(0.5)
        memory.mark_as_consolidated()
        assert memory.memory_strength(NOW) == pytest.approx(1.0)

    def test_factories(self):
        achievement = CharacterMemory.achievement("Won the race", "First place", now=NOW)
        learning = CharacterMemory.learning("Counting stars", "Counted to ten", "Numbers", now=NOW)

        assert achievement.importance == 8
        assert achievement.memory_type == MemoryType.ACHIEVEMENT
        assert achievement.emotional_context == ["pride"]
        assert learning.tags == ["numbers"]
        assert achievement.should_be_preserved()

    def test_base_copy_is_weaker(self):
        assert make_memory(importance=3).create_base_copy(NOW).importance == 1
        assert make_memory(importance=9).create_base_copy(NOW).importance == 7

    def test_links_skip_self(self):
        memory = make_memory()
        memory.link_memory(memory.id)
        memory.link_memory("mem_other")
        memory.link_memory("mem_other")

        assert memory.linked_memory_ids == ["mem_other"]

    def test_title_required(self):
        with pytest.raises(DomainValidationError):
            CharacterMemory.create("", "summary")


class TestCharacter:

    def setup_method(self):
        reset_domain_tables()

    @pytest.mark.parametrize("experience,level", [
        (0, 1), (99, 1), (100, 2), (399, 2), (400, 3), (10_000_000, 50),
    ])
    def test_level_curve(self, experience, level):
        assert level_for_experience(experience) == level

    def test_create_builds_traits_from_dna(self):
        character = Character.create("Luna", "user_1", CharacterDNA.from_archetype(CharacterArchetype.EXPLORER), now=NOW)

        assert character.id.startswith("char_")
        assert character.trait_value(CharacterTraitType.CURIOSITY) == 8
        assert len(character.traits) == 12
        assert [e.event_type for e in character.domain_events] == ["character.created"]

    def test_name_validation(self):
        dna = CharacterDNA.from_archetype(CharacterArchetype.HERO)

        with pytest.raises(DomainValidationError):
            Character.create("x" * 51, "user_1", dna, now=NOW)
        with pytest.raises(DomainValidationError):
            Character.create("Stupid Bob", "user_1", dna, now=NOW)

    def test_experience_and_level_up(self):
        character = make_character()

        events = character.add_experience_from_story("story_1", 150, now=NOW)

        assert [e.event_type for e in events] == ["character.experience_gained", "character.leveled_up"]
        assert character.level == 2
        assert character.story_ids == ["story_1"]
        assert character.last_story_at == NOW

    def test_personality_description(self):
        hero = make_character(CharacterArchetype.HERO, name="Leo")

        assert hero.personality_description() == "Leo is very brave, quite determined and quite honest."

    def test_balanced_personality(self):
        dna = CharacterDNA.custom(CharacterArchetype.HELPER, {})
        character = Character.create("Pip", "user_1", dna, now=NOW)

        assert character.personality_description() == "Pip has a balanced personality."

    def test_memory_cap_forgets_trivial_first(self):
        character = make_character()
        trivial = make_memory("Forgettable", importance=1, now=NOW)
        character.add_memory(trivial, now=NOW)
        for i in range(99):
            character.add_memory(make_memory(f"Memory {i}", now=NOW + timedelta(minutes=i + 1)), now=NOW)

        character.add_memory(make_memory("Newest", now=NOW + timedelta(days=1)), now=NOW)

        assert len(character.memories) == 100
        assert trivial not in character.memories
        assert character.memories[-1].title == "Newest"

    def test_duplicate_memory_ignored(self):
        character = make_character()
        memory = make_memory()
        character.add_memory(memory, now=NOW)

        assert character.add_memory(memory, now=NOW) == []
        assert len(character.memories) == 1

    def test_trait_change_events(self):
        character = make_character()

        events = character.update_trait(CharacterTraitType.HUMOR, 2, "told a joke", now=NOW)
        assert events[0].event_type == "character.trait_changed"
        assert events[0].new_value == 7

        version = character.version
        assert character.update_trait(CharacterTraitType.HUMOR, 0, now=NOW) == []
        assert character.version == version + 1

    def test_tags_capped(self):
        character = make_character()
        for i in range(12):
            character.add_tag(f"Tag{i}", now=NOW)

        assert len(character.tags) == 10
        assert character.tags[0] == "tag0"

    def test_deactivated_character_rejects_changes(self):
        character = make_character()
        character.deactivate(now=NOW)

        with pytest.raises(InvalidStateTransition):
            character.add_experience_from_story("story_1", 10, now=NOW)
        character.reactivate(now=NOW)
        character.add_experience_from_story("story_1", 10, now=NOW)

    def test_snapshot(self):
        character = make_veteran()
        snapshot = character.create_snapshot(NOW)

        assert snapshot.level == 2
        assert snapshot.stories_experienced == 3
        assert snapshot.trait_values[CharacterTraitType.CURIOSITY] == 8


class TestSharingAndAdoption:

    def setup_method(self):
        reset_domain_tables()

    def test_community_needs_experience(self):
        character = make_character()

        with pytest.raises(BusinessRuleViolation):
            character.update_sharing_status(SharingStatus.COMMUNITY, now=NOW)
        assert character.sharing_status == SharingStatus.PRIVATE

        character.update_sharing_status(SharingStatus.FAMILY, now=NOW)
        assert character.sharing_status == SharingStatus.FAMILY

    def test_veteran_can_go_community(self):
        character = make_veteran()

        events = character.update_sharing_status(SharingStatus.COMMUNITY, now=NOW)

        assert events[0].event_type == "character.sharing_changed"
        assert character.can_share_publicly
        assert not character.can_adopt_new_characters

    def test_private_character_cannot_be_shared(self):
        with pytest.raises(BusinessRuleViolation):
            make_character().mark_as_shared(now=NOW)

    def test_adoption_copy(self):
        original = make_veteran()
        for importance in (9, 6, 4, 3, 8):
            original.add_memory(make_memory(f"Memory {importance}", importance=importance), now=NOW)
        original.update_sharing_status(SharingStatus.COMMUNITY, now=NOW)

        adopted = original.create_adoption_copy("user_2", now=NOW)

        assert adopted.id != original.id
        assert adopted.owner_user_id == "user_2"
        assert adopted.original_character_id == original.id
        assert adopted.level == 1
        assert adopted.experience_points == 0
        assert adopted.story_ids == []
        assert [m.importance for m in adopted.memories] == [7, 6, 4]
        assert adopted.dna == original.dna
        assert [e.event_type for e in adopted.domain_events] == ["character.created", "character.adopted"]
        assert original.times_adopted == 1

    def test_adoption_requires_community(self):
        original = make_veteran()

        with pytest.raises(BusinessRuleViolation):
            original.create_adoption_copy("user_2", now=NOW)

    def test_owner_cannot_adopt_own_character(self):
        original = make_veteran()
        original.update_sharing_status(SharingStatus.COMMUNITY, now=NOW)

        with pytest.raises(BusinessRuleViolation):
            original.create_adoption_copy("user_1", now=NOW)
