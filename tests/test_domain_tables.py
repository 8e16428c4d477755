"""
Tests for settings and the YAML domain lookup tables.

Run with: python -m pytest tests/test_domain_tables.py -v
"""

import sys
import tempfile
from pathlib import Path

import pytest
import yaml

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import Settings, get_settings, reset_settings
from src.models.enums import (
    SubscriptionType,
    StoryGenre,
    ReadingDifficulty,
    LearningDifficulty,
    LearningCategory,
    SceneEmotion,
    CharacterArchetype,
    CharacterTraitType,
)
from src.models.tables import DomainTables, get_domain_tables, init_domain_tables, reset_domain_tables


class TestSettings:

    def setup_method(self):
        reset_settings()

    def teardown_method(self):
        reset_settings()

    def test_defaults(self):
        settings = Settings()

        assert settings.max_login_attempts == 5
        assert settings.login_lockout_minutes == 15
        assert settings.monthly_reset_days == 30
        assert settings.domain_tables_path is None

    def test_settings_are_cached(self):
        assert get_settings() is get_settings()

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MAX_LOGIN_ATTEMPTS", "3")
        reset_settings()

        assert get_settings().max_login_attempts == 3


class TestDomainTables:

    def setup_method(self):
        reset_domain_tables()
        self.tables = get_domain_tables()

    def test_singleton(self):
        assert get_domain_tables() is self.tables

    def test_subscription_fallback(self):
        assert self.tables.subscription_limits(SubscriptionType.FAMILY).max_characters == 8
        assert self.tables.subscription_limits(SubscriptionType.PREMIUM).has_unlimited_stories
        assert self.tables.subscription_limits(SubscriptionType.PREMIUM_ADULT).monthly_stories == 5

    @pytest.mark.parametrize("age,minutes", [(3, 30), (6, 30), (7, 60), (10, 60), (11, 120), (17, 120)])
    def test_child_bands(self, age, minutes):
        assert self.tables.child_defaults(age).daily_minutes == minutes

    def test_default_preferences(self):
        adult = self.tables.default_preferences()
        child = self.tables.default_preferences(is_child=True)

        assert "content_filter_level" not in adult
        assert child["content_filter_level"] == "5"
        assert set(child) <= self.tables.allowed_preference_keys

    def test_story_tables(self):
        assert self.tables.genre_traits(StoryGenre.MYSTERY) == ["Curiosity", "Intelligence"]
        assert self.tables.genre_traits(StoryGenre.SPACE) == ["General development"]
        assert self.tables.reading_difficulty(0) == ReadingDifficulty.VERY_EASY
        assert self.tables.reading_difficulty(5000) == ReadingDifficulty.DIFFICULT
        assert self.tables.emotion_tone(SceneEmotion.FEAR) == "suspenseful"

    def test_learning_tables(self):
        assert self.tables.words_per_minute(LearningDifficulty.EXPERT) == 180
        assert self.tables.minimum_age(LearningDifficulty.ADVANCED) == 12
        assert self.tables.expected_difficulty(5) == LearningDifficulty.BEGINNER
        assert self.tables.expected_difficulty(15) == LearningDifficulty.EXPERT
        assert self.tables.category_defaults(LearningCategory.SCIENCE) is None

    def test_character_tables(self):
        assert self.tables.growth_modifier(CharacterTraitType.CURIOSITY) == 1.2
        assert self.tables.growth_modifier(CharacterTraitType.COURAGE) == 1.0
        assert CharacterTraitType.EMPATHY in self.tables.synergies(CharacterTraitType.KINDNESS)
        assert self.tables.archetype_preset(CharacterArchetype.JESTER).traits[CharacterTraitType.HUMOR] == 9
        assert self.tables.avoided_topics(14) == []


class TestCustomTables:
    """Tables loaded from another YAML file"""

    def setup_method(self):
        reset_domain_tables()
        self.temp_dir = tempfile.mkdtemp()
        default_path = Path(__file__).parent.parent / "src" / "config" / "domain_tables.yaml"
        with open(default_path) as f:
            self.config = yaml.safe_load(f)

    def teardown_method(self):
        reset_domain_tables()
        reset_settings()

    def _write(self, config: dict) -> str:
        path = Path(self.temp_dir) / "tables.yaml"
        with open(path, "w") as f:
            yaml.dump(config, f)
        return str(path)

    def test_init_from_file(self):
        self.config["subscription_limits"]["free"]["monthly_stories"] = 2
        path = self._write(self.config)

        tables = init_domain_tables(path)

        assert get_domain_tables() is tables
        assert tables.subscription_limits(SubscriptionType.FREE).monthly_stories == 2

    def test_path_from_settings(self, monkeypatch):
        self.config["default_trait_value"] = 4
        monkeypatch.setenv("DOMAIN_TABLES_PATH", self._write(self.config))
        reset_settings()

        assert get_domain_tables().default_trait_value == 4

    def test_direct_construction(self):
        tables = DomainTables(self._write(self.config))

        assert tables.config_path.endswith("tables.yaml")
