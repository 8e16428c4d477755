"""
Domain Lookup Tables

Loads src/config/domain_tables.yaml once and exposes it as maps keyed by
the domain enums. The aggregates only read through the accessor methods,
so a different YAML can be swapped in for tests via init_domain_tables().
"""

import yaml
import logging
from typing import Dict, List, Optional, Any, Tuple
from pathlib import Path

from pydantic import BaseModel, Field

from src.config.settings import get_settings
from src.models.enums import (
    SubscriptionType,
    StoryGenre,
    ReadingDifficulty,
    LearningDifficulty,
    LearningCategory,
    SceneEmotion,
    CharacterTraitType,
    CharacterArchetype,
    LearningStyle,
)

logger = logging.getLogger(__name__)


class SubscriptionLimits(BaseModel):
    """What a subscription tier allows"""
    max_characters: int
    monthly_stories: int  # -1 = unlimited
    advanced_features: bool
    image_generation: bool

    @property
    def has_unlimited_stories(self) -> bool:
        return self.monthly_stories == -1


class ChildDefaults(BaseModel):
    """Restrictions applied to a new child account by age band"""
    daily_minutes: int
    allowed_categories: List[str] = Field(default_factory=list)
    restricted_topics: List[str] = Field(default_factory=list)


class CategoryDefaults(BaseModel):
    success_criteria: List[str] = Field(default_factory=list)
    related_traits: List[CharacterTraitType] = Field(default_factory=list)
    requires_reflection: bool = False
    requires_discussion: bool = False


class ArchetypePreset(BaseModel):
    traits: Dict[CharacterTraitType, int] = Field(default_factory=dict)
    keywords: List[str] = Field(default_factory=list)
    motivation: str = ""
    learning_style: LearningStyle = LearningStyle.VISUAL
    default_emotion: SceneEmotion = SceneEmotion.JOY


def _pick_band(bands: List[Dict[str, Any]], age: int) -> Dict[str, Any]:
    """First band whose max_age covers the age (null max_age matches all)"""
    for band in bands:
        if band["max_age"] is None or age <= band["max_age"]:
            return band
    return bands[-1]


class DomainTables:
    """Enum-keyed view over the domain lookup YAML"""

    def __init__(self, config_path: str = None):
        """
        Initialize the tables.

        Args:
            config_path: Path to a domain tables YAML file.
                         If None, uses src/config/domain_tables.yaml
        """
        if config_path is None:
            config_path = Path(__file__).parent.parent / "config" / "domain_tables.yaml"
        self.config_path = config_path
        self.config = self._load_config(config_path)
        self._build()
        logger.debug(f"Domain tables loaded from {config_path}")

    def _load_config(self, config_path: str) -> dict:
        """Load YAML config file"""
        with open(config_path, 'r') as f:
            return yaml.safe_load(f)

    def _build(self):
        cfg = self.config

        self._subscriptions: Dict[str, SubscriptionLimits] = {
            key: SubscriptionLimits(**value)
            for key, value in cfg["subscription_limits"].items()
        }
        self._child_bands = cfg["child_age_bands"]

        self._genre_traits: Dict[str, List[str]] = cfg["genre_development_traits"]
        self._reading_thresholds: List[Tuple[int, ReadingDifficulty]] = [
            (entry["below"], ReadingDifficulty(entry["difficulty"]))
            for entry in cfg["reading_difficulty_thresholds"]
        ]
        self._reading_fallback = ReadingDifficulty(cfg["reading_difficulty_fallback"])

        self._emotion_tones: Dict[SceneEmotion, str] = {
            SceneEmotion(key): value for key, value in cfg["emotion_tones"].items()
        }
        self._emotion_fallback: str = cfg["emotion_tone_fallback"]

        self._difficulties: Dict[LearningDifficulty, Dict[str, int]] = {
            LearningDifficulty(key): value
            for key, value in cfg["learning_difficulties"].items()
        }
        self._expected_difficulty = cfg["expected_difficulty_by_age"]

        self._category_defaults: Dict[LearningCategory, CategoryDefaults] = {
            LearningCategory(key): CategoryDefaults(**value)
            for key, value in cfg["learning_category_defaults"].items()
        }

        self._growth_modifiers: Dict[CharacterTraitType, float] = {
            CharacterTraitType(key): float(value)
            for key, value in cfg["trait_growth_modifiers"].items()
        }
        self._synergies: Dict[CharacterTraitType, List[CharacterTraitType]] = {
            CharacterTraitType(key): [CharacterTraitType(v) for v in values]
            for key, values in cfg["trait_synergies"].items()
        }
        self.default_trait_value: int = cfg["default_trait_value"]
        self._archetypes: Dict[CharacterArchetype, ArchetypePreset] = {
            CharacterArchetype(key): ArchetypePreset(**value)
            for key, value in cfg["archetype_presets"].items()
        }
        self._avoided_topics = cfg["avoided_topics_by_age"]

        prefs = cfg["preferences"]
        self.allowed_preference_keys = frozenset(prefs["allowed_keys"])
        self.preference_choices: Dict[str, List[str]] = prefs["choices"]
        self.preference_ranges: Dict[str, Tuple[int, int]] = {
            key: (bounds[0], bounds[1]) for key, bounds in prefs["int_ranges"].items()
        }
        self.boolean_preference_keys = frozenset(prefs["boolean_keys"])
        self._default_preferences: Dict[str, str] = prefs["defaults"]
        self._child_default_preferences: Dict[str, str] = prefs["child_defaults"]

    # ===== Users =====

    def subscription_limits(self, tier: SubscriptionType) -> SubscriptionLimits:
        """Limits for a tier; unknown tiers (premium_adult) get the default row"""
        key = tier.value if isinstance(tier, SubscriptionType) else str(tier)
        return self._subscriptions.get(key, self._subscriptions["default"])

    def child_defaults(self, age: int) -> ChildDefaults:
        band = _pick_band(self._child_bands, age)
        return ChildDefaults(
            daily_minutes=band["daily_minutes"],
            allowed_categories=list(band["allowed_categories"]),
            restricted_topics=list(band["restricted_topics"]),
        )

    def default_preferences(self, is_child: bool = False) -> Dict[str, str]:
        defaults = dict(self._default_preferences)
        if is_child:
            defaults.update(self._child_default_preferences)
        return defaults

    # ===== Stories and scenes =====

    def genre_traits(self, genre: StoryGenre) -> List[str]:
        return list(self._genre_traits.get(genre.value, self._genre_traits["default"]))

    def reading_difficulty(self, word_count: int) -> ReadingDifficulty:
        for below, difficulty in self._reading_thresholds:
            if word_count < below:
                return difficulty
        return self._reading_fallback

    def emotion_tone(self, emotion: SceneEmotion) -> str:
        return self._emotion_tones.get(emotion, self._emotion_fallback)

    def words_per_minute(self, difficulty: LearningDifficulty) -> int:
        return self._difficulties[difficulty]["words_per_minute"]

    def minimum_age(self, difficulty: LearningDifficulty) -> int:
        return self._difficulties[difficulty]["minimum_age"]

    # ===== Learning goals =====

    def expected_difficulty(self, age: int) -> LearningDifficulty:
        return LearningDifficulty(_pick_band(self._expected_difficulty, age)["difficulty"])

    def category_defaults(self, category: LearningCategory) -> Optional[CategoryDefaults]:
        return self._category_defaults.get(category)

    # ===== Characters =====

    def growth_modifier(self, trait_type: CharacterTraitType) -> float:
        return self._growth_modifiers.get(trait_type, 1.0)

    def synergies(self, trait_type: CharacterTraitType) -> List[CharacterTraitType]:
        return list(self._synergies.get(trait_type, []))

    def archetype_preset(self, archetype: CharacterArchetype) -> ArchetypePreset:
        return self._archetypes[archetype]

    def avoided_topics(self, age: int) -> List[str]:
        return list(_pick_band(self._avoided_topics, age)["topics"])


# Singleton instance
_domain_tables: Optional[DomainTables] = None


def get_domain_tables() -> DomainTables:
    """
    Get singleton DomainTables instance.

    Honors Settings.domain_tables_path (DOMAIN_TABLES_PATH) when creating it.
    """
    global _domain_tables
    if _domain_tables is None:
        _domain_tables = DomainTables(get_settings().domain_tables_path)
    return _domain_tables


def init_domain_tables(config_path: str = None) -> DomainTables:
    """Initialize the tables from a specific file (call at app startup)."""
    global _domain_tables
    _domain_tables = DomainTables(config_path)
    return _domain_tables


def reset_domain_tables():
    """Reset the singleton (useful for testing)."""
    global _domain_tables
    _domain_tables = None
