"""
Character traits and the DNA they start from.

A trait value (1-10) follows its experience points along the curve
``xp(v) = 10 * (v - 1) ** 2.2``. Experience only ever raises a value; a
challenge can lower it back toward the base value, never below.
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Iterable
from datetime import datetime

from src.config.limits import (
    TRAIT_MIN_VALUE,
    TRAIT_MAX_VALUE,
    TRAIT_STABILITY_MIN,
    TRAIT_STABILITY_MAX,
    TRAIT_HISTORY_SIZE,
    TRAIT_RECENT_EXPERIENCES,
    MAX_PERSONALITY_KEYWORDS,
)
from src.models.enums import CharacterTraitType, CharacterArchetype, LearningStyle, SceneEmotion
from src.models.errors import DomainValidationError
from src.models.tables import get_domain_tables
from src.utils.time import resolve_now


def experience_for_value(value: int) -> float:
    """Total experience a trait needs to reach ``value``"""
    if value <= TRAIT_MIN_VALUE:
        return 0.0
    return (value - 1) ** 2.2 * 10


def _check_trait_value(value: int, field: str = "value"):
    if not TRAIT_MIN_VALUE <= value <= TRAIT_MAX_VALUE:
        raise DomainValidationError(
            f"Trait value must be between {TRAIT_MIN_VALUE} and {TRAIT_MAX_VALUE}", field=field
        )


class TraitEvolution(BaseModel):
    old_value: int
    new_value: int
    reason: str
    occurred_at: datetime


class TraitChangeResult(BaseModel):
    """Outcome of one trait operation"""
    trait_type: CharacterTraitType
    old_value: int
    new_value: int
    experience_gained: float = 0.0

    @property
    def changed(self) -> bool:
        return self.old_value != self.new_value


class CharacterTrait(BaseModel):
    trait_type: CharacterTraitType
    base_value: int
    current_value: int
    max_value: int = TRAIT_MAX_VALUE
    experience_points: float = 0.0
    growth_rate: float = 1.0
    stability_factor: float = 1.0
    times_reinforced: int = 0
    times_challenged: int = 0
    last_changed_at: Optional[datetime] = None
    evolution_history: List[TraitEvolution] = Field(default_factory=list)
    recent_experiences: List[str] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        trait_type: CharacterTraitType,
        base_value: int,
        stability_factor: float = 1.0,
    ) -> "CharacterTrait":
        _check_trait_value(base_value, "base_value")
        if not TRAIT_STABILITY_MIN <= stability_factor <= TRAIT_STABILITY_MAX:
            raise DomainValidationError(
                f"Stability must be between {TRAIT_STABILITY_MIN} and {TRAIT_STABILITY_MAX}",
                field="stability_factor",
            )
        growth = (11 - base_value) / 10 * get_domain_tables().growth_modifier(trait_type)
        return cls(
            trait_type=trait_type,
            base_value=base_value,
            current_value=base_value,
            experience_points=experience_for_value(base_value),
            growth_rate=max(0.5, min(2.0, growth)),
            stability_factor=stability_factor,
        )

    # ===== Derived =====

    def _value_for_experience(self) -> int:
        value = TRAIT_MIN_VALUE
        while value < self.max_value and experience_for_value(value + 1) <= self.experience_points:
            value += 1
        return value

    def experience_needed_for_next_level(self) -> float:
        if self.current_value >= self.max_value:
            return 0.0
        return max(0.0, experience_for_value(self.current_value + 1) - self.experience_points)

    @property
    def level_description(self) -> str:
        if self.current_value >= 9:
            return "exceptional"
        if self.current_value >= 7:
            return "strong"
        if self.current_value >= 5:
            return "developing"
        if self.current_value >= 3:
            return "emerging"
        return "budding"

    def is_ready_for_recognition(self) -> bool:
        return (
            self.current_value >= 8
            and self.times_reinforced >= 5
            and self.stability_factor >= 1.5
        )

    def synergy_with(self, other: CharacterTraitType) -> bool:
        return other in get_domain_tables().synergies(self.trait_type)

    # ===== Mutators =====

    def _set_value(self, new_value: int, reason: str, now: datetime):
        old_value = self.current_value
        self.current_value = new_value
        self.last_changed_at = now
        self.evolution_history.append(
            TraitEvolution(old_value=old_value, new_value=new_value, reason=reason, occurred_at=now)
        )
        self.evolution_history = self.evolution_history[-TRAIT_HISTORY_SIZE:]

    def add_experience(
        self,
        points: float,
        description: str = "",
        now: Optional[datetime] = None,
    ) -> TraitChangeResult:
        """Grow through experience, scaled by the trait's growth rate"""
        if points <= 0:
            raise DomainValidationError("Experience points must be positive", field="points")
        now = resolve_now(now)
        old_value = self.current_value
        gained = points * self.growth_rate
        self.experience_points += gained

        if description and description.strip():
            self.recent_experiences.append(description.strip())
            self.recent_experiences = self.recent_experiences[-TRAIT_RECENT_EXPERIENCES:]

        new_value = max(old_value, self._value_for_experience())
        if new_value != old_value:
            self._set_value(new_value, description or "experience", now)
            self.stability_factor = min(TRAIT_STABILITY_MAX, self.stability_factor + 0.05)
        return TraitChangeResult(
            trait_type=self.trait_type, old_value=old_value, new_value=new_value, experience_gained=gained
        )

    def reinforce_positively(
        self,
        multiplier: float = 1.0,
        reason: str = "positive reinforcement",
        now: Optional[datetime] = None,
    ) -> TraitChangeResult:
        if multiplier <= 0:
            raise DomainValidationError("Reinforcement multiplier must be positive", field="multiplier")
        self.times_reinforced += 1
        bonus = 5 * (1 + self.current_value / 10) * multiplier
        return self.add_experience(bonus, reason, now=now)

    def challenge(
        self,
        intensity: float,
        reason: str = "challenge",
        now: Optional[datetime] = None,
    ) -> TraitChangeResult:
        """An unstable trait under a strong challenge drops one point (not below base)"""
        if not 0 < intensity <= 1:
            raise DomainValidationError("Challenge intensity must be in (0, 1]", field="intensity")
        now = resolve_now(now)
        self.times_challenged += 1
        old_value = self.current_value
        reduction_chance = (1 - self.stability_factor) * intensity
        if reduction_chance > 0.3 and self.current_value > self.base_value:
            self._set_value(self.current_value - 1, reason, now)
            self.experience_points = experience_for_value(self.current_value)
        return TraitChangeResult(trait_type=self.trait_type, old_value=old_value, new_value=self.current_value)

    def adjust_value(self, delta: int, reason: str = "", now: Optional[datetime] = None) -> TraitChangeResult:
        """Direct change, clamped to [1, max]"""
        now = resolve_now(now)
        old_value = self.current_value
        new_value = max(TRAIT_MIN_VALUE, min(self.max_value, old_value + delta))
        if new_value != old_value:
            self._set_value(new_value, reason or "adjustment", now)
            if new_value > old_value:
                self.experience_points = max(self.experience_points, experience_for_value(new_value))
            else:
                self.experience_points = experience_for_value(new_value)
        return TraitChangeResult(trait_type=self.trait_type, old_value=old_value, new_value=new_value)


class CharacterDNA(BaseModel):
    """Immutable-by-convention starting blueprint of a character"""
    archetype: CharacterArchetype
    base_traits: Dict[CharacterTraitType, int]
    personality_keywords: List[str] = Field(default_factory=list)
    motivation: str = ""
    learning_style: LearningStyle = LearningStyle.VISUAL
    default_emotion: SceneEmotion = SceneEmotion.JOY
    avoided_topics: List[str] = Field(default_factory=list)
    complexity_preference: int = Field(default=5, ge=1, le=10)
    social_orientation: int = Field(default=5, ge=1, le=10)
    energy_level: int = Field(default=5, ge=1, le=10)

    @classmethod
    def from_archetype(
        cls,
        archetype: CharacterArchetype,
        emphasized_traits: Iterable[CharacterTraitType] = (),
        child_age: Optional[int] = None,
        keywords: Optional[List[str]] = None,
        motivation: Optional[str] = None,
    ) -> "CharacterDNA":
        """Archetype preset, with emphasized traits raised by two points"""
        tables = get_domain_tables()
        preset = tables.archetype_preset(archetype)
        traits = {trait: tables.default_trait_value for trait in CharacterTraitType}
        traits.update(preset.traits)
        for trait in emphasized_traits:
            traits[trait] = min(TRAIT_MAX_VALUE, traits[trait] + 2)

        all_keywords = list(preset.keywords) + [k.strip().lower() for k in (keywords or []) if k.strip()]
        unique_keywords = []
        for keyword in all_keywords:
            if keyword not in unique_keywords:
                unique_keywords.append(keyword)

        return cls(
            archetype=archetype,
            base_traits=traits,
            personality_keywords=unique_keywords[:MAX_PERSONALITY_KEYWORDS],
            motivation=(motivation or "").strip() or preset.motivation,
            learning_style=preset.learning_style,
            default_emotion=preset.default_emotion,
            avoided_topics=tables.avoided_topics(child_age) if child_age is not None else [],
            complexity_preference=max(1, min(10, child_age // 2)) if child_age is not None else 5,
        )

    @classmethod
    def custom(
        cls,
        archetype: CharacterArchetype,
        base_traits: Dict[CharacterTraitType, int],
        **kwargs,
    ) -> "CharacterDNA":
        """Explicit trait values; traits left out start at the default value"""
        for trait, value in base_traits.items():
            _check_trait_value(value, f"base_traits.{trait.value}")
        traits = {trait: get_domain_tables().default_trait_value for trait in CharacterTraitType}
        traits.update(base_traits)
        return cls(archetype=archetype, base_traits=traits, **kwargs)

    def create_copy(self) -> "CharacterDNA":
        return self.model_copy(deep=True)
