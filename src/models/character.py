"""
Character aggregate: a persistent avatar that grows across stories.

Level follows total experience: ``min(50, floor(sqrt(xp / 100)) + 1)``.
Traits start from the character's DNA and evolve through story experience.
Characters shared with the community can be adopted; the adopted copy keeps
the DNA and a few faded memories but starts over at level 1.
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional
from datetime import datetime
import math
import uuid

from src.config.limits import (
    CHARACTER_NAME_MAX_LENGTH,
    CHARACTER_MAX_LEVEL,
    MAX_MEMORIES_PER_CHARACTER,
    MAX_CHARACTER_TAGS,
    COMMUNITY_MIN_STORIES,
    COMMUNITY_MIN_LEVEL,
    ADOPTION_MIN_STORIES,
    ADOPTION_MIN_LEVEL,
    ADOPTION_MAX_MEMORIES,
)
from src.models.base import AggregateRoot
from src.models.enums import CharacterTraitType, SharingStatus
from src.models.errors import DomainValidationError, BusinessRuleViolation, InvalidStateTransition
from src.models.events import (
    DomainEvent,
    CharacterCreated,
    CharacterUpdated,
    CharacterSharingChanged,
    CharacterExperienceGained,
    CharacterLeveledUp,
    CharacterMemoryAdded,
    CharacterTraitChanged,
    CharacterAdopted,
    CharacterShared,
    CharacterDeactivated,
    CharacterReactivated,
)
from src.models.memory import CharacterMemory
from src.models.traits import CharacterDNA, CharacterTrait, TraitChangeResult
from src.utils.text_processing import is_child_friendly
from src.utils.time import resolve_now

TRAIT_ADJECTIVES = {
    CharacterTraitType.COURAGE: "brave",
    CharacterTraitType.KINDNESS: "kind",
    CharacterTraitType.CURIOSITY: "curious",
    CharacterTraitType.CREATIVITY: "creative",
    CharacterTraitType.INTELLIGENCE: "clever",
    CharacterTraitType.HUMOR: "funny",
    CharacterTraitType.EMPATHY: "caring",
    CharacterTraitType.DETERMINATION: "determined",
    CharacterTraitType.WISDOM: "wise",
    CharacterTraitType.OPTIMISM: "optimistic",
    CharacterTraitType.HONESTY: "honest",
    CharacterTraitType.PATIENCE: "patient",
}


def level_for_experience(experience: int) -> int:
    return min(CHARACTER_MAX_LEVEL, int(math.sqrt(experience / 100)) + 1)


def _validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise DomainValidationError("Character name is required", field="name")
    if len(name) > CHARACTER_NAME_MAX_LENGTH:
        raise DomainValidationError(
            f"Character name must be at most {CHARACTER_NAME_MAX_LENGTH} characters", field="name"
        )
    if not is_child_friendly(name):
        raise DomainValidationError("Character name is not child-friendly", field="name")
    return name


def _intensity(value: int) -> str:
    if value >= 9:
        return "very"
    if value >= 7:
        return "quite"
    if value >= 5:
        return "somewhat"
    return "a little"


class CharacterSnapshot(BaseModel):
    character_id: str
    name: str
    level: int
    experience_points: int
    stories_experienced: int
    trait_values: Dict[CharacterTraitType, int]
    memory_count: int
    sharing_status: SharingStatus
    taken_at: datetime


class Character(AggregateRoot):
    id: str = Field(default_factory=lambda: f"char_{uuid.uuid4().hex[:12]}")
    name: str
    description: str = ""
    owner_user_id: str
    original_character_id: Optional[str] = None
    dna: CharacterDNA
    avatar_url: Optional[str] = None

    is_active: bool = True
    sharing_status: SharingStatus = SharingStatus.PRIVATE
    times_shared: int = 0
    times_adopted: int = 0

    level: int = 1
    experience_points: int = 0
    story_ids: List[str] = Field(default_factory=list)
    last_story_at: Optional[datetime] = None

    traits: Dict[CharacterTraitType, CharacterTrait] = Field(default_factory=dict)
    memories: List[CharacterMemory] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    @classmethod
    def create(
        cls,
        name: str,
        owner_user_id: str,
        dna: CharacterDNA,
        description: str = "",
        now: Optional[datetime] = None,
    ) -> "Character":
        name = _validate_name(name)
        if not (owner_user_id or "").strip():
            raise DomainValidationError("Owner user id is required", field="owner_user_id")
        now = resolve_now(now)
        character = cls(
            name=name,
            description=(description or "").strip(),
            owner_user_id=owner_user_id,
            dna=dna,
            traits={
                trait_type: CharacterTrait.create(trait_type, value)
                for trait_type, value in dna.base_traits.items()
            },
            created_at=now,
            updated_at=now,
        )
        character._record(
            CharacterCreated(
                aggregate_id=character.id, occurred_at=now,
                name=name, owner_user_id=owner_user_id, archetype=dna.archetype,
            ),
            now=now,
        )
        return character

    # ==================== Derived ====================

    @property
    def stories_experienced(self) -> int:
        return len(self.story_ids)

    @property
    def can_share_publicly(self) -> bool:
        return self.stories_experienced >= COMMUNITY_MIN_STORIES and self.level >= COMMUNITY_MIN_LEVEL

    @property
    def can_adopt_new_characters(self) -> bool:
        return self.stories_experienced >= ADOPTION_MIN_STORIES and self.level >= ADOPTION_MIN_LEVEL

    def get_trait(self, trait_type: CharacterTraitType) -> CharacterTrait:
        trait = self.traits.get(trait_type)
        if trait is None:
            raise DomainValidationError(f"Character has no trait {trait_type.value}", field="trait_type")
        return trait

    def trait_value(self, trait_type: CharacterTraitType) -> int:
        return self.get_trait(trait_type).current_value

    def recent_memories(self, limit: int = 5) -> List[CharacterMemory]:
        return sorted(self.memories, key=lambda m: m.occurred_at, reverse=True)[:limit]

    def important_memories(self, min_importance: int = 7) -> List[CharacterMemory]:
        return [m for m in self.memories if m.importance >= min_importance]

    def personality_description(self) -> str:
        """Up to three strongest traits (value 7+), e.g. "Mira is very brave and quite kind." """
        strong = sorted(
            (t for t in self.traits.values() if t.current_value >= 7),
            key=lambda t: t.current_value,
            reverse=True,
        )[:3]
        if not strong:
            return f"{self.name} has a balanced personality."
        parts = [f"{_intensity(t.current_value)} {TRAIT_ADJECTIVES[t.trait_type]}" for t in strong]
        if len(parts) == 1:
            described = parts[0]
        else:
            described = ", ".join(parts[:-1]) + " and " + parts[-1]
        return f"{self.name} is {described}."

    def create_snapshot(self, now: Optional[datetime] = None) -> CharacterSnapshot:
        return CharacterSnapshot(
            character_id=self.id,
            name=self.name,
            level=self.level,
            experience_points=self.experience_points,
            stories_experienced=self.stories_experienced,
            trait_values={t: trait.current_value for t, trait in self.traits.items()},
            memory_count=len(self.memories),
            sharing_status=self.sharing_status,
            taken_at=resolve_now(now),
        )

    # ==================== Profile ====================

    def _require_active(self):
        if not self.is_active:
            raise InvalidStateTransition("Character is deactivated", current_state="inactive")

    def update_basic_info(self, name: str, description: str = "", now: Optional[datetime] = None) -> List[DomainEvent]:
        self._require_active()
        name = _validate_name(name)
        description = (description or "").strip()
        changed = []
        if name != self.name:
            changed.append("name")
        if description != self.description:
            changed.append("description")
        if not changed:
            return []
        now = resolve_now(now)
        self.name = name
        self.description = description
        return self._record(CharacterUpdated(aggregate_id=self.id, occurred_at=now, changed_fields=changed), now=now)

    def update_avatar(self, avatar_url: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        avatar_url = (avatar_url or "").strip() or None
        if avatar_url == self.avatar_url:
            return []
        now = resolve_now(now)
        self.avatar_url = avatar_url
        return self._record(
            CharacterUpdated(aggregate_id=self.id, occurred_at=now, changed_fields=["avatar_url"]), now=now
        )

    def add_tag(self, tag: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        tag = (tag or "").strip().lower()
        if not tag or tag in self.tags or len(self.tags) >= MAX_CHARACTER_TAGS:
            return []
        self.tags.append(tag)
        self._touch(now)
        return []

    def remove_tag(self, tag: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        tag = (tag or "").strip().lower()
        if tag in self.tags:
            self.tags.remove(tag)
            self._touch(now)
        return []

    # ==================== Sharing ====================

    def update_sharing_status(self, status: SharingStatus, now: Optional[datetime] = None) -> List[DomainEvent]:
        self._require_active()
        if status == self.sharing_status:
            return []
        if status == SharingStatus.COMMUNITY and not self.can_share_publicly:
            raise BusinessRuleViolation(
                f"Community sharing needs {COMMUNITY_MIN_STORIES} stories and level {COMMUNITY_MIN_LEVEL}"
            )
        now = resolve_now(now)
        old = self.sharing_status
        self.sharing_status = status
        return self._record(
            CharacterSharingChanged(aggregate_id=self.id, occurred_at=now, old_status=old, new_status=status),
            now=now,
        )

    def mark_as_shared(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        self._require_active()
        if self.sharing_status == SharingStatus.PRIVATE:
            raise BusinessRuleViolation("Private characters cannot be shared")
        now = resolve_now(now)
        self.times_shared += 1
        return self._record(
            CharacterShared(aggregate_id=self.id, occurred_at=now, times_shared=self.times_shared), now=now
        )

    def create_adoption_copy(self, new_owner_user_id: str, now: Optional[datetime] = None) -> "Character":
        """
        Copy for another user: same DNA and base traits, up to three important
        memories at reduced importance, experience reset.
        """
        self._require_active()
        if self.sharing_status != SharingStatus.COMMUNITY:
            raise BusinessRuleViolation("Only community characters can be adopted")
        if new_owner_user_id == self.owner_user_id:
            raise BusinessRuleViolation("Owners cannot adopt their own character")
        now = resolve_now(now)

        adopted = Character.create(self.name, new_owner_user_id, self.dna.create_copy(), self.description, now=now)
        adopted.original_character_id = self.id
        important = sorted(
            (m for m in self.memories if m.importance >= 4),
            key=lambda m: m.importance,
            reverse=True,
        )[:ADOPTION_MAX_MEMORIES]
        adopted.memories = [memory.create_base_copy(now) for memory in important]
        adopted._record(
            CharacterAdopted(
                aggregate_id=adopted.id, occurred_at=now,
                original_character_id=self.id, new_owner_user_id=new_owner_user_id,
            ),
            now=now,
        )

        self.times_adopted += 1
        self._touch(now)
        return adopted

    def deactivate(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if not self.is_active:
            return []
        now = resolve_now(now)
        self.is_active = False
        return self._record(CharacterDeactivated(aggregate_id=self.id, occurred_at=now), now=now)

    def reactivate(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.is_active:
            return []
        now = resolve_now(now)
        self.is_active = True
        return self._record(CharacterReactivated(aggregate_id=self.id, occurred_at=now), now=now)

    # ==================== Growth ====================

    def add_experience_from_story(
        self,
        story_id: str,
        points: int,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        self._require_active()
        if not (story_id or "").strip():
            raise DomainValidationError("Story id is required", field="story_id")
        if points <= 0:
            raise DomainValidationError("Experience points must be positive", field="points")
        now = resolve_now(now)

        old_level = self.level
        self.experience_points += points
        self.level = level_for_experience(self.experience_points)
        if story_id not in self.story_ids:
            self.story_ids.append(story_id)
        self.last_story_at = now

        events = [CharacterExperienceGained(
            aggregate_id=self.id, occurred_at=now, story_id=story_id,
            points=points, total_experience=self.experience_points,
        )]
        if self.level > old_level:
            events.append(CharacterLeveledUp(
                aggregate_id=self.id, occurred_at=now, old_level=old_level, new_level=self.level,
            ))
        return self._record(*events, now=now)

    def add_memory(self, memory: CharacterMemory, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Keep at most 100 memories, forgetting the oldest unimportant one first"""
        self._require_active()
        if any(existing.id == memory.id for existing in self.memories):
            return []
        if len(self.memories) >= MAX_MEMORIES_PER_CHARACTER:
            self._forget_one_memory()
        now = resolve_now(now)
        self.memories.append(memory)
        return self._record(
            CharacterMemoryAdded(
                aggregate_id=self.id, occurred_at=now,
                memory_id=memory.id, title=memory.title, importance=memory.importance,
            ),
            now=now,
        )

    def _forget_one_memory(self):
        trivial = [m for m in self.memories if m.importance <= 2]
        if trivial:
            forgotten = min(trivial, key=lambda m: m.occurred_at)
        else:
            forgotten = min(self.memories, key=lambda m: (m.importance, m.occurred_at))
        self.memories.remove(forgotten)

    def _trait_events(self, result: TraitChangeResult, reason: str, now: datetime) -> List[DomainEvent]:
        if not result.changed:
            self._touch(now)
            return []
        return self._record(
            CharacterTraitChanged(
                aggregate_id=self.id, occurred_at=now, trait_type=result.trait_type,
                old_value=result.old_value, new_value=result.new_value, reason=reason,
            ),
            now=now,
        )

    def update_trait(
        self,
        trait_type: CharacterTraitType,
        delta: int,
        reason: str = "",
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        self._require_active()
        trait = self.get_trait(trait_type)
        now = resolve_now(now)
        return self._trait_events(trait.adjust_value(delta, reason, now=now), reason, now)

    def develop_trait(
        self,
        trait_type: CharacterTraitType,
        points: float,
        description: str = "",
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        self._require_active()
        trait = self.get_trait(trait_type)
        now = resolve_now(now)
        return self._trait_events(trait.add_experience(points, description, now=now), description, now)

    def reinforce_trait(
        self,
        trait_type: CharacterTraitType,
        multiplier: float = 1.0,
        reason: str = "positive reinforcement",
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        self._require_active()
        trait = self.get_trait(trait_type)
        now = resolve_now(now)
        return self._trait_events(trait.reinforce_positively(multiplier, reason, now=now), reason, now)

    def challenge_trait(
        self,
        trait_type: CharacterTraitType,
        intensity: float,
        reason: str = "challenge",
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        self._require_active()
        trait = self.get_trait(trait_type)
        now = resolve_now(now)
        return self._trait_events(trait.challenge(intensity, reason, now=now), reason, now)
