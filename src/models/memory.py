"""
Character memories.

A memory records something a character lived through in a story. Memories
get more important the more often they are recalled and fade with age
unless consolidated.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, timedelta
import uuid

from src.config.limits import (
    MEMORY_TITLE_MAX_LENGTH,
    MAX_MEMORY_TAGS,
    MAX_EMOTIONAL_CONTEXT,
    MAX_LINKED_MEMORIES,
)
from src.models.enums import MemoryType
from src.models.errors import DomainValidationError
from src.utils.time import utcnow, resolve_now


class CharacterMemory(BaseModel):
    id: str = Field(default_factory=lambda: f"mem_{uuid.uuid4().hex[:12]}")
    title: str
    summary: str
    full_content: str = ""
    memory_type: MemoryType = MemoryType.EXPERIENCE
    importance: int = Field(default=5, ge=1, le=10)
    story_id: Optional[str] = None

    occurred_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)
    last_accessed_at: Optional[datetime] = None
    access_count: int = 0

    tags: List[str] = Field(default_factory=list)
    associated_character_ids: List[str] = Field(default_factory=list)
    emotional_context: List[str] = Field(default_factory=list)
    linked_memory_ids: List[str] = Field(default_factory=list)
    is_consolidated: bool = False

    @classmethod
    def create(
        cls,
        title: str,
        summary: str,
        memory_type: MemoryType = MemoryType.EXPERIENCE,
        importance: int = 5,
        story_id: Optional[str] = None,
        full_content: str = "",
        now: Optional[datetime] = None,
    ) -> "CharacterMemory":
        title = (title or "").strip()
        summary = (summary or "").strip()
        if not title:
            raise DomainValidationError("Memory title is required", field="title")
        if len(title) > MEMORY_TITLE_MAX_LENGTH:
            raise DomainValidationError(
                f"Memory title must be at most {MEMORY_TITLE_MAX_LENGTH} characters", field="title"
            )
        if not summary:
            raise DomainValidationError("Memory summary is required", field="summary")
        if not 1 <= importance <= 10:
            raise DomainValidationError("Importance must be between 1 and 10", field="importance")
        now = resolve_now(now)
        return cls(
            title=title,
            summary=summary,
            full_content=(full_content or "").strip(),
            memory_type=memory_type,
            importance=importance,
            story_id=story_id,
            occurred_at=now,
            created_at=now,
        )

    # ===== Factories =====

    @classmethod
    def from_story_experience(cls, story_id: str, title: str, summary: str,
                              importance: int = 5, now: Optional[datetime] = None) -> "CharacterMemory":
        return cls.create(title, summary, MemoryType.EXPERIENCE, importance, story_id=story_id, now=now)

    @classmethod
    def achievement(cls, title: str, summary: str, story_id: Optional[str] = None,
                    now: Optional[datetime] = None) -> "CharacterMemory":
        memory = cls.create(title, summary, MemoryType.ACHIEVEMENT, 8, story_id=story_id, now=now)
        memory.add_emotional_context("pride")
        return memory

    @classmethod
    def relationship(cls, title: str, summary: str, other_character_id: str,
                     importance: int = 6, now: Optional[datetime] = None) -> "CharacterMemory":
        memory = cls.create(title, summary, MemoryType.RELATIONSHIP, importance, now=now)
        memory.add_associated_character(other_character_id)
        return memory

    @classmethod
    def learning(cls, title: str, summary: str, concept: str, story_id: Optional[str] = None,
                 now: Optional[datetime] = None) -> "CharacterMemory":
        memory = cls.create(title, summary, MemoryType.LEARNING, 6, story_id=story_id, now=now)
        memory.add_tag(concept)
        return memory

    # ===== Derived =====

    @property
    def importance_level(self) -> str:
        if self.importance >= 9:
            return "critical"
        if self.importance >= 7:
            return "high"
        if self.importance >= 5:
            return "medium"
        if self.importance >= 3:
            return "low"
        return "trivial"

    @property
    def decay_resistance(self) -> int:
        if self.importance >= 8:
            return 5
        if self.importance >= 6:
            return 3
        if self.importance >= 4:
            return 2
        return 1

    def is_recent(self, now: Optional[datetime] = None, days: int = 7) -> bool:
        return resolve_now(now) - self.occurred_at <= timedelta(days=days)

    def memory_strength(self, now: Optional[datetime] = None) -> float:
        """Recall strength in [0.1, 1.0]: importance plus recall bonus minus age decay"""
        strength = self.importance / 10.0
        strength += min(0.3, 0.05 * self.access_count)
        if self.is_consolidated:
            strength += 0.2
        age = resolve_now(now) - self.occurred_at
        if age > timedelta(hours=24):
            strength -= min(0.5, 0.01 * age.days)
        return max(0.1, min(1.0, strength))

    def should_be_preserved(self) -> bool:
        return self.importance >= 7 or self.is_consolidated or self.access_count >= 10

    # ===== Mutators =====

    def access(self, now: Optional[datetime] = None):
        """Recall the memory; every fifth recall makes it more important"""
        self.access_count += 1
        self.last_accessed_at = resolve_now(now)
        if self.access_count % 5 == 0 and self.importance < 10:
            self.importance += 1

    def add_tag(self, tag: str):
        tag = (tag or "").strip().lower()
        if tag and tag not in self.tags and len(self.tags) < MAX_MEMORY_TAGS:
            self.tags.append(tag)

    def add_emotional_context(self, emotion: str):
        emotion = (emotion or "").strip().lower()
        if emotion and emotion not in self.emotional_context and len(self.emotional_context) < MAX_EMOTIONAL_CONTEXT:
            self.emotional_context.append(emotion)

    def add_associated_character(self, character_id: str):
        if character_id and character_id not in self.associated_character_ids:
            self.associated_character_ids.append(character_id)

    def link_memory(self, memory_id: str):
        if not memory_id or memory_id == self.id:
            return
        if memory_id not in self.linked_memory_ids and len(self.linked_memory_ids) < MAX_LINKED_MEMORIES:
            self.linked_memory_ids.append(memory_id)

    def mark_as_consolidated(self):
        self.is_consolidated = True

    def create_base_copy(self, now: Optional[datetime] = None) -> "CharacterMemory":
        """Fresh, weaker copy for an adopted character"""
        now = resolve_now(now)
        return CharacterMemory(
            title=self.title,
            summary=self.summary,
            full_content=self.full_content,
            memory_type=self.memory_type,
            importance=max(1, self.importance - 2),
            occurred_at=now,
            created_at=now,
            tags=list(self.tags),
            emotional_context=list(self.emotional_context),
        )
