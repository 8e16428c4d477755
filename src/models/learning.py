"""
Learning goals attached to stories.

A goal tracks a child's progress toward one learning outcome. Progress is
a percentage; the status follows from it (Completed at 100, Mastered from
80) and ``completed_at`` is stamped the first time 100 is reached.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Iterable
from datetime import datetime
import uuid

from src.config.limits import (
    TITLE_MAX_LENGTH,
    LEARNING_TARGET_AGE_MIN,
    LEARNING_TARGET_AGE_MAX,
    LEARNING_PRIORITY_MIN,
    LEARNING_PRIORITY_MAX,
    SUITABILITY_MAX,
)
from src.models.enums import (
    LearningCategory,
    LearningDifficulty,
    LearningGoalStatus,
    CharacterTraitType,
)
from src.models.errors import DomainValidationError
from src.models.tables import get_domain_tables
from src.utils.text_processing import truncate
from src.utils.time import utcnow, resolve_now


class LearningGoal(BaseModel):
    id: str = Field(default_factory=lambda: f"goal_{uuid.uuid4().hex[:12]}")
    title: str
    description: str
    category: LearningCategory
    difficulty: LearningDifficulty = LearningDifficulty.BEGINNER
    target_age: int = Field(default=6, ge=LEARNING_TARGET_AGE_MIN, le=LEARNING_TARGET_AGE_MAX)
    priority: int = Field(default=3, ge=LEARNING_PRIORITY_MIN, le=LEARNING_PRIORITY_MAX)

    status: LearningGoalStatus = LearningGoalStatus.NOT_STARTED
    progress_percentage: float = 0.0
    attempts_count: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    success_criteria: List[str] = Field(default_factory=list)
    evidence: List[str] = Field(default_factory=list)
    related_traits: List[CharacterTraitType] = Field(default_factory=list)
    key_concepts: List[str] = Field(default_factory=list)
    vocabulary_words: List[str] = Field(default_factory=list)
    requires_reflection: bool = False
    requires_discussion: bool = False

    @classmethod
    def create(
        cls,
        title: str,
        description: str,
        category: LearningCategory,
        difficulty: LearningDifficulty = LearningDifficulty.BEGINNER,
        target_age: int = 6,
        priority: int = 3,
        now: Optional[datetime] = None,
    ) -> "LearningGoal":
        """Validate and build a goal with its category's default criteria and traits"""
        title = (title or "").strip()
        description = (description or "").strip()
        if not title:
            raise DomainValidationError("Learning goal title is required", field="title")
        if len(title) > TITLE_MAX_LENGTH:
            raise DomainValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters", field="title")
        if not description:
            raise DomainValidationError("Learning goal description is required", field="description")
        if not LEARNING_TARGET_AGE_MIN <= target_age <= LEARNING_TARGET_AGE_MAX:
            raise DomainValidationError(
                f"Target age must be between {LEARNING_TARGET_AGE_MIN} and {LEARNING_TARGET_AGE_MAX}",
                field="target_age",
            )
        if not LEARNING_PRIORITY_MIN <= priority <= LEARNING_PRIORITY_MAX:
            raise DomainValidationError(
                f"Priority must be between {LEARNING_PRIORITY_MIN} and {LEARNING_PRIORITY_MAX}",
                field="priority",
            )

        goal = cls(
            title=title,
            description=description,
            category=category,
            difficulty=difficulty,
            target_age=target_age,
            priority=priority,
            created_at=resolve_now(now),
        )
        defaults = get_domain_tables().category_defaults(category)
        if defaults:
            goal.success_criteria = list(defaults.success_criteria)
            goal.related_traits = list(defaults.related_traits)
            goal.requires_reflection = defaults.requires_reflection
            goal.requires_discussion = defaults.requires_discussion
        return goal

    @property
    def is_completed(self) -> bool:
        return self.status == LearningGoalStatus.COMPLETED

    # ===== Progress =====

    def start_progress(self, now: Optional[datetime] = None) -> bool:
        """NotStarted -> InProgress; returns False when already started"""
        if self.status != LearningGoalStatus.NOT_STARTED:
            return False
        self.status = LearningGoalStatus.IN_PROGRESS
        self.started_at = resolve_now(now)
        self.attempts_count += 1
        return True

    def update_progress(
        self,
        percentage: float,
        evidence: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Set progress and derive the status.

        Returns:
            True if this update completed the goal for the first time
        """
        if not 0 <= percentage <= 100:
            raise DomainValidationError("Progress must be between 0 and 100", field="percentage")
        now = resolve_now(now)

        self.progress_percentage = float(percentage)
        if percentage >= 100:
            self.status = LearningGoalStatus.COMPLETED
        elif percentage >= 80:
            self.status = LearningGoalStatus.MASTERED
        elif percentage > 0:
            self.status = LearningGoalStatus.IN_PROGRESS

        if self.started_at is None and percentage > 0:
            self.started_at = now
        if evidence and evidence.strip():
            self.evidence.append(f"{now.date().isoformat()}: {evidence.strip()}")

        newly_completed = self.status == LearningGoalStatus.COMPLETED and self.completed_at is None
        if newly_completed:
            self.completed_at = now
        return newly_completed

    def mark_for_review(self, reason: str, now: Optional[datetime] = None):
        now = resolve_now(now)
        self.status = LearningGoalStatus.NEEDS_REVIEW
        self.evidence.append(f"{now.date().isoformat()}: Review needed - {(reason or '').strip()}")

    # ===== Content =====

    def add_success_criteria(self, criterion: str):
        criterion = (criterion or "").strip()
        if not criterion:
            raise DomainValidationError("Success criterion cannot be empty", field="criterion")
        if criterion not in self.success_criteria:
            self.success_criteria.append(criterion)

    def add_related_trait(self, trait: CharacterTraitType):
        if trait not in self.related_traits:
            self.related_traits.append(trait)

    def add_key_concept(self, concept: str):
        concept = (concept or "").strip()
        if concept and concept not in self.key_concepts:
            self.key_concepts.append(concept)

    def add_vocabulary_word(self, word: str):
        word = (word or "").strip().lower()
        if word and word not in self.vocabulary_words:
            self.vocabulary_words.append(word)

    # ===== Matching =====

    def calculate_suitability_for_child(
        self,
        child_age: int,
        child_traits: Iterable[CharacterTraitType] = (),
    ) -> float:
        """
        Score in [0, 2.0] for how well this goal fits a child.

        Age distance lowers the score (never below 0.3x), shared traits raise it
        (up to 2x), and the difficulty expected for the age adds 1.2x when equal
        or 0.7x when more than one level apart.
        """
        score = 1.0
        score *= max(0.3, 1.0 - 0.1 * abs(child_age - self.target_age))

        matches = sum(1 for trait in set(child_traits) if trait in self.related_traits)
        if matches:
            score *= min(2.0, 1.0 + 0.2 * matches)

        expected = get_domain_tables().expected_difficulty(child_age)
        gap = abs(expected.rank - self.difficulty.rank)
        if gap == 0:
            score *= 1.2
        elif gap > 1:
            score *= 0.7

        return max(0.0, min(SUITABILITY_MAX, score))

    def age_appropriate_description(self, child_age: int) -> str:
        if child_age <= 6:
            return truncate(self.description, 50)
        if child_age <= 10:
            return self.description
        if not self.success_criteria:
            return self.description
        return f"{self.description} Goals: {'; '.join(self.success_criteria)}"
