"""
Enumerations shared by the Avatales aggregates.

String enums serialize to their value, so they round-trip through the
domain events and the YAML lookup tables without extra mapping.
"""

from enum import Enum


class UserRole(str, Enum):
    USER = "user"
    PREMIUM_USER = "premium_user"
    CHILD = "child"
    MODERATOR = "moderator"
    ADMIN = "admin"


class SubscriptionType(str, Enum):
    FREE = "free"
    STARTER = "starter"
    FAMILY = "family"
    PREMIUM = "premium"
    PREMIUM_ADULT = "premium_adult"


class GenerationStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ModerationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    AUTO_APPROVED = "auto_approved"
    REQUIRES_REVIEW = "requires_review"
    FLAGGED = "flagged"
    REJECTED = "rejected"

    @property
    def is_approved(self) -> bool:
        return self in (ModerationStatus.APPROVED, ModerationStatus.AUTO_APPROVED)


class StoryGenre(str, Enum):
    ADVENTURE = "adventure"
    FANTASY = "fantasy"
    MYSTERY = "mystery"
    EDUCATIONAL = "educational"
    FRIENDSHIP = "friendship"
    FAMILY = "family"
    NATURE = "nature"
    SCIENCE = "science"
    SPACE = "space"
    HISTORICAL = "historical"
    FAIRY_TALE = "fairy_tale"
    COMEDY = "comedy"


class ReadingDifficulty(str, Enum):
    """Story-level difficulty bucket derived from word count."""
    VERY_EASY = "very_easy"
    EASY = "easy"
    MEDIUM = "medium"
    ADVANCED = "advanced"
    DIFFICULT = "difficult"


class LearningDifficulty(str, Enum):
    """Ordered difficulty of scenes and learning goals."""
    BEGINNER = "beginner"
    ELEMENTARY = "elementary"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"

    @property
    def rank(self) -> int:
        return list(LearningDifficulty).index(self) + 1


class LearningCategory(str, Enum):
    VOCABULARY = "vocabulary"
    READING_COMPREHENSION = "reading_comprehension"
    SOCIAL_SKILLS = "social_skills"
    PROBLEM_SOLVING = "problem_solving"
    CREATIVITY = "creativity"
    EMOTIONAL_INTELLIGENCE = "emotional_intelligence"
    SCIENCE = "science"
    MATHEMATICS = "mathematics"
    HISTORY = "history"
    NATURE = "nature"


class LearningGoalStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    MASTERED = "mastered"
    COMPLETED = "completed"
    NEEDS_REVIEW = "needs_review"


class SceneEmotion(str, Enum):
    JOY = "joy"
    EXCITEMENT = "excitement"
    CURIOSITY = "curiosity"
    WONDER = "wonder"
    CALM = "calm"
    SURPRISE = "surprise"
    SADNESS = "sadness"
    FEAR = "fear"
    ANGER = "anger"
    PRIDE = "pride"
    LOVE = "love"
    COURAGE = "courage"


class CharacterTraitType(str, Enum):
    COURAGE = "courage"
    KINDNESS = "kindness"
    CURIOSITY = "curiosity"
    CREATIVITY = "creativity"
    INTELLIGENCE = "intelligence"
    HUMOR = "humor"
    EMPATHY = "empathy"
    DETERMINATION = "determination"
    WISDOM = "wisdom"
    OPTIMISM = "optimism"
    HONESTY = "honesty"
    PATIENCE = "patience"


class CharacterArchetype(str, Enum):
    EXPLORER = "explorer"
    HELPER = "helper"
    CREATOR = "creator"
    SCHOLAR = "scholar"
    HERO = "hero"
    JESTER = "jester"


class LearningStyle(str, Enum):
    VISUAL = "visual"
    AUDITORY = "auditory"
    KINESTHETIC = "kinesthetic"
    READING = "reading"


class SharingStatus(str, Enum):
    PRIVATE = "private"
    FAMILY = "family"
    COMMUNITY = "community"


class MemoryType(str, Enum):
    EXPERIENCE = "experience"
    RELATIONSHIP = "relationship"
    ACHIEVEMENT = "achievement"
    LEARNING = "learning"
    EMOTIONAL = "emotional"
    MILESTONE = "milestone"
