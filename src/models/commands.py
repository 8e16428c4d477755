"""
Request and response models for the application services.

Requests do shape validation only (types, lengths); business rules stay in
the aggregates. Responses are flat read models built from an aggregate.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import List, Dict, Optional
from datetime import date, datetime

from src.config.limits import NAME_MAX_LENGTH, TITLE_MAX_LENGTH, CHARACTER_NAME_MAX_LENGTH
from src.models.enums import (
    SubscriptionType,
    UserRole,
    StoryGenre,
    GenerationStatus,
    ModerationStatus,
    SceneEmotion,
    LearningDifficulty,
    LearningCategory,
    CharacterArchetype,
    CharacterTraitType,
    SharingStatus,
)


# ============================================================================
# Users
# ============================================================================

class UserRegistration(BaseModel):
    """Request model for registering an adult account"""
    email: EmailStr
    password_hash: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    date_of_birth: Optional[date] = None


class ChildAccountCreate(BaseModel):
    """Request model for a parent creating a child account"""
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    date_of_birth: date


class UserProfileUpdate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    last_name: str = Field(..., min_length=1, max_length=NAME_MAX_LENGTH)
    date_of_birth: Optional[date] = None
    avatar_url: Optional[str] = None


class UserResponse(BaseModel):
    """Read model for a user"""
    id: str
    email: Optional[str]
    display_name: str
    role: UserRole
    is_child: bool
    is_active: bool
    is_email_verified: bool
    subscription_type: SubscriptionType
    parent_user_id: Optional[str] = None
    child_user_ids: List[str] = Field(default_factory=list)
    monthly_story_count: int
    characters_created: int
    daily_usage_limit_minutes: Optional[int] = None
    preferences: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            display_name=user.display_name,
            role=user.role,
            is_child=user.is_child,
            is_active=user.is_active,
            is_email_verified=user.is_email_verified,
            subscription_type=user.subscription_type,
            parent_user_id=user.parent_user_id,
            child_user_ids=list(user.child_user_ids),
            monthly_story_count=user.monthly_story_count,
            characters_created=user.characters_created,
            daily_usage_limit_minutes=user.daily_usage_limit_minutes,
            preferences={key: pref.value for key, pref in user.preferences.items()},
        )


# ============================================================================
# Stories
# ============================================================================

class StoryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    user_prompt: str = ""
    main_character_id: str = Field(..., min_length=1)
    genre: StoryGenre = StoryGenre.ADVENTURE
    summary: str = ""


class SceneChoiceInput(BaseModel):
    text: str = Field(..., min_length=1)
    description: str = ""
    is_optimal: bool = False
    trait_influences: Dict[CharacterTraitType, float] = Field(default_factory=dict)
    next_scene_id: Optional[str] = None


class SceneInput(BaseModel):
    """A scene as delivered by the story generator"""
    scene_number: int = Field(..., gt=0)
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    content: str = Field(..., min_length=1)
    summary: str = ""
    primary_emotion: SceneEmotion = SceneEmotion.JOY
    difficulty: LearningDifficulty = LearningDifficulty.BEGINNER
    choices: List[SceneChoiceInput] = Field(default_factory=list)
    trait_influences: Dict[CharacterTraitType, float] = Field(default_factory=dict)
    is_climax: bool = False


class StoryCompletion(BaseModel):
    """Generator output for a story in progress"""
    content: str = Field(..., min_length=1)
    summary: Optional[str] = None
    scenes: List[SceneInput] = Field(default_factory=list)
    generation_cost: float = Field(default=0.0, ge=0)
    tokens_used: int = Field(default=0, ge=0)
    generation_time_seconds: float = Field(default=0.0, ge=0)


class LearningGoalCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str = Field(..., min_length=1)
    category: LearningCategory
    difficulty: LearningDifficulty = LearningDifficulty.BEGINNER
    target_age: int = Field(default=6, ge=3, le=18)
    priority: int = Field(default=3, ge=1, le=5)


class StoryResponse(BaseModel):
    id: str
    title: str
    user_prompt: str
    summary: str
    genre: StoryGenre
    author_user_id: str
    main_character_id: str
    generation_status: GenerationStatus
    moderation_status: ModerationStatus
    is_public: bool
    published_at: Optional[datetime] = None
    word_count: int
    reading_time_minutes: int
    scene_count: int
    tags: List[str] = Field(default_factory=list)
    average_rating: float
    view_count: int
    like_count: int

    @classmethod
    def from_story(cls, story) -> "StoryResponse":
        return cls(
            id=story.id,
            title=story.title,
            user_prompt=story.user_prompt,
            summary=story.summary,
            genre=story.genre,
            author_user_id=story.author_user_id,
            main_character_id=story.main_character_id,
            generation_status=story.generation_status,
            moderation_status=story.moderation_status,
            is_public=story.is_public,
            published_at=story.published_at,
            word_count=story.word_count,
            reading_time_minutes=story.reading_time_minutes,
            scene_count=len(story.scenes),
            tags=list(story.tags),
            average_rating=story.average_rating,
            view_count=story.view_count,
            like_count=story.like_count,
        )


# ============================================================================
# Characters
# ============================================================================

class CharacterCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=CHARACTER_NAME_MAX_LENGTH)
    description: str = ""
    archetype: CharacterArchetype = CharacterArchetype.EXPLORER
    emphasized_traits: List[CharacterTraitType] = Field(default_factory=list)
    personality_keywords: List[str] = Field(default_factory=list)
    motivation: Optional[str] = None
    child_age: Optional[int] = Field(default=None, ge=3, le=17)


class CharacterResponse(BaseModel):
    id: str
    name: str
    description: str
    owner_user_id: str
    original_character_id: Optional[str] = None
    archetype: CharacterArchetype
    level: int
    experience_points: int
    stories_experienced: int
    sharing_status: SharingStatus
    is_active: bool
    trait_values: Dict[CharacterTraitType, int]
    personality: str

    @classmethod
    def from_character(cls, character) -> "CharacterResponse":
        return cls(
            id=character.id,
            name=character.name,
            description=character.description,
            owner_user_id=character.owner_user_id,
            original_character_id=character.original_character_id,
            archetype=character.dna.archetype,
            level=character.level,
            experience_points=character.experience_points,
            stories_experienced=character.stories_experienced,
            sharing_status=character.sharing_status,
            is_active=character.is_active,
            trait_values={t: trait.current_value for t, trait in character.traits.items()},
            personality=character.personality_description(),
        )
