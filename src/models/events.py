"""
Domain events for Avatales aggregates.

Events are a tagged union: each class pins a literal ``event_type`` and the
TypeAdapter below rebuilds the right class from a plain dict, so the event
log can be stored as JSON and replayed.

Event types follow ``<aggregate>.<what_happened>``.
"""

from pydantic import BaseModel, Field, TypeAdapter
from typing import List, Optional, Dict, Any, Literal, Union, Annotated
from datetime import datetime
import uuid

from src.models.enums import (
    SubscriptionType,
    ModerationStatus,
    SharingStatus,
    CharacterTraitType,
    StoryGenre,
    CharacterArchetype,
)
from src.utils.time import utcnow


class DomainEvent(BaseModel):
    """Fields every event carries"""
    event_id: str = Field(default_factory=lambda: f"evt_{uuid.uuid4().hex[:12]}")
    aggregate_id: str
    occurred_at: datetime = Field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


# ============================================================================
# User Events
# ============================================================================

class UserRegistered(DomainEvent):
    event_type: Literal["user.registered"] = "user.registered"
    email: str
    display_name: str
    is_child: bool = False


class ChildAccountCreated(DomainEvent):
    event_type: Literal["user.child_created"] = "user.child_created"
    parent_user_id: str
    age: int
    daily_usage_limit_minutes: int


class EmailVerified(DomainEvent):
    event_type: Literal["user.email_verified"] = "user.email_verified"


class ProfileUpdated(DomainEvent):
    event_type: Literal["user.profile_updated"] = "user.profile_updated"
    changed_fields: List[str]


class PasswordChanged(DomainEvent):
    event_type: Literal["user.password_changed"] = "user.password_changed"


class SubscriptionChanged(DomainEvent):
    event_type: Literal["user.subscription_changed"] = "user.subscription_changed"
    old_subscription: SubscriptionType
    new_subscription: SubscriptionType
    expires_at: Optional[datetime] = None


class ChildAdded(DomainEvent):
    event_type: Literal["user.child_added"] = "user.child_added"
    child_user_id: str


class ChildRemoved(DomainEvent):
    event_type: Literal["user.child_removed"] = "user.child_removed"
    child_user_id: str


class UserLoggedIn(DomainEvent):
    event_type: Literal["user.logged_in"] = "user.logged_in"
    ip_address: Optional[str] = None


class LoginFailed(DomainEvent):
    event_type: Literal["user.login_failed"] = "user.login_failed"
    failed_attempts: int


class AccountLocked(DomainEvent):
    event_type: Literal["user.account_locked"] = "user.account_locked"
    locked_until: datetime


class AccountUnlocked(DomainEvent):
    event_type: Literal["user.account_unlocked"] = "user.account_unlocked"


class UserActivated(DomainEvent):
    event_type: Literal["user.activated"] = "user.activated"


class UserDeactivated(DomainEvent):
    event_type: Literal["user.deactivated"] = "user.deactivated"
    reason: str = ""


class DailyLimitReached(DomainEvent):
    event_type: Literal["user.daily_limit_reached"] = "user.daily_limit_reached"
    minutes_used: int
    daily_limit_minutes: int


class MonthlyLimitsReset(DomainEvent):
    event_type: Literal["user.monthly_limits_reset"] = "user.monthly_limits_reset"
    next_reset_at: datetime


class MonthlyStoryLimitReached(DomainEvent):
    event_type: Literal["user.monthly_story_limit_reached"] = "user.monthly_story_limit_reached"
    stories_this_month: int
    monthly_limit: int


class UserPreferenceChanged(DomainEvent):
    event_type: Literal["user.preference_changed"] = "user.preference_changed"
    key: str
    old_value: Optional[str] = None
    new_value: str


# ============================================================================
# Story Events
# ============================================================================

class StoryCreated(DomainEvent):
    event_type: Literal["story.created"] = "story.created"
    title: str
    author_user_id: str
    main_character_id: str
    genre: StoryGenre


class StoryGenerationStarted(DomainEvent):
    event_type: Literal["story.generation_started"] = "story.generation_started"
    ai_model: str


class StoryGenerationCompleted(DomainEvent):
    event_type: Literal["story.generation_completed"] = "story.generation_completed"
    word_count: int
    reading_time_minutes: int
    scene_count: int


class StoryGenerationFailed(DomainEvent):
    event_type: Literal["story.generation_failed"] = "story.generation_failed"
    reason: str


class StoryModerationChanged(DomainEvent):
    event_type: Literal["story.moderation_changed"] = "story.moderation_changed"
    old_status: ModerationStatus
    new_status: ModerationStatus
    reason: Optional[str] = None


class StoryPublished(DomainEvent):
    event_type: Literal["story.published"] = "story.published"
    author_user_id: str


class StoryUnpublished(DomainEvent):
    event_type: Literal["story.unpublished"] = "story.unpublished"


class StoryViewMilestone(DomainEvent):
    event_type: Literal["story.view_milestone"] = "story.view_milestone"
    view_count: int


class StoryLikeMilestone(DomainEvent):
    event_type: Literal["story.like_milestone"] = "story.like_milestone"
    like_count: int


class StoryShareMilestone(DomainEvent):
    event_type: Literal["story.share_milestone"] = "story.share_milestone"
    share_count: int


class StoryRated(DomainEvent):
    event_type: Literal["story.rated"] = "story.rated"
    rating: float
    average_rating: float
    rating_count: int


class StoryLearningGoalAdded(DomainEvent):
    event_type: Literal["story.learning_goal_added"] = "story.learning_goal_added"
    goal_id: str
    title: str


class StoryLearningGoalAchieved(DomainEvent):
    event_type: Literal["story.learning_goal_achieved"] = "story.learning_goal_achieved"
    goal_id: str
    title: str


# ============================================================================
# Character Events
# ============================================================================

class CharacterCreated(DomainEvent):
    event_type: Literal["character.created"] = "character.created"
    name: str
    owner_user_id: str
    archetype: CharacterArchetype


class CharacterUpdated(DomainEvent):
    event_type: Literal["character.updated"] = "character.updated"
    changed_fields: List[str]


class CharacterSharingChanged(DomainEvent):
    event_type: Literal["character.sharing_changed"] = "character.sharing_changed"
    old_status: SharingStatus
    new_status: SharingStatus


class CharacterExperienceGained(DomainEvent):
    event_type: Literal["character.experience_gained"] = "character.experience_gained"
    story_id: str
    points: int
    total_experience: int


class CharacterLeveledUp(DomainEvent):
    event_type: Literal["character.leveled_up"] = "character.leveled_up"
    old_level: int
    new_level: int


class CharacterMemoryAdded(DomainEvent):
    event_type: Literal["character.memory_added"] = "character.memory_added"
    memory_id: str
    title: str
    importance: int


class CharacterTraitChanged(DomainEvent):
    event_type: Literal["character.trait_changed"] = "character.trait_changed"
    trait_type: CharacterTraitType
    old_value: int
    new_value: int
    reason: str = ""


class CharacterAdopted(DomainEvent):
    event_type: Literal["character.adopted"] = "character.adopted"
    original_character_id: str
    new_owner_user_id: str


class CharacterShared(DomainEvent):
    event_type: Literal["character.shared"] = "character.shared"
    times_shared: int


class CharacterDeactivated(DomainEvent):
    event_type: Literal["character.deactivated"] = "character.deactivated"


class CharacterReactivated(DomainEvent):
    event_type: Literal["character.reactivated"] = "character.reactivated"


AnyDomainEvent = Annotated[
    Union[
        UserRegistered, ChildAccountCreated, EmailVerified, ProfileUpdated,
        PasswordChanged, SubscriptionChanged, ChildAdded, ChildRemoved,
        UserLoggedIn, LoginFailed, AccountLocked, AccountUnlocked,
        UserActivated, UserDeactivated, DailyLimitReached, MonthlyLimitsReset,
        MonthlyStoryLimitReached, UserPreferenceChanged,
        StoryCreated, StoryGenerationStarted, StoryGenerationCompleted,
        StoryGenerationFailed, StoryModerationChanged, StoryPublished,
        StoryUnpublished, StoryViewMilestone, StoryLikeMilestone,
        StoryShareMilestone, StoryRated, StoryLearningGoalAdded,
        StoryLearningGoalAchieved,
        CharacterCreated, CharacterUpdated, CharacterSharingChanged,
        CharacterExperienceGained, CharacterLeveledUp, CharacterMemoryAdded,
        CharacterTraitChanged, CharacterAdopted, CharacterShared,
        CharacterDeactivated, CharacterReactivated,
    ],
    Field(discriminator="event_type"),
]

_event_adapter = TypeAdapter(AnyDomainEvent)


def parse_event(data: Dict[str, Any]) -> DomainEvent:
    """Rebuild a typed event from its ``to_dict()`` form"""
    return _event_adapter.validate_python(data)
