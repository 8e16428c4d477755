"""
Story aggregate: generation -> moderation -> publication lifecycle.

State is the triple (generation_status, moderation_status, is_public):

    Pending --start--> InProgress --complete--> Completed
                                  \\--fail----> Failed

A story is public only while generation is Completed and moderation is
Approved/AutoApproved. Approving a completed story publishes it; moving a
public story to any other moderation status unpublishes it.

Engagement counters only emit events at milestones (every 100 views,
10 likes, 5 shares); explicit ratings always emit.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Iterable
from datetime import datetime, timedelta
import uuid

from src.config.settings import get_settings
from src.config.limits import (
    TITLE_MAX_LENGTH,
    MAX_TAGS_PER_STORY,
    MAX_IMAGE_URLS,
    MAX_LEARNING_GOALS,
    READING_WORDS_PER_MINUTE,
    VIEW_MILESTONE_EVERY,
    LIKE_MILESTONE_EVERY,
    SHARE_MILESTONE_EVERY,
    RATING_MIN,
    RATING_MAX,
    TRENDING_WINDOW_DAYS,
    TRENDING_MIN_VIEWS,
    POPULAR_MIN_VIEWS,
    POPULAR_MIN_LIKES,
    POPULAR_MIN_RATING,
)
from src.models.base import AggregateRoot
from src.models.enums import GenerationStatus, ModerationStatus, StoryGenre, ReadingDifficulty
from src.models.errors import (
    DomainValidationError,
    InvalidStateTransition,
    BusinessRuleViolation,
    NotFoundError,
)
from src.models.events import (
    DomainEvent,
    StoryCreated,
    StoryGenerationStarted,
    StoryGenerationCompleted,
    StoryGenerationFailed,
    StoryModerationChanged,
    StoryPublished,
    StoryUnpublished,
    StoryViewMilestone,
    StoryLikeMilestone,
    StoryShareMilestone,
    StoryRated,
    StoryLearningGoalAdded,
    StoryLearningGoalAchieved,
)
from src.models.learning import LearningGoal
from src.models.scene import StoryScene
from src.models.tables import get_domain_tables
from src.utils.text_processing import count_words
from src.utils.time import resolve_now


class StoryAnalytics(BaseModel):
    """Read-only engagement snapshot"""
    story_id: str
    view_count: int
    like_count: int
    share_count: int
    average_rating: float
    rating_count: int
    engagement_rating: float
    word_count: int
    reading_time_minutes: int
    scene_count: int
    learning_goal_count: int
    completed_learning_goals: int
    is_popular: bool
    is_public: bool


class Story(AggregateRoot):
    id: str = Field(default_factory=lambda: f"story_{uuid.uuid4().hex[:12]}")
    title: str
    user_prompt: str = ""
    summary: str = ""
    content: str = ""
    genre: StoryGenre = StoryGenre.ADVENTURE
    main_character_id: str
    author_user_id: str

    # Generation
    generation_status: GenerationStatus = GenerationStatus.PENDING
    ai_model: Optional[str] = None
    generation_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    generation_cost: float = 0.0
    tokens_used: int = 0
    generation_time_seconds: float = 0.0
    word_count: int = 0
    reading_time_minutes: int = 0

    # Moderation and publication
    moderation_status: ModerationStatus = ModerationStatus.PENDING
    moderation_reason: Optional[str] = None
    moderated_at: Optional[datetime] = None
    is_public: bool = False
    published_at: Optional[datetime] = None

    # Content collections
    scenes: List[StoryScene] = Field(default_factory=list)
    learning_goals: List[LearningGoal] = Field(default_factory=list)
    has_learning_mode: bool = False
    tags: List[str] = Field(default_factory=list)
    image_urls: List[str] = Field(default_factory=list)
    has_images: bool = False

    # Engagement
    view_count: int = 0
    like_count: int = 0
    share_count: int = 0
    engagement_rating: float = 0.0  # likes per view heuristic
    average_rating: float = 0.0  # mean of explicit ratings
    rating_count: int = 0

    @classmethod
    def create(
        cls,
        title: str,
        user_prompt: Optional[str],
        main_character_id: str,
        author_user_id: str,
        genre: StoryGenre = StoryGenre.ADVENTURE,
        summary: str = "",
        now: Optional[datetime] = None,
    ) -> "Story":
        title = (title or "").strip()
        if not title:
            raise DomainValidationError("Story title is required", field="title")
        if len(title) > TITLE_MAX_LENGTH:
            raise DomainValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters", field="title")
        if not (main_character_id or "").strip():
            raise DomainValidationError("Main character id is required", field="main_character_id")
        if not (author_user_id or "").strip():
            raise DomainValidationError("Author user id is required", field="author_user_id")

        now = resolve_now(now)
        story = cls(
            title=title,
            user_prompt=(user_prompt or "").strip(),
            summary=(summary or "").strip(),
            genre=genre,
            main_character_id=main_character_id,
            author_user_id=author_user_id,
            created_at=now,
            updated_at=now,
        )
        story._record(
            StoryCreated(
                aggregate_id=story.id, occurred_at=now, title=title,
                author_user_id=author_user_id, main_character_id=main_character_id, genre=genre,
            ),
            now=now,
        )
        return story

    # ==================== Generation ====================

    def _require_generation_status(self, expected: GenerationStatus, action: str):
        if self.generation_status != expected:
            raise InvalidStateTransition(
                f"Cannot {action}: generation is {self.generation_status.value}, "
                f"expected {expected.value}",
                current_state=self.generation_status.value,
            )

    def start_generation(self, ai_model: Optional[str] = None, now: Optional[datetime] = None) -> List[DomainEvent]:
        self._require_generation_status(GenerationStatus.PENDING, "start generation")
        now = resolve_now(now)
        self.generation_status = GenerationStatus.IN_PROGRESS
        self.ai_model = (ai_model or "").strip() or get_settings().default_ai_model
        self.generation_started_at = now
        return self._record(
            StoryGenerationStarted(aggregate_id=self.id, occurred_at=now, ai_model=self.ai_model),
            now=now,
        )

    def complete_generation(
        self,
        content: str,
        summary: Optional[str] = None,
        scenes: Optional[Iterable[StoryScene]] = None,
        generation_cost: float = 0.0,
        tokens_used: int = 0,
        generation_time_seconds: float = 0.0,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        """
        Store the generated text.

        Word count is a whitespace split; reading time is words // 200 with a
        one-minute floor.
        """
        self._require_generation_status(GenerationStatus.IN_PROGRESS, "complete generation")
        content = (content or "").strip()
        if not content:
            raise DomainValidationError("Generated content cannot be empty", field="content")
        if generation_cost < 0 or tokens_used < 0 or generation_time_seconds < 0:
            raise DomainValidationError("Generation metrics cannot be negative")
        new_scenes = list(scenes or [])
        self._check_scene_numbers(new_scenes)

        now = resolve_now(now)
        self.content = content
        if summary is not None and summary.strip():
            self.summary = summary.strip()
        self.word_count = count_words(content)
        self.reading_time_minutes = max(1, self.word_count // READING_WORDS_PER_MINUTE)
        self.generation_cost = generation_cost
        self.tokens_used = tokens_used
        self.generation_time_seconds = generation_time_seconds
        self.generation_status = GenerationStatus.COMPLETED
        self.completed_at = now
        self._insert_scenes(new_scenes)

        return self._record(
            StoryGenerationCompleted(
                aggregate_id=self.id, occurred_at=now, word_count=self.word_count,
                reading_time_minutes=self.reading_time_minutes, scene_count=len(self.scenes),
            ),
            now=now,
        )

    def fail_generation(self, reason: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        self._require_generation_status(GenerationStatus.IN_PROGRESS, "fail generation")
        now = resolve_now(now)
        self.generation_status = GenerationStatus.FAILED
        self.failure_reason = (reason or "").strip() or "Unknown error"
        return self._record(
            StoryGenerationFailed(aggregate_id=self.id, occurred_at=now, reason=self.failure_reason),
            now=now,
        )

    # ==================== Scenes ====================

    def _check_scene_numbers(self, scenes: List[StoryScene]):
        seen = {scene.scene_number for scene in self.scenes}
        for scene in scenes:
            if scene.scene_number in seen:
                raise DomainValidationError(
                    f"Duplicate scene number: {scene.scene_number}", field="scene_number"
                )
            seen.add(scene.scene_number)

    def _insert_scenes(self, scenes: List[StoryScene]):
        self.scenes.extend(scenes)
        self.scenes.sort(key=lambda scene: scene.scene_number)

    def add_scene(self, scene: StoryScene, now: Optional[datetime] = None) -> List[DomainEvent]:
        self._check_scene_numbers([scene])
        self._insert_scenes([scene])
        self._touch(now)
        return []

    def get_scene(self, scene_number: int) -> Optional[StoryScene]:
        for scene in self.scenes:
            if scene.scene_number == scene_number:
                return scene
        return None

    # ==================== Moderation & Publication ====================

    def set_moderation_status(
        self,
        status: ModerationStatus,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        """
        Record a moderation outcome.

        Approving a completed private story publishes it; any other outcome
        takes a public story offline.
        """
        if status == self.moderation_status and reason == self.moderation_reason:
            return []
        now = resolve_now(now)
        old = self.moderation_status
        self.moderation_status = status
        self.moderation_reason = reason
        self.moderated_at = now
        events = [StoryModerationChanged(
            aggregate_id=self.id, occurred_at=now, old_status=old, new_status=status, reason=reason,
        )]
        if status.is_approved and not self.is_public and self.generation_status == GenerationStatus.COMPLETED:
            events.append(self._make_public(now))
        elif not status.is_approved and self.is_public:
            events.append(self._make_private(now))
        return self._record(*events, now=now)

    def _make_public(self, now: datetime) -> StoryPublished:
        self.is_public = True
        self.published_at = now
        return StoryPublished(aggregate_id=self.id, occurred_at=now, author_user_id=self.author_user_id)

    def _make_private(self, now: datetime) -> StoryUnpublished:
        self.is_public = False
        self.published_at = None
        return StoryUnpublished(aggregate_id=self.id, occurred_at=now)

    def publish(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.generation_status != GenerationStatus.COMPLETED:
            raise InvalidStateTransition(
                "Only completed stories can be published", current_state=self.generation_status.value
            )
        if not self.moderation_status.is_approved:
            raise BusinessRuleViolation(
                f"Story must be approved before publishing (moderation is {self.moderation_status.value})"
            )
        if self.is_public:
            return []
        now = resolve_now(now)
        return self._record(self._make_public(now), now=now)

    def unpublish(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if not self.is_public:
            return []
        now = resolve_now(now)
        return self._record(self._make_private(now), now=now)

    # ==================== Engagement ====================

    def _update_engagement_rating(self):
        if self.view_count > 0:
            self.engagement_rating = min(5.0, 1.0 + 4.0 * self.like_count / self.view_count)

    def record_view(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        now = resolve_now(now)
        self.view_count += 1
        self._update_engagement_rating()
        if self.view_count % VIEW_MILESTONE_EVERY == 0:
            return self._record(
                StoryViewMilestone(aggregate_id=self.id, occurred_at=now, view_count=self.view_count),
                now=now,
            )
        self._touch(now)
        return []

    def add_like(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        now = resolve_now(now)
        self.like_count += 1
        self._update_engagement_rating()
        if self.like_count % LIKE_MILESTONE_EVERY == 0:
            return self._record(
                StoryLikeMilestone(aggregate_id=self.id, occurred_at=now, like_count=self.like_count),
                now=now,
            )
        self._touch(now)
        return []

    def remove_like(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.like_count == 0:
            return []
        self.like_count -= 1
        self._update_engagement_rating()
        self._touch(now)
        return []

    def record_share(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        now = resolve_now(now)
        self.share_count += 1
        if self.share_count % SHARE_MILESTONE_EVERY == 0:
            return self._record(
                StoryShareMilestone(aggregate_id=self.id, occurred_at=now, share_count=self.share_count),
                now=now,
            )
        self._touch(now)
        return []

    def add_rating(self, rating: float, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Fold an explicit 1-5 rating into the running mean"""
        if not RATING_MIN <= rating <= RATING_MAX:
            raise DomainValidationError(
                f"Rating must be between {RATING_MIN} and {RATING_MAX}", field="rating"
            )
        now = resolve_now(now)
        self.average_rating = (self.average_rating * self.rating_count + rating) / (self.rating_count + 1)
        self.rating_count += 1
        return self._record(
            StoryRated(
                aggregate_id=self.id, occurred_at=now, rating=rating,
                average_rating=self.average_rating, rating_count=self.rating_count,
            ),
            now=now,
        )

    # ==================== Collections ====================

    def add_learning_goal(self, goal: LearningGoal, now: Optional[datetime] = None) -> List[DomainEvent]:
        if any(existing.id == goal.id for existing in self.learning_goals):
            return []
        if len(self.learning_goals) >= MAX_LEARNING_GOALS:
            raise BusinessRuleViolation(f"A story can have at most {MAX_LEARNING_GOALS} learning goals")
        now = resolve_now(now)
        self.learning_goals.append(goal)
        self.has_learning_mode = True
        return self._record(
            StoryLearningGoalAdded(aggregate_id=self.id, occurred_at=now, goal_id=goal.id, title=goal.title),
            now=now,
        )

    def get_learning_goal(self, goal_id: str) -> LearningGoal:
        for goal in self.learning_goals:
            if goal.id == goal_id:
                return goal
        raise NotFoundError("LearningGoal", goal_id)

    def update_learning_goal_progress(
        self,
        goal_id: str,
        percentage: float,
        evidence: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        goal = self.get_learning_goal(goal_id)
        now = resolve_now(now)
        if goal.update_progress(percentage, evidence, now=now):
            return self._record(
                StoryLearningGoalAchieved(aggregate_id=self.id, occurred_at=now, goal_id=goal.id, title=goal.title),
                now=now,
            )
        self._touch(now)
        return []

    def add_tag(self, tag: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Trimmed, lowercased, deduplicated; ignored once the story has 15 tags"""
        tag = (tag or "").strip().lower()
        if not tag or tag in self.tags or len(self.tags) >= MAX_TAGS_PER_STORY:
            return []
        self.tags.append(tag)
        self._touch(now)
        return []

    def add_tags(self, tags: Iterable[str], now: Optional[datetime] = None) -> List[DomainEvent]:
        for tag in tags:
            self.add_tag(tag, now=now)
        return []

    def remove_tag(self, tag: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        tag = (tag or "").strip().lower()
        if tag in self.tags:
            self.tags.remove(tag)
            self._touch(now)
        return []

    def add_image_url(self, url: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Trimmed and deduplicated; ignored once the story has 10 images"""
        url = (url or "").strip()
        if not url or url in self.image_urls or len(self.image_urls) >= MAX_IMAGE_URLS:
            return []
        self.image_urls.append(url)
        self.has_images = True
        self._touch(now)
        return []

    # ==================== Classifiers ====================

    @property
    def is_child_friendly(self) -> bool:
        return self.moderation_status.is_approved

    @property
    def is_popular(self) -> bool:
        return (
            self.view_count >= POPULAR_MIN_VIEWS
            or self.like_count >= POPULAR_MIN_LIKES
            or self.average_rating >= POPULAR_MIN_RATING
        )

    def is_trending(self, now: Optional[datetime] = None) -> bool:
        if not self.is_public or self.published_at is None:
            return False
        if self.view_count < TRENDING_MIN_VIEWS:
            return False
        return resolve_now(now) - self.published_at <= timedelta(days=TRENDING_WINDOW_DAYS)

    @property
    def can_be_shared(self) -> bool:
        return self.is_public and self.is_child_friendly

    @property
    def reading_difficulty(self) -> ReadingDifficulty:
        return get_domain_tables().reading_difficulty(self.word_count)

    @property
    def can_be_used_for_character_development(self) -> bool:
        return self.generation_status == GenerationStatus.COMPLETED and self.is_child_friendly

    def recommended_tags(self) -> List[str]:
        tags = [self.genre.value]
        if self.has_learning_mode:
            tags.append("learning")
        if self.has_images:
            tags.append("illustrated")
        if self.reading_time_minutes <= 5:
            tags.append("short")
        elif self.reading_time_minutes >= 15:
            tags.append("long")
        if self.is_popular:
            tags.append("popular")
        return tags

    def character_development_opportunities(self) -> List[str]:
        """Learning goal titles first, then the genre's traits; no duplicates"""
        opportunities = []
        for name in [goal.title for goal in self.learning_goals] + get_domain_tables().genre_traits(self.genre):
            if name not in opportunities:
                opportunities.append(name)
        return opportunities

    def get_analytics(self) -> StoryAnalytics:
        return StoryAnalytics(
            story_id=self.id,
            view_count=self.view_count,
            like_count=self.like_count,
            share_count=self.share_count,
            average_rating=self.average_rating,
            rating_count=self.rating_count,
            engagement_rating=self.engagement_rating,
            word_count=self.word_count,
            reading_time_minutes=self.reading_time_minutes,
            scene_count=len(self.scenes),
            learning_goal_count=len(self.learning_goals),
            completed_learning_goals=sum(1 for goal in self.learning_goals if goal.is_completed),
            is_popular=self.is_popular,
            is_public=self.is_public,
        )
