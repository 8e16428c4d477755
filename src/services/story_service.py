"""
Story application service: quota-checked creation, generation results,
moderation, publication and engagement.
"""

import logging
from datetime import datetime
from typing import List, Optional, Iterable

from src.models.commands import StoryCreate, StoryCompletion, SceneInput, LearningGoalCreate
from src.models.enums import ModerationStatus
from src.models.errors import BusinessRuleViolation, InvalidStateTransition
from src.models.learning import LearningGoal
from src.models.scene import StoryScene, SceneChoice
from src.models.story import Story
from src.services.application import ApplicationService
from src.services.repositories import StoryRepository, UserRepository, CharacterRepository

logger = logging.getLogger(__name__)


def build_scene(scene_input: SceneInput) -> StoryScene:
    """Turn generator output into a validated scene"""
    scene = StoryScene.create(
        scene_number=scene_input.scene_number,
        title=scene_input.title,
        content=scene_input.content,
        primary_emotion=scene_input.primary_emotion,
        difficulty=scene_input.difficulty,
        summary=scene_input.summary,
    )
    scene.add_choices(
        SceneChoice.create(
            text=choice.text,
            description=choice.description,
            is_optimal=choice.is_optimal,
            trait_influences=choice.trait_influences,
            next_scene_id=choice.next_scene_id,
        )
        for choice in scene_input.choices
    )
    for trait, weight in scene_input.trait_influences.items():
        scene.add_trait_influence(trait, weight)
    if scene_input.is_climax:
        scene.mark_as_climax()
    return scene


class StoryService(ApplicationService):

    def __init__(self, stories: StoryRepository, users: UserRepository,
                 characters: CharacterRepository, **kwargs):
        super().__init__(**kwargs)
        self.stories = stories
        self.users = users
        self.characters = characters

    def _apply(self, name: str, story: Story) -> Story:
        self._publish(name, story.id, self._save(self.stories, story))
        return story

    # ===== Creation & generation =====

    def create_story(self, author_user_id: str, request: StoryCreate,
                     now: Optional[datetime] = None) -> Story:
        """Create a story and count it against the author's monthly quota"""
        with self._command("create_story", author_user_id):
            author = self.users.require(author_user_id)
            if not author.is_active:
                raise InvalidStateTransition("Account is deactivated", current_state="inactive")
            if not author.can_generate_more_stories(now):
                raise BusinessRuleViolation(
                    f"Monthly story limit of {author.current_limits.monthly_stories} reached"
                )
            character = self.characters.require(request.main_character_id)
            if character.owner_user_id not in (author.id, author.parent_user_id):
                raise BusinessRuleViolation("Stories can only feature your own characters")
            if not character.is_active:
                raise InvalidStateTransition("Character is deactivated", current_state="inactive")

            story = Story.create(
                title=request.title,
                user_prompt=request.user_prompt,
                main_character_id=character.id,
                author_user_id=author.id,
                genre=request.genre,
                summary=request.summary,
                now=now,
            )
            author.record_story_generated(now=now, settings=self.settings)
            events = self._save(self.stories, story) + self._save(self.users, author)
            self._publish("create_story", story.id, events)
            return story

    def start_generation(self, story_id: str, ai_model: Optional[str] = None,
                         now: Optional[datetime] = None) -> Story:
        with self._command("start_generation", story_id):
            story = self.stories.require(story_id)
            story.start_generation(ai_model or self.settings.default_ai_model, now=now)
            return self._apply("start_generation", story)

    def complete_generation(self, story_id: str, completion: StoryCompletion,
                            now: Optional[datetime] = None) -> Story:
        with self._command("complete_generation", story_id):
            story = self.stories.require(story_id)
            scenes = [build_scene(scene_input) for scene_input in completion.scenes]
            story.complete_generation(
                content=completion.content,
                summary=completion.summary,
                scenes=scenes,
                generation_cost=completion.generation_cost,
                tokens_used=completion.tokens_used,
                generation_time_seconds=completion.generation_time_seconds,
                now=now,
            )
            return self._apply("complete_generation", story)

    def fail_generation(self, story_id: str, reason: str, now: Optional[datetime] = None) -> Story:
        with self._command("fail_generation", story_id):
            story = self.stories.require(story_id)
            story.fail_generation(reason, now=now)
            return self._apply("fail_generation", story)

    # ===== Moderation & publication =====

    def moderate(self, story_id: str, status: ModerationStatus, reason: Optional[str] = None,
                 now: Optional[datetime] = None) -> Story:
        with self._command("moderate", story_id):
            story = self.stories.require(story_id)
            story.set_moderation_status(status, reason, now=now)
            return self._apply("moderate", story)

    def publish(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("publish", story_id):
            story = self.stories.require(story_id)
            story.publish(now=now)
            return self._apply("publish", story)

    def unpublish(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("unpublish", story_id):
            story = self.stories.require(story_id)
            story.unpublish(now=now)
            return self._apply("unpublish", story)

    # ===== Engagement =====

    def record_view(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("record_view", story_id):
            story = self.stories.require(story_id)
            story.record_view(now=now)
            return self._apply("record_view", story)

    def like(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("like", story_id):
            story = self.stories.require(story_id)
            story.add_like(now=now)
            return self._apply("like", story)

    def unlike(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("unlike", story_id):
            story = self.stories.require(story_id)
            story.remove_like(now=now)
            return self._apply("unlike", story)

    def share(self, story_id: str, now: Optional[datetime] = None) -> Story:
        with self._command("share", story_id):
            story = self.stories.require(story_id)
            if not story.can_be_shared:
                raise BusinessRuleViolation("Only public, approved stories can be shared")
            story.record_share(now=now)
            return self._apply("share", story)

    def rate(self, story_id: str, rating: float, now: Optional[datetime] = None) -> Story:
        with self._command("rate", story_id):
            story = self.stories.require(story_id)
            story.add_rating(rating, now=now)
            return self._apply("rate", story)

    # ===== Learning & tags =====

    def add_learning_goal(self, story_id: str, request: LearningGoalCreate,
                          now: Optional[datetime] = None) -> LearningGoal:
        with self._command("add_learning_goal", story_id):
            story = self.stories.require(story_id)
            goal = LearningGoal.create(
                title=request.title,
                description=request.description,
                category=request.category,
                difficulty=request.difficulty,
                target_age=request.target_age,
                priority=request.priority,
                now=now,
            )
            story.add_learning_goal(goal, now=now)
            self._apply("add_learning_goal", story)
            return goal

    def update_learning_goal_progress(self, story_id: str, goal_id: str, percentage: float,
                                      evidence: Optional[str] = None,
                                      now: Optional[datetime] = None) -> Story:
        with self._command("update_learning_goal_progress", story_id):
            story = self.stories.require(story_id)
            story.update_learning_goal_progress(goal_id, percentage, evidence, now=now)
            return self._apply("update_learning_goal_progress", story)

    def add_tags(self, story_id: str, tags: Iterable[str], now: Optional[datetime] = None) -> Story:
        with self._command("add_tags", story_id):
            story = self.stories.require(story_id)
            story.add_tags(tags, now=now)
            return self._apply("add_tags", story)

    # ===== Queries =====

    def get_story(self, story_id: str) -> Story:
        return self.stories.require(story_id)

    def list_public_stories(self) -> List[Story]:
        return sorted(self.stories.list_public(), key=lambda s: s.published_at, reverse=True)

    def list_trending(self, now: Optional[datetime] = None) -> List[Story]:
        trending = [s for s in self.stories.list_public() if s.is_trending(now)]
        return sorted(trending, key=lambda s: s.view_count, reverse=True)
