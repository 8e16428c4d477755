"""
Character Service for creation, story-driven growth and adoption

This module provides character management functionality:
- Creation within the owner's subscription limit
- Applying a finished story to its main character (experience, traits, memory)
- Community sharing and adoption

Architecture:
- Pure functions for the growth rules (story -> experience, trait points)
- CharacterService class for operations requiring repositories and events
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from src.models.character import Character, CharacterSnapshot
from src.models.commands import CharacterCreate
from src.models.enums import CharacterTraitType, SharingStatus
from src.models.errors import BusinessRuleViolation
from src.models.memory import CharacterMemory
from src.models.story import Story
from src.models.traits import CharacterDNA
from src.services.application import ApplicationService
from src.services.repositories import CharacterRepository, UserRepository, StoryRepository
from src.utils.text_processing import truncate

logger = logging.getLogger(__name__)

STORY_BASE_EXPERIENCE = 50
EXPERIENCE_PER_SCENE = 10
EXPERIENCE_PER_COMPLETED_GOAL = 20
GENRE_TRAIT_POINTS = 10.0
SCENE_INFLUENCE_POINTS = 20.0


# =========================================================================
# PURE GROWTH FUNCTIONS
# =========================================================================

def story_experience(story: Story) -> int:
    """Experience a character earns from one completed story"""
    completed_goals = sum(1 for goal in story.learning_goals if goal.is_completed)
    return (
        STORY_BASE_EXPERIENCE
        + EXPERIENCE_PER_SCENE * len(story.scenes)
        + EXPERIENCE_PER_COMPLETED_GOAL * completed_goals
    )


def story_trait_points(story: Story) -> Dict[CharacterTraitType, float]:
    """
    Trait experience a story grants.

    Development opportunities that name a trait (genre traits, goal titles)
    give a flat amount; scene influences add points scaled by their weight.
    """
    points: Dict[CharacterTraitType, float] = {}
    known = {trait.value: trait for trait in CharacterTraitType}
    for opportunity in story.character_development_opportunities():
        trait = known.get(opportunity.strip().lower())
        if trait is not None:
            points[trait] = points.get(trait, 0.0) + GENRE_TRAIT_POINTS

    for scene in story.scenes:
        for trait, weight in scene.trait_influences.items():
            if weight > 0:
                points[trait] = points.get(trait, 0.0) + weight * SCENE_INFLUENCE_POINTS
    return points


def story_memory(story: Story, now: Optional[datetime] = None) -> CharacterMemory:
    """What the character remembers of a story; climaxes make it stick"""
    importance = 7 if any(scene.is_climax for scene in story.scenes) else 5
    summary = story.summary or truncate(story.content, 200)
    return CharacterMemory.from_story_experience(story.id, story.title, summary, importance, now=now)


class CharacterService(ApplicationService):

    def __init__(self, characters: CharacterRepository, users: UserRepository,
                 stories: StoryRepository, **kwargs):
        super().__init__(**kwargs)
        self.characters = characters
        self.users = users
        self.stories = stories

    def _apply(self, name: str, character: Character) -> Character:
        self._publish(name, character.id, self._save(self.characters, character))
        return character

    def create_character(self, owner_user_id: str, request: CharacterCreate,
                         now: Optional[datetime] = None) -> Character:
        with self._command("create_character", owner_user_id):
            owner = self.users.require(owner_user_id)
            if not owner.can_create_more_characters():
                raise BusinessRuleViolation(
                    f"Character limit of {owner.current_limits.max_characters} reached for "
                    f"{owner.subscription_type.value} subscription"
                )
            dna = CharacterDNA.from_archetype(
                request.archetype,
                emphasized_traits=request.emphasized_traits,
                child_age=request.child_age,
                keywords=request.personality_keywords,
                motivation=request.motivation,
            )
            character = Character.create(request.name, owner.id, dna, request.description, now=now)
            owner.record_character_created(now=now)
            events = self._save(self.characters, character) + self._save(self.users, owner)
            self._publish("create_character", character.id, events)
            return character

    def apply_story_experience(self, character_id: str, story_id: str,
                               now: Optional[datetime] = None) -> Character:
        """
        Grow a character from a completed, approved story it starred in.

        Applying the same story twice is a no-op.
        """
        with self._command("apply_story_experience", character_id):
            character = self.characters.require(character_id)
            story = self.stories.require(story_id)
            if story.main_character_id != character.id:
                raise BusinessRuleViolation("Character is not the main character of this story")
            if not story.can_be_used_for_character_development:
                raise BusinessRuleViolation("Story must be completed and approved first")
            if story.id in character.story_ids:
                return character

            character.add_experience_from_story(story.id, story_experience(story), now=now)
            for trait, points in story_trait_points(story).items():
                character.develop_trait(trait, points, f"{story.title}", now=now)
            character.add_memory(story_memory(story, now), now=now)
            return self._apply("apply_story_experience", character)

    def add_memory(self, character_id: str, memory: CharacterMemory,
                   now: Optional[datetime] = None) -> Character:
        with self._command("add_memory", character_id):
            character = self.characters.require(character_id)
            character.add_memory(memory, now=now)
            return self._apply("add_memory", character)

    def update_trait(self, character_id: str, trait_type: CharacterTraitType, delta: int,
                     reason: str = "", now: Optional[datetime] = None) -> Character:
        with self._command("update_trait", character_id):
            character = self.characters.require(character_id)
            character.update_trait(trait_type, delta, reason, now=now)
            return self._apply("update_trait", character)

    def reinforce_trait(self, character_id: str, trait_type: CharacterTraitType,
                        multiplier: float = 1.0, now: Optional[datetime] = None) -> Character:
        with self._command("reinforce_trait", character_id):
            character = self.characters.require(character_id)
            character.reinforce_trait(trait_type, multiplier, now=now)
            return self._apply("reinforce_trait", character)

    def challenge_trait(self, character_id: str, trait_type: CharacterTraitType,
                        intensity: float, now: Optional[datetime] = None) -> Character:
        with self._command("challenge_trait", character_id):
            character = self.characters.require(character_id)
            character.challenge_trait(trait_type, intensity, now=now)
            return self._apply("challenge_trait", character)

    # ===== Sharing & adoption =====

    def update_sharing_status(self, character_id: str, status: SharingStatus,
                              now: Optional[datetime] = None) -> Character:
        with self._command("update_sharing_status", character_id):
            character = self.characters.require(character_id)
            character.update_sharing_status(status, now=now)
            return self._apply("update_sharing_status", character)

    def share_character(self, character_id: str, now: Optional[datetime] = None) -> Character:
        with self._command("share_character", character_id):
            character = self.characters.require(character_id)
            character.mark_as_shared(now=now)
            return self._apply("share_character", character)

    def adopt_character(self, character_id: str, new_owner_user_id: str,
                        now: Optional[datetime] = None) -> Character:
        """Copy a community character to a new owner (counts toward their limit)"""
        with self._command("adopt_character", character_id):
            original = self.characters.require(character_id)
            new_owner = self.users.require(new_owner_user_id)
            if new_owner.parental_controls is not None and not new_owner.parental_controls.can_adopt_characters:
                raise BusinessRuleViolation("Parental controls do not allow adopting characters")
            if not new_owner.can_create_more_characters():
                raise BusinessRuleViolation(
                    f"Character limit of {new_owner.current_limits.max_characters} reached"
                )
            adopted = original.create_adoption_copy(new_owner.id, now=now)
            new_owner.record_character_created(now=now)
            events = (
                self._save(self.characters, adopted)
                + self._save(self.characters, original)
                + self._save(self.users, new_owner)
            )
            self._publish("adopt_character", adopted.id, events)
            return adopted

    def deactivate(self, character_id: str, now: Optional[datetime] = None) -> Character:
        with self._command("deactivate_character", character_id):
            character = self.characters.require(character_id)
            character.deactivate(now=now)
            return self._apply("deactivate_character", character)

    def reactivate(self, character_id: str, now: Optional[datetime] = None) -> Character:
        with self._command("reactivate_character", character_id):
            character = self.characters.require(character_id)
            character.reactivate(now=now)
            return self._apply("reactivate_character", character)

    # ===== Queries =====

    def get_character(self, character_id: str) -> Character:
        return self.characters.require(character_id)

    def list_characters(self, owner_user_id: str) -> List[Character]:
        return self.characters.list_by_owner(owner_user_id)

    def snapshot(self, character_id: str, now: Optional[datetime] = None) -> CharacterSnapshot:
        return self.characters.require(character_id).create_snapshot(now)
