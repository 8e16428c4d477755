"""
Story scenes and the choices offered inside them.
"""

from pydantic import BaseModel, Field
from typing import List, Dict, Optional, Iterable
import math
import uuid

from src.config.limits import TITLE_MAX_LENGTH, MAX_SCENE_CHOICES, SCENE_KEY_WORDS
from src.models.enums import SceneEmotion, LearningDifficulty, CharacterTraitType
from src.models.errors import DomainValidationError
from src.models.tables import get_domain_tables
from src.utils.text_processing import (
    count_words,
    is_child_friendly,
    extract_key_words,
    contains_action,
    truncate,
)


def _require_friendly_text(value: Optional[str], field: str) -> str:
    value = (value or "").strip()
    if not value:
        raise DomainValidationError(f"Scene {field} is required", field=field)
    if not is_child_friendly(value):
        raise DomainValidationError(f"Scene {field} is not child-friendly", field=field)
    return value


class SceneChoice(BaseModel):
    """A decision offered to the reader"""
    id: str = Field(default_factory=lambda: f"choice_{uuid.uuid4().hex[:12]}")
    text: str
    description: str = ""
    is_optimal: bool = False
    trait_influences: Dict[CharacterTraitType, float] = Field(default_factory=dict)
    next_scene_id: Optional[str] = None

    @classmethod
    def create(
        cls,
        text: str,
        description: str = "",
        is_optimal: bool = False,
        trait_influences: Optional[Dict[CharacterTraitType, float]] = None,
        next_scene_id: Optional[str] = None,
    ) -> "SceneChoice":
        text = (text or "").strip()
        if not text:
            raise DomainValidationError("Choice text is required", field="text")
        if not is_child_friendly(text):
            raise DomainValidationError("Choice text is not child-friendly", field="text")
        # influences are clamped, not rejected
        influences = {
            trait: max(0.0, min(1.0, float(weight)))
            for trait, weight in (trait_influences or {}).items()
        }
        return cls(
            text=text,
            description=(description or "").strip(),
            is_optimal=is_optimal,
            trait_influences=influences,
            next_scene_id=next_scene_id,
        )


class StoryScene(BaseModel):
    id: str = Field(default_factory=lambda: f"scene_{uuid.uuid4().hex[:12]}")
    scene_number: int = Field(..., gt=0)
    title: str
    content: str
    summary: str = ""

    word_count: int = 0
    reading_time_seconds: int = 0
    primary_emotion: SceneEmotion = SceneEmotion.JOY
    difficulty: LearningDifficulty = LearningDifficulty.BEGINNER
    key_words: List[str] = Field(default_factory=list)
    learning_moments: List[str] = Field(default_factory=list)

    choices: List[SceneChoice] = Field(default_factory=list)
    interactive_elements: List[str] = Field(default_factory=list)
    trait_influences: Dict[CharacterTraitType, float] = Field(default_factory=dict)
    character_actions: List[str] = Field(default_factory=list)

    image_url: Optional[str] = None
    image_description: Optional[str] = None
    is_climax: bool = False
    requires_parental_guidance: bool = False

    @classmethod
    def create(
        cls,
        scene_number: int,
        title: str,
        content: str,
        primary_emotion: SceneEmotion = SceneEmotion.JOY,
        difficulty: LearningDifficulty = LearningDifficulty.BEGINNER,
        summary: str = "",
    ) -> "StoryScene":
        if scene_number <= 0:
            raise DomainValidationError("Scene number must be positive", field="scene_number")
        title = _require_friendly_text(title, "title")
        if len(title) > TITLE_MAX_LENGTH:
            raise DomainValidationError(f"Scene title must be at most {TITLE_MAX_LENGTH} characters", field="title")
        content = _require_friendly_text(content, "content")

        word_count = count_words(content)
        words_per_minute = get_domain_tables().words_per_minute(difficulty)
        return cls(
            scene_number=scene_number,
            title=title,
            content=content,
            summary=(summary or "").strip(),
            word_count=word_count,
            reading_time_seconds=math.ceil(word_count / words_per_minute * 60),
            primary_emotion=primary_emotion,
            difficulty=difficulty,
            key_words=extract_key_words(content, SCENE_KEY_WORDS),
        )

    # ===== Derived =====

    @property
    def emotional_tone(self) -> str:
        return get_domain_tables().emotion_tone(self.primary_emotion)

    @property
    def has_interactive_elements(self) -> bool:
        return bool(self.choices or self.interactive_elements)

    @property
    def has_action(self) -> bool:
        return bool(self.character_actions) or contains_action(self.content)

    def is_suitable_for_age(self, age: int) -> bool:
        if self.requires_parental_guidance:
            return False
        return age >= get_domain_tables().minimum_age(self.difficulty)

    def child_friendly_summary(self, max_length: int = 100) -> str:
        return truncate(self.summary or self.content, max_length)

    # ===== Mutators =====

    def add_choices(self, choices: Iterable[SceneChoice]):
        """Append choices; anything past the first four is dropped"""
        combined = self.choices + list(choices)
        self.choices = combined[:MAX_SCENE_CHOICES]

    def add_interactive_element(self, element: str):
        element = (element or "").strip()
        if not element:
            raise DomainValidationError("Interactive element cannot be empty", field="element")
        if element not in self.interactive_elements:
            self.interactive_elements.append(element)

    def add_learning_moment(self, moment: str):
        moment = (moment or "").strip()
        if moment and moment not in self.learning_moments:
            self.learning_moments.append(moment)

    def add_character_action(self, action: str):
        action = (action or "").strip()
        if action:
            self.character_actions.append(action)

    def add_trait_influence(self, trait: CharacterTraitType, weight: float):
        if not 0.0 <= weight <= 1.0:
            raise DomainValidationError("Trait influence must be between 0 and 1", field="weight")
        self.trait_influences[trait] = float(weight)

    def set_image(self, image_url: str, description: Optional[str] = None):
        image_url = (image_url or "").strip()
        if not image_url:
            raise DomainValidationError("Image url is required", field="image_url")
        self.image_url = image_url
        self.image_description = (description or "").strip() or None

    def mark_as_climax(self):
        self.is_climax = True

    def set_parental_guidance(self, required: bool):
        self.requires_parental_guidance = required
