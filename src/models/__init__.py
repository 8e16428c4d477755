"""
Models package - domain aggregates and value objects for Avatales

Re-exports the models for cleaner imports:
    from src.models import User, Story, Character
    from src.models import LearningGoal, StoryScene, CharacterMemory
"""

from src.models.enums import *
from src.models.errors import (
    DomainError,
    DomainValidationError,
    InvalidStateTransition,
    BusinessRuleViolation,
    NotFoundError,
)
from src.models.events import DomainEvent, parse_event
from src.models.base import AggregateRoot
from src.models.preferences import UserPreference
from src.models.user import User, ParentalControls, UserStatistics
from src.models.learning import LearningGoal
from src.models.scene import StoryScene, SceneChoice
from src.models.story import Story, StoryAnalytics
from src.models.memory import CharacterMemory
from src.models.traits import CharacterTrait, CharacterDNA, TraitChangeResult
from src.models.character import Character, CharacterSnapshot
from src.models.tables import (
    DomainTables,
    SubscriptionLimits,
    get_domain_tables,
    init_domain_tables,
    reset_domain_tables,
)
