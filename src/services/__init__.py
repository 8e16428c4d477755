"""Services package for Avatales"""

from .events import DomainEventDispatcher, domain_events
from .logger import PlatformLogger, get_logger, init_logger, reset_logger
from .repositories import (
    InMemoryRepository,
    UserRepository,
    StoryRepository,
    CharacterRepository,
)
from .application import ApplicationService
from .user_service import UserService
from .story_service import StoryService, build_scene
from .character_service import (
    CharacterService,
    story_experience,
    story_trait_points,
    story_memory,
)
