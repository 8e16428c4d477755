"""Configuration package for Avatales"""

from .settings import Settings, get_settings, reset_settings
from .limits import (
    NAME_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    CHARACTER_NAME_MAX_LENGTH,
    MAX_TAGS_PER_STORY,
    MAX_IMAGE_URLS,
    MAX_LEARNING_GOALS,
    MAX_MEMORIES_PER_CHARACTER,
    PREFERENCE_VALUE_MAX_LENGTH,
)

__all__ = [
    "Settings",
    "get_settings",
    "reset_settings",
    "NAME_MAX_LENGTH",
    "TITLE_MAX_LENGTH",
    "CHARACTER_NAME_MAX_LENGTH",
    "MAX_TAGS_PER_STORY",
    "MAX_IMAGE_URLS",
    "MAX_LEARNING_GOALS",
    "MAX_MEMORIES_PER_CHARACTER",
    "PREFERENCE_VALUE_MAX_LENGTH",
]
