"""
Centralized Domain Limits

All collection caps and field lengths in one place for consistency.
Import these in both the aggregates and the request models.
"""

# =============================================================================
# USER LIMITS
# =============================================================================

NAME_MAX_LENGTH = 100

# Children older than this are not child accounts
CHILD_MAX_AGE = 17

# Placeholder hash stored on child accounts (children never log in with a password)
CHILD_PASSWORD_PLACEHOLDER = "CHILD_ACCOUNT"

# =============================================================================
# STORY LIMITS
# =============================================================================

TITLE_MAX_LENGTH = 200
MAX_TAGS_PER_STORY = 15
MAX_IMAGE_URLS = 10
MAX_LEARNING_GOALS = 5

# Words read per minute for the story-level reading time estimate
READING_WORDS_PER_MINUTE = 200

# Engagement milestones fire on every multiple of these
VIEW_MILESTONE_EVERY = 100
LIKE_MILESTONE_EVERY = 10
SHARE_MILESTONE_EVERY = 5

RATING_MIN = 1.0
RATING_MAX = 5.0

# Trending window after publication
TRENDING_WINDOW_DAYS = 7
TRENDING_MIN_VIEWS = 50

# Popularity thresholds
POPULAR_MIN_VIEWS = 100
POPULAR_MIN_LIKES = 20
POPULAR_MIN_RATING = 4.5

# =============================================================================
# SCENE LIMITS
# =============================================================================

MAX_SCENE_CHOICES = 4
SCENE_KEY_WORDS = 5

# =============================================================================
# LEARNING GOAL LIMITS
# =============================================================================

LEARNING_TARGET_AGE_MIN = 3
LEARNING_TARGET_AGE_MAX = 18
LEARNING_PRIORITY_MIN = 1
LEARNING_PRIORITY_MAX = 5
SUITABILITY_MAX = 2.0

# =============================================================================
# CHARACTER LIMITS
# =============================================================================

CHARACTER_NAME_MAX_LENGTH = 50
CHARACTER_MAX_LEVEL = 50
MAX_MEMORIES_PER_CHARACTER = 100
MAX_CHARACTER_TAGS = 10
MAX_PERSONALITY_KEYWORDS = 5

# Community sharing and adoption thresholds
COMMUNITY_MIN_STORIES = 3
COMMUNITY_MIN_LEVEL = 2
ADOPTION_MIN_STORIES = 5
ADOPTION_MIN_LEVEL = 3
ADOPTION_MAX_MEMORIES = 3

# =============================================================================
# TRAIT LIMITS
# =============================================================================

TRAIT_MIN_VALUE = 1
TRAIT_MAX_VALUE = 10
TRAIT_STABILITY_MIN = 0.5
TRAIT_STABILITY_MAX = 2.0
TRAIT_HISTORY_SIZE = 50
TRAIT_RECENT_EXPERIENCES = 10

# =============================================================================
# MEMORY LIMITS
# =============================================================================

MEMORY_TITLE_MAX_LENGTH = 200
MAX_MEMORY_TAGS = 10
MAX_EMOTIONAL_CONTEXT = 5
MAX_LINKED_MEMORIES = 20

# =============================================================================
# PREFERENCE LIMITS
# =============================================================================

PREFERENCE_VALUE_MAX_LENGTH = 1000
