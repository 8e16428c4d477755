"""
User preference key/value pairs.

Keys come from a fixed allow-list and some keys carry extra value rules
(choices, integer ranges, booleans, IANA timezones). The rules live in
src/config/domain_tables.yaml under ``preferences``.
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from src.config.limits import PREFERENCE_VALUE_MAX_LENGTH
from src.models.errors import DomainValidationError
from src.models.tables import get_domain_tables
from src.utils.time import utcnow

TRUTHY_VALUES = frozenset({"true", "1", "yes", "on"})
FALSY_VALUES = frozenset({"false", "0", "no", "off"})


def _is_valid_timezone(value: str) -> bool:
    try:
        ZoneInfo(value)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def normalize_preference_key(key: str) -> str:
    return (key or "").strip().lower()


def validate_preference(key: str, value: str) -> str:
    """
    Check a key/value pair against the preference rules.

    Returns:
        The trimmed value

    Raises:
        DomainValidationError: unknown key or a value breaking the key's rule
    """
    tables = get_domain_tables()
    key = normalize_preference_key(key)
    if not key:
        raise DomainValidationError("Preference key is required", field="key")
    if key not in tables.allowed_preference_keys:
        raise DomainValidationError(f"Unknown preference key: {key}", field="key")

    if value is None:
        raise DomainValidationError("Preference value is required", field=key)
    value = str(value).strip()
    if len(value) > PREFERENCE_VALUE_MAX_LENGTH:
        raise DomainValidationError(
            f"Preference value exceeds {PREFERENCE_VALUE_MAX_LENGTH} characters", field=key
        )

    if key in tables.preference_choices:
        allowed = tables.preference_choices[key]
        if value not in allowed:
            raise DomainValidationError(
                f"Invalid {key} '{value}'. Allowed: {', '.join(allowed)}", field=key
            )
    elif key in tables.preference_ranges:
        low, high = tables.preference_ranges[key]
        try:
            number = int(value)
        except ValueError:
            raise DomainValidationError(f"{key} must be a whole number", field=key)
        if not low <= number <= high:
            raise DomainValidationError(f"{key} must be between {low} and {high}", field=key)
    elif key in tables.boolean_preference_keys:
        if value.lower() not in TRUTHY_VALUES | FALSY_VALUES:
            raise DomainValidationError(f"{key} must be a boolean", field=key)
    elif key == "timezone":
        if not _is_valid_timezone(value):
            raise DomainValidationError(f"Unknown timezone: {value}", field=key)

    return value


class UserPreference(BaseModel):
    """A single validated preference"""
    key: str
    value: str
    updated_at: datetime = Field(default_factory=utcnow)

    @classmethod
    def create(cls, key: str, value: str, now: Optional[datetime] = None) -> "UserPreference":
        value = validate_preference(key, value)
        return cls(key=normalize_preference_key(key), value=value, updated_at=now or utcnow())

    @classmethod
    def language(cls, code: str) -> "UserPreference":
        return cls.create("language", code)

    @classmethod
    def theme(cls, theme: str) -> "UserPreference":
        return cls.create("theme", theme)

    @classmethod
    def screen_time_limit(cls, minutes: int) -> "UserPreference":
        return cls.create("screen_time_limit", str(minutes))

    @classmethod
    def content_filter_level(cls, level: int) -> "UserPreference":
        return cls.create("content_filter_level", str(level))

    def is_setting_enabled(self) -> bool:
        return self.value.lower() in TRUTHY_VALUES

    def get_bool_value(self) -> bool:
        return self.is_setting_enabled()

    def get_int_value(self, default: int = 0) -> int:
        try:
            return int(self.value)
        except ValueError:
            return default
