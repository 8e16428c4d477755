"""
User aggregate: account lifecycle, family links, subscription usage.

Adult accounts register with an email and password hash. Child accounts
are created by a parent, carry a placeholder password and get screen-time
and content restrictions from their age band at creation time.

Every mutator validates first, then changes state and returns the domain
events it recorded (also kept on the aggregate until drained).
"""

from pydantic import BaseModel, EmailStr, Field, TypeAdapter, ValidationError
from typing import List, Dict, Optional
from datetime import datetime, date, timedelta
import uuid

from src.config.settings import Settings, get_settings
from src.config.limits import NAME_MAX_LENGTH, CHILD_MAX_AGE, CHILD_PASSWORD_PLACEHOLDER
from src.models.base import AggregateRoot
from src.models.enums import UserRole, SubscriptionType
from src.models.errors import DomainValidationError, BusinessRuleViolation, InvalidStateTransition
from src.models.events import (
    DomainEvent,
    UserRegistered,
    ChildAccountCreated,
    EmailVerified,
    ProfileUpdated,
    PasswordChanged,
    SubscriptionChanged,
    ChildAdded,
    ChildRemoved,
    UserLoggedIn,
    LoginFailed,
    AccountLocked,
    AccountUnlocked,
    UserActivated,
    UserDeactivated,
    DailyLimitReached,
    MonthlyLimitsReset,
    MonthlyStoryLimitReached,
    UserPreferenceChanged,
)
from src.models.preferences import UserPreference, normalize_preference_key
from src.models.tables import SubscriptionLimits, get_domain_tables
from src.utils.text_processing import normalize_email
from src.utils.time import resolve_now, calculate_age


_EMAIL_ADAPTER = TypeAdapter(EmailStr)


def _require_text(value: Optional[str], field: str, max_length: int = NAME_MAX_LENGTH) -> str:
    value = (value or "").strip()
    if not value:
        raise DomainValidationError(f"{field} is required", field=field)
    if len(value) > max_length:
        raise DomainValidationError(f"{field} must be at most {max_length} characters", field=field)
    return value


class ParentalControls(BaseModel):
    """Settings a parent controls for a child account"""
    requires_approval_for_sharing: bool = True
    can_adopt_characters: bool = False
    strict_content_filter: bool = True


class UserStatistics(BaseModel):
    total_logins: int = 0
    total_usage_minutes: int = 0
    stories_read: int = 0


class User(AggregateRoot):
    """
    Account aggregate.

    Time-sensitive operations take an optional ``now`` so callers (and tests)
    control the clock; omitted, the current UTC time is used.
    """
    id: str = Field(default_factory=lambda: f"user_{uuid.uuid4().hex[:12]}")

    # Identity
    email: Optional[str] = None
    password_hash: str
    first_name: str
    last_name: str
    display_name: str
    avatar_url: Optional[str] = None
    date_of_birth: Optional[date] = None

    # Account state
    is_active: bool = True
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None
    is_email_verified: bool = False
    email_verified_at: Optional[datetime] = None
    is_locked: bool = False
    locked_until: Optional[datetime] = None
    failed_login_attempts: int = 0
    last_login_at: Optional[datetime] = None
    last_login_ip: Optional[str] = None

    # Roles and family
    role: UserRole = UserRole.USER
    roles: List[UserRole] = Field(default_factory=lambda: [UserRole.USER])
    parent_user_id: Optional[str] = None
    child_user_ids: List[str] = Field(default_factory=list)

    # Subscription and usage
    subscription_type: SubscriptionType = SubscriptionType.FREE
    subscription_expires_at: Optional[datetime] = None
    characters_created: int = 0
    stories_generated: int = 0
    monthly_story_count: int = 0
    monthly_reset_at: datetime

    # Child restrictions (fixed at creation)
    parental_controls: Optional[ParentalControls] = None
    allowed_content_categories: List[str] = Field(default_factory=list)
    restricted_topics: List[str] = Field(default_factory=list)
    daily_usage_limit_minutes: Optional[int] = None
    usage_today_minutes: int = 0
    usage_tracking_date: Optional[date] = None

    preferences: Dict[str, UserPreference] = Field(default_factory=dict)
    statistics: UserStatistics = Field(default_factory=UserStatistics)

    # ==================== Factories ====================

    @classmethod
    def register(
        cls,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        date_of_birth: Optional[date] = None,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> "User":
        """Register an adult account (email not yet verified)"""
        settings = settings or get_settings()
        now = resolve_now(now)

        email = normalize_email(email)
        if not email:
            raise DomainValidationError("Email is required", field="email")
        try:
            _EMAIL_ADAPTER.validate_python(email)
        except ValidationError:
            raise DomainValidationError(f"Invalid email address: {email}", field="email")
        if not (password_hash or "").strip():
            raise DomainValidationError("Password hash is required", field="password_hash")
        first_name = _require_text(first_name, "first_name")
        last_name = _require_text(last_name, "last_name")
        if date_of_birth is not None and date_of_birth > now.date():
            raise DomainValidationError("Date of birth cannot be in the future", field="date_of_birth")

        user = cls(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            display_name=f"{first_name} {last_name}",
            date_of_birth=date_of_birth,
            monthly_reset_at=now + timedelta(days=settings.monthly_reset_days),
            created_at=now,
            updated_at=now,
        )
        user._seed_default_preferences(now)
        user._record(
            UserRegistered(
                aggregate_id=user.id, occurred_at=now,
                email=email, display_name=user.display_name,
            ),
            now=now,
        )
        return user

    @classmethod
    def create_child(
        cls,
        parent_user_id: str,
        first_name: str,
        last_name: str,
        date_of_birth: date,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> "User":
        """Create a child account with age-band restrictions"""
        settings = settings or get_settings()
        now = resolve_now(now)

        if not (parent_user_id or "").strip():
            raise DomainValidationError("Parent user id is required", field="parent_user_id")
        first_name = _require_text(first_name, "first_name")
        last_name = _require_text(last_name, "last_name")
        if date_of_birth is None:
            raise DomainValidationError("Date of birth is required for child accounts", field="date_of_birth")
        if date_of_birth > now.date():
            raise DomainValidationError("Date of birth cannot be in the future", field="date_of_birth")
        age = calculate_age(date_of_birth, now.date())
        if age > CHILD_MAX_AGE:
            raise BusinessRuleViolation("Child accounts must be younger than 18", field="date_of_birth")

        defaults = get_domain_tables().child_defaults(age)
        child = cls(
            password_hash=CHILD_PASSWORD_PLACEHOLDER,
            first_name=first_name,
            last_name=last_name,
            display_name=f"{first_name} {last_name}",
            date_of_birth=date_of_birth,
            role=UserRole.CHILD,
            roles=[UserRole.CHILD],
            parent_user_id=parent_user_id,
            monthly_reset_at=now + timedelta(days=settings.monthly_reset_days),
            parental_controls=ParentalControls(),
            allowed_content_categories=defaults.allowed_categories,
            restricted_topics=defaults.restricted_topics,
            daily_usage_limit_minutes=defaults.daily_minutes,
            usage_tracking_date=now.date(),
            created_at=now,
            updated_at=now,
        )
        child._seed_default_preferences(now)
        child._record(
            UserRegistered(
                aggregate_id=child.id, occurred_at=now,
                email="", display_name=child.display_name, is_child=True,
            ),
            ChildAccountCreated(
                aggregate_id=child.id, occurred_at=now,
                parent_user_id=parent_user_id, age=age,
                daily_usage_limit_minutes=defaults.daily_minutes,
            ),
            now=now,
        )
        return child

    def _seed_default_preferences(self, now: datetime):
        for key, value in get_domain_tables().default_preferences(self.is_child).items():
            self.preferences[key] = UserPreference.create(key, value, now=now)

    # ==================== Derived State ====================

    @property
    def is_child(self) -> bool:
        return self.parent_user_id is not None or self.role == UserRole.CHILD

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def current_limits(self) -> SubscriptionLimits:
        return get_domain_tables().subscription_limits(self.subscription_type)

    def age(self, today: Optional[date] = None) -> Optional[int]:
        if self.date_of_birth is None:
            return None
        return calculate_age(self.date_of_birth, today)

    def is_subscription_active(self, now: Optional[datetime] = None) -> bool:
        if self.subscription_type == SubscriptionType.FREE:
            return True
        if self.subscription_expires_at is None:
            return True
        return self.subscription_expires_at > resolve_now(now)

    def is_currently_locked(self, now: Optional[datetime] = None) -> bool:
        if not self.is_locked:
            return False
        return self.locked_until is None or self.locked_until > resolve_now(now)

    # ==================== Profile ====================

    def verify_email(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.is_email_verified:
            return []
        now = resolve_now(now)
        self.is_email_verified = True
        self.email_verified_at = now
        return self._record(EmailVerified(aggregate_id=self.id, occurred_at=now), now=now)

    def update_profile(
        self,
        first_name: str,
        last_name: str,
        date_of_birth: Optional[date] = None,
        avatar_url: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        """Change names, date of birth and avatar; one event listing what changed"""
        now = resolve_now(now)
        first_name = _require_text(first_name, "first_name")
        last_name = _require_text(last_name, "last_name")
        if date_of_birth is not None:
            if date_of_birth > now.date():
                raise DomainValidationError("Date of birth cannot be in the future", field="date_of_birth")
            if self.is_child and calculate_age(date_of_birth, now.date()) > CHILD_MAX_AGE:
                raise BusinessRuleViolation("Child accounts must be younger than 18", field="date_of_birth")

        changes = {
            "first_name": first_name,
            "last_name": last_name,
        }
        if date_of_birth is not None:
            changes["date_of_birth"] = date_of_birth
        if avatar_url is not None:
            changes["avatar_url"] = avatar_url.strip() or None

        changed_fields = [name for name, value in changes.items() if getattr(self, name) != value]
        if not changed_fields:
            return []

        for name in changed_fields:
            setattr(self, name, changes[name])
        if "first_name" in changed_fields or "last_name" in changed_fields:
            self.display_name = self.full_name
        return self._record(
            ProfileUpdated(aggregate_id=self.id, occurred_at=now, changed_fields=changed_fields),
            now=now,
        )

    def change_password(
        self,
        new_password_hash: str,
        current_password_hash: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> List[DomainEvent]:
        """Adults must confirm the current hash; parents change a child's freely"""
        if not (new_password_hash or "").strip():
            raise DomainValidationError("New password hash is required", field="new_password_hash")
        if not self.is_child and current_password_hash != self.password_hash:
            raise BusinessRuleViolation("Current password is incorrect", field="current_password_hash")
        now = resolve_now(now)
        self.password_hash = new_password_hash
        return self._record(PasswordChanged(aggregate_id=self.id, occurred_at=now), now=now)

    # ==================== Preferences ====================

    def get_preference(self, key: str) -> Optional[str]:
        preference = self.preferences.get(normalize_preference_key(key))
        return preference.value if preference else None

    def set_preference(self, key: str, value: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        now = resolve_now(now)
        preference = UserPreference.create(key, value, now=now)
        old_value = self.get_preference(preference.key)
        if old_value == preference.value:
            return []
        self.preferences[preference.key] = preference
        return self._record(
            UserPreferenceChanged(
                aggregate_id=self.id, occurred_at=now,
                key=preference.key, old_value=old_value, new_value=preference.value,
            ),
            now=now,
        )

    # ==================== Subscription ====================

    def update_subscription(
        self,
        subscription_type: SubscriptionType,
        expires_at: Optional[datetime] = None,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> List[DomainEvent]:
        """Switch tier; the monthly window restarts"""
        settings = settings or get_settings()
        now = resolve_now(now)
        if expires_at is not None and expires_at <= now:
            raise DomainValidationError("Subscription expiry must be in the future", field="expires_at")

        old = self.subscription_type
        self.subscription_type = subscription_type
        self.subscription_expires_at = expires_at
        self.monthly_story_count = 0
        self.monthly_reset_at = now + timedelta(days=settings.monthly_reset_days)
        if subscription_type in (SubscriptionType.PREMIUM, SubscriptionType.PREMIUM_ADULT):
            if UserRole.PREMIUM_USER not in self.roles:
                self.roles.append(UserRole.PREMIUM_USER)
        elif UserRole.PREMIUM_USER in self.roles:
            self.roles.remove(UserRole.PREMIUM_USER)

        return self._record(
            SubscriptionChanged(
                aggregate_id=self.id, occurred_at=now,
                old_subscription=old, new_subscription=subscription_type, expires_at=expires_at,
            ),
            now=now,
        )

    def can_create_more_characters(self) -> bool:
        return self.characters_created < self.current_limits.max_characters

    def record_character_created(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if not self.can_create_more_characters():
            raise BusinessRuleViolation(
                f"Character limit of {self.current_limits.max_characters} reached for "
                f"{self.subscription_type.value} subscription"
            )
        self.characters_created += 1
        self._touch(now)
        return []

    def _monthly_reset_due(self, now: datetime) -> bool:
        return now >= self.monthly_reset_at

    def can_generate_more_stories(self, now: Optional[datetime] = None) -> bool:
        """True when the quota is unlimited, the window has rolled over, or count < quota"""
        now = resolve_now(now)
        limits = self.current_limits
        if limits.has_unlimited_stories:
            return True
        if self._monthly_reset_due(now):
            return True
        return self.monthly_story_count < limits.monthly_stories

    def reset_monthly_counter_if_due(
        self,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> List[DomainEvent]:
        now = resolve_now(now)
        if not self._monthly_reset_due(now):
            return []
        settings = settings or get_settings()
        self.monthly_story_count = 0
        self.monthly_reset_at = now + timedelta(days=settings.monthly_reset_days)
        return self._record(
            MonthlyLimitsReset(aggregate_id=self.id, occurred_at=now, next_reset_at=self.monthly_reset_at),
            now=now,
        )

    def record_story_generated(
        self,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> List[DomainEvent]:
        """Count a generated story against the monthly quota"""
        now = resolve_now(now)
        if not self.can_generate_more_stories(now):
            raise BusinessRuleViolation(
                f"Monthly story limit of {self.current_limits.monthly_stories} reached"
            )

        events = self.reset_monthly_counter_if_due(now, settings)
        self.stories_generated += 1
        self.monthly_story_count += 1

        limits = self.current_limits
        if not limits.has_unlimited_stories and self.monthly_story_count == limits.monthly_stories:
            return events + self._record(
                MonthlyStoryLimitReached(
                    aggregate_id=self.id, occurred_at=now,
                    stories_this_month=self.monthly_story_count,
                    monthly_limit=limits.monthly_stories,
                ),
                now=now,
            )
        self._touch(now)
        return events

    # ==================== Family ====================

    def add_child(self, child_user_id: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.is_child:
            raise BusinessRuleViolation("Child accounts cannot have children")
        if not (child_user_id or "").strip():
            raise DomainValidationError("Child user id is required", field="child_user_id")
        if child_user_id == self.id:
            raise BusinessRuleViolation("A user cannot be their own child")
        if child_user_id in self.child_user_ids:
            return []
        now = resolve_now(now)
        self.child_user_ids.append(child_user_id)
        return self._record(
            ChildAdded(aggregate_id=self.id, occurred_at=now, child_user_id=child_user_id), now=now
        )

    def remove_child(self, child_user_id: str, now: Optional[datetime] = None) -> List[DomainEvent]:
        if child_user_id not in self.child_user_ids:
            return []
        now = resolve_now(now)
        self.child_user_ids.remove(child_user_id)
        return self._record(
            ChildRemoved(aggregate_id=self.id, occurred_at=now, child_user_id=child_user_id), now=now
        )

    # ==================== Authentication ====================

    def attempt_login(self, ip_address: Optional[str] = None, now: Optional[datetime] = None) -> List[DomainEvent]:
        """
        Record a successful credential check.

        Raises:
            InvalidStateTransition: account locked, deactivated, or (adults) unverified
        """
        now = resolve_now(now)
        if self.is_currently_locked(now):
            raise InvalidStateTransition("Account is locked", current_state="locked")
        if not self.is_active:
            raise InvalidStateTransition("Account is deactivated", current_state="inactive")
        if not self.is_child and not self.is_email_verified:
            raise InvalidStateTransition("Email not verified", current_state="unverified")

        self.last_login_at = now
        self.last_login_ip = ip_address
        self.failed_login_attempts = 0
        self.is_locked = False
        self.locked_until = None
        self.statistics.total_logins += 1
        return self._record(
            UserLoggedIn(aggregate_id=self.id, occurred_at=now, ip_address=ip_address), now=now
        )

    def register_failed_login(
        self,
        now: Optional[datetime] = None,
        settings: Optional[Settings] = None,
    ) -> List[DomainEvent]:
        settings = settings or get_settings()
        now = resolve_now(now)
        self.failed_login_attempts += 1
        events = [LoginFailed(aggregate_id=self.id, occurred_at=now, failed_attempts=self.failed_login_attempts)]
        if self.failed_login_attempts >= settings.max_login_attempts and not self.is_currently_locked(now):
            self.is_locked = True
            self.locked_until = now + timedelta(minutes=settings.login_lockout_minutes)
            events.append(AccountLocked(aggregate_id=self.id, occurred_at=now, locked_until=self.locked_until))
        return self._record(*events, now=now)

    def unlock(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if not self.is_locked and self.failed_login_attempts == 0:
            return []
        now = resolve_now(now)
        self.is_locked = False
        self.locked_until = None
        self.failed_login_attempts = 0
        return self._record(AccountUnlocked(aggregate_id=self.id, occurred_at=now), now=now)

    def activate(self, now: Optional[datetime] = None) -> List[DomainEvent]:
        if self.is_active:
            return []
        now = resolve_now(now)
        self.is_active = True
        self.deactivated_at = None
        self.deactivation_reason = None
        return self._record(UserActivated(aggregate_id=self.id, occurred_at=now), now=now)

    def deactivate(self, reason: str = "", now: Optional[datetime] = None) -> List[DomainEvent]:
        if not self.is_active:
            return []
        now = resolve_now(now)
        self.is_active = False
        self.deactivated_at = now
        self.deactivation_reason = reason
        return self._record(UserDeactivated(aggregate_id=self.id, occurred_at=now, reason=reason), now=now)

    # ==================== Screen Time ====================

    def _usage_minutes_today(self, today: date) -> int:
        return self.usage_today_minutes if self.usage_tracking_date == today else 0

    def has_reached_daily_limit(self, now: Optional[datetime] = None) -> bool:
        if not self.is_child or self.daily_usage_limit_minutes is None:
            return False
        today = resolve_now(now).date()
        return self._usage_minutes_today(today) >= self.daily_usage_limit_minutes

    def remaining_minutes_today(self, now: Optional[datetime] = None) -> Optional[int]:
        if not self.is_child or self.daily_usage_limit_minutes is None:
            return None
        today = resolve_now(now).date()
        return max(0, self.daily_usage_limit_minutes - self._usage_minutes_today(today))

    def track_usage(self, minutes: int, now: Optional[datetime] = None) -> List[DomainEvent]:
        """Add screen time for a child; the accumulator resets on a new day"""
        if minutes <= 0:
            raise DomainValidationError("Usage minutes must be positive", field="minutes")
        if not self.is_child:
            return []

        now = resolve_now(now)
        today = now.date()
        was_reached = self.has_reached_daily_limit(now)
        self.usage_today_minutes = self._usage_minutes_today(today) + minutes
        self.usage_tracking_date = today
        self.statistics.total_usage_minutes += minutes

        if not was_reached and self.has_reached_daily_limit(now):
            return self._record(
                DailyLimitReached(
                    aggregate_id=self.id, occurred_at=now,
                    minutes_used=self.usage_today_minutes,
                    daily_limit_minutes=self.daily_usage_limit_minutes,
                ),
                now=now,
            )
        self._touch(now)
        return []
