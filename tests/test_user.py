"""
Unit tests for the User aggregate - account lifecycle, family rules and limits.

All time-dependent behavior runs against a fixed clock passed as ``now``.

Run with: python -m pytest tests/test_user.py -v
"""

import sys
from datetime import datetime, date, timedelta, timezone
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import Settings
from src.models.enums import SubscriptionType, UserRole
from src.models.errors import DomainValidationError, BusinessRuleViolation, InvalidStateTransition
from src.models.tables import reset_domain_tables
from src.models.user import User

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=timezone.utc)


def make_user(**overrides) -> User:
    params = dict(
        email="anna@example.com",
        password_hash="hash-1",
        first_name="Anna",
        last_name="Schmidt",
        now=NOW,
    )
    params.update(overrides)
    return User.register(**params)


def make_child(date_of_birth=date(2019, 1, 10)) -> User:
    return User.create_child("user_parent", "Mia", "Schmidt", date_of_birth, now=NOW)


class TestRegistration:

    def setup_method(self):
        reset_domain_tables()

    def test_register_normalizes_email_and_names(self):
        user = make_user(email="  Anna.Schmidt@Example.COM ", first_name=" Anna ")

        assert user.email == "anna.schmidt@example.com"
        assert user.first_name == "Anna"
        assert user.display_name == "Anna Schmidt"
        assert user.id.startswith("user_")
        assert not user.is_email_verified

    def test_register_emits_single_event_and_bumps_version(self):
        user = make_user()

        assert [e.event_type for e in user.domain_events] == ["user.registered"]
        assert user.version == 1
        assert user.monthly_reset_at == NOW + timedelta(days=30)

    def test_register_seeds_default_preferences(self):
        user = make_user()

        assert user.get_preference("language") == "de"
        assert user.get_preference("theme") == "light"
        assert user.get_preference("content_filter_level") is None

    def test_invalid_email_rejected(self):
        with pytest.raises(DomainValidationError):
            make_user(email="not-an-email")

    @pytest.mark.parametrize("email", ["a..b@example..com", "anna@example..com", ".anna@example.com", "anna@"])
    def test_malformed_email_rejected(self, email):
        with pytest.raises(DomainValidationError) as exc_info:
            make_user(email=email)
        assert exc_info.value.field == "email"

    def test_empty_name_rejected(self):
        with pytest.raises(DomainValidationError):
            make_user(first_name="   ")

    def test_empty_password_hash_rejected(self):
        with pytest.raises(DomainValidationError):
            make_user(password_hash="")


class TestChildAccounts:

    def setup_method(self):
        reset_domain_tables()

    def test_young_child_gets_strict_defaults(self):
        child = make_child(date(2021, 1, 1))  # age 5

        assert child.is_child
        assert child.role == UserRole.CHILD
        assert child.password_hash == "CHILD_ACCOUNT"
        assert child.daily_usage_limit_minutes == 30
        assert child.allowed_content_categories == ["Education", "Friendship", "Family", "Nature"]
        assert "Violence" in child.restricted_topics

    def test_middle_band_gets_sixty_minutes(self):
        child = make_child(date(2018, 1, 1))  # age 8

        assert child.daily_usage_limit_minutes == 60
        assert child.allowed_content_categories == ["Adventure", "Mystery", "Science", "History"]

    def test_older_child_has_no_lists(self):
        child = make_child(date(2014, 1, 1))  # age 12

        assert child.daily_usage_limit_minutes == 120
        assert child.allowed_content_categories == []
        assert child.restricted_topics == []

    def test_age_uses_birthday_adjustment(self):
        # turns 6 in June, still 5 in March
        child = make_child(date(2020, 6, 1))

        assert child.age(NOW.date()) == 5
        assert child.daily_usage_limit_minutes == 30

    def test_adult_age_rejected(self):
        with pytest.raises(BusinessRuleViolation):
            make_child(date(2008, 1, 1))

    def test_future_birth_date_rejected(self):
        with pytest.raises(DomainValidationError):
            make_child(date(2027, 1, 1))

    def test_child_events_in_order(self):
        child = make_child()

        assert [e.event_type for e in child.domain_events] == ["user.registered", "user.child_created"]

    def test_child_preferences_are_strict(self):
        child = make_child()

        assert child.get_preference("content_filter_level") == "5"
        assert child.get_preference("learning_mode_enabled") == "true"

    def test_child_cannot_have_children(self):
        child = make_child()

        with pytest.raises(BusinessRuleViolation):
            child.add_child("user_other")

    def test_add_child_is_idempotent(self):
        parent = make_user()
        parent.clear_domain_events()

        assert len(parent.add_child("user_kid", now=NOW)) == 1
        version = parent.version
        assert parent.add_child("user_kid", now=NOW) == []
        assert parent.child_user_ids == ["user_kid"]
        assert parent.version == version

    def test_remove_unknown_child_is_noop(self):
        parent = make_user()

        assert parent.remove_child("user_missing", now=NOW) == []


class TestProfile:

    def setup_method(self):
        reset_domain_tables()
        self.user = make_user()
        self.user.clear_domain_events()

    def test_verify_email_is_idempotent(self):
        assert len(self.user.verify_email(now=NOW)) == 1
        assert self.user.verify_email(now=NOW) == []
        assert self.user.email_verified_at == NOW

    def test_update_profile_lists_changed_fields(self):
        events = self.user.update_profile("Anna", "Meyer", now=NOW)

        assert len(events) == 1
        assert events[0].changed_fields == ["last_name"]
        assert self.user.display_name == "Anna Meyer"

    def test_update_profile_without_changes_emits_nothing(self):
        version = self.user.version

        assert self.user.update_profile("Anna", "Schmidt", now=NOW) == []
        assert self.user.version == version

    def test_child_profile_cannot_become_adult(self):
        child = make_child()

        with pytest.raises(BusinessRuleViolation):
            child.update_profile("Mia", "Schmidt", date_of_birth=date(2000, 1, 1), now=NOW)
        assert child.date_of_birth == date(2019, 1, 10)

    def test_adult_password_change_requires_current_hash(self):
        with pytest.raises(BusinessRuleViolation):
            self.user.change_password("hash-2", "wrong", now=NOW)
        assert self.user.password_hash == "hash-1"

        self.user.change_password("hash-2", "hash-1", now=NOW)
        assert self.user.password_hash == "hash-2"

    def test_child_password_change_needs_no_current_hash(self):
        child = make_child()

        child.change_password("new-hash", now=NOW)
        assert child.password_hash == "new-hash"

    def test_set_preference_emits_only_on_change(self):
        events = self.user.set_preference("language", "en", now=NOW)

        assert events[0].event_type == "user.preference_changed"
        assert events[0].old_value == "de"
        assert self.user.set_preference("language", "en", now=NOW) == []

    def test_invalid_preference_rejected(self):
        with pytest.raises(DomainValidationError):
            self.user.set_preference("language", "klingon", now=NOW)
        assert self.user.get_preference("language") == "de"

    def test_preference_keys_are_case_insensitive(self):
        events = self.user.set_preference(" Language ", "fr", now=NOW)

        assert events[0].key == "language"
        assert self.user.get_preference("LANGUAGE") == "fr"
        assert "Language" not in self.user.preferences
        with pytest.raises(DomainValidationError):
            self.user.set_preference("Language", "klingon", now=NOW)


class TestLogin:

    def setup_method(self):
        reset_domain_tables()
        self.settings = Settings()
        self.user = make_user()
        self.user.verify_email(now=NOW)
        self.user.clear_domain_events()

    def test_unverified_adult_cannot_log_in(self):
        user = make_user()

        with pytest.raises(InvalidStateTransition, match="Email not verified"):
            user.attempt_login("10.0.0.1", now=NOW)
        assert user.last_login_at is None

    def test_child_logs_in_without_verification(self):
        child = make_child()

        events = child.attempt_login(now=NOW)
        assert events[0].event_type == "user.logged_in"

    def test_successful_login_records_time_and_ip(self):
        self.user.attempt_login("10.0.0.1", now=NOW)

        assert self.user.last_login_at == NOW
        assert self.user.last_login_ip == "10.0.0.1"
        assert self.user.statistics.total_logins == 1

    def test_account_locks_after_max_attempts(self):
        for _ in range(4):
            events = self.user.register_failed_login(now=NOW, settings=self.settings)
            assert [e.event_type for e in events] == ["user.login_failed"]

        events = self.user.register_failed_login(now=NOW, settings=self.settings)

        assert [e.event_type for e in events] == ["user.login_failed", "user.account_locked"]
        assert self.user.is_locked
        assert self.user.locked_until == NOW + timedelta(minutes=15)
        with pytest.raises(InvalidStateTransition, match="Account is locked"):
            self.user.attempt_login(now=NOW + timedelta(minutes=5))

    def test_login_after_lockout_resets_counter(self):
        for _ in range(5):
            self.user.register_failed_login(now=NOW, settings=self.settings)

        self.user.attempt_login(now=NOW + timedelta(minutes=16))

        assert self.user.failed_login_attempts == 0
        assert not self.user.is_locked

    def test_unlock_clears_lock(self):
        for _ in range(5):
            self.user.register_failed_login(now=NOW, settings=self.settings)

        events = self.user.unlock(now=NOW)

        assert events[0].event_type == "user.account_unlocked"
        self.user.attempt_login(now=NOW)

    def test_deactivated_account_cannot_log_in(self):
        self.user.deactivate("requested", now=NOW)

        with pytest.raises(InvalidStateTransition, match="Account is deactivated"):
            self.user.attempt_login(now=NOW)
        assert self.user.deactivate("again", now=NOW) == []

        self.user.activate(now=NOW)
        self.user.attempt_login(now=NOW)


class TestSubscriptionLimits:

    def setup_method(self):
        reset_domain_tables()
        self.settings = Settings()
        self.user = make_user()
        self.user.clear_domain_events()

    @pytest.mark.parametrize("tier,characters,stories,advanced,images", [
        (SubscriptionType.FREE, 1, 5, False, False),
        (SubscriptionType.STARTER, 3, 25, False, True),
        (SubscriptionType.FAMILY, 8, 100, True, True),
        (SubscriptionType.PREMIUM, 20, -1, True, True),
        (SubscriptionType.PREMIUM_ADULT, 1, 5, False, False),
    ])
    def test_limits_by_tier(self, tier, characters, stories, advanced, images):
        self.user.subscription_type = tier
        limits = self.user.current_limits

        assert limits.max_characters == characters
        assert limits.monthly_stories == stories
        assert limits.advanced_features == advanced
        assert limits.image_generation == images

    def test_free_quota_is_enforced(self):
        for i in range(4):
            assert self.user.record_story_generated(now=NOW, settings=self.settings) == []

        events = self.user.record_story_generated(now=NOW, settings=self.settings)

        assert [e.event_type for e in events] == ["user.monthly_story_limit_reached"]
        assert not self.user.can_generate_more_stories(NOW)
        with pytest.raises(BusinessRuleViolation):
            self.user.record_story_generated(now=NOW, settings=self.settings)
        assert self.user.monthly_story_count == 5

    def test_quota_resets_after_window(self):
        for _ in range(5):
            self.user.record_story_generated(now=NOW, settings=self.settings)
        later = NOW + timedelta(days=31)

        assert self.user.can_generate_more_stories(later)
        events = self.user.record_story_generated(now=later, settings=self.settings)

        assert [e.event_type for e in events] == ["user.monthly_limits_reset"]
        assert self.user.monthly_story_count == 1
        assert self.user.stories_generated == 6
        assert self.user.monthly_reset_at == later + timedelta(days=30)

    def test_reset_if_due_does_nothing_early(self):
        assert self.user.reset_monthly_counter_if_due(now=NOW, settings=self.settings) == []

    def test_premium_is_unlimited(self):
        self.user.update_subscription(SubscriptionType.PREMIUM, now=NOW, settings=self.settings)

        for _ in range(50):
            self.user.record_story_generated(now=NOW, settings=self.settings)
        assert self.user.can_generate_more_stories(NOW)
        assert UserRole.PREMIUM_USER in self.user.roles

    def test_subscription_change_resets_monthly_count(self):
        for _ in range(3):
            self.user.record_story_generated(now=NOW, settings=self.settings)

        events = self.user.update_subscription(SubscriptionType.FAMILY, now=NOW, settings=self.settings)

        assert events[0].old_subscription == SubscriptionType.FREE
        assert self.user.monthly_story_count == 0

    def test_character_limit(self):
        self.user.record_character_created(now=NOW)

        assert not self.user.can_create_more_characters()
        with pytest.raises(BusinessRuleViolation):
            self.user.record_character_created(now=NOW)


class TestDailyUsage:

    def setup_method(self):
        reset_domain_tables()
        self.child = make_child(date(2021, 1, 1))  # 30 minutes a day
        self.child.clear_domain_events()

    def test_limit_reached_emits_once(self):
        assert self.child.track_usage(20, now=NOW) == []
        events = self.child.track_usage(15, now=NOW)

        assert [e.event_type for e in events] == ["user.daily_limit_reached"]
        assert self.child.has_reached_daily_limit(NOW)
        assert self.child.track_usage(5, now=NOW) == []

    def test_usage_resets_on_new_day(self):
        self.child.track_usage(30, now=NOW)
        tomorrow = NOW + timedelta(days=1)

        assert not self.child.has_reached_daily_limit(tomorrow)
        self.child.track_usage(10, now=tomorrow)
        assert self.child.usage_today_minutes == 10
        assert self.child.remaining_minutes_today(tomorrow) == 20

    def test_adults_are_not_tracked(self):
        adult = make_user()

        assert adult.track_usage(500, now=NOW) == []
        assert not adult.has_reached_daily_limit(NOW)

    def test_non_positive_minutes_rejected(self):
        with pytest.raises(DomainValidationError):
            self.child.track_usage(0, now=NOW)
