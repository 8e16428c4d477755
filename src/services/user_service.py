"""
User application service: registration, family accounts, login, limits.
"""

import logging
from datetime import datetime
from typing import List, Optional

from src.models.commands import UserRegistration, ChildAccountCreate, UserProfileUpdate
from src.models.enums import SubscriptionType
from src.models.errors import BusinessRuleViolation, NotFoundError
from src.models.user import User
from src.services.application import ApplicationService
from src.services.repositories import UserRepository

logger = logging.getLogger(__name__)


class UserService(ApplicationService):

    def __init__(self, users: UserRepository, **kwargs):
        super().__init__(**kwargs)
        self.users = users

    def _apply(self, name: str, user: User) -> User:
        self._publish(name, user.id, self._save(self.users, user))
        return user

    # ===== Accounts =====

    def register_user(self, request: UserRegistration, now: Optional[datetime] = None) -> User:
        with self._command("register_user", request.email):
            if self.users.get_by_email(request.email) is not None:
                raise BusinessRuleViolation("Email is already registered", field="email")
            user = User.register(
                email=request.email,
                password_hash=request.password_hash,
                first_name=request.first_name,
                last_name=request.last_name,
                date_of_birth=request.date_of_birth,
                now=now,
                settings=self.settings,
            )
            return self._apply("register_user", user)

    def create_child_account(
        self,
        parent_user_id: str,
        request: ChildAccountCreate,
        now: Optional[datetime] = None,
    ) -> User:
        """Create a child and link it to the parent; both are saved together"""
        with self._command("create_child_account", parent_user_id):
            parent = self.users.require(parent_user_id)
            if parent.is_child:
                raise BusinessRuleViolation("Child accounts cannot have children")
            child = User.create_child(
                parent_user_id=parent.id,
                first_name=request.first_name,
                last_name=request.last_name,
                date_of_birth=request.date_of_birth,
                now=now,
                settings=self.settings,
            )
            parent.add_child(child.id, now=now)
            events = self._save(self.users, child) + self._save(self.users, parent)
            self._publish("create_child_account", parent.id, events)
            return child

    def remove_child_account(self, parent_user_id: str, child_user_id: str,
                             now: Optional[datetime] = None) -> User:
        with self._command("remove_child_account", parent_user_id):
            parent = self.users.require(parent_user_id)
            parent.remove_child(child_user_id, now=now)
            child = self.users.get(child_user_id)
            events = self._save(self.users, parent)
            if child is not None and child.parent_user_id == parent.id:
                child.deactivate("Removed from family", now=now)
                events += self._save(self.users, child)
            self._publish("remove_child_account", parent.id, events)
            return parent

    def verify_email(self, user_id: str, now: Optional[datetime] = None) -> User:
        with self._command("verify_email", user_id):
            user = self.users.require(user_id)
            user.verify_email(now=now)
            return self._apply("verify_email", user)

    def update_profile(self, user_id: str, request: UserProfileUpdate,
                       now: Optional[datetime] = None) -> User:
        with self._command("update_profile", user_id):
            user = self.users.require(user_id)
            user.update_profile(
                first_name=request.first_name,
                last_name=request.last_name,
                date_of_birth=request.date_of_birth,
                avatar_url=request.avatar_url,
                now=now,
            )
            return self._apply("update_profile", user)

    def change_password(self, user_id: str, new_password_hash: str,
                        current_password_hash: Optional[str] = None,
                        now: Optional[datetime] = None) -> User:
        with self._command("change_password", user_id):
            user = self.users.require(user_id)
            user.change_password(new_password_hash, current_password_hash, now=now)
            return self._apply("change_password", user)

    def set_preference(self, user_id: str, key: str, value: str,
                       now: Optional[datetime] = None) -> User:
        with self._command("set_preference", user_id):
            user = self.users.require(user_id)
            user.set_preference(key, value, now=now)
            return self._apply("set_preference", user)

    # ===== Authentication =====

    def login(self, email: str, password_hash: str, ip_address: Optional[str] = None,
              now: Optional[datetime] = None) -> User:
        """
        Check credentials and record the login.

        A wrong password counts as a failed attempt (and may lock the account)
        before the rejection is raised.
        """
        with self._command("login", email):
            user = self.users.get_by_email(email)
            if user is None:
                raise NotFoundError("User", email)
            if password_hash != user.password_hash and not user.is_currently_locked(now):
                user.register_failed_login(now=now, settings=self.settings)
                self._apply("register_failed_login", user)
                raise BusinessRuleViolation("Invalid email or password")
            user.attempt_login(ip_address, now=now)
            return self._apply("login", user)

    def unlock_account(self, user_id: str, now: Optional[datetime] = None) -> User:
        with self._command("unlock_account", user_id):
            user = self.users.require(user_id)
            user.unlock(now=now)
            return self._apply("unlock_account", user)

    def activate(self, user_id: str, now: Optional[datetime] = None) -> User:
        with self._command("activate", user_id):
            user = self.users.require(user_id)
            user.activate(now=now)
            return self._apply("activate", user)

    def deactivate(self, user_id: str, reason: str = "", now: Optional[datetime] = None) -> User:
        with self._command("deactivate", user_id):
            user = self.users.require(user_id)
            user.deactivate(reason, now=now)
            return self._apply("deactivate", user)

    # ===== Subscription & usage =====

    def update_subscription(self, user_id: str, subscription_type: SubscriptionType,
                            expires_at: Optional[datetime] = None,
                            now: Optional[datetime] = None) -> User:
        with self._command("update_subscription", user_id):
            user = self.users.require(user_id)
            user.update_subscription(subscription_type, expires_at, now=now, settings=self.settings)
            return self._apply("update_subscription", user)

    def track_usage(self, user_id: str, minutes: int, now: Optional[datetime] = None) -> User:
        with self._command("track_usage", user_id):
            user = self.users.require(user_id)
            user.track_usage(minutes, now=now)
            return self._apply("track_usage", user)

    # ===== Queries =====

    def get_user(self, user_id: str) -> User:
        return self.users.require(user_id)

    def get_children(self, parent_user_id: str) -> List[User]:
        return self.users.get_children(parent_user_id)
