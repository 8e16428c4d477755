"""
In-memory repositories for Avatales aggregates.

Aggregates are stored by id. ``save`` rejects a stale write: an aggregate
whose version is older than the stored one was loaded before someone else
saved it.
"""

import logging
from typing import Dict, Generic, List, Optional, TypeVar

from src.models.base import AggregateRoot
from src.models.character import Character
from src.models.errors import NotFoundError, InvalidStateTransition
from src.models.story import Story
from src.models.user import User

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=AggregateRoot)


class InMemoryRepository(Generic[T]):
    kind = "Aggregate"

    def __init__(self):
        self._items: Dict[str, T] = {}

    def save(self, aggregate: T) -> T:
        stored = self._items.get(aggregate.id)
        if stored is not None and stored is not aggregate and stored.version > aggregate.version:
            raise InvalidStateTransition(
                f"{self.kind} {aggregate.id} was modified concurrently "
                f"(stored version {stored.version}, saving {aggregate.version})",
                current_state="stale",
            )
        self._items[aggregate.id] = aggregate
        logger.debug(f"Saved {self.kind} {aggregate.id} (version {aggregate.version})")
        return aggregate

    def get(self, aggregate_id: str) -> Optional[T]:
        return self._items.get(aggregate_id)

    def require(self, aggregate_id: str) -> T:
        aggregate = self.get(aggregate_id)
        if aggregate is None:
            raise NotFoundError(self.kind, aggregate_id)
        return aggregate

    def delete(self, aggregate_id: str) -> bool:
        return self._items.pop(aggregate_id, None) is not None

    def list_all(self) -> List[T]:
        return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)


class UserRepository(InMemoryRepository[User]):
    kind = "User"

    def get_by_email(self, email: str) -> Optional[User]:
        email = (email or "").strip().lower()
        for user in self._items.values():
            if user.email == email:
                return user
        return None

    def get_children(self, parent_user_id: str) -> List[User]:
        return [u for u in self._items.values() if u.parent_user_id == parent_user_id]


class StoryRepository(InMemoryRepository[Story]):
    kind = "Story"

    def list_by_author(self, author_user_id: str) -> List[Story]:
        return [s for s in self._items.values() if s.author_user_id == author_user_id]

    def list_by_character(self, character_id: str) -> List[Story]:
        return [s for s in self._items.values() if s.main_character_id == character_id]

    def list_public(self) -> List[Story]:
        return [s for s in self._items.values() if s.is_public]


class CharacterRepository(InMemoryRepository[Character]):
    kind = "Character"

    def list_by_owner(self, owner_user_id: str) -> List[Character]:
        return [c for c in self._items.values() if c.owner_user_id == owner_user_id]
