"""
Identifiers the load generator builds its events from.

Users and posts are read once at startup and never refreshed; rows added
or changed in the database during a run are not picked up.
"""

import logging
import uuid
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from . import config
from .errors import NoFixtureData

log = logging.getLogger(__name__)

USERS_QUERY = "SELECT user_id, username, profile_picture_url FROM users LIMIT {limit}"
POSTS_QUERY = "SELECT post_id FROM posts LIMIT {limit}"


@dataclass(frozen=True)
class UserRef:
    """Denormalized user fields copied onto comments and likes."""
    user_id: uuid.UUID
    username: Optional[str]
    profile_picture_url: Optional[str]


@dataclass(frozen=True)
class ReferenceCache:
    """
    Read-only snapshot of user and post identifiers.

    ``user_ids`` and ``post_ids`` are tuples so a random index is O(1);
    ``users`` maps every cached user_id to its :class:`UserRef`.
    """
    user_ids: Tuple[uuid.UUID, ...]
    post_ids: Tuple[uuid.UUID, ...]
    users: Mapping[uuid.UUID, UserRef]

    @classmethod
    def load(cls, adapter, limit: int = config.REFERENCE_LIMIT) -> "ReferenceCache":
        """
        Read up to ``limit`` users and posts.

        Raises:
            NoFixtureData: either table came back empty
            QueryFailed: a read failed
        """
        users = {}
        for row in adapter.execute(USERS_QUERY.format(limit=int(limit))):
            users[row.user_id] = UserRef(row.user_id, row.username, row.profile_picture_url)

        post_ids = tuple(row.post_id for row in adapter.execute(POSTS_QUERY.format(limit=int(limit))))

        if not users or not post_ids:
            raise NoFixtureData(
                f"No users or posts found in database (users={len(users)}, posts={len(post_ids)}). "
                "Run the seeder first."
            )

        log.info(f"Loaded {len(users)} users and {len(post_ids)} posts")
        return cls(tuple(users), post_ids, MappingProxyType(users))

    def user(self, user_id: uuid.UUID) -> UserRef:
        return self.users[user_id]
