"""
Factories for the synthetic comments and likes the load generator writes.
"""

import random
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .references import ReferenceCache

COMMENT_TEMPLATES = (
    "Great post!",
    "I agree with this",
    "Interesting perspective",
    "Thanks for sharing",
    "I'm not sure I agree",
    "This changed my perspective",
    "Looking forward to more content like this",
    "Have you considered the alternative view?",
    "This reminds me of something I read recently",
    "I had a similar experience",
)


@dataclass(frozen=True)
class CommentEvent:
    comment_id: uuid.UUID
    post_id: uuid.UUID
    user_id: uuid.UUID
    username: Optional[str]
    profile_picture_url: Optional[str]
    content: str
    created_at: datetime


@dataclass(frozen=True)
class LikeEvent:
    post_id: uuid.UUID
    user_id: uuid.UUID
    username: Optional[str]
    created_at: datetime


class EventFactory:
    """
    Builds one event per call from uniform random picks over the cache.

    Each event kind is produced by a single scheduler task, so calls for a
    given kind never overlap.

    Args:
        references: Loaded users and posts
        rng: Random source, mainly so tests can pass a seeded one
    """

    def __init__(self, references: ReferenceCache, rng: Optional[random.Random] = None):
        self.references = references
        self.rng = rng or random.Random()

    def _pick(self):
        post_id = self.rng.choice(self.references.post_ids)
        user = self.references.user(self.rng.choice(self.references.user_ids))
        return post_id, user

    def make_comment(self) -> CommentEvent:
        post_id, user = self._pick()
        return CommentEvent(
            comment_id=uuid.uuid4(),
            post_id=post_id,
            user_id=user.user_id,
            username=user.username,
            profile_picture_url=user.profile_picture_url,
            content=self.rng.choice(COMMENT_TEMPLATES),
            created_at=datetime.now(timezone.utc),
        )

    def make_like(self) -> LikeEvent:
        # No uniqueness check: a repeated (post_id, user_id) is an upsert.
        post_id, user = self._pick()
        return LikeEvent(
            post_id=post_id,
            user_id=user.user_id,
            username=user.username,
            created_at=datetime.now(timezone.utc),
        )
