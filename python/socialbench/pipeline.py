"""
Turns comment and like events into writes.

Every event becomes one LOGGED batch over its two projection tables plus a
separate counter update. Counter columns cannot share a LOGGED batch with
regular columns, so the counter is submitted on its own right after the
batch.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Tuple

from .events import CommentEvent, LikeEvent

log = logging.getLogger(__name__)

INSERT_COMMENT_BY_POST = (
    "INSERT INTO comments_by_post (post_id, comment_id, user_id, username, user_profile_pic, "
    "content, created_at, updated_at, is_deleted) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
INSERT_COMMENT_BY_USER = (
    "INSERT INTO comments_by_user (user_id, comment_id, post_id, content, created_at, is_deleted) "
    "VALUES (?, ?, ?, ?, ?, ?)"
)
INSERT_LIKE = "INSERT INTO post_likes (post_id, user_id, username, created_at) VALUES (?, ?, ?, ?)"
INSERT_LIKE_BY_USER = "INSERT INTO post_likes_by_user (user_id, post_id, created_at) VALUES (?, ?, ?)"
INCREMENT_COMMENT_COUNT = "UPDATE post_metrics SET comment_count = comment_count + 1 WHERE post_id = ?"
INCREMENT_LIKE_COUNT = "UPDATE post_metrics SET like_count = like_count + 1 WHERE post_id = ?"


@dataclass(frozen=True)
class Statements:
    """Prepared statements used by the write path."""
    insert_comment_by_post: Any
    insert_comment_by_user: Any
    insert_like: Any
    insert_like_by_user: Any
    increment_comment_count: Any
    increment_like_count: Any


def prepare_statements(adapter) -> Statements:
    """
    Prepare every write statement up front.

    Raises:
        PrepareFailed: the server rejected one of the statements
    """
    statements = Statements(
        insert_comment_by_post=adapter.prepare(INSERT_COMMENT_BY_POST),
        insert_comment_by_user=adapter.prepare(INSERT_COMMENT_BY_USER),
        insert_like=adapter.prepare(INSERT_LIKE),
        insert_like_by_user=adapter.prepare(INSERT_LIKE_BY_USER),
        increment_comment_count=adapter.prepare(INCREMENT_COMMENT_COUNT),
        increment_like_count=adapter.prepare(INCREMENT_LIKE_COUNT),
    )
    log.info("Prepared statements")
    return statements


class EventCounters:
    """Comment and like totals shared between scheduler threads."""

    def __init__(self):
        self._lock = threading.Lock()
        self._comments = 0
        self._likes = 0

    def increment_comments(self) -> int:
        with self._lock:
            self._comments += 1
            return self._comments

    def increment_likes(self) -> int:
        with self._lock:
            self._likes += 1
            return self._likes

    @property
    def comments(self) -> int:
        with self._lock:
            return self._comments

    @property
    def likes(self) -> int:
        with self._lock:
            return self._likes

    def snapshot(self) -> Tuple[int, int]:
        """Return (comments, likes) read under one lock."""
        with self._lock:
            return self._comments, self._likes


class WritePipeline:
    """
    Submits events through the adapter and counts the ones that went out.

    Submission does not wait for the driver; a write that fails after it was
    handed to the driver is only logged by the adapter.
    """

    def __init__(self, adapter, statements: Statements, counters: EventCounters):
        self.adapter = adapter
        self.statements = statements
        self.counters = counters

    def write_comment(self, event: CommentEvent) -> bool:
        """Write one comment to both comment tables and bump its post's counter."""
        s = self.statements
        try:
            batch = self.adapter.logged_batch([
                (s.insert_comment_by_post, (
                    event.post_id, event.comment_id, event.user_id, event.username,
                    event.profile_picture_url, event.content, event.created_at,
                    event.created_at, False,
                )),
                (s.insert_comment_by_user, (
                    event.user_id, event.comment_id, event.post_id, event.content,
                    event.created_at, False,
                )),
            ])
            self.adapter.execute_async(batch)
            self.adapter.execute_async(s.increment_comment_count, (event.post_id,))
        except Exception as e:
            log.error(f"Error generating comment: {e}")
            return False

        self.counters.increment_comments()
        return True

    def write_like(self, event: LikeEvent) -> bool:
        """Write one like to both like tables and bump its post's counter."""
        s = self.statements
        try:
            batch = self.adapter.logged_batch([
                (s.insert_like, (event.post_id, event.user_id, event.username, event.created_at)),
                (s.insert_like_by_user, (event.user_id, event.post_id, event.created_at)),
            ])
            self.adapter.execute_async(batch)
            self.adapter.execute_async(s.increment_like_count, (event.post_id,))
        except Exception as e:
            log.error(f"Error generating like: {e}")
            return False

        self.counters.increment_likes()
        return True
