#!/usr/bin/env python3
"""
One-shot synthetic data seeder for the social media keyspace.

Creates the schema if needed, then fills users, posts, comments and likes
with Faker-generated content. Comments and likes are written to both of
their projection tables in a LOGGED batch and counted in post_metrics, the
same way the load generator writes them.

Usage:
    socialbench-seed
"""

import logging
import sys
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from faker import Faker

from . import config
from .db import CqlSessionAdapter
from .errors import SocialBenchError
from .pipeline import (
    INCREMENT_COMMENT_COUNT,
    INCREMENT_LIKE_COUNT,
    INSERT_COMMENT_BY_POST,
    INSERT_COMMENT_BY_USER,
    INSERT_LIKE,
    INSERT_LIKE_BY_USER,
)
from .schema_init import apply_schema

log = logging.getLogger(__name__)

INSERT_USER = (
    "INSERT INTO users (user_id, username, email, full_name, bio, profile_picture_url, "
    "created_at, updated_at, is_active) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"
)
INSERT_POST = (
    "INSERT INTO posts (post_id, user_id, content, media_urls, created_at, updated_at, is_deleted) "
    "VALUES (?, ?, ?, ?, ?, ?, ?)"
)


@dataclass
class SeededUser:
    user_id: uuid.UUID
    username: str
    profile_picture_url: str


@dataclass
class SeedReport:
    """Rows written per table kind, and how many writes failed."""
    users: int = 0
    posts: int = 0
    comments: int = 0
    likes: int = 0
    errors: int = 0


def create_faker(seed: Optional[int] = config.FAKER_SEED) -> Faker:
    faker = Faker()
    if seed is not None:
        faker.seed_instance(seed)
    return faker


class Seeder:
    """
    Generates and inserts the fixture data.

    Args:
        adapter: Open CqlSessionAdapter bound to the target keyspace
        faker: Faker instance, seeded from config.FAKER_SEED when omitted
        now: Reference instant for generated timestamps
    """

    def __init__(
        self,
        adapter,
        faker: Optional[Faker] = None,
        num_users: int = config.NUM_USERS,
        num_posts: int = config.NUM_POSTS,
        num_comments: int = config.NUM_COMMENTS,
        num_likes: int = config.NUM_LIKES,
        concurrency: int = config.SEED_CONCURRENCY,
        now: Optional[datetime] = None,
    ):
        self.adapter = adapter
        self.faker = faker or create_faker()
        self.num_users = num_users
        self.num_posts = num_posts
        self.num_comments = num_comments
        self.num_likes = num_likes
        self.concurrency = concurrency
        self.now = now or datetime.now(timezone.utc)

        self.users: Dict[uuid.UUID, SeededUser] = {}
        self.user_ids: List[uuid.UUID] = []
        self.post_ids: List[uuid.UUID] = []
        self.report = SeedReport()

    def seed(self) -> SeedReport:
        """Seed every table in dependency order."""
        self.seed_users()
        self.seed_posts()
        self.seed_comments()
        self.seed_likes()
        log.info(
            f"Data seeding completed: {self.report.users} users, {self.report.posts} posts, "
            f"{self.report.comments} comments, {self.report.likes} likes ({self.report.errors} errors)."
        )
        return self.report

    def _ago(self, min_seconds: int, max_seconds: int) -> datetime:
        return self.now - timedelta(seconds=self.faker.random_int(min=min_seconds, max=max_seconds))

    def _random_user_id(self) -> uuid.UUID:
        return self.faker.random_element(elements=self.user_ids)

    def _random_post_id(self) -> uuid.UUID:
        return self.faker.random_element(elements=self.post_ids)

    def _run(self, statements_and_params, label: str, progress_every: int) -> List[bool]:
        """
        Execute a list of (statement, params) pairs concurrently.

        Returns:
            Success flag per pair, in submission order
        """
        results = self.adapter.execute_concurrent(statements_and_params, self.concurrency)

        ok = errors = 0
        succeeded = []
        for success, result_or_exc in results:
            succeeded.append(success)
            if success:
                ok += 1
                if ok % progress_every == 0:
                    log.info(f"Seeded {ok} {label}")
            else:
                errors += 1
                log.error(f"Failed to write {label}: {result_or_exc}")

        self.report.errors += errors
        if errors > 0:
            log.warning(f"Completed {label} with {errors} errors.")
        return succeeded

    def seed_users(self) -> int:
        log.info(f"Generating {self.num_users} users...")
        statement = self.adapter.prepare(INSERT_USER)

        parameters = []
        for _ in range(self.num_users):
            user_id = uuid.uuid4()
            username = self.faker.user_name()
            picture = self.faker.image_url()
            created_at = self._ago(86400, 2592000)
            updated_at = created_at + timedelta(seconds=self.faker.random_int(min=0, max=86400))
            self.users[user_id] = SeededUser(user_id, username, picture)
            self.user_ids.append(user_id)
            parameters.append((statement, (
                user_id, username, f"{username}@example.com", self.faker.name(),
                self.faker.paragraph(nb_sentences=1), picture, created_at, updated_at, True,
            )))

        self.report.users = sum(self._run(parameters, "users", progress_every=10))
        return self.report.users

    def seed_posts(self) -> int:
        if not self.user_ids:
            log.warning("No users seeded; skipping posts.")
            return 0
        log.info(f"Generating {self.num_posts} posts...")
        statement = self.adapter.prepare(INSERT_POST)

        parameters = []
        for _ in range(self.num_posts):
            post_id = uuid.uuid4()
            self.post_ids.append(post_id)

            media_urls = []
            # 30% of posts carry media
            if self.faker.random_int(min=0, max=99) < 30:
                media_urls = [
                    f"https://example.com/media/{uuid.uuid4()}.jpg"
                    for _ in range(self.faker.random_int(min=1, max=3))
                ]
            created_at = self._ago(3600, 1209600)
            updated_at = created_at
            # 10% of posts were edited
            if self.faker.random_int(min=0, max=99) < 10:
                updated_at = created_at + timedelta(seconds=self.faker.random_int(min=60, max=86400))

            parameters.append((statement, (
                post_id, self._random_user_id(),
                self.faker.paragraph(nb_sentences=self.faker.random_int(min=1, max=3)),
                media_urls, created_at, updated_at, False,
            )))

        self.report.posts = sum(self._run(parameters, "posts", progress_every=20))
        return self.report.posts

    def seed_comments(self) -> int:
        if not self.user_ids or not self.post_ids:
            log.warning("No users or posts seeded; skipping comments.")
            return 0
        log.info(f"Generating {self.num_comments} comments...")
        by_post = self.adapter.prepare(INSERT_COMMENT_BY_POST)
        by_user = self.adapter.prepare(INSERT_COMMENT_BY_USER)
        increment = self.adapter.prepare(INCREMENT_COMMENT_COUNT)

        batches, counters = [], []
        for _ in range(self.num_comments):
            comment_id = uuid.uuid4()
            post_id = self._random_post_id()
            user = self.users[self._random_user_id()]
            content = self.faker.sentence(nb_words=self.faker.random_int(min=3, max=14))
            created_at = self._ago(60, 604800)
            updated_at = created_at
            # 5% of comments were edited
            if self.faker.random_int(min=0, max=99) < 5:
                updated_at = created_at + timedelta(seconds=self.faker.random_int(min=30, max=3600))

            batches.append((self.adapter.logged_batch([
                (by_post, (post_id, comment_id, user.user_id, user.username, user.profile_picture_url,
                           content, created_at, updated_at, False)),
                (by_user, (user.user_id, comment_id, post_id, content, created_at, False)),
            ]), None))
            counters.append((increment, (post_id,)))

        written = self._run(batches, "comments", progress_every=100)
        self.report.comments = sum(written)
        # Only comments that landed are counted.
        counters = [pair for pair, ok in zip(counters, written) if ok]
        self._run(counters, "comment counters", progress_every=len(counters) or 1)
        return self.report.comments

    def seed_likes(self) -> int:
        if not self.user_ids or not self.post_ids:
            log.warning("No users or posts seeded; skipping likes.")
            return 0
        log.info(f"Generating up to {self.num_likes} likes...")
        likes = self.adapter.prepare(INSERT_LIKE)
        likes_by_user = self.adapter.prepare(INSERT_LIKE_BY_USER)
        increment = self.adapter.prepare(INCREMENT_LIKE_COUNT)

        already_liked = set()
        batches, counters = [], []
        for _ in range(self.num_likes):
            post_id = self._random_post_id()
            user = self.users[self._random_user_id()]
            if (user.user_id, post_id) in already_liked:
                continue
            already_liked.add((user.user_id, post_id))

            created_at = self._ago(30, 432000)
            batches.append((self.adapter.logged_batch([
                (likes, (post_id, user.user_id, user.username, created_at)),
                (likes_by_user, (user.user_id, post_id, created_at)),
            ]), None))
            counters.append((increment, (post_id,)))

        written = self._run(batches, "likes", progress_every=200)
        self.report.likes = sum(written)
        counters = [pair for pair, ok in zip(counters, written) if ok]
        self._run(counters, "like counters", progress_every=len(counters) or 1)
        return self.report.likes


def main() -> int:
    """Main function to orchestrate the seeding process."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    try:
        with CqlSessionAdapter.open(keyspace=None) as adapter:
            apply_schema(adapter)
            adapter.set_keyspace(config.KEYSPACE)
            Seeder(adapter).seed()
    except SocialBenchError as e:
        log.critical(f"Seeding failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
