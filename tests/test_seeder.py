"""
Tests for the synthetic data seeder.
"""

from collections import Counter
from datetime import datetime, timezone
from unittest.mock import patch

from fakes import FakeAdapter, FakeBatch
from socialbench.errors import ConnectFailed
from socialbench.seeder import Seeder, create_faker, main

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestSeeder:

    def setup_method(self):
        self.adapter = FakeAdapter()
        self.seeder = Seeder(
            self.adapter,
            faker=create_faker(1234),
            num_users=12,
            num_posts=20,
            num_comments=60,
            num_likes=80,
            now=NOW,
        )

    def test_row_counts(self):
        report = self.seeder.seed()

        assert report.users == 12 == len(self.adapter.rows("users"))
        assert report.posts == 20 == len(self.adapter.rows("posts"))
        assert report.comments == 60
        assert report.errors == 0

    def test_posts_reference_seeded_users(self):
        self.seeder.seed()

        user_ids = set(self.seeder.user_ids)
        for post in self.adapter.rows("posts"):
            assert post["user_id"] in user_ids
            assert post["is_deleted"] is False
            assert post["updated_at"] >= post["created_at"]
            assert 0 <= len(post["media_urls"]) <= 3

    def test_comment_projections_agree(self):
        self.seeder.seed()

        by_post = {row["comment_id"]: row for row in self.adapter.rows("comments_by_post")}
        by_user = {row["comment_id"]: row for row in self.adapter.rows("comments_by_user")}
        assert set(by_post) == set(by_user)
        assert len(by_post) == 60

        for comment_id, row in by_post.items():
            other = by_user[comment_id]
            assert (row["post_id"], row["user_id"], row["content"]) == (
                other["post_id"], other["user_id"], other["content"],
            )
            assert row["username"] == self.seeder.users[row["user_id"]].username
            assert row["created_at"] <= NOW

    def test_comment_counters_match_rows(self):
        self.seeder.seed()

        per_post = Counter(row["post_id"] for row in self.adapter.rows("comments_by_post"))
        for post_id, count in per_post.items():
            assert self.adapter.counters[post_id]["comment_count"] == count
        assert self.adapter.counter_total("comment_count") == 60

    def test_likes_are_unique_per_user_and_post(self):
        report = self.seeder.seed()

        likes = self.adapter.rows("post_likes")
        assert report.likes == len(likes) <= 80
        assert len({(row["user_id"], row["post_id"]) for row in likes}) == len(likes)
        assert len(self.adapter.rows("post_likes_by_user")) == len(likes)
        assert self.adapter.counter_total("like_count") == len(likes)

    def test_failed_writes_are_tallied(self):
        # Fail every comment batch; users, posts and likes still go through.
        self.adapter.fail_concurrent = lambda statement: (
            isinstance(statement, FakeBatch) and "comments_by_post" in statement.tables
        )

        report = self.seeder.seed()

        assert report.comments == 0
        assert report.errors == 60
        assert self.adapter.rows("comments_by_post") == []
        assert self.adapter.counter_total("comment_count") == 0
        assert report.likes > 0
        assert self.adapter.counter_total("like_count") == report.likes

    def test_failed_likes_are_not_counted(self):
        # Every other like batch fails.
        attempts = {"n": 0}

        def every_other_like(statement):
            if isinstance(statement, FakeBatch) and "post_likes" in statement.tables:
                attempts["n"] += 1
                return attempts["n"] % 2 == 0
            return False

        self.adapter.fail_concurrent = every_other_like
        report = self.seeder.seed()

        likes = self.adapter.rows("post_likes")
        assert report.likes == len(likes)
        assert report.errors == attempts["n"] // 2
        assert self.adapter.counter_total("like_count") == len(likes)
        per_post = Counter(row["post_id"] for row in likes)
        for post_id, count in per_post.items():
            assert self.adapter.counters[post_id]["like_count"] == count

    def test_no_users_skips_the_rest(self):
        seeder = Seeder(self.adapter, faker=create_faker(1), num_users=0, num_posts=5, now=NOW)
        report = seeder.seed()

        assert (report.users, report.posts, report.comments, report.likes) == (0, 0, 0, 0)
        assert self.adapter.rows("posts") == []

    def test_seeded_faker_is_reproducible(self):
        a, b = create_faker(99), create_faker(99)
        assert [a.user_name() for _ in range(5)] == [b.user_name() for _ in range(5)]


class TestMain:

    @patch('socialbench.seeder.CqlSessionAdapter.open')
    def test_connect_failure(self, mock_open, caplog):
        mock_open.side_effect = ConnectFailed("refused")

        assert main() == 1
        assert "Seeding failed: refused" in caplog.text
