#!/usr/bin/env python3
"""
Read-side report over the social media keyspace.

Pulls bounded result sets into pandas DataFrames and prints record counts,
the most liked and most commented posts, the most active commenters, and
comment activity by hour of day.

Usage:
    socialbench-analyze
"""

import logging
import sys
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional, Sequence

import pandas as pd

from . import config
from .db import CqlSessionAdapter
from .errors import SocialBenchError

log = logging.getLogger(__name__)

TOP_N = 5
SCAN_LIMIT = 1000
HISTOGRAM_WIDTH = 50


def rows_to_frame(rows: Iterable[Any], columns: Sequence[str]) -> pd.DataFrame:
    """Build a DataFrame from driver rows, keeping the column order even when empty."""
    records = [tuple(getattr(row, col) for col in columns) for row in rows]
    return pd.DataFrame.from_records(records, columns=list(columns))


def top_counts(frame: pd.DataFrame, key: str, value: str, n: int = TOP_N) -> pd.DataFrame:
    """Rows with the ``n`` largest ``value``; null counters count as zero."""
    if frame.empty:
        return frame
    frame = frame.assign(**{value: frame[value].fillna(0).astype("int64")})
    return frame.nlargest(n, value)[[key, value]].reset_index(drop=True)


def most_frequent(frame: pd.DataFrame, key: str, n: int = TOP_N) -> pd.Series:
    """Occurrences per ``key``, largest first."""
    return frame[key].value_counts().head(n)


def activity_by_hour(created_at: pd.Series, tz: Optional[tzinfo] = None) -> pd.Series:
    """
    Count timestamps per hour of day in ``tz`` (local time by default).

    The driver returns naive UTC datetimes, so they are localized to UTC
    before conversion.

    Returns:
        Series indexed 0..23
    """
    tz = tz or datetime.now().astimezone().tzinfo
    hours = pd.to_datetime(created_at, utc=True).dt.tz_convert(tz).dt.hour
    return hours.value_counts().reindex(range(24), fill_value=0).astype("int64")


def hour_label(hour: int) -> str:
    """12AM, 1AM, ... 11PM."""
    return datetime(2023, 1, 1, hour).strftime("%I%p").lstrip("0")


def render_histogram(counts: pd.Series, width: int = HISTOGRAM_WIDTH) -> List[str]:
    return [
        f"{hour_label(hour)}: {'#' * min(width, int(count))} ({int(count)} comments)"
        for hour, count in counts.items()
    ]


def truncate(text: Optional[str], max_length: int) -> str:
    if text is None:
        return "null"
    return text if len(text) <= max_length else text[:max_length] + "..."


class DataAnalyzer:
    """Runs the analytical queries and prints the report."""

    def __init__(self, adapter, out=None):
        self.adapter = adapter
        self.out = out or sys.stdout
        self._post_by_id = adapter.prepare("SELECT user_id, content FROM posts WHERE post_id = ?")
        self._user_by_id = adapter.prepare("SELECT username FROM users WHERE user_id = ?")
        self._metrics_by_post = adapter.prepare(
            "SELECT comment_count FROM post_metrics WHERE post_id = ?"
        )

    def _print(self, line: str = ""):
        print(line, file=self.out)

    def _scalar(self, cql: str) -> int:
        rows = self.adapter.execute(cql)
        if not rows or rows[0][0] is None:
            return 0
        return int(rows[0][0])

    def username(self, user_id) -> str:
        rows = self.adapter.execute(self._user_by_id, (user_id,))
        return rows[0].username if rows and rows[0].username is not None else "Unknown"

    def post(self, post_id) -> Optional[Any]:
        rows = self.adapter.execute(self._post_by_id, (post_id,))
        return rows[0] if rows else None

    def analyze(self):
        self._print("\n*** SOCIAL MEDIA DATA ANALYSIS ***\n")
        self.count_records()
        self.most_liked_posts()
        self.most_active_commenters()
        self.most_commented_posts()
        self.comment_activity_by_hour()

    def count_records(self) -> Dict[str, int]:
        self._print("=== RECORD COUNTS ===")
        counts = {
            "Users": self._scalar("SELECT COUNT(*) FROM users"),
            "Posts": self._scalar("SELECT COUNT(*) FROM posts"),
            "Comments": self._scalar("SELECT SUM(comment_count) FROM post_metrics"),
            "Likes": self._scalar("SELECT SUM(like_count) FROM post_metrics"),
        }
        for label, value in counts.items():
            self._print(f"{label}: {value}")
        self._print()
        return counts

    def _print_post(self, post_id, count: int, noun: str):
        post = self.post(post_id)
        if post is None:
            return
        self._print(f"Post by {self.username(post.user_id)} has {count} {noun}")
        self._print(f"Content: {truncate(post.content, 50)}")
        self._print()

    def most_liked_posts(self) -> pd.DataFrame:
        # Only the first page of post_metrics is ranked, not the whole table.
        self._print("=== MOST LIKED POSTS ===")
        metrics = rows_to_frame(
            self.adapter.execute("SELECT post_id, like_count FROM post_metrics LIMIT 10"),
            ["post_id", "like_count"],
        )
        top = top_counts(metrics, "post_id", "like_count")
        for row in top.itertuples(index=False):
            self._print_post(row.post_id, row.like_count, "likes")
        return top

    def most_active_commenters(self) -> pd.Series:
        self._print("=== MOST ACTIVE COMMENTERS ===")
        comments = rows_to_frame(
            self.adapter.execute(f"SELECT user_id FROM comments_by_user LIMIT {SCAN_LIMIT}"),
            ["user_id"],
        )
        top = most_frequent(comments, "user_id")
        for user_id, count in top.items():
            self._print(f"User {self.username(user_id)} made {count} comments")
        self._print()
        return top

    def most_commented_posts(self) -> pd.DataFrame:
        self._print("=== MOST COMMENTED POSTS ===")
        records = []
        for post_row in self.adapter.execute(f"SELECT post_id FROM posts LIMIT {SCAN_LIMIT}"):
            metrics = self.adapter.execute(self._metrics_by_post, (post_row.post_id,))
            if metrics:
                records.append((post_row.post_id, metrics[0].comment_count))
        frame = pd.DataFrame.from_records(records, columns=["post_id", "comment_count"])
        top = top_counts(frame, "post_id", "comment_count")
        for row in top.itertuples(index=False):
            self._print_post(row.post_id, row.comment_count, "comments")
        return top

    def comment_activity_by_hour(self, tz: Optional[tzinfo] = None) -> pd.Series:
        self._print("=== COMMENT ACTIVITY BY HOUR ===")
        comments = rows_to_frame(
            self.adapter.execute(f"SELECT created_at FROM comments_by_user LIMIT {SCAN_LIMIT}"),
            ["created_at"],
        )
        counts = activity_by_hour(comments["created_at"], tz)
        for line in render_histogram(counts):
            self._print(line)
        return counts


def main() -> int:
    """Main entry point."""
    logging.basicConfig(level=config.LOG_LEVEL, format=config.LOG_FORMAT)
    try:
        with CqlSessionAdapter.open() as adapter:
            DataAnalyzer(adapter).analyze()
    except SocialBenchError as e:
        log.critical(f"Analysis failed: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
