"""
socialbench - benchmark and demo harness for a social media dataset on Cassandra.

Four programs share this package:

- ``socialbench-schema``: create the keyspace and tables
- ``socialbench-seed``: fill them with synthetic users, posts, comments and likes
- ``socialbench-load``: drive a steady comment and like write load
- ``socialbench-analyze``: print a read-side report

Basic Usage:
    ```python
    from socialbench import CqlSessionAdapter, LoadGenerator

    with CqlSessionAdapter.open() as adapter:
        generator = LoadGenerator(adapter, comment_rate=20, like_rate=50)
        generator.initialize()
        generator.run(duration=60)
    ```
"""

from .db import CqlSessionAdapter
from .errors import (
    SocialBenchError,
    ConnectFailed,
    PrepareFailed,
    QueryFailed,
    NoFixtureData,
)
from .events import CommentEvent, EventFactory, LikeEvent
from .loadgen import GeneratorState, LoadGenerator
from .pipeline import EventCounters, WritePipeline, prepare_statements
from .references import ReferenceCache, UserRef
from .scheduler import FixedRateScheduler

__version__ = "0.1.0"

__all__ = [
    "CqlSessionAdapter",
    "SocialBenchError",
    "ConnectFailed",
    "PrepareFailed",
    "QueryFailed",
    "NoFixtureData",
    "CommentEvent",
    "LikeEvent",
    "EventFactory",
    "GeneratorState",
    "LoadGenerator",
    "EventCounters",
    "WritePipeline",
    "prepare_statements",
    "ReferenceCache",
    "UserRef",
    "FixedRateScheduler",
    "__version__",
]
