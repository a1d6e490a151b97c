"""
Exception types raised by socialbench.

Startup failures (connect, prepare, missing fixtures) are fatal to the
programs; everything raised while the load is running is handled per event.
"""


class SocialBenchError(Exception):
    """Base class for all socialbench errors."""


class ConnectFailed(SocialBenchError):
    """The cluster could not be reached, authenticated, or the keyspace is missing."""


class PrepareFailed(SocialBenchError):
    """The server rejected a statement during preparation."""


class QueryFailed(SocialBenchError):
    """A synchronous query failed."""


class NoFixtureData(SocialBenchError):
    """The users or posts table is empty; the seeder has not been run."""
