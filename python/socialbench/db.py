"""
Thin wrapper around the DataStax driver session.

The rest of socialbench talks to the cluster only through
:class:`CqlSessionAdapter`, which keeps driver exceptions from leaking
into callers during startup and gives the write path a fire-and-forget
submission call.
"""

import logging
import time
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from cassandra.cluster import Cluster, ExecutionProfile, EXEC_PROFILE_DEFAULT
from cassandra.concurrent import execute_concurrent
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy
from cassandra.query import BatchStatement, BatchType

from . import config
from .errors import ConnectFailed, PrepareFailed, QueryFailed

log = logging.getLogger(__name__)


def create_cluster(
    contact_points: Sequence[str],
    port: int,
    local_datacenter: str,
    request_timeout: float = config.REQUEST_TIMEOUT,
) -> Cluster:
    """
    Create a Cluster routed to the local datacenter.

    Args:
        contact_points: Hostnames or addresses of the initial nodes
        port: Native protocol port
        local_datacenter: Datacenter treated as local by the load balancer
        request_timeout: Default request timeout in seconds

    Returns:
        Configured Cluster instance (not connected)
    """
    profile = ExecutionProfile(
        load_balancing_policy=TokenAwarePolicy(DCAwareRoundRobinPolicy(local_dc=local_datacenter)),
        request_timeout=request_timeout,
    )
    return Cluster(
        contact_points=list(contact_points),
        port=port,
        execution_profiles={EXEC_PROFILE_DEFAULT: profile},
    )


class CqlSessionAdapter:
    """
    A connected session plus the cluster object that owns it.

    Use :meth:`open` to build one. The adapter is a context manager and
    releases the cluster on every exit path.
    """

    def __init__(self, cluster: Cluster, session: Any):
        self.cluster = cluster
        self.session = session
        self._closed = False

    @classmethod
    def open(
        cls,
        contact_points: Optional[Sequence[str]] = None,
        local_datacenter: str = config.LOCAL_DATACENTER,
        keyspace: Optional[str] = config.KEYSPACE,
        port: int = config.CASSANDRA_PORT,
        retries: int = config.CONNECT_RETRIES,
        retry_delay: float = config.CONNECT_RETRY_DELAY,
    ) -> "CqlSessionAdapter":
        """
        Connect to the cluster, retrying a few times before giving up.

        Args:
            contact_points: Initial nodes, defaults to config.CASSANDRA_HOSTS
            local_datacenter: Local datacenter name
            keyspace: Keyspace to bind the session to, or None for no keyspace
            port: Native protocol port
            retries: Connection attempts before failing
            retry_delay: Seconds to wait between attempts

        Raises:
            ConnectFailed: network, authentication or keyspace errors
        """
        contact_points = list(contact_points or config.CASSANDRA_HOSTS)
        log.info(f"Connecting to Cassandra at {contact_points}:{port} (dc={local_datacenter})...")
        cluster = create_cluster(contact_points, port, local_datacenter)

        attempts = max(1, retries)
        for i in range(attempts):
            try:
                session = cluster.connect(keyspace)
                log.info(f"Successfully connected to Cassandra (keyspace={keyspace}).")
                return cls(cluster, session)
            except Exception as e:
                log.warning(f"Connection attempt {i+1}/{attempts} failed: {e}")
                if i < attempts - 1:
                    time.sleep(retry_delay)
                else:
                    cluster.shutdown()
                    raise ConnectFailed(
                        f"Could not connect to {contact_points}:{port} keyspace={keyspace}: {e}"
                    ) from e

    def prepare(self, cql: str):
        """Prepare a statement server-side."""
        try:
            return self.session.prepare(cql)
        except Exception as e:
            raise PrepareFailed(f"Failed to prepare '{cql}': {e}") from e

    def execute(self, statement, params=None) -> List[Any]:
        """Run a statement synchronously and return all rows."""
        try:
            return list(self.session.execute(statement, params))
        except Exception as e:
            raise QueryFailed(f"Query failed: {e}") from e

    def execute_async(self, statement, params=None):
        """
        Submit a statement without waiting for it.

        The returned future may be dropped; failures that arrive later are
        logged from its errback.
        """
        future = self.session.execute_async(statement, params)
        future.add_errback(_log_async_failure, statement)
        return future

    def logged_batch(self, entries: Iterable[Tuple[Any, Sequence[Any]]]) -> BatchStatement:
        """Group (prepared statement, params) pairs into one LOGGED batch."""
        batch = BatchStatement(batch_type=BatchType.LOGGED)
        for statement, params in entries:
            batch.add(statement, params)
        return batch

    def execute_concurrent(self, statements_and_params, concurrency: int = config.SEED_CONCURRENCY):
        """
        Run many statements with bounded concurrency.

        Returns:
            List of (success, result_or_exception) tuples in submission order
        """
        return execute_concurrent(
            self.session,
            statements_and_params,
            concurrency=concurrency,
            raise_on_first_error=False,
        )

    def set_keyspace(self, keyspace: str):
        self.session.set_keyspace(keyspace)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self):
        """Release the session and cluster. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.cluster.shutdown()
        log.info("Cassandra connection closed.")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def _log_async_failure(exc, statement):
    query = getattr(statement, "query_string", None) or type(statement).__name__
    log.error(f"Asynchronous write failed ({query}): {exc}")
