"""
Tests for the driver-backed session adapter.
"""

import logging
from unittest.mock import MagicMock, Mock, patch

import pytest
from cassandra.cluster import NoHostAvailable
from cassandra.query import BatchType

from socialbench.db import CqlSessionAdapter, _log_async_failure
from socialbench.errors import ConnectFailed, PrepareFailed, QueryFailed


class TestOpen:
    """Test connecting to the cluster."""

    @patch('socialbench.db.Cluster')
    def test_open_connects_to_keyspace(self, mock_cluster_cls):
        """Test a successful connect binds the session to the keyspace."""
        cluster = mock_cluster_cls.return_value

        adapter = CqlSessionAdapter.open(
            contact_points=["10.0.0.1"], local_datacenter="dc1", keyspace="social_media", port=9142,
        )

        kwargs = mock_cluster_cls.call_args.kwargs
        assert kwargs["contact_points"] == ["10.0.0.1"]
        assert kwargs["port"] == 9142
        cluster.connect.assert_called_once_with("social_media")
        assert adapter.session is cluster.connect.return_value
        assert adapter.cluster is cluster

    @patch('socialbench.db.time.sleep')
    @patch('socialbench.db.Cluster')
    def test_open_retries_then_fails(self, mock_cluster_cls, mock_sleep):
        """Test exhausting retries raises ConnectFailed and releases the cluster."""
        cluster = mock_cluster_cls.return_value
        cluster.connect.side_effect = NoHostAvailable("Unable to connect", {})

        with pytest.raises(ConnectFailed) as exc_info:
            CqlSessionAdapter.open(contact_points=["localhost"], retries=3, retry_delay=0.5)

        assert cluster.connect.call_count == 3
        assert mock_sleep.call_count == 2
        cluster.shutdown.assert_called_once()
        assert isinstance(exc_info.value.__cause__, NoHostAvailable)

    @patch('socialbench.db.time.sleep')
    @patch('socialbench.db.Cluster')
    def test_open_recovers_after_transient_failure(self, mock_cluster_cls, mock_sleep):
        """Test a later attempt can still succeed."""
        cluster = mock_cluster_cls.return_value
        session = Mock()
        cluster.connect.side_effect = [NoHostAvailable("down", {}), session]

        adapter = CqlSessionAdapter.open(retries=3, retry_delay=0)

        assert adapter.session is session
        cluster.shutdown.assert_not_called()

    @patch('socialbench.db.Cluster')
    def test_open_without_keyspace(self, mock_cluster_cls):
        """Test the schema initializer can open a keyspace-less session."""
        CqlSessionAdapter.open(keyspace=None)
        mock_cluster_cls.return_value.connect.assert_called_once_with(None)


class TestStatements:
    """Test prepare/execute wrappers."""

    def setup_method(self):
        self.cluster = Mock()
        self.session = Mock()
        self.adapter = CqlSessionAdapter(self.cluster, self.session)

    def test_prepare_returns_driver_statement(self):
        prepared = self.adapter.prepare("SELECT * FROM users")
        assert prepared is self.session.prepare.return_value

    def test_prepare_failure(self):
        """Test driver errors surface as PrepareFailed."""
        self.session.prepare.side_effect = RuntimeError("unconfigured table")

        with pytest.raises(PrepareFailed) as exc_info:
            self.adapter.prepare("SELECT * FROM nope")

        assert "nope" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_execute_materializes_rows(self):
        self.session.execute.return_value = iter(["row1", "row2"])

        rows = self.adapter.execute("SELECT post_id FROM posts LIMIT 2")

        assert rows == ["row1", "row2"]
        self.session.execute.assert_called_once_with("SELECT post_id FROM posts LIMIT 2", None)

    def test_execute_failure(self):
        self.session.execute.side_effect = RuntimeError("timeout")

        with pytest.raises(QueryFailed):
            self.adapter.execute("SELECT * FROM users")

    def test_execute_async_attaches_errback(self):
        """Test async submission returns the future with a logging errback."""
        statement = Mock()
        future = self.adapter.execute_async(statement, ("a",))

        self.session.execute_async.assert_called_once_with(statement, ("a",))
        assert future is self.session.execute_async.return_value
        future.add_errback.assert_called_once_with(_log_async_failure, statement)

    def test_async_failure_is_logged(self, caplog):
        statement = Mock(query_string="UPDATE post_metrics SET like_count = like_count + 1 WHERE post_id = ?")

        with caplog.at_level(logging.ERROR, logger="socialbench.db"):
            _log_async_failure(RuntimeError("write timeout"), statement)

        assert "write timeout" in caplog.text
        assert "post_metrics" in caplog.text

    @patch('socialbench.db.BatchStatement')
    def test_logged_batch(self, mock_batch_cls):
        """Test batches are LOGGED and keep statement order."""
        first, second = Mock(), Mock()

        batch = self.adapter.logged_batch([(first, (1,)), (second, (2,))])

        mock_batch_cls.assert_called_once_with(batch_type=BatchType.LOGGED)
        assert batch.add.call_args_list[0].args == (first, (1,))
        assert batch.add.call_args_list[1].args == (second, (2,))

    @patch('socialbench.db.execute_concurrent')
    def test_execute_concurrent_collects_errors(self, mock_execute_concurrent):
        pairs = [(Mock(), (1,))]
        self.adapter.execute_concurrent(pairs, concurrency=7)

        mock_execute_concurrent.assert_called_once_with(
            self.session, pairs, concurrency=7, raise_on_first_error=False,
        )


class TestLifecycle:
    """Test release of the cluster."""

    def test_close_is_idempotent(self):
        cluster = Mock()
        adapter = CqlSessionAdapter(cluster, Mock())

        adapter.close()
        adapter.close()

        cluster.shutdown.assert_called_once()
        assert adapter.closed

    def test_context_manager_closes_on_error(self):
        """Test the cluster is released even when the body raises."""
        cluster = MagicMock()

        with pytest.raises(ValueError):
            with CqlSessionAdapter(cluster, Mock()):
                raise ValueError("boom")

        cluster.shutdown.assert_called_once()
