"""Tests for Cassandra connection and schema setup."""

from unittest.mock import Mock, patch

import pytest
from cassandra import ConsistencyLevel
from cassandra.cluster import Session

from coursetrack.config.settings import Settings
from coursetrack.core.database.cassandra import (
    SCHEMA,
    CassandraConnection,
    build_execution_profile,
    init_cassandra,
    init_keyspace,
    init_schema,
)


@pytest.fixture
def settings():
    return Settings(
        environment="testing",
        cassandra_keyspace="ct_test",
        cassandra_local_datacenter="dc-east",
        cassandra_replication_factor=3,
    )


@pytest.fixture(autouse=True)
def _reset_connection():
    CassandraConnection._session = None
    CassandraConnection._cluster = None
    yield
    CassandraConnection._session = None
    CassandraConnection._cluster = None


class TestExecutionProfile:
    """Tests for build_execution_profile."""

    def test_consistency_levels(self, settings):
        profile = build_execution_profile(settings)

        assert profile.consistency_level == ConsistencyLevel.LOCAL_QUORUM
        assert profile.serial_consistency_level == ConsistencyLevel.LOCAL_SERIAL
        assert profile.request_timeout == settings.cassandra_request_timeout


class TestSchema:
    """Tests for keyspace and table creation."""

    def test_keyspace_replication(self, settings):
        session = Mock(spec=Session)

        init_keyspace(session, settings)

        cql = session.execute.call_args.args[0]
        assert "CREATE KEYSPACE IF NOT EXISTS ct_test" in cql
        assert "'dc-east': 3" in cql

    def test_every_table_created(self):
        session = Mock(spec=Session)

        init_schema(session, "ct_test")

        statements = [call.args[0] for call in session.execute.call_args_list]
        assert len(statements) == sum(len(group) for group in SCHEMA.values())
        assert all("{keyspace}" not in cql for cql in statements)
        assert any("ct_test.course_progress" in cql for cql in statements)
        assert any("ct_test.lecture_numbers" in cql for cql in statements)


class TestConnection:
    """Tests for CassandraConnection."""

    def test_failure_raises_connection_error(self, settings):
        cluster = Mock()
        cluster.connect.side_effect = RuntimeError("no hosts available")

        with (
            patch("coursetrack.core.database.cassandra.Cluster", return_value=cluster),
            pytest.raises(ConnectionError, match="no hosts available"),
        ):
            CassandraConnection.connect(settings)

        cluster.shutdown.assert_called_once()
        assert CassandraConnection.is_connected() is False

    def test_init_cassandra(self, settings):
        session = Mock(spec=Session)
        session.is_shutdown = False
        cluster = Mock()
        cluster.connect.return_value = session

        with patch("coursetrack.core.database.cassandra.Cluster", return_value=cluster):
            result = init_cassandra(settings)
            again = CassandraConnection.connect(settings)

        assert result is session
        assert again is session
        assert cluster.connect.call_count == 1
        session.set_keyspace.assert_called_once_with("ct_test")
        assert CassandraConnection.is_connected() is True

    def test_disconnect(self, settings):
        session = Mock(spec=Session)
        cluster = Mock()
        cluster.connect.return_value = session

        with patch("coursetrack.core.database.cassandra.Cluster", return_value=cluster):
            CassandraConnection.connect(settings)
        CassandraConnection.disconnect()

        session.shutdown.assert_called_once()
        cluster.shutdown.assert_called_once()
        assert CassandraConnection.is_connected() is False
