"""Database connection module for coursetrack."""

from coursetrack.core.database.cassandra import (
    CassandraConnection,
    build_execution_profile,
    get_cassandra_session,
    init_cassandra,
    init_keyspace,
    init_schema,
    shutdown_cassandra,
)


__all__ = [
    "CassandraConnection",
    "build_execution_profile",
    "get_cassandra_session",
    "init_cassandra",
    "init_keyspace",
    "init_schema",
    "shutdown_cassandra",
]
