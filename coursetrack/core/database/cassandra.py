"""Cassandra cluster, session and schema management.

Number claims and versioned progress writes are lightweight transactions, so
the session's default execution profile carries a serial consistency level
alongside the regular one.
"""

import structlog
from cassandra import ConsistencyLevel
from cassandra.auth import PlainTextAuthProvider
from cassandra.cluster import EXEC_PROFILE_DEFAULT, Cluster, ExecutionProfile, Session
from cassandra.policies import DCAwareRoundRobinPolicy, TokenAwarePolicy

from coursetrack.config.settings import Settings, get_settings
from coursetrack.courses.models import COURSES_TABLES_CQL
from coursetrack.progress.models import PROGRESS_TABLES_CQL


logger = structlog.get_logger(__name__)

# Table groups created by init_schema, in order
SCHEMA: dict[str, list[str]] = {
    "courses": COURSES_TABLES_CQL,
    "progress": PROGRESS_TABLES_CQL,
}


def build_execution_profile(settings: Settings) -> ExecutionProfile:
    """Default profile: token-aware routing in the local DC and configured consistency."""
    return ExecutionProfile(
        load_balancing_policy=TokenAwarePolicy(
            DCAwareRoundRobinPolicy(local_dc=settings.cassandra_local_datacenter)
        ),
        consistency_level=ConsistencyLevel.name_to_value[settings.cassandra_consistency],
        serial_consistency_level=ConsistencyLevel.name_to_value[
            settings.cassandra_serial_consistency
        ],
        request_timeout=settings.cassandra_request_timeout,
    )


class CassandraConnection:
    """Process-wide cluster and session."""

    _cluster: Cluster | None = None
    _session: Session | None = None

    @classmethod
    def connect(cls, settings: Settings | None = None) -> Session:
        """Connect once; later calls return the same session.

        Raises:
            ConnectionError: If no contact point can be reached
        """
        if cls._session is not None:
            return cls._session

        settings = settings or get_settings()

        auth_provider = None
        if settings.cassandra_username and settings.cassandra_password:
            auth_provider = PlainTextAuthProvider(
                username=settings.cassandra_username,
                password=settings.cassandra_password,
            )

        cluster = Cluster(
            contact_points=settings.cassandra_hosts,
            port=settings.cassandra_port,
            auth_provider=auth_provider,
            execution_profiles={EXEC_PROFILE_DEFAULT: build_execution_profile(settings)},
            connect_timeout=settings.cassandra_connect_timeout,
        )

        try:
            session = cluster.connect()
        except Exception as e:
            logger.error(
                "cassandra_connection_failed",
                hosts=settings.cassandra_hosts,
                error=str(e),
            )
            cluster.shutdown()
            raise ConnectionError(f"Failed to connect to Cassandra: {e}") from e

        cls._cluster, cls._session = cluster, session
        logger.info(
            "cassandra_connected",
            hosts=settings.cassandra_hosts,
            datacenter=settings.cassandra_local_datacenter,
        )
        return session

    @classmethod
    def get_session(cls) -> Session:
        """Get the active session, connecting if necessary."""
        return cls._session or cls.connect()

    @classmethod
    def disconnect(cls) -> None:
        """Shut down session and cluster."""
        if cls._session is not None:
            cls._session.shutdown()
        if cls._cluster is not None:
            cls._cluster.shutdown()
        cls._session = cls._cluster = None
        logger.info("cassandra_disconnected")

    @classmethod
    def is_connected(cls) -> bool:
        return cls._session is not None and not cls._session.is_shutdown


def get_cassandra_session() -> Session:
    """Get Cassandra session."""
    return CassandraConnection.get_session()


def init_keyspace(session: Session, settings: Settings) -> None:
    """Create the keyspace with NetworkTopologyStrategy if it does not exist."""
    session.execute(
        f"CREATE KEYSPACE IF NOT EXISTS {settings.cassandra_keyspace} "
        f"WITH replication = {{'class': 'NetworkTopologyStrategy', "
        f"'{settings.cassandra_local_datacenter}': {settings.cassandra_replication_factor}}} "
        f"AND durable_writes = true"
    )
    logger.info(
        "keyspace_ready",
        keyspace=settings.cassandra_keyspace,
        replication_factor=settings.cassandra_replication_factor,
    )


def init_schema(session: Session, keyspace: str) -> None:
    """Create every content and progress table that does not exist yet."""
    for group, statements in SCHEMA.items():
        for cql_template in statements:
            session.execute(cql_template.format(keyspace=keyspace))
        logger.info("tables_ready", group=group, tables=len(statements))


def init_cassandra(settings: Settings | None = None) -> Session:
    """Connect, then create keyspace and tables as needed.

    Returns:
        Session bound to the engine keyspace
    """
    settings = settings or get_settings()

    session = CassandraConnection.connect(settings)
    init_keyspace(session, settings)
    session.set_keyspace(settings.cassandra_keyspace)
    init_schema(session, settings.cassandra_keyspace)

    return session


def shutdown_cassandra() -> None:
    """Shutdown Cassandra connection."""
    CassandraConnection.disconnect()
