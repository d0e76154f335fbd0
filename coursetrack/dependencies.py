"""Service wiring.

Builds the engine services on top of one Cassandra session:

    session = init_cassandra(settings)
    services = build_services(session, settings)
    services.tracker.update_lecture_progress(user_id, course_id, lecture_id, is_completed=True)
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

from coursetrack.config.settings import Settings, get_settings
from coursetrack.courses.reorder import ReorderCoordinator
from coursetrack.courses.service import ContentService
from coursetrack.courses.stats import StatsAggregator
from coursetrack.courses.store import CassandraContentStore, ContentStore
from coursetrack.progress.service import ProgressTracker
from coursetrack.progress.store import CassandraProgressStore, ProgressStore


if TYPE_CHECKING:
    from cassandra.cluster import Session


@dataclass
class Services:
    """Engine services sharing one pair of stores."""

    content_store: ContentStore
    progress_store: ProgressStore
    stats: StatsAggregator
    content: ContentService
    reorder: ReorderCoordinator
    tracker: ProgressTracker


def wire_services(
    content_store: ContentStore,
    progress_store: ProgressStore,
    settings: Settings | None = None,
) -> Services:
    """Build every service on top of the given stores."""
    settings = settings or get_settings()
    stats = StatsAggregator(content_store)
    return Services(
        content_store=content_store,
        progress_store=progress_store,
        stats=stats,
        content=ContentService(content_store, stats, settings),
        reorder=ReorderCoordinator(content_store, stats, settings),
        tracker=ProgressTracker(content_store, progress_store, settings),
    )


def build_services(session: "Session", settings: Settings | None = None) -> Services:
    """Build every service on Cassandra-backed stores."""
    settings = settings or get_settings()
    keyspace = settings.cassandra_keyspace
    return wire_services(
        CassandraContentStore(session, keyspace),
        CassandraProgressStore(session, keyspace),
        settings,
    )
