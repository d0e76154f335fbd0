# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Progress persistence.

``ProgressStore`` is the contract the tracker consumes. Writes are guarded by
the record's ``version``: a write based on a version other than the stored
one raises ``StaleVersionError`` and nothing is written.

``CassandraProgressStore`` implements the guard with lightweight
transactions (``IF NOT EXISTS`` for the first write, ``IF version = ?`` for
every later one).
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog

from coursetrack.core.errors import StaleVersionError

from .models import CourseProgress


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ProgressStore(Protocol):
    """Persistence contract for progress records."""

    def get(self, user_id: UUID, course_id: UUID) -> CourseProgress | None: ...

    def upsert(self, progress: CourseProgress, expected_version: int) -> None:
        """Write the whole record if the stored version equals ``expected_version``.

        ``expected_version`` 0 means the record must not exist yet. On success
        ``progress.version`` becomes ``expected_version + 1``.

        Raises:
            StaleVersionError: If the stored version differs
        """
        ...

    def delete(self, user_id: UUID, course_id: UUID) -> None: ...

    def list_by_user(self, user_id: UUID) -> list[CourseProgress]: ...

    def list_by_course(self, course_id: UUID) -> list[CourseProgress]: ...


# ==============================================================================
# Cassandra Store
# ==============================================================================


class CassandraProgressStore:
    """Cassandra-backed ``ProgressStore``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ?
        """)
        self._get_progress_by_user = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_progress WHERE user_id = ?"
        )
        self._insert_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_progress
            (user_id, course_id, snapshot, completed_modules, total_modules,
             completed_lectures, total_lectures, progress_percentage, is_completed,
             completed_at, last_accessed_at, created_at, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._update_progress = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_progress
            SET snapshot = ?, completed_modules = ?, total_modules = ?,
                completed_lectures = ?, total_lectures = ?, progress_percentage = ?,
                is_completed = ?, completed_at = ?, last_accessed_at = ?,
                created_at = ?, version = ?
            WHERE user_id = ? AND course_id = ?
            IF version = ?
        """)
        self._delete_progress = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.course_progress
            WHERE user_id = ? AND course_id = ? IF EXISTS
        """)

        # Lookup by course
        self._insert_progress_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.progress_by_course (course_id, user_id)
            VALUES (?, ?)
        """)
        self._delete_progress_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.progress_by_course
            WHERE course_id = ? AND user_id = ?
        """)
        self._get_users_by_course = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.progress_by_course WHERE course_id = ?"
        )

    def get(self, user_id: UUID, course_id: UUID) -> CourseProgress | None:
        """Get progress of a user in a course."""
        row = self.session.execute(self._get_progress, [user_id, course_id]).one()
        return CourseProgress.from_row(row) if row else None

    def upsert(self, progress: CourseProgress, expected_version: int) -> None:
        """Write the record guarded by its version."""
        new_version = expected_version + 1
        values = [
            progress.snapshot_json(),
            progress.completed_modules,
            progress.total_modules,
            progress.completed_lectures,
            progress.total_lectures,
            progress.progress_percentage,
            progress.is_completed,
            progress.completed_at,
            progress.last_accessed_at,
            progress.created_at,
        ]

        if expected_version == 0:
            result = self.session.execute(
                self._insert_progress,
                [progress.user_id, progress.course_id, *values, new_version],
            )
        else:
            result = self.session.execute(
                self._update_progress,
                [*values, new_version, progress.user_id, progress.course_id, expected_version],
            )

        if not result.was_applied:
            actual = getattr(result.one(), "version", None)
            logger.info(
                "progress_write_rejected",
                user_id=str(progress.user_id),
                course_id=str(progress.course_id),
                expected_version=expected_version,
                actual_version=actual,
            )
            raise StaleVersionError(expected_version, actual)

        if expected_version == 0:
            self.session.execute(
                self._insert_progress_by_course, [progress.course_id, progress.user_id]
            )
        progress.version = new_version

    def delete(self, user_id: UUID, course_id: UUID) -> None:
        """Delete progress of a user in a course."""
        self.session.execute(self._delete_progress, [user_id, course_id])
        self.session.execute(self._delete_progress_by_course, [course_id, user_id])

    def list_by_user(self, user_id: UUID) -> list[CourseProgress]:
        """Get every progress record of a user."""
        rows = self.session.execute(self._get_progress_by_user, [user_id])
        return [CourseProgress.from_row(row) for row in rows]

    def list_by_course(self, course_id: UUID) -> list[CourseProgress]:
        """Get every progress record of a course."""
        rows = self.session.execute(self._get_users_by_course, [course_id])

        records = []
        for row in rows:
            progress = self.get(row.user_id, course_id)
            if progress is not None:
                records.append(progress)
        return records
