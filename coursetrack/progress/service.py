"""Progress tracking service.

Business logic for:
- Snapshotting a course into a learner's progress record
- Lecture progress updates and the derived module/course counters
- Sequential unlock queries
- Learner and course progress statistics

Records are created lazily: reads, updates and unlock queries initialise the
record when it does not exist yet. Writes are version-checked; a concurrent
writer makes the later one fail with ``StaleVersionError`` and the caller
re-reads and retries.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from uuid import UUID

import structlog

from coursetrack.config.settings import Settings, get_settings
from coursetrack.core.context import OperationContext
from coursetrack.core.errors import CourseNotFoundError
from coursetrack.core.validation import round_half_up
from coursetrack.courses.store import ContentStore

from .models import CourseProgress, LectureState
from .schemas import (
    CourseProgressStats,
    CourseProgressSummary,
    DashboardStats,
    UpdateLectureProgressRequest,
)
from .store import ProgressStore


logger = structlog.get_logger(__name__)


class ProgressTracker:
    """Service for learner progress through courses."""

    def __init__(
        self,
        content: ContentStore,
        progress: ProgressStore,
        settings: Settings | None = None,
    ):
        self.content = content
        self.progress = progress
        self.settings = settings or get_settings()

    # ==========================================================================
    # Lifecycle
    # ==========================================================================

    def initialize_for_course(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Snapshot the active modules and lectures of a course for a learner.

        Any existing record for the learner and course is replaced.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            StaleVersionError: If the record changed while it was replaced
        """
        with OperationContext("initialize_progress", user_id=user_id, course_id=course_id):
            if self.content.find_course(course_id) is None:
                raise CourseNotFoundError

            hierarchy = [
                (
                    module.id,
                    [
                        lecture.id
                        for lecture in self.content.find_lectures_by_module(
                            module.id, active_only=True
                        )
                    ],
                )
                for module in self.content.find_modules_by_course(
                    course_id, active_only=True
                )
            ]
            progress = CourseProgress.initialize(user_id, course_id, hierarchy)

            existing = self.progress.get(user_id, course_id)
            self.progress.upsert(progress, existing.version if existing else 0)

            logger.info(
                "progress_initialized",
                total_modules=progress.total_modules,
                total_lectures=progress.total_lectures,
                replaced=existing is not None,
            )
            return progress

    def get_progress(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Get a learner's progress, initialising it when absent.

        Raises:
            CourseNotFoundError: If there is no record and the course doesn't exist
        """
        progress = self.progress.get(user_id, course_id)
        if progress is None:
            progress = self.initialize_for_course(user_id, course_id)
        return progress

    def reset(self, user_id: UUID, course_id: UUID) -> CourseProgress:
        """Discard a learner's progress and start over from a fresh snapshot."""
        with OperationContext("reset_progress", user_id=user_id, course_id=course_id):
            self.progress.delete(user_id, course_id)
            logger.info("progress_deleted")
            return self.initialize_for_course(user_id, course_id)

    # ==========================================================================
    # Updates
    # ==========================================================================

    def update_lecture_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        lecture_id: UUID,
        watch_time: int | None = None,
        is_completed: bool | None = None,
    ) -> CourseProgress:
        """Record watch time and/or completion of one lecture.

        Raises:
            CourseNotFoundError: If there is no record and the course doesn't exist
            LectureNotFoundError: If the lecture is not in the snapshot
            StaleVersionError: If the record changed since it was read
        """
        with OperationContext(
            "update_lecture_progress", user_id=user_id, course_id=course_id
        ):
            progress = self.get_progress(user_id, course_id)
            expected_version = progress.version

            progress.apply_lecture_update(lecture_id, watch_time, is_completed)
            self.progress.upsert(progress, expected_version)

            logger.info(
                "lecture_progress_updated",
                lecture_id=str(lecture_id),
                completed_lectures=progress.completed_lectures,
                progress_percentage=progress.progress_percentage,
                is_completed=progress.is_completed,
            )
            return progress

    def bulk_update_progress(
        self,
        user_id: UUID,
        course_id: UUID,
        updates: Iterable[UpdateLectureProgressRequest],
    ) -> CourseProgress:
        """Apply several lecture updates in order and persist them together.

        Every lecture is checked before anything is written.

        Raises:
            CourseNotFoundError: If there is no record and the course doesn't exist
            LectureNotFoundError: If any lecture is not in the snapshot
            StaleVersionError: If the record changed since it was read
        """
        with OperationContext(
            "bulk_update_progress", user_id=user_id, course_id=course_id
        ):
            progress = self.get_progress(user_id, course_id)
            expected_version = progress.version
            updates = list(updates)

            for update in updates:
                progress.get_lecture(update.lecture_id)

            now = datetime.now(UTC)
            for update in updates:
                progress.apply_lecture_update(
                    update.lecture_id, update.watch_time, update.is_completed, now
                )
            self.progress.upsert(progress, expected_version)

            logger.info(
                "lecture_progress_bulk_updated",
                updates=len(updates),
                completed_lectures=progress.completed_lectures,
                progress_percentage=progress.progress_percentage,
            )
            return progress

    # ==========================================================================
    # Sequential Unlock
    # ==========================================================================

    def get_next_unlocked_lecture(self, user_id: UUID, course_id: UUID) -> UUID | None:
        """Lecture the learner should take next; None when all are completed."""
        return self.get_progress(user_id, course_id).next_unlocked_lecture_id()

    def is_lecture_unlocked(
        self, user_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> bool:
        """Whether the learner may open a lecture."""
        return self.get_progress(user_id, course_id).is_lecture_unlocked(lecture_id)

    def lecture_state(
        self, user_id: UUID, course_id: UUID, lecture_id: UUID
    ) -> LectureState:
        """Locked, unlocked or completed.

        Raises:
            LectureNotFoundError: If the lecture is not in the snapshot
        """
        return self.get_progress(user_id, course_id).lecture_state(lecture_id)

    # ==========================================================================
    # Statistics
    # ==========================================================================

    def get_user_course_list(self, user_id: UUID) -> list[CourseProgress]:
        """All progress records of a learner, most recently accessed first."""
        records = self.progress.list_by_user(user_id)
        return sorted(records, key=lambda p: p.last_accessed_at, reverse=True)

    def get_course_progress_stats(self, course_id: UUID) -> CourseProgressStats:
        """Aggregate progress of every learner in a course."""
        records = self.progress.list_by_course(course_id)
        if not records:
            return CourseProgressStats()

        window_start = datetime.now(UTC) - timedelta(
            days=self.settings.progress_active_window_days
        )
        return CourseProgressStats(
            total_users=len(records),
            completed_users=sum(1 for p in records if p.is_completed),
            average_progress=round_half_up(
                sum(p.progress_percentage for p in records), len(records)
            ),
            active_users=sum(1 for p in records if p.last_accessed_at >= window_start),
        )

    def get_user_dashboard_stats(self, user_id: UUID) -> DashboardStats:
        """Summary of a learner's progress across all their courses."""
        records = self.get_user_course_list(user_id)
        if not records:
            return DashboardStats()

        # Watch times are stored in seconds
        watch_seconds = sum(p.total_watch_time for p in records)
        limit = self.settings.dashboard_recent_activity_limit

        return DashboardStats(
            total_courses=len(records),
            completed_courses=sum(1 for p in records if p.is_completed),
            in_progress_courses=sum(
                1 for p in records if not p.is_completed and p.completed_lectures > 0
            ),
            total_watch_time=round_half_up(watch_seconds, 60),
            average_progress=round_half_up(
                sum(p.progress_percentage for p in records), len(records)
            ),
            recent_activity=[CourseProgressSummary.from_entity(p) for p in records[:limit]],
        )
