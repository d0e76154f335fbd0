"""Database models for learner progress.

Cassandra table definitions for:
- Course progress: one row per (user, course) holding the nested snapshot
  as JSON plus the derived counters and an optimistic-concurrency version
- Lookup table: progress rows of a course, for course-level statistics

The snapshot mirrors the module/lecture order at initialisation time and is
indexed in memory so lecture lookups do not scan the whole document.
"""

import json
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from coursetrack.core.errors import LectureNotFoundError
from coursetrack.core.validation import percentage
from coursetrack.utils import ensure_utc_aware


class LectureState(str, Enum):
    """Sequential unlock state of one lecture."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"


class ProgressStatus(str, Enum):
    """Status of a module or of a whole progress record."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


# ==============================================================================
# Helper Functions
# ==============================================================================


def _dump_dt(dt: datetime | None) -> str | None:
    return dt.isoformat() if dt else None


def _load_dt(value: str | None) -> datetime | None:
    return ensure_utc_aware(datetime.fromisoformat(value)) if value else None


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Partition key: user_id, so a learner's course list is a single partition read
COURSE_PROGRESS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.course_progress (
    user_id UUID,
    course_id UUID,
    snapshot TEXT,
    completed_modules INT,
    total_modules INT,
    completed_lectures INT,
    total_lectures INT,
    progress_percentage INT,
    is_completed BOOLEAN,
    completed_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    created_at TIMESTAMP,
    version INT,
    PRIMARY KEY (user_id, course_id)
)
"""

# Lookup: learners with progress in a course
PROGRESS_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.progress_by_course (
    course_id UUID,
    user_id UUID,
    PRIMARY KEY (course_id, user_id)
)
"""

# All CQL statements for table setup
PROGRESS_TABLES_CQL = [
    COURSE_PROGRESS_TABLE_CQL,
    PROGRESS_BY_COURSE_TABLE_CQL,
]


# ==============================================================================
# Snapshot Entries
# ==============================================================================


class LectureProgressEntry:
    """Progress of one lecture inside the snapshot.

    Attributes:
        lecture_id: Lecture UUID
        watch_time: Seconds watched
        is_completed: Whether the learner completed the lecture
        completed_at: Completion timestamp (None while incomplete)
    """

    def __init__(
        self,
        lecture_id: UUID,
        watch_time: int = 0,
        is_completed: bool = False,
        completed_at: datetime | None = None,
    ):
        self.lecture_id = lecture_id
        self.watch_time = watch_time
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LectureProgressEntry":
        return cls(
            lecture_id=UUID(data["lecture_id"]),
            watch_time=data.get("watch_time", 0),
            is_completed=data.get("is_completed", False),
            completed_at=_load_dt(data.get("completed_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lecture_id": str(self.lecture_id),
            "watch_time": self.watch_time,
            "is_completed": self.is_completed,
            "completed_at": _dump_dt(self.completed_at),
        }

    def __repr__(self) -> str:
        done = "done" if self.is_completed else f"{self.watch_time}s"
        return f"<LectureProgressEntry {self.lecture_id} {done}>"


class ModuleProgressEntry:
    """Progress of one module: its ordered lecture entries plus derived fields."""

    def __init__(
        self,
        module_id: UUID,
        lectures: list[LectureProgressEntry] | None = None,
        completed_lectures: int = 0,
        is_completed: bool = False,
        completed_at: datetime | None = None,
    ):
        self.module_id = module_id
        self.lectures = lectures or []
        self.completed_lectures = completed_lectures
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)

    @property
    def total_lectures(self) -> int:
        return len(self.lectures)

    @property
    def status(self) -> ProgressStatus:
        if self.is_completed:
            return ProgressStatus.COMPLETED
        if self.completed_lectures or any(lec.watch_time for lec in self.lectures):
            return ProgressStatus.IN_PROGRESS
        return ProgressStatus.NOT_STARTED

    def recompute(self, now: datetime) -> None:
        """Re-derive counters from the lecture entries."""
        self.completed_lectures = sum(1 for lec in self.lectures if lec.is_completed)
        self.is_completed = (
            self.total_lectures > 0 and self.completed_lectures == self.total_lectures
        )
        if self.is_completed and self.completed_at is None:
            self.completed_at = now
        elif not self.is_completed:
            self.completed_at = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModuleProgressEntry":
        return cls(
            module_id=UUID(data["module_id"]),
            lectures=[LectureProgressEntry.from_dict(lec) for lec in data["lectures"]],
            completed_lectures=data.get("completed_lectures", 0),
            is_completed=data.get("is_completed", False),
            completed_at=_load_dt(data.get("completed_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "module_id": str(self.module_id),
            "lectures": [lec.to_dict() for lec in self.lectures],
            "completed_lectures": self.completed_lectures,
            "total_lectures": self.total_lectures,
            "is_completed": self.is_completed,
            "completed_at": _dump_dt(self.completed_at),
        }

    def __repr__(self) -> str:
        return (
            f"<ModuleProgressEntry {self.module_id} "
            f"{self.completed_lectures}/{self.total_lectures}>"
        )


# ==============================================================================
# Entity Classes
# ==============================================================================


class CourseProgress:
    """A learner's progress through one course.

    Holds the snapshot of the course hierarchy taken at initialisation and
    the counters derived from it. ``version`` increases by one on every
    persisted write; the store rejects writes based on an older version.

    Attributes:
        user_id: Learner UUID
        course_id: Course UUID
        modules: Ordered module entries, each with ordered lecture entries
        completed_modules: Modules whose lectures are all completed
        total_modules: Modules in the snapshot
        completed_lectures: Completed lectures across all modules
        total_lectures: Lectures in the snapshot
        progress_percentage: completed / total lectures, 0-100, rounded half-up
        is_completed: All modules completed (and there is at least one)
        completed_at: Completion timestamp (None while incomplete)
        last_accessed_at: Last initialisation or update
        version: Optimistic concurrency version (0 before the first write)
    """

    def __init__(
        self,
        user_id: UUID,
        course_id: UUID,
        modules: list[ModuleProgressEntry] | None = None,
        completed_modules: int = 0,
        completed_lectures: int = 0,
        progress_percentage: int = 0,
        is_completed: bool = False,
        completed_at: datetime | None = None,
        last_accessed_at: datetime | None = None,
        created_at: datetime | None = None,
        version: int = 0,
    ):
        self.user_id = user_id
        self.course_id = course_id
        self.modules = modules or []
        self.completed_modules = completed_modules
        self.completed_lectures = completed_lectures
        self.progress_percentage = progress_percentage
        self.is_completed = is_completed
        self.completed_at = ensure_utc_aware(completed_at)
        self.last_accessed_at = ensure_utc_aware(last_accessed_at) or datetime.now(UTC)
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.version = version
        self._build_index()

    @classmethod
    def initialize(
        cls,
        user_id: UUID,
        course_id: UUID,
        hierarchy: list[tuple[UUID, list[UUID]]],
    ) -> "CourseProgress":
        """Build a fresh snapshot with every lecture unwatched and incomplete.

        Args:
            hierarchy: ``(module_id, [lecture_id, ...])`` pairs in course order
        """
        modules = [
            ModuleProgressEntry(
                module_id=module_id,
                lectures=[LectureProgressEntry(lecture_id) for lecture_id in lectures],
            )
            for module_id, lectures in hierarchy
        ]
        return cls(user_id=user_id, course_id=course_id, modules=modules)

    def _build_index(self) -> None:
        # lecture_id -> (module position, lecture position, flattened position)
        self._index: dict[UUID, tuple[int, int, int]] = {}
        flat = 0
        for m_pos, module in enumerate(self.modules):
            for l_pos, lecture in enumerate(module.lectures):
                self._index[lecture.lecture_id] = (m_pos, l_pos, flat)
                flat += 1

    # --------------------------------------------------------------------------
    # Derived fields
    # --------------------------------------------------------------------------

    @property
    def total_modules(self) -> int:
        return len(self.modules)

    @property
    def total_lectures(self) -> int:
        return len(self._index)

    @property
    def total_watch_time(self) -> int:
        """Seconds watched across every lecture."""
        return sum(lec.watch_time for module in self.modules for lec in module.lectures)

    @property
    def status(self) -> ProgressStatus:
        if self.is_completed:
            return ProgressStatus.COMPLETED
        if any(m.status is not ProgressStatus.NOT_STARTED for m in self.modules):
            return ProgressStatus.IN_PROGRESS
        return ProgressStatus.NOT_STARTED

    def recompute(self, now: datetime | None = None) -> None:
        """Re-derive module and course counters from the lecture entries."""
        now = now or datetime.now(UTC)
        for module in self.modules:
            module.recompute(now)

        self.completed_lectures = sum(m.completed_lectures for m in self.modules)
        self.completed_modules = sum(1 for m in self.modules if m.is_completed)
        self.progress_percentage = percentage(self.completed_lectures, self.total_lectures)
        self.is_completed = (
            self.total_modules > 0 and self.completed_modules == self.total_modules
        )
        if self.is_completed and self.completed_at is None:
            self.completed_at = now
        elif not self.is_completed:
            self.completed_at = None

    # --------------------------------------------------------------------------
    # Lecture access
    # --------------------------------------------------------------------------

    def has_lecture(self, lecture_id: UUID) -> bool:
        return lecture_id in self._index

    def get_lecture(self, lecture_id: UUID) -> LectureProgressEntry:
        """Raises LectureNotFoundError if the lecture is not in the snapshot."""
        position = self._index.get(lecture_id)
        if position is None:
            raise LectureNotFoundError("Lecture not found in progress")
        m_pos, l_pos, _ = position
        return self.modules[m_pos].lectures[l_pos]

    def apply_lecture_update(
        self,
        lecture_id: UUID,
        watch_time: int | None = None,
        is_completed: bool | None = None,
        now: datetime | None = None,
    ) -> None:
        """Apply the given fields to one lecture and re-derive all counters.

        Raises:
            LectureNotFoundError: If the lecture is not in the snapshot
        """
        now = now or datetime.now(UTC)
        lecture = self.get_lecture(lecture_id)

        if watch_time is not None:
            lecture.watch_time = watch_time

        if is_completed is not None:
            lecture.is_completed = is_completed
            if is_completed and lecture.completed_at is None:
                lecture.completed_at = now
            elif not is_completed:
                lecture.completed_at = None

        self.recompute(now)
        self.last_accessed_at = now

    # --------------------------------------------------------------------------
    # Sequential unlock
    # --------------------------------------------------------------------------

    def next_unlocked_lecture_id(self) -> UUID | None:
        """The lecture the learner should take next, or None when all are done.

        For the first incomplete lecture: the first lecture of a module is
        returned as is; otherwise the lecture is returned if its predecessor
        in the module is completed, and the predecessor is returned if not.
        """
        for module in self.modules:
            for position, lecture in enumerate(module.lectures):
                if lecture.is_completed:
                    continue
                if position == 0:
                    return lecture.lecture_id
                previous = module.lectures[position - 1]
                if previous.is_completed:
                    return lecture.lecture_id
                return previous.lecture_id
        return None

    def is_lecture_unlocked(self, lecture_id: UUID) -> bool:
        """True if the lecture sits at or before the next unlocked lecture.

        Lectures after it are unlocked only if already completed. Everything
        is unlocked once the course is done; unknown lectures never are.
        """
        next_id = self.next_unlocked_lecture_id()
        if next_id is None:
            return True

        position = self._index.get(lecture_id)
        if position is None:
            return False

        if position[2] <= self._index[next_id][2]:
            return True
        return self.get_lecture(lecture_id).is_completed

    def lecture_state(self, lecture_id: UUID) -> LectureState:
        """Raises LectureNotFoundError if the lecture is not in the snapshot."""
        if self.get_lecture(lecture_id).is_completed:
            return LectureState.COMPLETED
        if self.is_lecture_unlocked(lecture_id):
            return LectureState.UNLOCKED
        return LectureState.LOCKED

    # --------------------------------------------------------------------------
    # Serialization
    # --------------------------------------------------------------------------

    def snapshot_json(self) -> str:
        """Serialize the module/lecture snapshot for the ``snapshot`` column."""
        return json.dumps([module.to_dict() for module in self.modules])

    @classmethod
    def from_row(cls, row: Any) -> "CourseProgress":
        """Create CourseProgress instance from Cassandra row."""
        modules = [
            ModuleProgressEntry.from_dict(data) for data in json.loads(row.snapshot or "[]")
        ]
        return cls(
            user_id=row.user_id,
            course_id=row.course_id,
            modules=modules,
            completed_modules=row.completed_modules or 0,
            completed_lectures=row.completed_lectures or 0,
            progress_percentage=row.progress_percentage or 0,
            is_completed=bool(row.is_completed),
            completed_at=row.completed_at,
            last_accessed_at=row.last_accessed_at,
            created_at=row.created_at,
            version=row.version or 0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "course_id": self.course_id,
            "modules": [module.to_dict() for module in self.modules],
            "completed_modules": self.completed_modules,
            "total_modules": self.total_modules,
            "completed_lectures": self.completed_lectures,
            "total_lectures": self.total_lectures,
            "progress_percentage": self.progress_percentage,
            "is_completed": self.is_completed,
            "completed_at": self.completed_at,
            "last_accessed_at": self.last_accessed_at,
            "created_at": self.created_at,
            "version": self.version,
        }

    def __repr__(self) -> str:
        return (
            f"<CourseProgress user={self.user_id} course={self.course_id} "
            f"{self.completed_lectures}/{self.total_lectures} "
            f"{self.progress_percentage}%>"
        )
