"""Learner progress tracking module.

Provides:
- Per-learner snapshot of a course's modules and lectures
- Lecture completion and watch time with derived module/course counters
- Sequential unlock of lectures
- Course and learner progress statistics
"""

from .models import (
    PROGRESS_TABLES_CQL,
    CourseProgress,
    LectureProgressEntry,
    LectureState,
    ModuleProgressEntry,
    ProgressStatus,
)
from .schemas import (
    CourseProgressResponse,
    CourseProgressStats,
    CourseProgressSummary,
    DashboardStats,
    LectureProgressResponse,
    ModuleProgressResponse,
    UpdateLectureProgressRequest,
)
from .service import ProgressTracker
from .store import CassandraProgressStore, ProgressStore


__all__ = [
    "PROGRESS_TABLES_CQL",
    "CassandraProgressStore",
    "CourseProgress",
    "CourseProgressResponse",
    "CourseProgressStats",
    "CourseProgressSummary",
    "DashboardStats",
    "LectureProgressEntry",
    "LectureProgressResponse",
    "LectureState",
    "ModuleProgressEntry",
    "ModuleProgressResponse",
    "ProgressStatus",
    "ProgressStore",
    "ProgressTracker",
    "UpdateLectureProgressRequest",
]
