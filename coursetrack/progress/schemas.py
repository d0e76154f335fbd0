"""Pydantic schemas for learner progress.

Request and response models for:
- Lecture progress updates (single and bulk)
- Progress records with their module/lecture snapshot
- Course-level and learner dashboard statistics
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from .models import (
    CourseProgress,
    LectureProgressEntry,
    ModuleProgressEntry,
    ProgressStatus,
)


# ==============================================================================
# Update Schemas
# ==============================================================================


class UpdateLectureProgressRequest(BaseModel):
    """Progress update for one lecture; unset fields are left unchanged."""

    lecture_id: UUID = Field(..., description="Lecture UUID")
    watch_time: int | None = Field(None, ge=0, description="Seconds watched")
    is_completed: bool | None = None


# ==============================================================================
# Progress Schemas
# ==============================================================================


class LectureProgressResponse(BaseModel):
    """Lecture entry of a progress snapshot."""

    lecture_id: UUID
    watch_time: int = Field(0, description="Seconds watched")
    is_completed: bool = False
    completed_at: datetime | None = None

    @classmethod
    def from_entity(cls, entity: LectureProgressEntry) -> "LectureProgressResponse":
        """Create response from entity."""
        return cls(
            lecture_id=entity.lecture_id,
            watch_time=entity.watch_time,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
        )


class ModuleProgressResponse(BaseModel):
    """Module entry of a progress snapshot."""

    module_id: UUID
    status: ProgressStatus
    completed_lectures: int
    total_lectures: int
    is_completed: bool
    completed_at: datetime | None = None
    lectures: list[LectureProgressResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: ModuleProgressEntry) -> "ModuleProgressResponse":
        """Create response from entity."""
        return cls(
            module_id=entity.module_id,
            status=entity.status,
            completed_lectures=entity.completed_lectures,
            total_lectures=entity.total_lectures,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            lectures=[LectureProgressResponse.from_entity(lec) for lec in entity.lectures],
        )


class CourseProgressResponse(BaseModel):
    """Full progress record of a learner in a course."""

    user_id: UUID
    course_id: UUID
    status: ProgressStatus
    completed_modules: int
    total_modules: int
    completed_lectures: int
    total_lectures: int
    progress_percentage: int = Field(description="0-100 percentage")
    is_completed: bool
    completed_at: datetime | None = None
    last_accessed_at: datetime
    next_lecture_id: UUID | None = None
    modules: list[ModuleProgressResponse] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, entity: CourseProgress) -> "CourseProgressResponse":
        """Create response from entity."""
        return cls(
            user_id=entity.user_id,
            course_id=entity.course_id,
            status=entity.status,
            completed_modules=entity.completed_modules,
            total_modules=entity.total_modules,
            completed_lectures=entity.completed_lectures,
            total_lectures=entity.total_lectures,
            progress_percentage=entity.progress_percentage,
            is_completed=entity.is_completed,
            completed_at=entity.completed_at,
            last_accessed_at=entity.last_accessed_at,
            next_lecture_id=entity.next_unlocked_lecture_id(),
            modules=[ModuleProgressResponse.from_entity(m) for m in entity.modules],
        )


class CourseProgressSummary(BaseModel):
    """Progress record without the snapshot, for lists."""

    course_id: UUID
    status: ProgressStatus
    completed_lectures: int
    total_lectures: int
    progress_percentage: int
    is_completed: bool
    last_accessed_at: datetime

    @classmethod
    def from_entity(cls, entity: CourseProgress) -> "CourseProgressSummary":
        """Create response from entity."""
        return cls(
            course_id=entity.course_id,
            status=entity.status,
            completed_lectures=entity.completed_lectures,
            total_lectures=entity.total_lectures,
            progress_percentage=entity.progress_percentage,
            is_completed=entity.is_completed,
            last_accessed_at=entity.last_accessed_at,
        )


# ==============================================================================
# Statistics Schemas
# ==============================================================================


class CourseProgressStats(BaseModel):
    """Aggregate progress of all learners in a course."""

    total_users: int = 0
    completed_users: int = 0
    average_progress: int = Field(0, description="Mean progress percentage, rounded")
    active_users: int = Field(0, description="Accessed within the active window")


class DashboardStats(BaseModel):
    """Learner dashboard across all their courses."""

    total_courses: int = 0
    completed_courses: int = 0
    in_progress_courses: int = 0
    total_watch_time: int = Field(0, description="Minutes, rounded")
    average_progress: int = 0
    recent_activity: list[CourseProgressSummary] = Field(default_factory=list)
