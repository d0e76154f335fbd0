"""Pydantic schemas for the course content hierarchy.

Models for:
- Module and lecture creation / update inputs
- Module, lecture and course outline responses
- Derived statistics produced by the stats cascade
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


# ==============================================================================
# Statistics
# ==============================================================================


class ModuleStats(BaseModel):
    """Derived counters of a module."""

    model_config = ConfigDict(frozen=True)

    lecture_count: int = Field(0, ge=0)
    total_duration: int = Field(0, ge=0, description="Minutes")


class CourseStats(BaseModel):
    """Derived counters of a course."""

    model_config = ConfigDict(frozen=True)

    total_modules: int = Field(0, ge=0)
    total_lectures: int = Field(0, ge=0)
    total_duration: int = Field(0, ge=0, description="Minutes")


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    """Module creation input."""

    title: str = Field(..., min_length=1, max_length=100, description="Module title")
    is_active: bool = True


class UpdateModuleRequest(BaseModel):
    """Module update input; unset fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=100)
    module_number: int | None = Field(None, ge=1)
    is_active: bool | None = None


class ModuleResponse(BaseModel):
    """Module response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    course_id: UUID
    title: str
    module_number: int
    is_active: bool
    lecture_count: int = 0
    total_duration: int = 0
    created_at: datetime
    updated_at: datetime | None = None


# ==============================================================================
# Lecture Schemas
# ==============================================================================


class CreateLectureRequest(BaseModel):
    """Lecture creation input."""

    title: str = Field(..., min_length=1, max_length=100, description="Lecture title")
    duration: int = Field(..., ge=1, description="Duration in minutes")
    video_url: str | None = Field(None, max_length=500)
    is_active: bool = True


class UpdateLectureRequest(BaseModel):
    """Lecture update input; unset fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=100)
    duration: int | None = Field(None, ge=1, description="Duration in minutes")
    video_url: str | None = Field(None, max_length=500)
    lecture_number: int | None = Field(None, ge=1)
    is_active: bool | None = None


class LectureResponse(BaseModel):
    """Lecture response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    module_id: UUID
    course_id: UUID
    title: str
    video_url: str | None = None
    lecture_number: int
    duration: int
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


# ==============================================================================
# Outline
# ==============================================================================


class ModuleOutline(ModuleResponse):
    """Module with its active lectures, in order."""

    lectures: list[LectureResponse] = Field(default_factory=list)


class CourseOutline(BaseModel):
    """Course with its active modules and lectures, in order."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    is_active: bool
    total_modules: int
    total_lectures: int
    total_duration: int
    modules: list[ModuleOutline] = Field(default_factory=list)
