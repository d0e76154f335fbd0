"""Database models for the course content hierarchy.

Cassandra table definitions for:
- Courses, modules, lectures: main tables keyed by id
- Lookup tables: modules of a course, lectures of a module
- Numbering tables: one row per claimed ordinal, used as the unique
  constraint on module/lecture numbers (claimed with ``IF NOT EXISTS``)

Counters on courses and modules are derived from their children and are
rewritten by the stats cascade; they are never authoritative.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from coursetrack.utils import ensure_utc_aware


class EntityKind(str, Enum):
    """Kinds of record in the content hierarchy."""

    COURSE = "course"
    MODULE = "module"
    LECTURE = "lecture"


COPY_SUFFIX = " (Copy)"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    is_active BOOLEAN,
    total_modules INT,
    total_lectures INT,
    total_duration INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    module_number INT,
    is_active BOOLEAN,
    lecture_count INT,
    total_duration INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

LECTURE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lectures (
    id UUID PRIMARY KEY,
    module_id UUID,
    course_id UUID,
    title TEXT,
    video_url TEXT,
    lecture_number INT,
    duration INT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup: modules of a course (ordering comes from module_number)
MODULES_BY_COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_course (
    course_id UUID,
    module_id UUID,
    PRIMARY KEY (course_id, module_id)
)
"""

# Lookup: lectures of a module
LECTURES_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lectures_by_module (
    module_id UUID,
    lecture_id UUID,
    PRIMARY KEY (module_id, lecture_id)
)
"""

# Unique constraint: (course_id, module_number) -> module_id
MODULE_NUMBERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_numbers (
    course_id UUID,
    module_number INT,
    module_id UUID,
    PRIMARY KEY (course_id, module_number)
)
"""

# Unique constraint: (module_id, lecture_number) -> lecture_id
LECTURE_NUMBERS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lecture_numbers (
    module_id UUID,
    lecture_number INT,
    lecture_id UUID,
    PRIMARY KEY (module_id, lecture_number)
)
"""

# All CQL statements for table setup
COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    MODULE_TABLE_CQL,
    LECTURE_TABLE_CQL,
    MODULES_BY_COURSE_TABLE_CQL,
    LECTURES_BY_MODULE_TABLE_CQL,
    MODULE_NUMBERS_TABLE_CQL,
    LECTURE_NUMBERS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity, the root of the content hierarchy.

    Attributes:
        id: Unique identifier (UUID)
        title: Course title
        is_active: Whether the course is visible to learners
        total_modules: Active modules (derived)
        total_lectures: Active lectures in active modules (derived)
        total_duration: Sum of those lectures' durations in minutes (derived)
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        is_active: bool = True,
        total_modules: int = 0,
        total_lectures: int = 0,
        total_duration: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.is_active = is_active
        self.total_modules = total_modules
        self.total_lectures = total_lectures
        self.total_duration = total_duration
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row."""
        return cls(
            id=row.id,
            title=row.title or "",
            is_active=row.is_active if row.is_active is not None else True,
            total_modules=row.total_modules or 0,
            total_lectures=row.total_lectures or 0,
            total_duration=row.total_duration or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "title": self.title,
            "is_active": self.is_active,
            "total_modules": self.total_modules,
            "total_lectures": self.total_lectures,
            "total_duration": self.total_duration,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"<Course {self.title} modules={self.total_modules} "
            f"lectures={self.total_lectures}>"
        )


class Module:
    """Module entity, an ordered group of lectures inside one course.

    Attributes:
        id: Unique identifier (UUID)
        course_id: Owning course
        title: Module title
        module_number: Position within the course (gapless 1..N)
        is_active: Whether the module is visible to learners
        lecture_count: Active lectures (derived)
        total_duration: Sum of active lecture durations in minutes (derived)
    """

    def __init__(
        self,
        course_id: UUID,
        module_number: int,
        id: UUID | None = None,
        title: str = "",
        is_active: bool = True,
        lecture_count: int = 0,
        total_duration: int = 0,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.module_number = module_number
        self.title = title.strip()
        self.is_active = is_active
        self.lecture_count = lecture_count
        self.total_duration = total_duration
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        """Create Module instance from Cassandra row."""
        return cls(
            id=row.id,
            course_id=row.course_id,
            module_number=row.module_number,
            title=row.title or "",
            is_active=row.is_active if row.is_active is not None else True,
            lecture_count=row.lecture_count or 0,
            total_duration=row.total_duration or 0,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "module_number": self.module_number,
            "is_active": self.is_active,
            "lecture_count": self.lecture_count,
            "total_duration": self.total_duration,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Module #{self.module_number} {self.title}>"


class Lecture:
    """Lecture entity, a single piece of video content inside a module.

    Attributes:
        id: Unique identifier (UUID)
        module_id: Owning module
        course_id: Owning course (denormalized from the module)
        title: Lecture title
        video_url: Location of the video
        lecture_number: Position within the module (gapless 1..N)
        duration: Length in minutes
        is_active: Whether the lecture is visible to learners
    """

    def __init__(
        self,
        module_id: UUID,
        course_id: UUID,
        lecture_number: int,
        duration: int,
        id: UUID | None = None,
        title: str = "",
        video_url: str | None = None,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.module_id = module_id
        self.course_id = course_id
        self.lecture_number = lecture_number
        self.duration = duration
        self.title = title.strip()
        self.video_url = video_url
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @classmethod
    def from_row(cls, row: Any) -> "Lecture":
        """Create Lecture instance from Cassandra row."""
        return cls(
            id=row.id,
            module_id=row.module_id,
            course_id=row.course_id,
            lecture_number=row.lecture_number,
            duration=row.duration or 0,
            title=row.title or "",
            video_url=row.video_url,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "module_id": self.module_id,
            "course_id": self.course_id,
            "title": self.title,
            "video_url": self.video_url,
            "lecture_number": self.lecture_number,
            "duration": self.duration,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return f"<Lecture #{self.lecture_number} {self.title} ({self.duration}m)>"
