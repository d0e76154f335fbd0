"""Course content hierarchy module.

Provides:
- Course, module and lecture entities and their Cassandra tables
- Gapless numbering with conflict-safe appends and reorders
- Derived counter recomputation cascading lecture -> module -> course
- Content mutations, duplication and outline reads
"""

from .models import COURSES_TABLES_CQL, Course, EntityKind, Lecture, Module
from .reorder import ReorderCoordinator
from .schemas import (
    CourseOutline,
    CourseStats,
    CreateLectureRequest,
    CreateModuleRequest,
    LectureResponse,
    ModuleOutline,
    ModuleResponse,
    ModuleStats,
    UpdateLectureRequest,
    UpdateModuleRequest,
)
from .service import ContentService
from .stats import MutationResult, StatsAggregator, StatsWarning
from .store import CassandraContentStore, ContentStore


__all__ = [
    "COURSES_TABLES_CQL",
    "CassandraContentStore",
    "ContentService",
    "ContentStore",
    "Course",
    "CourseOutline",
    "CourseStats",
    "CreateLectureRequest",
    "CreateModuleRequest",
    "EntityKind",
    "Lecture",
    "LectureResponse",
    "Module",
    "ModuleOutline",
    "ModuleResponse",
    "ModuleStats",
    "MutationResult",
    "ReorderCoordinator",
    "StatsAggregator",
    "StatsWarning",
    "UpdateLectureRequest",
    "UpdateModuleRequest",
]
