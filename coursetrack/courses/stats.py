"""Derived counter recomputation for modules and courses.

Counters are re-derived from the current children on every recompute, never
adjusted incrementally.

Cascade rules:
- lecture created / duration or activity changed / deleted
  -> module stats -> course stats
- module created / activity changed / deleted -> course stats

Cascades run after the triggering write has committed. A failing step is
logged and reported as a ``StatsWarning``; the triggering write stays.
"""

from dataclasses import dataclass, field
from typing import Generic, TypeVar
from uuid import UUID

import structlog

from coursetrack.core.errors import CourseNotFoundError, ModuleNotFoundError

from .models import EntityKind
from .schemas import CourseStats, ModuleStats
from .store import ContentStore


logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class StatsWarning:
    """A cascade step that failed after its triggering write committed."""

    step: str
    entity_id: UUID
    message: str


@dataclass
class MutationResult(Generic[T]):
    """Outcome of a content mutation: the entity plus any cascade warnings."""

    entity: T
    warnings: list[StatsWarning] = field(default_factory=list)

    @property
    def stats_consistent(self) -> bool:
        """True when every cascade step succeeded."""
        return not self.warnings


class StatsAggregator:
    """Recomputes module and course counters from ground truth."""

    def __init__(self, store: ContentStore):
        self.store = store

    def recompute_module_stats(self, module_id: UUID) -> ModuleStats:
        """Aggregate active lectures of a module and store the result.

        Raises:
            ModuleNotFoundError: If the module doesn't exist
        """
        module = self.store.find_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        lectures = self.store.find_lectures_by_module(module_id, active_only=True)
        stats = ModuleStats(
            lecture_count=len(lectures),
            total_duration=sum(lecture.duration for lecture in lectures),
        )

        self.store.update_record(EntityKind.MODULE, module_id, stats.model_dump())

        logger.debug(
            "module_stats_recomputed",
            module_id=str(module_id),
            lecture_count=stats.lecture_count,
            total_duration=stats.total_duration,
        )
        return stats

    def recompute_course_stats(self, course_id: UUID) -> CourseStats:
        """Aggregate active modules (and their active lectures) of a course.

        Raises:
            CourseNotFoundError: If the course doesn't exist
        """
        course = self.store.find_course(course_id)
        if course is None:
            raise CourseNotFoundError

        modules = self.store.find_modules_by_course(course_id, active_only=True)

        total_lectures = 0
        total_duration = 0
        for module in modules:
            lectures = self.store.find_lectures_by_module(module.id, active_only=True)
            total_lectures += len(lectures)
            total_duration += sum(lecture.duration for lecture in lectures)

        stats = CourseStats(
            total_modules=len(modules),
            total_lectures=total_lectures,
            total_duration=total_duration,
        )

        self.store.update_record(EntityKind.COURSE, course_id, stats.model_dump())

        logger.debug(
            "course_stats_recomputed",
            course_id=str(course_id),
            total_modules=stats.total_modules,
            total_lectures=stats.total_lectures,
            total_duration=stats.total_duration,
        )
        return stats

    # --------------------------------------------------------------------------
    # Cascade
    # --------------------------------------------------------------------------

    def cascade_from_lecture(
        self, module_id: UUID, course_id: UUID
    ) -> list[StatsWarning]:
        """Run module then course recompute after a lecture mutation.

        The course step runs even if the module step fails; it reads lectures
        directly and does not depend on the module counters.
        """
        warnings: list[StatsWarning] = []
        self._run_step("module_stats", module_id, self.recompute_module_stats, warnings)
        self._run_step("course_stats", course_id, self.recompute_course_stats, warnings)
        return warnings

    def cascade_from_module(self, course_id: UUID) -> list[StatsWarning]:
        """Run course recompute after a module mutation."""
        warnings: list[StatsWarning] = []
        self._run_step("course_stats", course_id, self.recompute_course_stats, warnings)
        return warnings

    def _run_step(self, step, entity_id, recompute, warnings) -> None:
        try:
            recompute(entity_id)
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "stats_recompute_failed",
                step=step,
                entity_id=str(entity_id),
                error=str(e),
                exc_info=True,
            )
            warnings.append(StatsWarning(step=step, entity_id=entity_id, message=str(e)))
