"""Tests for derived counter recomputation and the stats cascade."""

from uuid import uuid4

import pytest

from coursetrack.core.errors import CourseNotFoundError, ModuleNotFoundError
from coursetrack.courses.models import EntityKind, Lecture
from coursetrack.courses.schemas import CourseStats, ModuleStats
from coursetrack.courses.stats import MutationResult, StatsAggregator, StatsWarning


@pytest.fixture
def stats(content_store) -> StatsAggregator:
    return StatsAggregator(content_store)


# ==============================================================================
# Recompute
# ==============================================================================


class TestRecomputeModuleStats:
    """Tests for recompute_module_stats."""

    def test_counts_active_lectures(self, stats, content_store, course_tree):
        """Lecture count and duration come from active lectures only."""
        content_store.lectures[course_tree.a2.id].is_active = False

        result = stats.recompute_module_stats(course_tree.module_a.id)

        assert result == ModuleStats(lecture_count=1, total_duration=10)
        stored = content_store.modules[course_tree.module_a.id]
        assert stored.lecture_count == 1
        assert stored.total_duration == 10

    def test_repairs_stale_counters(self, stats, content_store, course_tree):
        """Counters are re-derived, not adjusted."""
        content_store.modules[course_tree.module_a.id].lecture_count = 99

        stats.recompute_module_stats(course_tree.module_a.id)

        assert content_store.modules[course_tree.module_a.id].lecture_count == 2

    def test_idempotent(self, stats, course_tree):
        """Two recomputes without mutation give the same output."""
        first = stats.recompute_module_stats(course_tree.module_a.id)
        second = stats.recompute_module_stats(course_tree.module_a.id)
        assert first == second

    def test_missing_module(self, stats):
        """Unknown module raises ModuleNotFoundError."""
        with pytest.raises(ModuleNotFoundError):
            stats.recompute_module_stats(uuid4())


class TestRecomputeCourseStats:
    """Tests for recompute_course_stats."""

    def test_aggregates_active_modules(self, stats, course_tree):
        """Course counters sum every active module."""
        result = stats.recompute_course_stats(course_tree.course.id)
        assert result == CourseStats(total_modules=2, total_lectures=3, total_duration=60)

    def test_inactive_module_excluded(self, stats, content_store, course_tree):
        """Lectures of an inactive module do not count."""
        content_store.modules[course_tree.module_b.id].is_active = False

        result = stats.recompute_course_stats(course_tree.course.id)

        assert result == CourseStats(total_modules=1, total_lectures=2, total_duration=30)
        assert content_store.courses[course_tree.course.id].total_duration == 30

    def test_reads_lectures_not_module_counters(self, stats, content_store, course_tree):
        """Course totals do not depend on stale module counters."""
        content_store.modules[course_tree.module_a.id].total_duration = 0

        result = stats.recompute_course_stats(course_tree.course.id)

        assert result.total_duration == 60

    def test_idempotent(self, stats, course_tree):
        """Two recomputes without mutation give the same output."""
        first = stats.recompute_course_stats(course_tree.course.id)
        second = stats.recompute_course_stats(course_tree.course.id)
        assert first == second

    def test_empty_course(self, stats, empty_course):
        """A course without modules has zero counters."""
        assert stats.recompute_course_stats(empty_course.id) == CourseStats()

    def test_missing_course(self, stats):
        """Unknown course raises CourseNotFoundError."""
        with pytest.raises(CourseNotFoundError):
            stats.recompute_course_stats(uuid4())


# ==============================================================================
# Cascade
# ==============================================================================


class TestCascade:
    """Tests for the explicit cascade."""

    def test_lecture_cascade_updates_module_and_course(
        self, stats, content_store, course_tree
    ):
        """A new lecture shows up in module and course counters."""
        content_store.insert_lecture(
            Lecture(
                module_id=course_tree.module_b.id,
                course_id=course_tree.course.id,
                lecture_number=2,
                duration=15,
                title="B2",
            )
        )

        warnings = stats.cascade_from_lecture(
            course_tree.module_b.id, course_tree.course.id
        )

        assert warnings == []
        assert content_store.modules[course_tree.module_b.id].lecture_count == 2
        assert content_store.modules[course_tree.module_b.id].total_duration == 45
        assert content_store.courses[course_tree.course.id].total_lectures == 4
        assert content_store.courses[course_tree.course.id].total_duration == 75

    def test_failed_module_step_still_runs_course_step(
        self, stats, content_store, course_tree
    ):
        """A failing module recompute is reported; the course still updates."""
        content_store.lectures[course_tree.b1.id].duration = 40
        content_store.failing_updates.add(EntityKind.MODULE)

        warnings = stats.cascade_from_lecture(
            course_tree.module_b.id, course_tree.course.id
        )

        assert len(warnings) == 1
        assert warnings[0].step == "module_stats"
        assert warnings[0].entity_id == course_tree.module_b.id
        assert "unavailable" in warnings[0].message
        assert content_store.courses[course_tree.course.id].total_duration == 70

    def test_module_cascade_reports_missing_course(self, stats):
        """A vanished course becomes a warning, not an exception."""
        course_id = uuid4()

        warnings = stats.cascade_from_module(course_id)

        assert warnings == [
            StatsWarning(step="course_stats", entity_id=course_id, message="Course not found")
        ]


class TestMutationResult:
    """Tests for MutationResult."""

    def test_consistent_without_warnings(self):
        assert MutationResult(entity="x").stats_consistent is True

    def test_inconsistent_with_warnings(self):
        result = MutationResult(
            entity="x", warnings=[StatsWarning("course_stats", uuid4(), "boom")]
        )
        assert result.stats_consistent is False
