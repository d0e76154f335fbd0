"""Tests for reordering, numbering and duplication."""

from uuid import uuid4

import pytest

from coursetrack.core.errors import (
    CourseNotFoundError,
    DuplicateEntryError,
    DuplicateNumberError,
    EmptySetError,
    ForeignEntityMismatchError,
    LectureNotFoundError,
    ModuleNotFoundError,
)
from coursetrack.core.validation import is_gapless
from coursetrack.courses.models import EntityKind, Module
from coursetrack.courses.numbering import claim_next_number, renumber
from coursetrack.courses.schemas import CreateLectureRequest, CreateModuleRequest


@pytest.fixture
def reorder(services):
    return services.reorder


@pytest.fixture
def five_modules(content_store, services, empty_course):
    """Course with modules M1..M5."""
    return [
        services.content.create_module(
            empty_course.id, CreateModuleRequest(title=f"M{i}")
        ).entity
        for i in range(1, 6)
    ]


def module_numbers(content_store, course_id):
    return {
        m.title: m.module_number
        for m in content_store.find_modules_by_course(course_id, active_only=False)
    }


# ==============================================================================
# Numbering primitives
# ==============================================================================


class TestClaimNextNumber:
    """Tests for claim_next_number."""

    def test_retries_after_conflict(self):
        """A lost race re-reads the numbers and tries the next one."""
        numbers = [1, 2]
        attempts = []

        def insert(number):
            attempts.append(number)
            if len(attempts) == 1:
                numbers.append(number)  # a concurrent writer took it
                raise DuplicateNumberError(None, number)
            return number

        assert claim_next_number(uuid4(), lambda: numbers, insert, retries=3) == 4
        assert attempts == [3, 4]

    def test_gives_up_after_retries(self):
        """Conflicts on every attempt surface as DuplicateNumberError."""

        def insert(number):
            raise DuplicateNumberError(None, number)

        with pytest.raises(DuplicateNumberError):
            claim_next_number(uuid4(), lambda: [1], insert, retries=2)


class TestRenumber:
    """Tests for the two-phase renumber."""

    def test_only_moved_siblings_written(self, content_store, five_modules):
        """Siblings already in place are not rewritten."""
        m1, m2, m3, m4, m5 = five_modules
        content_store.update_log.clear()

        moved = renumber(
            content_store,
            EntityKind.MODULE,
            five_modules,
            [m1.id, m3.id, m2.id, m4.id, m5.id],
        )

        assert moved == 2
        written = {record_id for _, record_id, _ in content_store.update_log}
        assert written == {m2.id, m3.id}

    def test_noop_when_in_order(self, content_store, five_modules):
        """Nothing is written when the order is unchanged."""
        content_store.update_log.clear()

        moved = renumber(
            content_store, EntityKind.MODULE, five_modules, [m.id for m in five_modules]
        )

        assert moved == 0
        assert content_store.update_log == []

    def test_never_collides(self, content_store, five_modules):
        """Reversing passes the unique-number check on every single write."""
        renumber(
            content_store,
            EntityKind.MODULE,
            five_modules,
            [m.id for m in reversed(five_modules)],
        )

        numbers = module_numbers(content_store, five_modules[0].course_id)
        assert numbers == {"M5": 1, "M4": 2, "M3": 3, "M2": 4, "M1": 5}


# ==============================================================================
# Reorder
# ==============================================================================


class TestReorderModules:
    """Tests for reorder_modules."""

    def test_swap_keeps_stats(self, reorder, content_store, course_tree):
        """[B, A] renumbers B=1, A=2 and leaves counters untouched."""
        result = reorder.reorder_modules(
            course_tree.course.id, [course_tree.module_b.id, course_tree.module_a.id]
        )

        assert [m.id for m in result] == [course_tree.module_b.id, course_tree.module_a.id]
        assert [m.module_number for m in result] == [1, 2]
        a = content_store.modules[course_tree.module_a.id]
        b = content_store.modules[course_tree.module_b.id]
        assert (a.lecture_count, a.total_duration) == (2, 30)
        assert (b.lecture_count, b.total_duration) == (1, 30)

    @pytest.mark.parametrize(
        "order",
        [[4, 3, 2, 1, 0], [1, 0, 2, 3, 4], [2, 4, 0, 3, 1], [0, 1, 2, 3, 4]],
    )
    def test_result_is_gapless(self, reorder, content_store, five_modules, order):
        """Every permutation leaves numbers exactly 1..N."""
        course_id = five_modules[0].course_id

        result = reorder.reorder_modules(course_id, [five_modules[i].id for i in order])

        assert [m.id for m in result] == [five_modules[i].id for i in order]
        assert is_gapless(m.module_number for m in result)

    def test_partial_list_appends_remaining(self, reorder, content_store, five_modules):
        """Unlisted modules follow the listed ones in their current order."""
        m1, m2, m3, m4, m5 = five_modules

        reorder.reorder_modules(m1.course_id, [m4.id, m2.id])

        assert module_numbers(content_store, m1.course_id) == {
            "M4": 1,
            "M2": 2,
            "M1": 3,
            "M3": 4,
            "M5": 5,
        }

    def test_inactive_modules_are_renumbered(
        self, reorder, content_store, five_modules
    ):
        """Inactive modules keep a number in the sequence."""
        m1, m2, m3, _, _ = five_modules
        content_store.modules[m2.id].is_active = False

        reorder.reorder_modules(m1.course_id, [m3.id, m2.id, m1.id])

        numbers = module_numbers(content_store, m1.course_id)
        assert numbers["M3"] == 1
        assert numbers["M2"] == 2
        assert is_gapless(numbers.values())

    def test_empty_list(self, reorder, course_tree):
        """An empty list is rejected."""
        with pytest.raises(EmptySetError):
            reorder.reorder_modules(course_tree.course.id, [])

    def test_foreign_module(self, reorder, content_store, course_tree):
        """A module of another course is rejected and nothing changes."""
        stranger = Module(course_id=uuid4(), module_number=1, title="X")
        content_store.insert_module(stranger)

        with pytest.raises(ForeignEntityMismatchError):
            reorder.reorder_modules(
                course_tree.course.id,
                [course_tree.module_b.id, stranger.id, course_tree.module_a.id],
            )

        assert module_numbers(content_store, course_tree.course.id) == {"A": 1, "B": 2}

    def test_repeated_module(self, reorder, course_tree):
        """A repeated id is rejected."""
        with pytest.raises(DuplicateEntryError):
            reorder.reorder_modules(
                course_tree.course.id,
                [course_tree.module_b.id, course_tree.module_b.id],
            )

    def test_missing_course(self, reorder):
        """Unknown course raises CourseNotFoundError."""
        with pytest.raises(CourseNotFoundError):
            reorder.reorder_modules(uuid4(), [uuid4()])


class TestReorderLectures:
    """Tests for reorder_lectures."""

    def test_swap(self, reorder, course_tree):
        """Lectures take their position in the list."""
        result = reorder.reorder_lectures(
            course_tree.module_a.id, [course_tree.a2.id, course_tree.a1.id]
        )

        assert [(lec.title, lec.lecture_number) for lec in result] == [("A2", 1), ("A1", 2)]

    def test_lecture_of_other_module(self, reorder, course_tree):
        """A lecture of a sibling module is foreign."""
        with pytest.raises(ForeignEntityMismatchError):
            reorder.reorder_lectures(
                course_tree.module_a.id, [course_tree.a1.id, course_tree.b1.id]
            )

    def test_missing_module(self, reorder):
        """Unknown module raises ModuleNotFoundError."""
        with pytest.raises(ModuleNotFoundError):
            reorder.reorder_lectures(uuid4(), [uuid4()])


# ==============================================================================
# Duplication
# ==============================================================================


class TestDuplicateModule:
    """Tests for duplicate_module."""

    def test_copy_appended_with_lectures(self, reorder, content_store, course_tree):
        """The copy goes last and carries the active lectures in order."""
        result = reorder.duplicate_module(course_tree.module_a.id)
        copy = result.entity

        assert copy.title == "A (Copy)"
        assert copy.module_number == 3
        assert copy.id != course_tree.module_a.id
        assert result.stats_consistent

        lectures = content_store.find_lectures_by_module(copy.id)
        assert [(lec.title, lec.lecture_number) for lec in lectures] == [
            ("A1", 1),
            ("A2", 2),
        ]
        assert all(lec.id not in {course_tree.a1.id, course_tree.a2.id} for lec in lectures)

    def test_counters_updated(self, reorder, content_store, course_tree):
        """Module and course counters include the copy."""
        copy = reorder.duplicate_module(course_tree.module_a.id).entity

        assert copy.lecture_count == 2
        assert copy.total_duration == 30
        course = content_store.courses[course_tree.course.id]
        assert course.total_modules == 3
        assert course.total_lectures == 5
        assert course.total_duration == 90

    def test_inactive_lectures_skipped(self, reorder, content_store, course_tree):
        """Only active lectures are copied, renumbered from 1."""
        content_store.lectures[course_tree.a1.id].is_active = False

        copy = reorder.duplicate_module(course_tree.module_a.id).entity

        lectures = content_store.find_lectures_by_module(copy.id, active_only=False)
        assert [(lec.title, lec.lecture_number) for lec in lectures] == [("A2", 1)]

    def test_missing_module(self, reorder):
        with pytest.raises(ModuleNotFoundError):
            reorder.duplicate_module(uuid4())

    def test_failed_lecture_copy_removes_partial_copy(
        self, reorder, content_store, course_tree, monkeypatch
    ):
        """A lecture write failure leaves no copy module or copied lectures."""
        insert_lecture = content_store.insert_lecture
        calls = []

        def flaky_insert(lecture):
            calls.append(lecture)
            if len(calls) == 2:
                raise RuntimeError("lecture store unavailable")
            insert_lecture(lecture)

        monkeypatch.setattr(content_store, "insert_lecture", flaky_insert)
        lectures_before = set(content_store.lectures)

        with pytest.raises(RuntimeError, match="lecture store unavailable"):
            reorder.duplicate_module(course_tree.module_a.id)

        modules = content_store.find_modules_by_course(
            course_tree.course.id, active_only=False
        )
        assert all(not m.title.endswith("(Copy)") for m in modules)
        assert [m.module_number for m in modules] == [1, 2]
        assert set(content_store.lectures) == lectures_before

        # The freed number is reused by the next copy
        assert reorder.duplicate_module(course_tree.module_a.id).entity.module_number == 3


class TestDuplicateLecture:
    """Tests for duplicate_lecture."""

    def test_copy_appended(self, reorder, content_store, course_tree):
        """The copy goes to the end of the same module."""
        result = reorder.duplicate_lecture(course_tree.a1.id)
        copy = result.entity

        assert copy.title == "A1 (Copy)"
        assert copy.lecture_number == 3
        assert copy.module_id == course_tree.module_a.id
        assert copy.duration == 10
        assert content_store.modules[course_tree.module_a.id].lecture_count == 3
        assert content_store.courses[course_tree.course.id].total_duration == 70

    def test_missing_lecture(self, reorder):
        with pytest.raises(LectureNotFoundError):
            reorder.duplicate_lecture(uuid4())

    def test_appends_after_new_lectures(self, reorder, services, course_tree):
        """Numbers keep growing after further creates."""
        services.content.create_lecture(
            course_tree.module_b.id, CreateLectureRequest(title="B2", duration=5)
        )

        copy = reorder.duplicate_lecture(course_tree.b1.id).entity

        assert copy.lecture_number == 3
