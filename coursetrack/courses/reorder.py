"""Reordering and duplication of modules and lectures.

Business logic for:
- Reordering modules within a course and lectures within a module
- Duplicating a module (with its active lectures) or a single lecture

Every operation validates before writing and leaves numbering gapless.
"""

from uuid import UUID

import structlog

from coursetrack.config.settings import Settings, get_settings
from coursetrack.core.context import OperationContext
from coursetrack.core.errors import (
    CourseNotFoundError,
    LectureNotFoundError,
    ModuleNotFoundError,
)
from coursetrack.core.validation import complete_ordering, validate_ordering

from .models import COPY_SUFFIX, EntityKind, Lecture, Module
from .numbering import claim_next_number, renumber
from .stats import MutationResult, StatsAggregator
from .store import ContentStore


logger = structlog.get_logger(__name__)


class ReorderCoordinator:
    """Renumbers and duplicates content while keeping numbering gapless."""

    def __init__(
        self,
        store: ContentStore,
        stats: StatsAggregator,
        settings: Settings | None = None,
    ):
        self.store = store
        self.stats = stats
        self.settings = settings or get_settings()

    # ==========================================================================
    # Reordering
    # ==========================================================================

    def reorder_modules(
        self, course_id: UUID, ordered_module_ids: list[UUID]
    ) -> list[Module]:
        """Reorder the modules of a course.

        The listed modules take numbers ``1..k`` in the given order; modules
        of the course that are not listed follow in their current order.

        Returns:
            All modules of the course, ordered by their new number

        Raises:
            CourseNotFoundError: If the course doesn't exist
            EmptySetError: If no ids are given
            DuplicateEntryError: If an id is repeated
            ForeignEntityMismatchError: If an id is not a module of the course
        """
        with OperationContext("reorder_modules", course_id=course_id):
            if self.store.find_course(course_id) is None:
                raise CourseNotFoundError

            current = self.store.find_modules_by_course(course_id, active_only=False)
            current_ids = [module.id for module in current]
            validate_ordering(ordered_module_ids, current_ids, scope="course")

            final_order = complete_ordering(ordered_module_ids, current_ids)
            moved = renumber(self.store, EntityKind.MODULE, current, final_order)

            logger.info("modules_reordered", moved=moved, total=len(final_order))
            return self.store.find_modules_by_course(course_id, active_only=False)

    def reorder_lectures(
        self, module_id: UUID, ordered_lecture_ids: list[UUID]
    ) -> list[Lecture]:
        """Reorder the lectures of a module.

        Same contract as ``reorder_modules``, scoped to one module.

        Raises:
            ModuleNotFoundError: If the module doesn't exist
            EmptySetError: If no ids are given
            DuplicateEntryError: If an id is repeated
            ForeignEntityMismatchError: If an id is not a lecture of the module
        """
        module = self.store.find_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        with OperationContext("reorder_lectures", course_id=module.course_id):
            current = self.store.find_lectures_by_module(module_id, active_only=False)
            current_ids = [lecture.id for lecture in current]
            validate_ordering(ordered_lecture_ids, current_ids, scope="module")

            final_order = complete_ordering(ordered_lecture_ids, current_ids)
            moved = renumber(self.store, EntityKind.LECTURE, current, final_order)

            logger.info(
                "lectures_reordered",
                module_id=str(module_id),
                moved=moved,
                total=len(final_order),
            )
            return self.store.find_lectures_by_module(module_id, active_only=False)

    # ==========================================================================
    # Duplication
    # ==========================================================================

    def duplicate_module(self, module_id: UUID) -> MutationResult[Module]:
        """Copy a module and its active lectures to the end of its course.

        The copy is titled ``"<title> (Copy)"``; its lectures keep their
        titles and relative order.

        Raises:
            ModuleNotFoundError: If the source module doesn't exist
        """
        source = self.store.find_module(module_id)
        if source is None:
            raise ModuleNotFoundError

        with OperationContext("duplicate_module", course_id=source.course_id):
            lectures = self.store.find_lectures_by_module(module_id, active_only=True)

            def insert(number: int) -> Module:
                copy = Module(
                    course_id=source.course_id,
                    module_number=number,
                    title=f"{source.title}{COPY_SUFFIX}",
                    is_active=source.is_active,
                )
                self.store.insert_module(copy)
                return copy

            copy = claim_next_number(
                source.course_id,
                lambda: (
                    m.module_number
                    for m in self.store.find_modules_by_course(
                        source.course_id, active_only=False
                    )
                ),
                insert,
                self.settings.number_allocation_retries,
            )

            # Active lectures of the source are numbered 1..n in order
            copied: list[Lecture] = []
            try:
                for position, lecture in enumerate(lectures, start=1):
                    lecture_copy = Lecture(
                        module_id=copy.id,
                        course_id=lecture.course_id,
                        lecture_number=position,
                        duration=lecture.duration,
                        title=lecture.title,
                        video_url=lecture.video_url,
                        is_active=lecture.is_active,
                    )
                    self.store.insert_lecture(lecture_copy)
                    copied.append(lecture_copy)
            except Exception:
                self._discard_copy(copy, copied)
                raise

            warnings = self.stats.cascade_from_lecture(copy.id, copy.course_id)

            logger.info(
                "module_duplicated",
                source_module_id=str(module_id),
                module_id=str(copy.id),
                module_number=copy.module_number,
                lectures=len(lectures),
            )
            return MutationResult(
                entity=self.store.find_module(copy.id) or copy, warnings=warnings
            )

    def _discard_copy(self, copy: Module, lectures: list[Lecture]) -> None:
        """Remove a partially written module copy and the lectures it got."""
        for lecture in lectures:
            self.store.delete_lecture(lecture.id)
        self.store.delete_module(copy.id)
        logger.warning(
            "module_duplicate_rolled_back",
            module_id=str(copy.id),
            lectures=len(lectures),
        )

    def duplicate_lecture(self, lecture_id: UUID) -> MutationResult[Lecture]:
        """Copy a lecture to the end of its module.

        Raises:
            LectureNotFoundError: If the source lecture doesn't exist
        """
        source = self.store.find_lecture(lecture_id)
        if source is None:
            raise LectureNotFoundError

        with OperationContext("duplicate_lecture", course_id=source.course_id):

            def insert(number: int) -> Lecture:
                copy = Lecture(
                    module_id=source.module_id,
                    course_id=source.course_id,
                    lecture_number=number,
                    duration=source.duration,
                    title=f"{source.title}{COPY_SUFFIX}",
                    video_url=source.video_url,
                    is_active=source.is_active,
                )
                self.store.insert_lecture(copy)
                return copy

            copy = claim_next_number(
                source.module_id,
                lambda: (
                    lec.lecture_number
                    for lec in self.store.find_lectures_by_module(
                        source.module_id, active_only=False
                    )
                ),
                insert,
                self.settings.number_allocation_retries,
            )

            warnings = self.stats.cascade_from_lecture(copy.module_id, copy.course_id)

            logger.info(
                "lecture_duplicated",
                source_lecture_id=str(lecture_id),
                lecture_id=str(copy.id),
                lecture_number=copy.lecture_number,
            )
            return MutationResult(entity=copy, warnings=warnings)
