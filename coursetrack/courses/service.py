"""Content service.

Business logic for:
- Module and lecture creation, update and deletion
- Keeping numbering gapless when content is removed
- Triggering the stats cascade after every mutation that affects counters
- Course outline reads
"""

from uuid import UUID

import structlog

from coursetrack.config.settings import Settings, get_settings
from coursetrack.core.context import OperationContext
from coursetrack.core.errors import (
    CourseNotFoundError,
    LectureNotFoundError,
    ModuleNotFoundError,
    ValidationError,
)

from .models import EntityKind, Lecture, Module
from .numbering import claim_next_number, renumber
from .schemas import (
    CourseOutline,
    CreateLectureRequest,
    CreateModuleRequest,
    LectureResponse,
    ModuleOutline,
    UpdateLectureRequest,
    UpdateModuleRequest,
)
from .stats import MutationResult, StatsAggregator, StatsWarning
from .store import ContentStore


logger = structlog.get_logger(__name__)

# Lecture fields that change module and course counters
_LECTURE_STATS_FIELDS = {"duration", "is_active"}


class ContentService:
    """Service for course content mutations."""

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
    # Modules
    # ==========================================================================

    def create_module(
        self, course_id: UUID, data: CreateModuleRequest
    ) -> MutationResult[Module]:
        """Create a module at the end of a course.

        Raises:
            CourseNotFoundError: If the course doesn't exist
            DuplicateNumberError: If every allocation attempt collided
        """
        with OperationContext("create_module", course_id=course_id):
            if self.store.find_course(course_id) is None:
                raise CourseNotFoundError

            def insert(number: int) -> Module:
                module = Module(
                    course_id=course_id,
                    module_number=number,
                    title=data.title,
                    is_active=data.is_active,
                )
                self.store.insert_module(module)
                return module

            module = claim_next_number(
                course_id,
                lambda: self._module_numbers(course_id),
                insert,
                self.settings.number_allocation_retries,
            )

            warnings = self.stats.cascade_from_module(course_id)

            logger.info(
                "module_created",
                module_id=str(module.id),
                module_number=module.module_number,
            )
            return MutationResult(entity=module, warnings=warnings)

    def update_module(
        self, module_id: UUID, data: UpdateModuleRequest
    ) -> MutationResult[Module]:
        """Update a module.

        Raises:
            ModuleNotFoundError: If the module doesn't exist
            DuplicateNumberError: If the new number is held by another module
            ValidationError: If the new number would leave a gap
        """
        module = self.store.find_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        with OperationContext("update_module", course_id=module.course_id):
            fields = data.model_dump(exclude_unset=True, exclude_none=True)

            if "module_number" in fields:
                self._check_number_in_range(
                    fields["module_number"],
                    len(self._module_numbers(module.course_id)),
                )

            self.store.update_record(EntityKind.MODULE, module_id, fields)

            warnings: list[StatsWarning] = []
            if "is_active" in fields and fields["is_active"] != module.is_active:
                warnings = self.stats.cascade_from_module(module.course_id)

            logger.info(
                "module_updated", module_id=str(module_id), fields=sorted(fields)
            )
            updated = self.store.find_module(module_id)
            return MutationResult(entity=updated or module, warnings=warnings)

    def delete_module(self, module_id: UUID) -> MutationResult[Module]:
        """Delete a module and all its lectures.

        Modules after it move up one number so the course stays gapless.

        Raises:
            ModuleNotFoundError: If the module doesn't exist
        """
        module = self.store.find_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        with OperationContext("delete_module", course_id=module.course_id):
            lectures = self.store.find_lectures_by_module(module_id, active_only=False)
            for lecture in lectures:
                self.store.delete_lecture(lecture.id)
            self.store.delete_module(module_id)

            remaining = self.store.find_modules_by_course(
                module.course_id, active_only=False
            )
            renumber(
                self.store,
                EntityKind.MODULE,
                remaining,
                [m.id for m in remaining],
            )

            warnings = self.stats.cascade_from_module(module.course_id)

            logger.info(
                "module_deleted",
                module_id=str(module_id),
                lectures_deleted=len(lectures),
            )
            return MutationResult(entity=module, warnings=warnings)

    # ==========================================================================
    # Lectures
    # ==========================================================================

    def create_lecture(
        self, module_id: UUID, data: CreateLectureRequest
    ) -> MutationResult[Lecture]:
        """Create a lecture at the end of a module.

        Raises:
            ModuleNotFoundError: If the module doesn't exist
            CourseNotFoundError: If the module's course doesn't exist
            DuplicateNumberError: If every allocation attempt collided
        """
        module = self.store.find_module(module_id)
        if module is None:
            raise ModuleNotFoundError

        with OperationContext("create_lecture", course_id=module.course_id):
            if self.store.find_course(module.course_id) is None:
                raise CourseNotFoundError

            def insert(number: int) -> Lecture:
                lecture = Lecture(
                    module_id=module_id,
                    course_id=module.course_id,
                    lecture_number=number,
                    duration=data.duration,
                    title=data.title,
                    video_url=data.video_url,
                    is_active=data.is_active,
                )
                self.store.insert_lecture(lecture)
                return lecture

            lecture = claim_next_number(
                module_id,
                lambda: self._lecture_numbers(module_id),
                insert,
                self.settings.number_allocation_retries,
            )

            warnings = self.stats.cascade_from_lecture(module_id, module.course_id)

            logger.info(
                "lecture_created",
                lecture_id=str(lecture.id),
                module_id=str(module_id),
                lecture_number=lecture.lecture_number,
            )
            return MutationResult(entity=lecture, warnings=warnings)

    def update_lecture(
        self, lecture_id: UUID, data: UpdateLectureRequest
    ) -> MutationResult[Lecture]:
        """Update a lecture.

        Raises:
            LectureNotFoundError: If the lecture doesn't exist
            DuplicateNumberError: If the new number is held by another lecture
            ValidationError: If the new number would leave a gap
        """
        lecture = self.store.find_lecture(lecture_id)
        if lecture is None:
            raise LectureNotFoundError

        with OperationContext("update_lecture", course_id=lecture.course_id):
            fields = data.model_dump(exclude_unset=True, exclude_none=True)

            if "lecture_number" in fields:
                self._check_number_in_range(
                    fields["lecture_number"],
                    len(self._lecture_numbers(lecture.module_id)),
                )

            self.store.update_record(EntityKind.LECTURE, lecture_id, fields)

            warnings: list[StatsWarning] = []
            changed = {
                name
                for name in _LECTURE_STATS_FIELDS & fields.keys()
                if fields[name] != getattr(lecture, name)
            }
            if changed:
                warnings = self.stats.cascade_from_lecture(
                    lecture.module_id, lecture.course_id
                )

            logger.info(
                "lecture_updated", lecture_id=str(lecture_id), fields=sorted(fields)
            )
            updated = self.store.find_lecture(lecture_id)
            return MutationResult(entity=updated or lecture, warnings=warnings)

    def delete_lecture(self, lecture_id: UUID) -> MutationResult[Lecture]:
        """Delete a lecture; later lectures move up one number.

        Raises:
            LectureNotFoundError: If the lecture doesn't exist
        """
        lecture = self.store.find_lecture(lecture_id)
        if lecture is None:
            raise LectureNotFoundError

        with OperationContext("delete_lecture", course_id=lecture.course_id):
            self.store.delete_lecture(lecture_id)

            remaining = self.store.find_lectures_by_module(
                lecture.module_id, active_only=False
            )
            renumber(
                self.store,
                EntityKind.LECTURE,
                remaining,
                [lec.id for lec in remaining],
            )

            warnings = self.stats.cascade_from_lecture(
                lecture.module_id, lecture.course_id
            )

            logger.info(
                "lecture_deleted",
                lecture_id=str(lecture_id),
                module_id=str(lecture.module_id),
            )
            return MutationResult(entity=lecture, warnings=warnings)

    # ==========================================================================
    # Reads
    # ==========================================================================

    def get_course_outline(self, course_id: UUID) -> CourseOutline:
        """Get a course with its active modules and lectures in order.

        Raises:
            CourseNotFoundError: If the course doesn't exist
        """
        course = self.store.find_course(course_id)
        if course is None:
            raise CourseNotFoundError

        modules = []
        for module in self.store.find_modules_by_course(course_id, active_only=True):
            lectures = self.store.find_lectures_by_module(module.id, active_only=True)
            modules.append(
                ModuleOutline(
                    **module.to_dict(),
                    lectures=[LectureResponse.model_validate(lec) for lec in lectures],
                )
            )

        return CourseOutline(
            id=course.id,
            title=course.title,
            is_active=course.is_active,
            total_modules=course.total_modules,
            total_lectures=course.total_lectures,
            total_duration=course.total_duration,
            modules=modules,
        )

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def _module_numbers(self, course_id: UUID) -> list[int]:
        return [
            m.module_number
            for m in self.store.find_modules_by_course(course_id, active_only=False)
        ]

    def _lecture_numbers(self, module_id: UUID) -> list[int]:
        return [
            lec.lecture_number
            for lec in self.store.find_lectures_by_module(module_id, active_only=False)
        ]

    @staticmethod
    def _check_number_in_range(number: int, count: int) -> None:
        if number > count:
            msg = f"Number must be between 1 and {count}"
            raise ValidationError(msg, "number_out_of_range")
