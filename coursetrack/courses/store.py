# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Content hierarchy persistence.

``ContentStore`` is the contract the engine consumes: point lookups, ordered
range queries by parent, atomic single-record updates, and inserts/deletes
that enforce unique module and lecture numbers within their parent.

``CassandraContentStore`` implements it on the tables in
``coursetrack.courses.models``. Number uniqueness is enforced by claiming a
row in ``module_numbers`` / ``lecture_numbers`` with a lightweight
transaction before the entity row is written.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, Protocol
from uuid import UUID

import structlog

from coursetrack.core.errors import (
    DuplicateNumberError,
    LectureNotFoundError,
    ModuleNotFoundError,
)

from .models import Course, EntityKind, Lecture, Module


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


class ContentStore(Protocol):
    """Persistence contract for courses, modules and lectures."""

    def find_course(self, course_id: UUID) -> Course | None: ...

    def find_module(self, module_id: UUID) -> Module | None: ...

    def find_lecture(self, lecture_id: UUID) -> Lecture | None: ...

    def find_modules_by_course(
        self, course_id: UUID, active_only: bool = True
    ) -> list[Module]:
        """Modules of a course ordered by ``module_number``."""
        ...

    def find_lectures_by_module(
        self, module_id: UUID, active_only: bool = True
    ) -> list[Lecture]:
        """Lectures of a module ordered by ``lecture_number``."""
        ...

    def insert_course(self, course: Course) -> None: ...

    def insert_module(self, module: Module) -> None:
        """Raises DuplicateNumberError if the number is taken in the course."""
        ...

    def insert_lecture(self, lecture: Lecture) -> None:
        """Raises DuplicateNumberError if the number is taken in the module."""
        ...

    def update_record(
        self, kind: EntityKind, record_id: UUID, fields: dict[str, Any]
    ) -> None:
        """Atomically update one record.

        Changing ``module_number`` / ``lecture_number`` raises
        DuplicateNumberError when the target number is held by a sibling.
        """
        ...

    def delete_module(self, module_id: UUID) -> None: ...

    def delete_lecture(self, lecture_id: UUID) -> None: ...


# Columns a caller may change through update_record
_MUTABLE_COLUMNS: dict[EntityKind, set[str]] = {
    EntityKind.COURSE: {
        "title",
        "is_active",
        "total_modules",
        "total_lectures",
        "total_duration",
    },
    EntityKind.MODULE: {
        "title",
        "module_number",
        "is_active",
        "lecture_count",
        "total_duration",
    },
    EntityKind.LECTURE: {
        "title",
        "video_url",
        "lecture_number",
        "duration",
        "is_active",
    },
}

_TABLES: dict[EntityKind, str] = {
    EntityKind.COURSE: "courses",
    EntityKind.MODULE: "modules",
    EntityKind.LECTURE: "lectures",
}


# ==============================================================================
# Cassandra Store
# ==============================================================================


class CassandraContentStore:
    """Cassandra-backed ``ContentStore``."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Courses
        self._get_course_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._insert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, title, is_active, total_modules, total_lectures, total_duration,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        # Modules
        self._get_module_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._insert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules
            (id, course_id, title, module_number, is_active, lecture_count,
             total_duration, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.modules WHERE id = ?"
        )
        self._get_modules_by_course = self.session.prepare(
            f"SELECT module_id FROM {self.keyspace}.modules_by_course WHERE course_id = ?"
        )
        self._insert_modules_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.modules_by_course (course_id, module_id)
            VALUES (?, ?)
        """)
        self._delete_modules_by_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.modules_by_course WHERE course_id = ? AND module_id = ?"
        )
        self._claim_module_number = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_numbers
            (course_id, module_number, module_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._release_module_number = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.module_numbers
            WHERE course_id = ? AND module_number = ? IF module_id = ?
        """)

        # Lectures
        self._get_lecture_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.lectures WHERE id = ?"
        )
        self._insert_lecture = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lectures
            (id, module_id, course_id, title, video_url, lecture_number, duration,
             is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_lecture = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lectures WHERE id = ?"
        )
        self._get_lectures_by_module = self.session.prepare(
            f"SELECT lecture_id FROM {self.keyspace}.lectures_by_module WHERE module_id = ?"
        )
        self._insert_lectures_by_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lectures_by_module (module_id, lecture_id)
            VALUES (?, ?)
        """)
        self._delete_lectures_by_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.lectures_by_module WHERE module_id = ? AND lecture_id = ?"
        )
        self._claim_lecture_number = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.lecture_numbers
            (module_id, lecture_number, lecture_id)
            VALUES (?, ?, ?) IF NOT EXISTS
        """)
        self._release_lecture_number = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.lecture_numbers
            WHERE module_id = ? AND lecture_number = ? IF lecture_id = ?
        """)

        # kind -> (claim, release, owner column)
        self._number_claims: dict[EntityKind, tuple[Any, Any, str]] = {
            EntityKind.MODULE: (
                self._claim_module_number,
                self._release_module_number,
                "module_id",
            ),
            EntityKind.LECTURE: (
                self._claim_lecture_number,
                self._release_lecture_number,
                "lecture_id",
            ),
        }

    # --------------------------------------------------------------------------
    # Lookups
    # --------------------------------------------------------------------------

    def find_course(self, course_id: UUID) -> Course | None:
        """Get course by ID."""
        row = self.session.execute(self._get_course_by_id, [course_id]).one()
        return Course.from_row(row) if row else None

    def find_module(self, module_id: UUID) -> Module | None:
        """Get module by ID."""
        row = self.session.execute(self._get_module_by_id, [module_id]).one()
        return Module.from_row(row) if row else None

    def find_lecture(self, lecture_id: UUID) -> Lecture | None:
        """Get lecture by ID."""
        row = self.session.execute(self._get_lecture_by_id, [lecture_id]).one()
        return Lecture.from_row(row) if row else None

    def find_modules_by_course(
        self, course_id: UUID, active_only: bool = True
    ) -> list[Module]:
        """Get modules of a course sorted by module number."""
        rows = self.session.execute(self._get_modules_by_course, [course_id])

        modules = []
        for row in rows:
            module = self.find_module(row.module_id)
            if module is None or (active_only and not module.is_active):
                continue
            modules.append(module)

        modules.sort(key=lambda m: m.module_number)
        return modules

    def find_lectures_by_module(
        self, module_id: UUID, active_only: bool = True
    ) -> list[Lecture]:
        """Get lectures of a module sorted by lecture number."""
        rows = self.session.execute(self._get_lectures_by_module, [module_id])

        lectures = []
        for row in rows:
            lecture = self.find_lecture(row.lecture_id)
            if lecture is None or (active_only and not lecture.is_active):
                continue
            lectures.append(lecture)

        lectures.sort(key=lambda lec: lec.lecture_number)
        return lectures

    # --------------------------------------------------------------------------
    # Inserts
    # --------------------------------------------------------------------------

    def insert_course(self, course: Course) -> None:
        """Insert a course."""
        self.session.execute(
            self._insert_course,
            [
                course.id,
                course.title,
                course.is_active,
                course.total_modules,
                course.total_lectures,
                course.total_duration,
                course.created_at,
                course.updated_at,
            ],
        )

    def insert_module(self, module: Module) -> None:
        """Claim the module number, then write the module and its lookup row.

        The claim is released again if a row write fails.
        """
        self._claim_number(
            EntityKind.MODULE, module.course_id, module.module_number, module.id
        )
        try:
            self.session.execute(
                self._insert_module,
                [
                    module.id,
                    module.course_id,
                    module.title,
                    module.module_number,
                    module.is_active,
                    module.lecture_count,
                    module.total_duration,
                    module.created_at,
                    module.updated_at,
                ],
            )
            self.session.execute(
                self._insert_modules_by_course, [module.course_id, module.id]
            )
        except Exception:
            self._release_number(
                EntityKind.MODULE, module.course_id, module.module_number, module.id
            )
            raise

    def insert_lecture(self, lecture: Lecture) -> None:
        """Claim the lecture number, then write the lecture and its lookup row.

        The claim is released again if a row write fails.
        """
        self._claim_number(
            EntityKind.LECTURE, lecture.module_id, lecture.lecture_number, lecture.id
        )
        try:
            self.session.execute(
                self._insert_lecture,
                [
                    lecture.id,
                    lecture.module_id,
                    lecture.course_id,
                    lecture.title,
                    lecture.video_url,
                    lecture.lecture_number,
                    lecture.duration,
                    lecture.is_active,
                    lecture.created_at,
                    lecture.updated_at,
                ],
            )
            self.session.execute(
                self._insert_lectures_by_module, [lecture.module_id, lecture.id]
            )
        except Exception:
            self._release_number(
                EntityKind.LECTURE, lecture.module_id, lecture.lecture_number, lecture.id
            )
            raise

    # --------------------------------------------------------------------------
    # Updates
    # --------------------------------------------------------------------------

    def update_record(
        self, kind: EntityKind, record_id: UUID, fields: dict[str, Any]
    ) -> None:
        """Update the given columns of one record.

        A number change claims the new number first and releases the old one
        once the row is written, so two siblings never hold the same number.
        If the row write fails the new claim is released and the old one
        kept.
        """
        unknown = set(fields) - _MUTABLE_COLUMNS[kind]
        if unknown:
            msg = f"Cannot update {kind.value} columns: {sorted(unknown)}"
            raise ValueError(msg)
        if not fields:
            return

        move = self._number_move(kind, record_id, fields)
        if move is not None:
            scope_id, old_number, new_number = move
            self._claim_number(kind, scope_id, new_number, record_id)

        values = dict(fields)
        values["updated_at"] = datetime.now(UTC)
        assignments = ", ".join(f"{column} = %s" for column in values)
        cql = f"UPDATE {self.keyspace}.{_TABLES[kind]} SET {assignments} WHERE id = %s"
        try:
            self.session.execute(cql, [*values.values(), record_id])
        except Exception:
            if move is not None:
                self._release_number(kind, scope_id, new_number, record_id)
            raise

        if move is not None:
            self._release_number(kind, scope_id, old_number, record_id)

    def _number_move(
        self, kind: EntityKind, record_id: UUID, fields: dict[str, Any]
    ) -> tuple[UUID, int, int] | None:
        """(scope id, old number, new number) when ``fields`` renumbers the record."""
        if kind is EntityKind.MODULE and "module_number" in fields:
            module = self.find_module(record_id)
            if module is None:
                raise ModuleNotFoundError
            scope_id, old_number = module.course_id, module.module_number
            new_number = fields["module_number"]
        elif kind is EntityKind.LECTURE and "lecture_number" in fields:
            lecture = self.find_lecture(record_id)
            if lecture is None:
                raise LectureNotFoundError
            scope_id, old_number = lecture.module_id, lecture.lecture_number
            new_number = fields["lecture_number"]
        else:
            return None

        if old_number == new_number:
            return None
        return scope_id, old_number, new_number

    # --------------------------------------------------------------------------
    # Number claims
    # --------------------------------------------------------------------------

    def _claim_number(
        self, kind: EntityKind, scope_id: UUID, number: int, owner_id: UUID
    ) -> None:
        """Claim ``number`` in ``scope_id`` for ``owner_id``.

        A claim already held by the same owner (left by an earlier attempt
        that failed after claiming) counts as claimed.

        Raises:
            DuplicateNumberError: If another record holds the number
        """
        claim, _, owner_column = self._number_claims[kind]
        result = self.session.execute(claim, [scope_id, number, owner_id])
        if result.was_applied:
            return

        holder = getattr(result.one(), owner_column, None)
        if holder == owner_id:
            logger.info(
                "number_claim_reused",
                kind=kind.value,
                scope_id=str(scope_id),
                number=number,
            )
            return

        logger.debug(
            "number_taken",
            kind=kind.value,
            scope_id=str(scope_id),
            number=number,
        )
        raise DuplicateNumberError(scope_id, number)

    def _release_number(
        self, kind: EntityKind, scope_id: UUID, number: int, owner_id: UUID
    ) -> None:
        """Release a claim; only the owner's claim is removed."""
        _, release, _ = self._number_claims[kind]
        self.session.execute(release, [scope_id, number, owner_id])

    # --------------------------------------------------------------------------
    # Deletes
    # --------------------------------------------------------------------------

    def delete_module(self, module_id: UUID) -> None:
        """Delete a module row, its lookup row and its number claim."""
        module = self.find_module(module_id)
        if module is None:
            return

        self.session.execute(self._delete_module, [module_id])
        self.session.execute(
            self._delete_modules_by_course, [module.course_id, module_id]
        )
        self._release_number(
            EntityKind.MODULE, module.course_id, module.module_number, module_id
        )

    def delete_lecture(self, lecture_id: UUID) -> None:
        """Delete a lecture row, its lookup row and its number claim."""
        lecture = self.find_lecture(lecture_id)
        if lecture is None:
            return

        self.session.execute(self._delete_lecture, [lecture_id])
        self.session.execute(
            self._delete_lectures_by_module, [lecture.module_id, lecture_id]
        )
        self._release_number(
            EntityKind.LECTURE, lecture.module_id, lecture.lecture_number, lecture_id
        )
