"""Error taxonomy for the course engine.

Every error carries a human-readable ``message`` and a stable ``code`` that
callers map onto their own transport (HTTP status, RPC error, ...).
"""

from uuid import UUID


class CoreError(Exception):
    """Base engine error."""

    def __init__(self, message: str, code: str = "core_error"):
        self.message = message
        self.code = code
        super().__init__(message)


# ==============================================================================
# Not Found
# ==============================================================================


class NotFoundError(CoreError):
    """Referenced entity does not exist."""

    def __init__(self, message: str = "Entity not found", code: str = "not_found"):
        super().__init__(message, code)


class CourseNotFoundError(NotFoundError):
    """Course not found."""

    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(NotFoundError):  # noqa: A001
    """Module not found."""

    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class LectureNotFoundError(NotFoundError):
    """Lecture not found."""

    def __init__(self, message: str = "Lecture not found"):
        super().__init__(message, "lecture_not_found")


class ProgressNotFoundError(NotFoundError):
    """Progress record not found."""

    def __init__(self, message: str = "Progress record not found"):
        super().__init__(message, "progress_not_found")


# ==============================================================================
# Conflict
# ==============================================================================


class ConflictError(CoreError):
    """Write rejected because it collides with concurrent state."""

    def __init__(self, message: str = "Conflict", code: str = "conflict"):
        super().__init__(message, code)


class DuplicateNumberError(ConflictError):
    """A module/lecture number is already taken within its parent."""

    def __init__(self, scope_id: UUID | None = None, number: int | None = None):
        self.scope_id = scope_id
        self.number = number
        message = "Number already exists in this scope"
        if number is not None:
            message = f"Number {number} already exists in this scope"
        super().__init__(message, "duplicate_number")


class StaleVersionError(ConflictError):
    """Progress write was based on an outdated version; re-read and retry."""

    def __init__(self, expected: int | None = None, actual: int | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Progress record changed concurrently (expected version {expected}, found {actual})",
            "stale_version",
        )


# ==============================================================================
# Validation
# ==============================================================================


class ValidationError(CoreError):
    """Request is structurally invalid; nothing was written."""

    def __init__(self, message: str = "Validation error", code: str = "validation_error"):
        super().__init__(message, code)


class ForeignEntityMismatchError(ValidationError):
    """Some ids do not belong to the parent being operated on."""

    def __init__(self, foreign_ids: list[UUID] | None = None, scope: str = "parent"):
        self.foreign_ids = foreign_ids or []
        super().__init__(
            f"Some ids do not belong to this {scope}", "foreign_entity_mismatch"
        )


class EmptySetError(ValidationError):
    """An ordering request named no entities."""

    def __init__(self, message: str = "At least one id is required"):
        super().__init__(message, "empty_set")


class DuplicateEntryError(ValidationError):
    """An ordering request named the same entity twice."""

    def __init__(self, duplicate_ids: list[UUID] | None = None):
        self.duplicate_ids = duplicate_ids or []
        super().__init__("Ids must not repeat", "duplicate_entry")
