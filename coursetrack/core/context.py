"""Operation context management using contextvars.

Every engine operation runs inside an ``OperationContext`` so that the
operation id and the learner/course it concerns are attached to each log line
without threading them through every call.
"""

from contextvars import ContextVar
from typing import Any
from uuid import UUID, uuid4


operation_id_var: ContextVar[str] = ContextVar("operation_id", default="")
operation_name_var: ContextVar[str | None] = ContextVar("operation", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)
course_id_var: ContextVar[str | None] = ContextVar("course_id", default=None)


def generate_operation_id() -> str:
    """Generate a new unique operation ID."""
    return str(uuid4())


def get_operation_id() -> str:
    """Get the current operation ID."""
    return operation_id_var.get()


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_var.get()


def get_course_id() -> str | None:
    """Get the current course ID."""
    return course_id_var.get()


def get_context() -> dict[str, Any]:
    """Get all context variables as a dictionary.

    Returns:
        Dictionary with whichever of operation_id, operation, user_id and
        course_id are set.
    """
    context: dict[str, Any] = {}

    operation_id = get_operation_id()
    if operation_id:
        context["operation_id"] = operation_id

    operation = operation_name_var.get()
    if operation:
        context["operation"] = operation

    user_id = get_user_id()
    if user_id:
        context["user_id"] = user_id

    course_id = get_course_id()
    if course_id:
        context["course_id"] = course_id

    return context


def clear_context() -> None:
    """Clear all context variables."""
    operation_id_var.set("")
    operation_name_var.set(None)
    user_id_var.set(None)
    course_id_var.set(None)


class OperationContext:
    """Context manager for a single engine operation.

    Usage:
        with OperationContext("update_lecture_progress", user_id=..., course_id=...):
            logger.info("lecture_progress_updated")  # carries the ids above

    Nested contexts keep the outer operation id so a cascade triggered by a
    content mutation is logged under the mutation that caused it.
    """

    def __init__(
        self,
        operation: str,
        user_id: str | UUID | None = None,
        course_id: str | UUID | None = None,
        operation_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.user_id = user_id
        self.course_id = course_id
        self.operation_id = operation_id
        self._tokens: list[tuple[ContextVar, Any]] = []

    def _set(self, var: ContextVar, value: Any) -> None:
        self._tokens.append((var, var.set(value)))

    def __enter__(self) -> "OperationContext":
        """Enter context and set variables."""
        if self.operation_id or not operation_id_var.get():
            self._set(operation_id_var, self.operation_id or generate_operation_id())
        self._set(operation_name_var, self.operation)

        if self.user_id is not None:
            self._set(user_id_var, str(self.user_id))

        if self.course_id is not None:
            self._set(course_id_var, str(self.course_id))

        return self

    def __exit__(self, *_: object) -> None:
        """Exit context and restore previous values."""
        for var, token in reversed(self._tokens):
            var.reset(token)
        self._tokens.clear()
