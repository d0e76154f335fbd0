# Core infrastructure
from coursetrack.core.context import (
    OperationContext,
    clear_context,
    get_context,
    get_course_id,
    get_operation_id,
    get_user_id,
)
from coursetrack.core.logging import configure_structlog, get_logger


__all__ = [
    "OperationContext",
    "clear_context",
    "configure_structlog",
    "get_context",
    "get_course_id",
    "get_logger",
    "get_operation_id",
    "get_user_id",
]
