"""Tests for operation context and logging configuration."""

import json
import logging
from uuid import uuid4

import structlog

from coursetrack.config.settings import Settings
from coursetrack.core.context import (
    OperationContext,
    get_context,
    get_course_id,
    get_operation_id,
    get_user_id,
)
from coursetrack.core.logging import add_context_processor, configure_structlog


class TestOperationContext:
    """Tests for OperationContext."""

    def test_sets_and_restores_values(self):
        """Values are visible inside the block and cleared after it."""
        user_id, course_id = uuid4(), uuid4()

        with OperationContext("update_lecture_progress", user_id=user_id, course_id=course_id):
            assert get_user_id() == str(user_id)
            assert get_course_id() == str(course_id)
            assert get_operation_id()
            assert get_context()["operation"] == "update_lecture_progress"

        assert get_user_id() is None
        assert get_course_id() is None
        assert get_operation_id() == ""
        assert get_context() == {}

    def test_nested_context_keeps_operation_id(self):
        """A nested operation is logged under the outer operation id."""
        with OperationContext("delete_lecture"):
            outer_id = get_operation_id()
            with OperationContext("recompute_stats", course_id=uuid4()):
                assert get_operation_id() == outer_id
                assert get_context()["operation"] == "recompute_stats"
            assert get_context()["operation"] == "delete_lecture"
            assert get_course_id() is None

    def test_explicit_operation_id(self):
        """An explicit operation id overrides the generated one."""
        with OperationContext("reset_progress", operation_id="op-123"):
            assert get_operation_id() == "op-123"


class TestLogging:
    """Tests for structlog configuration."""

    def test_context_processor_adds_ids(self):
        """Context values are added without overwriting explicit fields."""
        with OperationContext("reorder_modules", course_id="course-1"):
            event = add_context_processor(None, "info", {"event": "x", "course_id": "explicit"})

        assert event["operation"] == "reorder_modules"
        assert event["course_id"] == "explicit"
        assert "operation_id" in event

    def test_json_file_output(self, tmp_path):
        """Events are written to the JSON log file with operation context."""
        settings = Settings(
            environment="testing",
            log_format="json",
            log_level="INFO",
            log_include_caller_info=False,
        )
        configure_structlog(settings, log_dir=tmp_path)
        try:
            logger = structlog.get_logger("coursetrack.test")
            course_id = uuid4()
            with OperationContext("initialize_progress", user_id="user-1"):
                logger.info("progress_initialized", total_lectures=3, course_id=course_id)

            for handler in logging.getLogger().handlers:
                handler.flush()

            lines = (tmp_path / f"{settings.app_name}.log").read_text().splitlines()
            record = json.loads(lines[-1])
            assert record["event"] == "progress_initialized"
            assert record["total_lectures"] == 3
            assert record["user_id"] == "user-1"
            assert record["course_id"] == str(course_id)
            assert record["operation"] == "initialize_progress"
            assert record["environment"] == "testing"
            assert record["level"] == "info"
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            structlog.reset_defaults()
