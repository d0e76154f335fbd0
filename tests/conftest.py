"""Shared fixtures: in-memory stores, wired services and a sample course."""

from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest

from coursetrack.config.settings import Settings
from coursetrack.core.context import clear_context
from coursetrack.courses.models import Course
from coursetrack.courses.schemas import CreateLectureRequest, CreateModuleRequest
from coursetrack.dependencies import Services, wire_services
from tests.fakes import InMemoryContentStore, InMemoryProgressStore


@pytest.fixture(autouse=True)
def _clean_context():
    """Reset operation context between tests."""
    clear_context()
    yield
    clear_context()


@pytest.fixture
def settings() -> Settings:
    """Settings for the test environment."""
    return Settings(environment="testing", number_allocation_retries=3)


@pytest.fixture
def content_store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def progress_store() -> InMemoryProgressStore:
    return InMemoryProgressStore()


@pytest.fixture
def services(content_store, progress_store, settings) -> Services:
    """All services wired on the in-memory stores."""
    return wire_services(content_store, progress_store, settings)


@pytest.fixture
def user_id() -> UUID:
    return uuid4()


@pytest.fixture
def empty_course(content_store) -> Course:
    """A course with no modules."""
    course = Course(title="Empty Course")
    content_store.insert_course(course)
    return course


@pytest.fixture
def course_tree(content_store, services) -> SimpleNamespace:
    """Course with Module A (A1 10m, A2 20m) and Module B (B1 30m).

    Built through the content service so every counter is populated.
    """
    course = Course(title="Pharmacology 101")
    content_store.insert_course(course)

    module_a = services.content.create_module(
        course.id, CreateModuleRequest(title="A")
    ).entity
    module_b = services.content.create_module(
        course.id, CreateModuleRequest(title="B")
    ).entity

    a1 = services.content.create_lecture(
        module_a.id, CreateLectureRequest(title="A1", duration=10)
    ).entity
    a2 = services.content.create_lecture(
        module_a.id, CreateLectureRequest(title="A2", duration=20)
    ).entity
    b1 = services.content.create_lecture(
        module_b.id, CreateLectureRequest(title="B1", duration=30)
    ).entity

    return SimpleNamespace(
        course=course,
        module_a=module_a,
        module_b=module_b,
        a1=a1,
        a2=a2,
        b1=b1,
    )
