"""Shared pytest fixtures and configuration."""

import itertools
from collections.abc import Callable
from typing import Any

import pytest

from coursereg.auth import TokenService, hash_password
from coursereg.registrar import Registrar
from coursereg.rules import Principal
from coursereg.store import Course, CourseStatus, Role, Store, User

TEST_PASSWORD = "secret123"
FAST_ITERATIONS = 1000


# Register custom markers
def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line("markers", "unit: fast tests with no external dependencies")
    config.addinivalue_line("markers", "integration: component interaction tests")


# Shared fixtures


@pytest.fixture
def store():
    """Create an in-memory Store."""
    s = Store(":memory:")
    yield s
    s.close()


@pytest.fixture
def tokens() -> TokenService:
    return TokenService("test-secret", ttl_seconds=3600)


@pytest.fixture
def registrar(store: Store, tokens: TokenService) -> Registrar:
    """Registrar without an advisor and with cheap password hashing."""
    return Registrar(store, tokens, advisor=None, password_iterations=FAST_ITERATIONS)


@pytest.fixture
def make_user(store: Store) -> Callable[..., User]:
    """Factory creating users with unique emails."""
    counter = itertools.count(1)

    def _make(
        role: Role = Role.STUDENT,
        email: str | None = None,
        first_name: str = "Test",
        last_name: str | None = None,
        student_id: str | None = None,
        department: str | None = "Computer Science",
        year: str | None = None,
        password: str = TEST_PASSWORD,
    ) -> User:
        n = next(counter)
        return store.create_user(
            email=email or f"{role.value}{n}@example.edu",
            password_hash=hash_password(password, FAST_ITERATIONS),
            first_name=first_name,
            last_name=last_name or f"User{n}",
            role=role,
            student_id=student_id,
            department=department,
            year=year,
        )

    return _make


@pytest.fixture
def make_course(store: Store) -> Callable[..., Course]:
    """Factory creating courses with unique codes."""
    counter = itertools.count(101)

    def _make(
        instructor: User,
        code: str | None = None,
        max_students: int = 30,
        status: CourseStatus = CourseStatus.OPEN,
        **overrides: object,
    ) -> Course:
        n = next(counter)
        fields: dict[str, object] = {
            "code": code or f"CS{n}",
            "title": f"Course {n}",
            "description": "An introductory course.",
            "credits": 3,
            "department": "Computer Science",
            "instructor_id": instructor.id,
            "max_students": max_students,
            "schedule_days": ["Monday", "Wednesday"],
            "schedule_start": "09:00",
            "schedule_end": "10:30",
            "semester": "Fall",
            "year": 2025,
            "status": status,
        }
        fields.update(overrides)
        return store.create_course(**fields)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def course_payload() -> Callable[..., dict[str, Any]]:
    """Factory for camelCase course request bodies."""

    def _payload(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "title": "Introduction to Programming",
            "code": "CS101",
            "description": "Fundamentals of programming in Python.",
            "credits": 3,
            "department": "Computer Science",
            "maxStudents": 30,
            "schedule": {
                "days": ["Monday", "Wednesday"],
                "time": {"start": "09:00", "end": "10:30"},
                "room": "Hall A",
            },
            "semester": "Fall",
            "year": 2025,
        }
        payload.update(overrides)
        return payload

    return _payload


@pytest.fixture
def principal_of() -> Callable[[User], Principal]:
    """Build the Principal for a stored user."""

    def _principal(user: User) -> Principal:
        return Principal(id=user.id, role=Role(user.role), active=user.is_active)

    return _principal


@pytest.fixture
def admin(make_user: Callable[..., User]) -> User:
    return make_user(Role.ADMIN, first_name="Ada", last_name="Admin")


@pytest.fixture
def instructor(make_user: Callable[..., User]) -> User:
    return make_user(Role.INSTRUCTOR, first_name="Ian", last_name="Instructor")


@pytest.fixture
def student(make_user: Callable[..., User]) -> User:
    return make_user(Role.STUDENT, first_name="Sam", last_name="Student", student_id="S1000")


@pytest.fixture
def admin_principal(admin: User, principal_of: Callable[[User], Principal]) -> Principal:
    return principal_of(admin)


@pytest.fixture
def instructor_principal(instructor: User, principal_of: Callable[[User], Principal]) -> Principal:
    return principal_of(instructor)


@pytest.fixture
def student_principal(student: User, principal_of: Callable[[User], Principal]) -> Principal:
    return principal_of(student)
