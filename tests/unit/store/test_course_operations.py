"""Tests for course operations in Store."""

import pytest
from sqlalchemy.exc import IntegrityError

from coursereg.store import (
    CapacityBelowEnrollmentError,
    CourseCodeExistsError,
    CourseNotFoundError,
    CourseStatus,
    RecordState,
    Role,
)


@pytest.mark.unit
class TestCreateCourse:
    """Tests for creating courses."""

    def test_create_course(self, store, instructor):
        course = store.create_course(
            code="CS101",
            title="Intro to Programming",
            description="Learn to program in Python.",
            credits=3,
            department="Computer Science",
            instructor_id=instructor.id,
            max_students=2,
            schedule_days=["Monday"],
            schedule_start="09:00",
            schedule_end="10:00",
            semester="Fall",
            year=2025,
        )

        assert course.id is not None
        assert course.status == CourseStatus.OPEN.value
        assert course.seats_taken == 0
        assert course.prerequisite_ids == []
        assert course.is_active

    def test_duplicate_code_raises(self, store, instructor, make_course):
        make_course(instructor, code="CS101")

        with pytest.raises(CourseCodeExistsError, match="CS101"):
            make_course(instructor, code="CS101")

    def test_duplicate_code_rejected_after_soft_delete(self, store, instructor, make_course):
        course = make_course(instructor, code="CS101")
        store.update_course(course.id, {"record_state": RecordState.INACTIVE.value})

        with pytest.raises(CourseCodeExistsError):
            make_course(instructor, code="CS101")

    def test_unknown_instructor_rejected(self, store, make_course, make_user):
        ghost = make_user(Role.INSTRUCTOR)
        ghost.id = "no-such-user"

        with pytest.raises(IntegrityError):
            make_course(ghost)


@pytest.mark.unit
class TestGetCourse:
    def test_get_course(self, store, instructor, make_course):
        course = make_course(instructor, code="CS200")

        assert store.get_course(course.id).code == "CS200"
        assert store.find_course_by_code("CS200").id == course.id
        assert store.find_course_by_code("CS999") is None

    def test_get_missing_course_raises(self, store):
        with pytest.raises(CourseNotFoundError):
            store.get_course("missing")

    def test_get_courses(self, store, instructor, make_course):
        a = make_course(instructor)
        b = make_course(instructor)

        assert {c.id for c in store.get_courses([a.id, b.id, "missing"])} == {a.id, b.id}


@pytest.mark.unit
class TestListCourses:
    """Tests for filtering and paging courses."""

    def test_filters(self, store, instructor, make_user, make_course):
        other = make_user(Role.INSTRUCTOR)
        make_course(instructor, department="Math", semester="Spring", year=2025)
        make_course(instructor, department="Math", semester="Fall", year=2026)
        make_course(other, status=CourseStatus.CLOSED)

        assert store.count_courses() == 3
        assert store.count_courses(department="Math") == 2
        assert store.count_courses(semester="Spring") == 1
        assert store.count_courses(year=2026) == 1
        assert store.count_courses(status=CourseStatus.CLOSED) == 1
        assert store.count_courses(instructor_id=other.id) == 1

    def test_inactive_courses_hidden(self, store, instructor, make_course):
        kept = make_course(instructor)
        gone = make_course(instructor)
        store.update_course(gone.id, {"record_state": RecordState.INACTIVE.value})

        assert [c.id for c in store.list_courses()] == [kept.id]
        assert len(store.list_courses(active_only=False)) == 2

    def test_limit_and_offset(self, store, instructor, make_course):
        for _ in range(4):
            make_course(instructor)

        assert len(store.list_courses(limit=3)) == 3
        assert len(store.list_courses(limit=3, offset=3)) == 1


@pytest.mark.unit
class TestUpdateCourse:
    def test_update_fields(self, store, instructor, make_course):
        course = make_course(instructor)

        updated = store.update_course(course.id, {"title": "Renamed", "max_students": 5})

        assert updated.title == "Renamed"
        assert updated.max_students == 5

    def test_capacity_cannot_drop_below_seats_taken(
        self, store, instructor, make_user, make_course
    ):
        course = make_course(instructor, max_students=3)
        store.enroll(make_user().id, course.id)
        store.enroll(make_user().id, course.id)

        with pytest.raises(CapacityBelowEnrollmentError):
            store.update_course(course.id, {"title": "Renamed", "max_students": 1})

        unchanged = store.get_course(course.id)
        assert unchanged.max_students == 3
        assert unchanged.title == course.title

    def test_capacity_may_equal_seats_taken(self, store, instructor, make_user, make_course):
        course = make_course(instructor, max_students=3)
        store.enroll(make_user().id, course.id)

        assert store.update_course(course.id, {"max_students": 1}).max_students == 1

    def test_seats_taken_not_writable(self, store, instructor, make_course):
        course = make_course(instructor)

        with pytest.raises(ValueError, match="seats_taken"):
            store.update_course(course.id, {"seats_taken": 3})

    def test_update_to_taken_code_raises(self, store, instructor, make_course):
        make_course(instructor, code="CS101")
        other = make_course(instructor, code="CS102")

        with pytest.raises(CourseCodeExistsError):
            store.update_course(other.id, {"code": "CS101"})

    def test_update_missing_course_raises(self, store):
        with pytest.raises(CourseNotFoundError):
            store.update_course("missing", {"title": "X"})
