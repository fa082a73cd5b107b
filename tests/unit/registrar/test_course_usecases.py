"""Tests for course use-cases in Registrar."""

from unittest.mock import patch

import pytest

from coursereg.rules import (
    AuthenticationError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from coursereg.store import CourseStatus, Role


@pytest.mark.unit
class TestCreateCourse:
    """Tests for create_course."""

    def test_instructor_owns_created_course(self, registrar, instructor_principal, course_payload):
        view = registrar.create_course(instructor_principal, course_payload())

        assert view.code == "CS101"
        assert view.instructor.id == instructor_principal.id
        assert view.status == "open"
        assert view.enrollment_count == 0
        assert view.available_spots == 30
        assert not view.is_full
        assert view.schedule.time.start == "09:00"
        assert view.enrolled_students == []

    def test_code_normalized_to_upper_case(self, registrar, instructor_principal, course_payload):
        view = registrar.create_course(instructor_principal, course_payload(code=" math201 "))

        assert view.code == "MATH201"

    def test_instructor_cannot_assign_other_owner(
        self, registrar, instructor_principal, make_user, course_payload
    ):
        other = make_user(Role.INSTRUCTOR)

        view = registrar.create_course(instructor_principal, course_payload(instructor=other.id))

        assert view.instructor.id == instructor_principal.id

    def test_admin_assigns_instructor(self, registrar, admin_principal, instructor, course_payload):
        view = registrar.create_course(admin_principal, course_payload(instructor=instructor.id))

        assert view.instructor.id == instructor.id

    def test_admin_cannot_assign_student(self, registrar, admin_principal, student, course_payload):
        with pytest.raises(ValidationError) as exc_info:
            registrar.create_course(admin_principal, course_payload(instructor=student.id))

        assert exc_info.value.details[0].field == "instructor"

    def test_student_forbidden_before_validation(self, registrar, student_principal):
        with pytest.raises(ForbiddenError, match="Not authorized to create courses"):
            registrar.create_course(student_principal, {})

    def test_anonymous_rejected(self, registrar, course_payload):
        with pytest.raises(AuthenticationError):
            registrar.create_course(None, course_payload())

    def test_duplicate_code_conflicts(self, registrar, instructor_principal, course_payload):
        registrar.create_course(instructor_principal, course_payload(code="CS101"))

        with pytest.raises(ConflictError, match="Course with this code already exists"):
            registrar.create_course(instructor_principal, course_payload(code="cs101"))

    def test_prerequisites_resolved(self, registrar, instructor_principal, course_payload):
        base = registrar.create_course(instructor_principal, course_payload(code="CS101"))

        view = registrar.create_course(
            instructor_principal, course_payload(code="CS201", prerequisites=[base.id])
        )

        assert [p.code for p in view.prerequisites] == ["CS101"]

    def test_unknown_prerequisite_rejected(self, registrar, instructor_principal, course_payload):
        with pytest.raises(ValidationError, match="Prerequisite course not found: nope"):
            registrar.create_course(instructor_principal, course_payload(prerequisites=["nope"]))


@pytest.mark.unit
class TestReadCourses:
    def test_list_paginates(self, registrar, instructor, make_course):
        for _ in range(3):
            make_course(instructor)

        page = registrar.list_courses(page=2, limit=2)

        assert len(page.courses) == 1
        assert page.pagination.current == 2
        assert page.pagination.pages == 2
        assert page.pagination.total == 3
        assert page.pagination.limit == 2

    def test_list_filters_by_status(self, registrar, instructor, make_course):
        make_course(instructor, status=CourseStatus.CLOSED)
        make_course(instructor)

        page = registrar.list_courses(status="closed")

        assert [c.status for c in page.courses] == ["closed"]

    def test_list_rejects_bad_status_filter(self, registrar):
        with pytest.raises(ValidationError) as exc_info:
            registrar.list_courses(status="full")

        assert exc_info.value.details[0].field == "status"

    @pytest.mark.parametrize(("page", "limit"), [(0, 10), (1, 0), (1, 101)])
    def test_list_rejects_bad_paging(self, registrar, page, limit):
        with pytest.raises(ValidationError):
            registrar.list_courses(page=page, limit=limit)

    def test_get_course_is_public(self, registrar, instructor, make_course):
        course = make_course(instructor)

        assert registrar.get_course(None, course.id).id == course.id

    def test_deleted_course_visible_only_to_admin(
        self, registrar, admin_principal, student_principal, instructor, make_course
    ):
        course = make_course(instructor)
        registrar.delete_course(admin_principal, course.id)

        with pytest.raises(NotFoundError):
            registrar.get_course(student_principal, course.id)
        assert not registrar.get_course(admin_principal, course.id).is_active

    def test_list_instructor_courses(self, registrar, instructor, make_user, make_course):
        other = make_user(Role.INSTRUCTOR)
        mine = make_course(instructor)
        make_course(other)

        views = registrar.list_instructor_courses(None, instructor.id)

        assert [v.id for v in views] == [mine.id]

    def test_admin_sees_deleted_instructor_courses(
        self, registrar, admin_principal, instructor_principal, instructor, make_course
    ):
        kept = make_course(instructor)
        deleted = make_course(instructor)
        registrar.delete_course(admin_principal, deleted.id)

        public = registrar.list_instructor_courses(instructor_principal, instructor.id)
        everything = registrar.list_instructor_courses(admin_principal, instructor.id)

        assert [v.id for v in public] == [kept.id]
        assert {v.id for v in everything} == {kept.id, deleted.id}

    def test_enrolled_students_show_public_fields_only(
        self, registrar, student, student_principal, instructor, make_course
    ):
        course = make_course(instructor)
        registrar.enroll(student_principal, course.id)

        [entry] = registrar.get_course(None, course.id).enrolled_students

        assert entry.id == student.id
        assert entry.email == student.email
        assert entry.student_id is None
        assert entry.year is None


@pytest.mark.unit
class TestUpdateCourse:
    """Tests for update_course."""

    def test_owner_updates(self, registrar, instructor_principal, instructor, make_course):
        course = make_course(instructor)

        view = registrar.update_course(
            instructor_principal, course.id, {"title": "Advanced Topics"}
        )

        assert view.title == "Advanced Topics"

    def test_non_owner_instructor_forbidden(
        self, registrar, make_user, principal_of, instructor, make_course
    ):
        course = make_course(instructor)
        other = principal_of(make_user(Role.INSTRUCTOR))

        with pytest.raises(ForbiddenError, match="Not authorized to update this course"):
            registrar.update_course(other, course.id, {"title": "Hijacked"})

    def test_capacity_below_enrollment_rejected(
        self, registrar, store, admin_principal, instructor, make_user, make_course
    ):
        course = make_course(instructor, max_students=5)
        for _ in range(3):
            store.enroll(make_user().id, course.id)

        with pytest.raises(ValidationError, match=r"current enrollment \(3\)"):
            registrar.update_course(admin_principal, course.id, {"maxStudents": 2})

        assert registrar.update_course(admin_principal, course.id, {"maxStudents": 3}).is_full

    def test_capacity_change_loses_enrollment_race(
        self, registrar, store, admin_principal, instructor, make_user, make_course
    ):
        course = make_course(instructor, max_students=3)
        store.enroll(make_user().id, course.id)
        real_active_student_ids = store.active_student_ids

        def count_then_enroll(course_id):
            counted = real_active_student_ids(course_id)
            store.enroll(make_user().id, course_id)
            return counted

        with (
            patch.object(store, "active_student_ids", side_effect=count_then_enroll),
            pytest.raises(ValidationError, match=r"current enrollment \(2\)"),
        ):
            registrar.update_course(admin_principal, course.id, {"maxStudents": 1})

        view = registrar.get_course(None, course.id)
        assert view.max_students == 3
        assert view.enrollment_count == 2
        assert view.available_spots == 1

    def test_code_change_conflict(self, registrar, admin_principal, instructor, make_course):
        make_course(instructor, code="CS101")
        course = make_course(instructor, code="CS102")

        with pytest.raises(ConflictError):
            registrar.update_course(admin_principal, course.id, {"code": "CS101"})

    def test_own_code_resubmitted(self, registrar, admin_principal, instructor, make_course):
        course = make_course(instructor, code="CS101")

        view = registrar.update_course(admin_principal, course.id, {"code": "cs101"})

        assert view.code == "CS101"

    def test_self_prerequisite_rejected(self, registrar, admin_principal, instructor, make_course):
        course = make_course(instructor)

        with pytest.raises(ValidationError, match="own prerequisite"):
            registrar.update_course(admin_principal, course.id, {"prerequisites": [course.id]})

    def test_missing_course(self, registrar, admin_principal):
        with pytest.raises(NotFoundError, match="Course not found"):
            registrar.update_course(admin_principal, "missing", {"title": "X"})


@pytest.mark.unit
class TestDeleteCourse:
    def test_admin_soft_deletes(self, registrar, store, admin_principal, instructor, make_course):
        course = make_course(instructor)

        registrar.delete_course(admin_principal, course.id)

        assert not store.get_course(course.id).is_active
        assert registrar.list_courses().pagination.total == 0

    def test_instructor_cannot_delete(
        self, registrar, instructor_principal, instructor, make_course
    ):
        course = make_course(instructor)

        with pytest.raises(ForbiddenError, match="Not authorized to delete courses"):
            registrar.delete_course(instructor_principal, course.id)

    def test_delete_twice_not_found(self, registrar, admin_principal, instructor, make_course):
        course = make_course(instructor)
        registrar.delete_course(admin_principal, course.id)

        with pytest.raises(NotFoundError):
            registrar.delete_course(admin_principal, course.id)
