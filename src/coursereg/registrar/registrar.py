"""Registrar - Course, enrollment and account use-cases.

Every operation takes the acting Principal explicitly (None for public
reads), checks the capability table before touching the store, validates
input, evaluates entity rules and only then mutates. Store exceptions are
translated into the rules error taxonomy here.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, cast

from coursereg.advisor import AdvisorError
from coursereg.auth import hash_password, verify_password
from coursereg.auth.passwords import DEFAULT_ITERATIONS
from coursereg.registrar.models import (
    AttendanceView,
    CoursePage,
    CourseSummary,
    CourseView,
    EnrollmentView,
    LoginResult,
    Pagination,
    ScheduleView,
    TimeSlotView,
    UserPage,
    UserSummary,
    UserView,
)
from coursereg.rules import (
    PUBLIC_FIELDS,
    AuthenticationError,
    CapacityError,
    ConflictError,
    CourseInput,
    CourseUpdate,
    FieldError,
    ForbiddenError,
    InstructorInput,
    InternalError,
    LoginInput,
    NotFoundError,
    Operation,
    Principal,
    ProfileUpdate,
    RegistrationInput,
    StateError,
    UserUpdate,
    ValidationError,
    Visibility,
    assert_can_drop,
    assert_can_enroll,
    assert_can_grade,
    assert_can_modify,
    assert_can_transition,
    assert_capacity_change,
    assert_not_self,
    assert_unique_code,
    assert_unique_email,
    assert_unique_student_id,
    attendance_percentage,
    can_manage,
    compute_derived,
    require,
    resolve_instructor,
    to_store_fields,
    validate_attendance,
    validate_course_input,
    validate_grade,
    validate_instructor,
    validate_payload,
    validate_profile_update,
    validate_registration,
    validate_user_update,
    visible_fields,
)
from coursereg.store import (
    AcademicYear,
    ActiveEnrollmentExistsError,
    CapacityBelowEnrollmentError,
    CourseCodeExistsError,
    CourseNotFoundError,
    CourseStatus,
    EmailExistsError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    EnrollmentStatus,
    RecordState,
    Role,
    SeatUnavailableError,
    StudentIdExistsError,
    UserNotFoundError,
)

if TYPE_CHECKING:
    from coursereg.advisor import AdvisorClient
    from coursereg.auth import TokenService
    from coursereg.store import Course, Enrollment, Store, User, UserStats

logger = logging.getLogger("coursereg.registrar")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def _public_summary(user: User) -> UserSummary:
    return UserSummary(**{name: getattr(user, name) for name in PUBLIC_FIELDS})


def _student_summary(user: User) -> UserSummary:
    return UserSummary(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        department=user.department,
        student_id=user.student_id,
        year=user.year,
    )


def _course_summary(course: Course, instructor: User | None = None) -> CourseSummary:
    return CourseSummary(
        id=course.id,
        code=course.code,
        title=course.title,
        credits=course.credits,
        department=course.department,
        semester=course.semester,
        year=course.year,
        instructor=_public_summary(instructor) if instructor is not None else None,
    )


def _pagination(page: int, limit: int, total: int) -> Pagination:
    return Pagination(current=page, pages=math.ceil(total / limit), total=total, limit=limit)


def _check_paging(page: int, limit: int) -> None:
    errors = []
    if page < 1:
        errors.append(FieldError(field="page", message="Page must be a positive integer"))
    if not 1 <= limit <= MAX_PAGE_SIZE:
        errors.append(
            FieldError(field="limit", message=f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        )
    if errors:
        raise ValidationError("Validation failed", errors)


def _parse_filter(enum_type: Any, value: str | None, field_name: str) -> Any:
    if value is None:
        return None
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        message = f"{field_name} must be one of: {allowed}"
        raise ValidationError.for_field(field_name, message) from None


class Registrar:
    """Use-case layer between the HTTP routes and the store."""

    def __init__(
        self,
        store: Store,
        tokens: TokenService,
        advisor: AdvisorClient | None = None,
        password_iterations: int = DEFAULT_ITERATIONS,
    ) -> None:
        """Initialize the Registrar.

        Args:
            store: Persistent store.
            tokens: Issues bearer tokens on login and registration.
            advisor: AI text-completion client (optional).
            password_iterations: PBKDF2 rounds for new password hashes.
        """
        self.store = store
        self.tokens = tokens
        self.advisor = advisor
        self.password_iterations = password_iterations

    # --- Loading helpers ---

    def _load_course(self, course_id: str, include_inactive: bool = False) -> Course:
        try:
            course = self.store.get_course(course_id)
        except CourseNotFoundError as e:
            raise NotFoundError("Course not found") from e
        if not course.is_active and not include_inactive:
            raise NotFoundError("Course not found")
        return course

    def _load_enrollment(self, enrollment_id: str) -> Enrollment:
        try:
            return self.store.get_enrollment(enrollment_id)
        except EnrollmentNotFoundError as e:
            raise NotFoundError("Enrollment not found") from e

    def _load_user(self, user_id: str) -> User:
        try:
            return self.store.get_user(user_id)
        except UserNotFoundError as e:
            raise NotFoundError("User not found") from e

    def _users_by_id(self, user_ids: Iterable[str]) -> dict[str, User]:
        return {user.id: user for user in self.store.get_users(set(user_ids))}

    def _courses_by_id(self, course_ids: Iterable[str]) -> dict[str, Course]:
        return {course.id: course for course in self.store.get_courses(set(course_ids))}

    # --- View assembly ---

    def _course_views(self, courses: list[Course]) -> list[CourseView]:
        """Build course views with batched reference lookups."""
        student_ids = {course.id: self.store.active_student_ids(course.id) for course in courses}
        users = self._users_by_id(
            [course.instructor_id for course in courses]
            + [sid for ids in student_ids.values() for sid in ids]
        )
        prerequisites = self._courses_by_id(
            pid for course in courses for pid in course.prerequisite_ids
        )

        views = []
        for course in courses:
            enrolled = student_ids[course.id]
            stats = compute_derived(course, len(enrolled))
            instructor = users.get(course.instructor_id)
            views.append(
                CourseView(
                    id=course.id,
                    code=course.code,
                    title=course.title,
                    description=course.description,
                    credits=course.credits,
                    department=course.department,
                    max_students=course.max_students,
                    schedule=ScheduleView(
                        days=list(course.schedule_days),
                        time=TimeSlotView(start=course.schedule_start, end=course.schedule_end),
                        room=course.schedule_room,
                    ),
                    semester=course.semester,
                    year=course.year,
                    status=course.status,
                    is_active=course.is_active,
                    instructor=_public_summary(instructor) if instructor is not None else None,
                    prerequisites=[
                        _course_summary(prerequisites[pid])
                        for pid in course.prerequisite_ids
                        if pid in prerequisites
                    ],
                    enrolled_students=[
                        _public_summary(users[sid]) for sid in enrolled if sid in users
                    ],
                    enrollment_count=stats.enrollment_count,
                    available_spots=stats.available_spots,
                    is_full=stats.is_full,
                    created_at=course.created_at,
                    updated_at=course.updated_at,
                )
            )
        return views

    def _course_view(self, course: Course) -> CourseView:
        return self._course_views([course])[0]

    def _enrollment_view(
        self,
        enrollment: Enrollment,
        student: User | None = None,
        course: CourseSummary | None = None,
    ) -> EnrollmentView:
        return EnrollmentView(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            status=enrollment.status,
            grade=enrollment.grade,
            attendance=AttendanceView(
                total_classes=enrollment.total_classes,
                attended_classes=enrollment.attended_classes,
                percentage=enrollment.attendance_percentage,
            ),
            notes=enrollment.notes,
            is_active=enrollment.is_active,
            enrollment_date=enrollment.enrollment_date,
            updated_at=enrollment.updated_at,
            student=_student_summary(student) if student is not None else None,
            course=course,
        )

    def _user_view(self, user: User) -> UserView:
        enrolled_courses: list[CourseSummary] = []
        if user.role == Role.STUDENT.value:
            course_ids = self.store.active_course_ids(user.id)
            courses = self._courses_by_id(course_ids)
            enrolled_courses = [
                _course_summary(courses[cid]) for cid in course_ids if cid in courses
            ]
        return UserView(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            role=user.role,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
            student_id=user.student_id,
            department=user.department,
            year=user.year,
            enrolled_courses=enrolled_courses,
        )

    # --- Courses ---

    def list_courses(
        self,
        principal: Principal | None = None,
        department: str | None = None,
        semester: str | None = None,
        year: int | None = None,
        status: str | None = None,
        instructor: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> CoursePage:
        """List active courses matching the filters, newest first."""
        _check_paging(page, limit)
        course_status = _parse_filter(CourseStatus, status, "status")
        filters: dict[str, Any] = {
            "department": department,
            "semester": semester,
            "year": year,
            "status": course_status,
            "instructor_id": instructor,
        }
        total = self.store.count_courses(**filters)
        courses = self.store.list_courses(**filters, limit=limit, offset=(page - 1) * limit)
        return CoursePage(
            courses=self._course_views(courses), pagination=_pagination(page, limit, total)
        )

    def get_course(self, principal: Principal | None, course_id: str) -> CourseView:
        """Get one course. Soft-deleted courses are only visible to admins."""
        is_admin = principal is not None and principal.is_admin
        course = self._load_course(course_id, include_inactive=is_admin)
        return self._course_view(course)

    def list_instructor_courses(
        self, principal: Principal | None, instructor_id: str
    ) -> list[CourseView]:
        """Courses taught by an instructor. Admins also see soft-deleted ones."""
        is_admin = principal is not None and principal.is_admin
        courses = self.store.list_courses(instructor_id=instructor_id, active_only=not is_admin)
        return self._course_views(courses)

    def _check_prerequisites(
        self, prerequisite_ids: list[str], course_id: str | None = None
    ) -> None:
        if not prerequisite_ids:
            return
        if course_id is not None and course_id in prerequisite_ids:
            raise ValidationError.for_field(
                "prerequisites", "A course cannot be its own prerequisite"
            )
        found = self._courses_by_id(prerequisite_ids)
        missing = [pid for pid in prerequisite_ids if pid not in found]
        if missing:
            raise ValidationError.for_field(
                "prerequisites", f"Prerequisite course not found: {', '.join(missing)}"
            )

    def _check_instructor(self, instructor_id: str) -> None:
        try:
            user = self.store.get_user(instructor_id)
        except UserNotFoundError:
            user = None
        if user is None or not user.is_active or user.role == Role.STUDENT.value:
            raise ValidationError.for_field("instructor", "Instructor not found")

    def create_course(
        self, principal: Principal, payload: CourseInput | Mapping[str, Any]
    ) -> CourseView:
        """Create a course owned by the principal (or an instructor an admin names).

        Raises:
            ForbiddenError: Students cannot create courses.
            ValidationError: Invalid fields, unknown prerequisites or instructor.
            ConflictError: Course code already exists.
        """
        require(principal, Operation.CREATE_COURSE)
        data = cast(CourseInput, validate_course_input(payload))

        instructor_id = resolve_instructor(principal, data.instructor)
        if instructor_id != principal.id:
            self._check_instructor(instructor_id)
        self._check_prerequisites(data.prerequisites)
        assert_unique_code(self.store, data.code)

        fields = to_store_fields(data)
        fields["status"] = CourseStatus(fields.get("status", CourseStatus.OPEN.value))
        try:
            course = self.store.create_course(instructor_id=instructor_id, **fields)
        except CourseCodeExistsError as e:
            logger.warning("Course code %s taken concurrently", data.code)
            raise ConflictError("Course with this code already exists") from e

        logger.info("Course %s (%s) created by %s", course.code, course.id, principal.id)
        return self._course_view(course)

    def update_course(
        self, principal: Principal, course_id: str, payload: CourseUpdate | Mapping[str, Any]
    ) -> CourseView:
        """Apply a partial update to a course the principal may modify.

        Raises:
            ForbiddenError: Not an admin or the owning instructor.
            NotFoundError: Course missing or soft-deleted.
            ValidationError: Invalid fields or capacity below enrollment.
            ConflictError: New course code already exists.
        """
        require(principal, Operation.UPDATE_COURSE)
        data = validate_course_input(payload, partial=True)
        course = self._load_course(course_id)
        assert_can_modify(principal, course)

        changes = to_store_fields(data)
        if "code" in changes:
            assert_unique_code(self.store, changes["code"], excluding_course_id=course.id)
        if "max_students" in changes:
            enrolled = len(self.store.active_student_ids(course.id))
            assert_capacity_change(course, changes["max_students"], enrolled)
        if "prerequisite_ids" in changes:
            self._check_prerequisites(changes["prerequisite_ids"], course_id=course.id)

        if changes:
            try:
                course = self.store.update_course(course.id, changes)
            except CourseCodeExistsError as e:
                raise ConflictError("Course with this code already exists") from e
            except CapacityBelowEnrollmentError as e:
                logger.warning("Capacity change on course %s lost an enrollment race", course.id)
                assert_capacity_change(self.store.get_course(course.id), changes["max_students"])
                raise ValidationError.for_field(
                    "maxStudents", "Max students cannot be lower than current enrollment"
                ) from e
            logger.info("Course %s updated by %s: %s", course.id, principal.id, sorted(changes))
        return self._course_view(course)

    def delete_course(self, principal: Principal, course_id: str) -> None:
        """Soft-delete a course."""
        require(principal, Operation.DELETE_COURSE)
        course = self._load_course(course_id)
        self.store.update_course(course.id, {"record_state": RecordState.INACTIVE.value})
        logger.info("Course %s deactivated by %s", course.id, principal.id)

    # --- Enrollments ---

    def enroll(
        self, principal: Principal, course_id: str, student_id: str | None = None
    ) -> EnrollmentView:
        """Enroll a student in a course.

        Students enroll themselves; admins must name the student.

        Raises:
            ForbiddenError: Instructors, or a student naming someone else.
            ValidationError: Admin omitted the student.
            NotFoundError: Course or student missing or inactive.
            StateError: Course not open.
            CapacityError: Course full.
            ConflictError: Student already actively enrolled.
        """
        require(principal, Operation.ENROLL)
        if principal.is_admin:
            if not student_id:
                raise ValidationError.for_field("studentId", "Student ID is required")
        elif student_id and student_id != principal.id:
            raise ForbiddenError("Students can only enroll themselves")
        target_id = student_id or principal.id

        if target_id != principal.id:
            student = self._load_user(target_id)
            if not student.is_active or student.role != Role.STUDENT.value:
                raise NotFoundError("Student not found")

        try:
            found: Course | None = self.store.get_course(course_id)
        except CourseNotFoundError:
            found = None
        has_active = self.store.find_active_enrollment(target_id, course_id) is not None
        course = assert_can_enroll(found, found.seats_taken if found is not None else 0, has_active)

        try:
            enrollment = self.store.enroll(target_id, course_id)
        except SeatUnavailableError as e:
            logger.warning("Seat race lost for student %s in course %s", target_id, course_id)
            fresh = self.store.get_course(course_id)
            assert_can_enroll(fresh, fresh.seats_taken, False)
            raise CapacityError("Course is full") from e
        except ActiveEnrollmentExistsError as e:
            logger.warning(
                "Duplicate enrollment race for student %s in course %s", target_id, course_id
            )
            raise ConflictError("Already enrolled in this course") from e

        logger.info("Student %s enrolled in course %s (%s)", target_id, course.code, enrollment.id)
        return self._enrollment_view(enrollment, course=_course_summary(course))

    def drop(self, principal: Principal, enrollment_id: str) -> EnrollmentView:
        """Drop an enrollment and release its seat.

        Raises:
            NotFoundError: Unknown enrollment.
            ForbiddenError: Not the enrolled student or an admin.
            StateError: Enrollment already dropped, completed or failed.
        """
        require(principal, Operation.DROP)
        enrollment = self._load_enrollment(enrollment_id)
        assert_can_drop(principal, enrollment)
        try:
            enrollment = self.store.drop_enrollment(enrollment.id)
        except EnrollmentNotActiveError as e:
            logger.warning("Enrollment %s changed state before drop", enrollment_id)
            raise StateError("Enrollment is not active") from e
        logger.info("Enrollment %s dropped by %s", enrollment.id, principal.id)
        return self._enrollment_view(enrollment)

    def get_enrollment(self, principal: Principal, enrollment_id: str) -> EnrollmentView:
        """Get an enrollment visible to its student, the course's instructor or an admin."""
        require(principal, Operation.VIEW_ENROLLMENT)
        enrollment = self._load_enrollment(enrollment_id)
        course = self._load_course(enrollment.course_id, include_inactive=True)
        if principal.id != enrollment.student_id and not can_manage(principal, course):
            raise ForbiddenError("Not authorized to view this enrollment")

        users = self._users_by_id([enrollment.student_id, course.instructor_id])
        return self._enrollment_view(
            enrollment,
            student=users.get(enrollment.student_id),
            course=_course_summary(course, users.get(course.instructor_id)),
        )

    def list_student_enrollments(
        self, principal: Principal, student_id: str
    ) -> list[EnrollmentView]:
        """Active enrollments of a student, most recent first."""
        require(principal, Operation.LIST_STUDENT_ENROLLMENTS)
        if principal.role == Role.STUDENT and principal.id != student_id:
            raise ForbiddenError("Not authorized to view these enrollments")

        enrollments = self.store.list_enrollments(student_id=student_id)
        courses = self._courses_by_id(e.course_id for e in enrollments)
        instructors = self._users_by_id(c.instructor_id for c in courses.values())
        views = []
        for enrollment in enrollments:
            course = courses.get(enrollment.course_id)
            summary = (
                _course_summary(course, instructors.get(course.instructor_id))
                if course is not None
                else None
            )
            views.append(self._enrollment_view(enrollment, course=summary))
        return views

    def list_course_enrollments(self, principal: Principal, course_id: str) -> list[EnrollmentView]:
        """Active enrollments of a course, visible to its instructor and admins."""
        require(principal, Operation.LIST_COURSE_ENROLLMENTS)
        course = self._load_course(course_id, include_inactive=True)
        if not can_manage(principal, course):
            raise ForbiddenError("Not authorized to view these enrollments")

        enrollments = self.store.list_enrollments(course_id=course.id)
        students = self._users_by_id(e.student_id for e in enrollments)
        return [self._enrollment_view(e, student=students.get(e.student_id)) for e in enrollments]

    def _managed_enrollment(self, principal: Principal, enrollment_id: str) -> Enrollment:
        enrollment = self._load_enrollment(enrollment_id)
        course = self._load_course(enrollment.course_id, include_inactive=True)
        assert_can_grade(principal, course)
        return enrollment

    def set_grade(self, principal: Principal, enrollment_id: str, grade: str) -> EnrollmentView:
        """Record a grade on an enrollment in a course the principal manages."""
        require(principal, Operation.SET_GRADE)
        enrollment = self._managed_enrollment(principal, enrollment_id)
        parsed = validate_grade(grade)
        enrollment = self.store.update_enrollment(enrollment.id, {"grade": parsed.value})
        logger.info(
            "Grade %s recorded on enrollment %s by %s", parsed.value, enrollment.id, principal.id
        )
        return self._enrollment_view(enrollment)

    def set_attendance(
        self,
        principal: Principal,
        enrollment_id: str,
        total_classes: int,
        attended_classes: int,
    ) -> EnrollmentView:
        """Record attendance counts; the percentage is always recomputed.

        Raises:
            ForbiddenError: Not the owning instructor or an admin.
            ValidationError: Negative counts or attended > total.
        """
        require(principal, Operation.SET_ATTENDANCE)
        enrollment = self._managed_enrollment(principal, enrollment_id)
        total, attended = validate_attendance(total_classes, attended_classes)
        enrollment = self.store.update_enrollment(
            enrollment.id,
            {
                "total_classes": total,
                "attended_classes": attended,
                "attendance_percentage": attendance_percentage(total, attended),
            },
        )
        return self._enrollment_view(enrollment)

    def set_status(
        self, principal: Principal, enrollment_id: str, status: str, notes: str | None = None
    ) -> EnrollmentView:
        """Mark an enrollment completed or failed. The seat stays taken."""
        require(principal, Operation.SET_ENROLLMENT_STATUS)
        enrollment = self._managed_enrollment(principal, enrollment_id)
        target = assert_can_transition(enrollment, status)
        try:
            enrollment = self.store.transition_enrollment(
                enrollment.id, EnrollmentStatus.ENROLLED, target, notes=notes
            )
        except EnrollmentNotActiveError as e:
            logger.warning("Enrollment %s changed state before status update", enrollment_id)
            raise StateError("Enrollment is not active") from e
        logger.info("Enrollment %s marked %s by %s", enrollment.id, target.value, principal.id)
        return self._enrollment_view(enrollment)

    # --- Accounts ---

    def _create_account(self, data: RegistrationInput | InstructorInput, role: Role) -> User:
        student_id = data.student_id if isinstance(data, RegistrationInput) else None
        assert_unique_email(self.store, data.email)
        assert_unique_student_id(self.store, student_id)
        try:
            user = self.store.create_user(
                email=data.email,
                password_hash=hash_password(data.password, self.password_iterations),
                first_name=data.first_name,
                last_name=data.last_name,
                role=role,
                student_id=student_id,
                department=data.department,
                year=data.year.value if isinstance(data, RegistrationInput) and data.year else None,
            )
        except EmailExistsError as e:
            raise ConflictError("User with this email already exists") from e
        except StudentIdExistsError as e:
            raise ConflictError("Student ID already exists") from e
        logger.info("Created %s account %s", role.value, user.id)
        return user

    def register_student(self, payload: RegistrationInput | Mapping[str, Any]) -> LoginResult:
        """Self-register a student account and sign it in."""
        data = validate_registration(payload)
        user = self._create_account(data, Role.STUDENT)
        return LoginResult(token=self.tokens.issue(user.id), user=self._user_view(user))

    def login(self, payload: LoginInput | Mapping[str, Any]) -> LoginResult:
        """Exchange email and password for a bearer token.

        Raises:
            AuthenticationError: Unknown email, wrong password or deactivated account.
        """
        data = validate_payload(LoginInput, payload)
        user = self.store.find_user_by_email(data.email)
        if user is None or not verify_password(data.password, user.password_hash):
            raise AuthenticationError("Invalid credentials")
        if not user.is_active:
            raise AuthenticationError("Account is deactivated")
        logger.info("User %s logged in", user.id)
        return LoginResult(token=self.tokens.issue(user.id), user=self._user_view(user))

    def get_current_user(self, principal: Principal | None) -> UserView:
        if principal is None:
            raise AuthenticationError("Authentication required")
        return self._user_view(self._load_user(principal.id))

    def get_user(self, principal: Principal, user_id: str) -> UserView:
        """Full record of a user, for the account holder or an admin."""
        require(principal, Operation.VIEW_USER)
        user = self._load_user(user_id)
        if visible_fields(principal, user) is not Visibility.FULL:
            raise ForbiddenError("Not authorized to view this user")
        return self._user_view(user)

    def list_users(
        self,
        principal: Principal,
        role: str | None = None,
        department: str | None = None,
        year: str | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> UserPage:
        """List accounts, including deactivated ones, newest first."""
        require(principal, Operation.LIST_USERS)
        _check_paging(page, limit)
        academic_year = _parse_filter(AcademicYear, year, "year")
        filters: dict[str, Any] = {
            "role": _parse_filter(Role, role, "role"),
            "department": department,
            "year": academic_year.value if academic_year is not None else None,
            "active_only": False,
        }
        total = self.store.count_users(**filters)
        users = self.store.list_users(**filters, limit=limit, offset=(page - 1) * limit)
        return UserPage(
            users=[self._user_view(u) for u in users], pagination=_pagination(page, limit, total)
        )

    def _apply_user_changes(self, user: User, changes: dict[str, Any]) -> User:
        if not changes:
            return user
        try:
            return self.store.update_user(user.id, changes)
        except EmailExistsError as e:
            raise ConflictError("User with this email already exists") from e
        except StudentIdExistsError as e:
            raise ConflictError("Student ID already exists") from e

    def update_user(
        self, principal: Principal, user_id: str, payload: UserUpdate | Mapping[str, Any]
    ) -> UserView:
        """Admin partial update of an account. Roles cannot be changed.

        Raises:
            ValidationError: Invalid fields, including any attempt to set a role.
            ConflictError: Email or student ID taken by another account.
            StateError: Admin deactivating their own account.
        """
        require(principal, Operation.UPDATE_USER)
        data = validate_user_update(payload)
        user = self._load_user(user_id)
        changes = data.provided()

        if "email" in changes:
            assert_unique_email(self.store, changes["email"], excluding_id=user.id)
        if "student_id" in changes:
            assert_unique_student_id(self.store, changes["student_id"], excluding_id=user.id)
        if "year" in changes:
            changes["year"] = changes["year"].value
        if "is_active" in changes:
            active = changes.pop("is_active")
            if not active:
                assert_not_self(principal, user.id)
            changes["record_state"] = (RecordState.ACTIVE if active else RecordState.INACTIVE).value

        user = self._apply_user_changes(user, changes)
        if changes:
            logger.info("User %s updated by %s: %s", user.id, principal.id, sorted(changes))
        return self._user_view(user)

    def update_profile(
        self, principal: Principal, payload: ProfileUpdate | Mapping[str, Any]
    ) -> UserView:
        """Update the principal's own names, department and year."""
        require(principal, Operation.UPDATE_PROFILE)
        data = validate_profile_update(payload)
        user = self._load_user(principal.id)
        changes = data.provided()
        if "year" in changes:
            changes["year"] = changes["year"].value
        return self._user_view(self._apply_user_changes(user, changes))

    def deactivate_user(self, principal: Principal, user_id: str) -> None:
        """Soft-delete an account. Admins cannot deactivate themselves."""
        require(principal, Operation.DEACTIVATE_USER)
        assert_not_self(principal, user_id)
        user = self._load_user(user_id)
        self.store.update_user(user.id, {"record_state": RecordState.INACTIVE.value})
        logger.info("User %s deactivated by %s", user.id, principal.id)

    def create_instructor(
        self, principal: Principal, payload: InstructorInput | Mapping[str, Any]
    ) -> UserView:
        require(principal, Operation.CREATE_INSTRUCTOR)
        data = validate_instructor(payload)
        return self._user_view(self._create_account(data, Role.INSTRUCTOR))

    def list_instructors(self) -> list[UserSummary]:
        """Active instructors ordered by last then first name."""
        instructors = self.store.list_users(role=Role.INSTRUCTOR, order_by_name=True)
        return [_public_summary(u) for u in instructors]

    def list_enrolled_students(self, principal: Principal, course_id: str) -> list[UserSummary]:
        """Active students holding an active enrollment in a course the principal manages."""
        require(principal, Operation.LIST_ENROLLED_STUDENTS)
        course = self._load_course(course_id, include_inactive=True)
        if not can_manage(principal, course):
            raise ForbiddenError("Not authorized to view these students")

        students = [
            user
            for user in self._users_by_id(self.store.active_student_ids(course.id)).values()
            if user.is_active and user.role == Role.STUDENT.value
        ]
        students.sort(key=lambda u: (u.last_name, u.first_name))
        return [_student_summary(u) for u in students]

    def user_stats(self, principal: Principal) -> UserStats:
        require(principal, Operation.VIEW_USER_STATS)
        return self.store.get_user_stats()

    # --- Advisor ---

    def ask_advisor(self, prompt: str | None) -> str:
        """Ask the AI helper a question.

        Raises:
            ValidationError: Empty prompt.
            InternalError: Advisor unavailable or failed; detail is logged only.
        """
        if not prompt or not prompt.strip():
            raise ValidationError.for_field("prompt", "Prompt is required.")
        if self.advisor is None:
            logger.error("AI helper requested but no advisor is configured")
            raise InternalError("AI helper error")
        try:
            return self.advisor.ask(prompt)
        except AdvisorError as e:
            logger.error("AI helper request failed: %s", e)
            raise InternalError("AI helper error") from e
