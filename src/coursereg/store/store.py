"""Store - Main API for persisted users, courses and enrollments."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from coursereg.store.database import Database
from coursereg.store.exceptions import (
    ActiveEnrollmentExistsError,
    CapacityBelowEnrollmentError,
    CourseCodeExistsError,
    CourseNotFoundError,
    EmailExistsError,
    EnrollmentNotActiveError,
    EnrollmentNotFoundError,
    SeatUnavailableError,
    StudentIdExistsError,
    UserNotFoundError,
)
from coursereg.store.models import (
    Course,
    CourseStatus,
    Enrollment,
    EnrollmentStatus,
    GroupCount,
    RecordState,
    Role,
    User,
    UserStats,
)

logger = logging.getLogger("coursereg.store")

USER_FIELDS = frozenset(
    {
        "email",
        "password_hash",
        "first_name",
        "last_name",
        "student_id",
        "department",
        "year",
        "record_state",
    }
)
COURSE_FIELDS = frozenset(
    {
        "code",
        "title",
        "description",
        "credits",
        "department",
        "instructor_id",
        "prerequisite_ids",
        "max_students",
        "schedule_days",
        "schedule_start",
        "schedule_end",
        "schedule_room",
        "semester",
        "year",
        "status",
        "record_state",
    }
)
ENROLLMENT_FIELDS = frozenset(
    {"grade", "total_classes", "attended_classes", "attendance_percentage", "notes"}
)


def _is_unique_violation(error: IntegrityError, *columns: str) -> bool:
    message = str(error.orig)
    return "UNIQUE constraint failed" in message and all(c in message for c in columns)


def _apply_changes(record: Any, changes: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    for name, value in changes.items():
        setattr(record, name, value)


class Store:
    """Main API for store operations.

    Each method runs in its own session. Enroll and drop are single
    transactions whose seat accounting uses conditional UPDATEs, so the
    capacity and one-active-enrollment invariants hold under concurrent
    requests.
    """

    def __init__(self, db_path: str = "coursereg.db") -> None:
        """Initialize the store and create tables if they don't exist.

        Args:
            db_path: Path to SQLite database file
        """
        self._db = Database(db_path)
        self._db.create_tables()

    @property
    def database(self) -> Database:
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        self._db.close()

    # --- User Operations ---

    def create_user(
        self,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role: Role = Role.STUDENT,
        student_id: str | None = None,
        department: str | None = None,
        year: str | None = None,
    ) -> User:
        """Create a new user.

        Args:
            email: Lower-cased email address
            password_hash: Encoded password hash
            first_name: Given name
            last_name: Family name
            role: Account role
            student_id: Institutional student ID (optional)
            department: Department name (optional)
            year: Year of study (optional)

        Returns:
            Created User object with generated ID

        Raises:
            EmailExistsError: If the email is already registered
            StudentIdExistsError: If the student ID is already registered
        """
        session = self._db.get_session()
        try:
            user = User(
                email=email,
                password_hash=password_hash,
                first_name=first_name,
                last_name=last_name,
                role=role.value,
                student_id=student_id,
                department=department,
                year=year,
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            return user
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e, "users.email"):
                raise EmailExistsError(f"User with email '{email}' already exists") from e
            if _is_unique_violation(e, "users.student_id"):
                raise StudentIdExistsError(f"Student ID '{student_id}' already exists") from e
            raise
        finally:
            session.close()

    def get_user(self, user_id: str) -> User:
        """Get user by ID.

        Raises:
            UserNotFoundError: If user doesn't exist
        """
        session = self._db.get_session()
        try:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")
            return user
        finally:
            session.close()

    def find_user_by_email(self, email: str) -> User | None:
        """Get user by (lower-cased) email, or None."""
        session = self._db.get_session()
        try:
            stmt = select(User).where(User.email == email)
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    def find_user_by_student_id(self, student_id: str) -> User | None:
        """Get user by student ID, or None."""
        session = self._db.get_session()
        try:
            stmt = select(User).where(User.student_id == student_id)
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    def get_users(self, user_ids: Iterable[str]) -> list[User]:
        """Get the users with the given IDs. Missing IDs are skipped."""
        ids = list(user_ids)
        if not ids:
            return []
        session = self._db.get_session()
        try:
            stmt = select(User).where(User.id.in_(ids))
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def _user_filters(
        self,
        role: Role | None,
        department: str | None,
        year: str | None,
        active_only: bool,
    ) -> list[Any]:
        conditions: list[Any] = []
        if active_only:
            conditions.append(User.record_state == RecordState.ACTIVE.value)
        if role is not None:
            conditions.append(User.role == role.value)
        if department is not None:
            conditions.append(User.department == department)
        if year is not None:
            conditions.append(User.year == year)
        return conditions

    def list_users(
        self,
        role: Role | None = None,
        department: str | None = None,
        year: str | None = None,
        active_only: bool = True,
        limit: int | None = None,
        offset: int = 0,
        order_by_name: bool = False,
    ) -> list[User]:
        """List users with optional filters.

        Args:
            role: Filter by role (optional)
            department: Filter by department (optional)
            year: Filter by year of study (optional)
            active_only: Exclude deactivated users
            limit: Max results (None = all)
            offset: Offset for pagination
            order_by_name: Order by last, first name instead of most recent first

        Returns:
            List of matching users
        """
        session = self._db.get_session()
        try:
            stmt = select(User).where(*self._user_filters(role, department, year, active_only))
            if order_by_name:
                stmt = stmt.order_by(User.last_name, User.first_name)
            else:
                stmt = stmt.order_by(User.created_at.desc(), User.email)
            if limit is not None:
                stmt = stmt.limit(limit)
            stmt = stmt.offset(offset)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def count_users(
        self,
        role: Role | None = None,
        department: str | None = None,
        year: str | None = None,
        active_only: bool = True,
    ) -> int:
        """Count users matching the same filters as list_users."""
        session = self._db.get_session()
        try:
            stmt = (
                select(func.count())
                .select_from(User)
                .where(*self._user_filters(role, department, year, active_only))
            )
            return int(session.execute(stmt).scalar_one())
        finally:
            session.close()

    def update_user(self, user_id: str, changes: Mapping[str, Any]) -> User:
        """Update user fields. Only keys present in ``changes`` are written.

        Raises:
            UserNotFoundError: If user doesn't exist
            EmailExistsError: If the new email is taken
            StudentIdExistsError: If the new student ID is taken
        """
        session = self._db.get_session()
        try:
            user = session.get(User, user_id)
            if user is None:
                raise UserNotFoundError(f"User with id '{user_id}' not found")

            _apply_changes(user, changes, USER_FIELDS)
            session.commit()
            session.refresh(user)
            return user
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e, "users.email"):
                email = changes.get("email")
                raise EmailExistsError(f"User with email '{email}' already exists") from e
            if _is_unique_violation(e, "users.student_id"):
                raise StudentIdExistsError(
                    f"Student ID '{changes.get('student_id')}' already exists"
                ) from e
            raise
        finally:
            session.close()

    def get_user_stats(self) -> UserStats:
        """Aggregate counts over active users."""
        session = self._db.get_session()
        try:
            active = User.record_state == RecordState.ACTIVE.value
            role_counts = dict(
                session.execute(
                    select(User.role, func.count()).where(active).group_by(User.role)
                ).all()
            )

            is_student = User.role == Role.STUDENT.value
            count = func.count().label("count")
            by_department = session.execute(
                select(User.department, count)
                .where(active, is_student, User.department.is_not(None))
                .group_by(User.department)
                .order_by(count.desc(), User.department)
            ).all()
            by_year = session.execute(
                select(User.year, count)
                .where(active, is_student, User.year.is_not(None))
                .group_by(User.year)
                .order_by(User.year)
            ).all()

            return UserStats(
                total_users=sum(role_counts.values()),
                total_students=role_counts.get(Role.STUDENT.value, 0),
                total_instructors=role_counts.get(Role.INSTRUCTOR.value, 0),
                total_admins=role_counts.get(Role.ADMIN.value, 0),
                students_by_department=[GroupCount(value=v, count=c) for v, c in by_department],
                students_by_year=[GroupCount(value=v, count=c) for v, c in by_year],
            )
        finally:
            session.close()

    # --- Course Operations ---

    def create_course(
        self,
        code: str,
        title: str,
        description: str,
        credits: int,
        department: str,
        instructor_id: str,
        max_students: int,
        schedule_days: list[str],
        schedule_start: str,
        schedule_end: str,
        semester: str,
        year: int,
        prerequisite_ids: list[str] | None = None,
        schedule_room: str | None = None,
        status: CourseStatus = CourseStatus.OPEN,
    ) -> Course:
        """Create a new course.

        Returns:
            Created Course object with generated ID

        Raises:
            CourseCodeExistsError: If a course with the same code exists
        """
        session = self._db.get_session()
        try:
            course = Course(
                code=code,
                title=title,
                description=description,
                credits=credits,
                department=department,
                instructor_id=instructor_id,
                max_students=max_students,
                schedule_days=schedule_days,
                schedule_start=schedule_start,
                schedule_end=schedule_end,
                semester=semester,
                year=year,
                prerequisite_ids=prerequisite_ids,
                schedule_room=schedule_room,
                status=status.value,
            )
            session.add(course)
            session.commit()
            session.refresh(course)
            return course
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e, "courses.code"):
                raise CourseCodeExistsError(f"Course with code '{code}' already exists") from e
            raise
        finally:
            session.close()

    def get_course(self, course_id: str) -> Course:
        """Get course by ID.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")
            return course
        finally:
            session.close()

    def find_course_by_code(self, code: str) -> Course | None:
        """Get course by code, or None."""
        session = self._db.get_session()
        try:
            stmt = select(Course).where(Course.code == code)
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    def get_courses(self, course_ids: Iterable[str]) -> list[Course]:
        """Get the courses with the given IDs. Missing IDs are skipped."""
        ids = list(course_ids)
        if not ids:
            return []
        session = self._db.get_session()
        try:
            stmt = select(Course).where(Course.id.in_(ids))
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def _course_filters(
        self,
        department: str | None,
        semester: str | None,
        year: int | None,
        status: CourseStatus | None,
        instructor_id: str | None,
        active_only: bool,
    ) -> list[Any]:
        conditions: list[Any] = []
        if active_only:
            conditions.append(Course.record_state == RecordState.ACTIVE.value)
        if department is not None:
            conditions.append(Course.department == department)
        if semester is not None:
            conditions.append(Course.semester == semester)
        if year is not None:
            conditions.append(Course.year == year)
        if status is not None:
            conditions.append(Course.status == status.value)
        if instructor_id is not None:
            conditions.append(Course.instructor_id == instructor_id)
        return conditions

    def list_courses(
        self,
        department: str | None = None,
        semester: str | None = None,
        year: int | None = None,
        status: CourseStatus | None = None,
        instructor_id: str | None = None,
        active_only: bool = True,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Course]:
        """List courses with optional filters.

        Returns:
            List of courses, most recently created first
        """
        session = self._db.get_session()
        try:
            filters = self._course_filters(
                department, semester, year, status, instructor_id, active_only
            )
            stmt = select(Course).where(*filters)
            stmt = stmt.order_by(Course.created_at.desc(), Course.code)
            if limit is not None:
                stmt = stmt.limit(limit)
            stmt = stmt.offset(offset)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def count_courses(
        self,
        department: str | None = None,
        semester: str | None = None,
        year: int | None = None,
        status: CourseStatus | None = None,
        instructor_id: str | None = None,
        active_only: bool = True,
    ) -> int:
        """Count courses matching the same filters as list_courses."""
        session = self._db.get_session()
        try:
            stmt = (
                select(func.count())
                .select_from(Course)
                .where(
                    *self._course_filters(
                        department, semester, year, status, instructor_id, active_only
                    )
                )
            )
            return int(session.execute(stmt).scalar_one())
        finally:
            session.close()

    def update_course(self, course_id: str, changes: Mapping[str, Any]) -> Course:
        """Update course fields. Only keys present in ``changes`` are written.

        ``seats_taken`` is not writable here. A new ``max_students`` is written
        with a conditional UPDATE in the same transaction, so it can never
        drop below the seats taken at commit time.

        Raises:
            CourseNotFoundError: If course doesn't exist
            CourseCodeExistsError: If the new code is taken
            CapacityBelowEnrollmentError: If ``max_students`` is below seats taken
        """
        changes = dict(changes)
        new_max = changes.pop("max_students", None)
        session = self._db.get_session()
        try:
            course = session.get(Course, course_id)
            if course is None:
                raise CourseNotFoundError(f"Course with id '{course_id}' not found")

            if new_max is not None:
                resized = session.execute(
                    update(Course)
                    .where(Course.id == course_id, Course.seats_taken <= new_max)
                    .values(max_students=new_max)
                    .execution_options(synchronize_session=False)
                )
                if resized.rowcount != 1:
                    session.rollback()
                    raise CapacityBelowEnrollmentError(
                        f"Course '{course_id}' has more seats taken than {new_max}"
                    )

            _apply_changes(course, changes, COURSE_FIELDS)
            session.commit()
            session.refresh(course)
            return course
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e, "courses.code"):
                raise CourseCodeExistsError(
                    f"Course with code '{changes.get('code')}' already exists"
                ) from e
            raise
        finally:
            session.close()

    # --- Enrollment Operations ---

    def enroll(self, student_id: str, course_id: str) -> Enrollment:
        """Reserve a seat and create an active enrollment in one transaction.

        The seat is taken with a conditional UPDATE on the course row, so two
        concurrent calls cannot both take the last seat.

        Args:
            student_id: The student's user ID
            course_id: The course's ID

        Returns:
            Created Enrollment in the ENROLLED state

        Raises:
            SeatUnavailableError: If the course is inactive, not open or full
            ActiveEnrollmentExistsError: If the pair already has an active enrollment
        """
        session = self._db.get_session()
        try:
            reserved = session.execute(
                update(Course)
                .where(
                    Course.id == course_id,
                    Course.record_state == RecordState.ACTIVE.value,
                    Course.status == CourseStatus.OPEN.value,
                    Course.seats_taken < Course.max_students,
                )
                .values(seats_taken=Course.seats_taken + 1)
                .execution_options(synchronize_session=False)
            )
            if reserved.rowcount != 1:
                session.rollback()
                raise SeatUnavailableError(f"No seat available in course '{course_id}'")

            enrollment = Enrollment(student_id=student_id, course_id=course_id)
            session.add(enrollment)
            session.commit()
            session.refresh(enrollment)
            return enrollment
        except IntegrityError as e:
            session.rollback()
            if _is_unique_violation(e, "enrollments.student_id", "enrollments.course_id"):
                raise ActiveEnrollmentExistsError(
                    f"Student '{student_id}' already has an active enrollment "
                    f"in course '{course_id}'"
                ) from e
            raise
        finally:
            session.close()

    def drop_enrollment(self, enrollment_id: str) -> Enrollment:
        """Drop an enrollment and release its seat in one transaction.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
            EnrollmentNotActiveError: If it is not currently ENROLLED and active
        """
        session = self._db.get_session()
        try:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")

            released = session.execute(
                update(Enrollment)
                .where(
                    Enrollment.id == enrollment_id,
                    Enrollment.record_state == RecordState.ACTIVE.value,
                    Enrollment.status == EnrollmentStatus.ENROLLED.value,
                )
                .values(
                    status=EnrollmentStatus.DROPPED.value,
                    record_state=RecordState.INACTIVE.value,
                )
                .execution_options(synchronize_session=False)
            )
            if released.rowcount != 1:
                session.rollback()
                raise EnrollmentNotActiveError(f"Enrollment '{enrollment_id}' is not active")

            session.execute(
                update(Course)
                .where(Course.id == enrollment.course_id, Course.seats_taken > 0)
                .values(seats_taken=Course.seats_taken - 1)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            session.refresh(enrollment)
            return enrollment
        finally:
            session.close()

    def transition_enrollment(
        self,
        enrollment_id: str,
        from_status: EnrollmentStatus,
        to_status: EnrollmentStatus,
        notes: str | None = None,
    ) -> Enrollment:
        """Move an active enrollment between statuses without releasing its seat.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
            EnrollmentNotActiveError: If it is not active in ``from_status``
        """
        session = self._db.get_session()
        try:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")

            values: dict[str, Any] = {"status": to_status.value}
            if notes is not None:
                values["notes"] = notes
            moved = session.execute(
                update(Enrollment)
                .where(
                    Enrollment.id == enrollment_id,
                    Enrollment.record_state == RecordState.ACTIVE.value,
                    Enrollment.status == from_status.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if moved.rowcount != 1:
                session.rollback()
                raise EnrollmentNotActiveError(
                    f"Enrollment '{enrollment_id}' is not active in state '{from_status.value}'"
                )
            session.commit()
            session.refresh(enrollment)
            return enrollment
        finally:
            session.close()

    def get_enrollment(self, enrollment_id: str) -> Enrollment:
        """Get enrollment by ID.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        session = self._db.get_session()
        try:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")
            return enrollment
        finally:
            session.close()

    def find_active_enrollment(self, student_id: str, course_id: str) -> Enrollment | None:
        """Get the active enrollment for a student-course pair, or None."""
        session = self._db.get_session()
        try:
            stmt = select(Enrollment).where(
                Enrollment.student_id == student_id,
                Enrollment.course_id == course_id,
                Enrollment.record_state == RecordState.ACTIVE.value,
            )
            return session.execute(stmt).scalar_one_or_none()
        finally:
            session.close()

    def list_enrollments(
        self,
        student_id: str | None = None,
        course_id: str | None = None,
        active_only: bool = True,
    ) -> list[Enrollment]:
        """List enrollments with optional filters.

        Returns:
            List of enrollments, most recent first
        """
        session = self._db.get_session()
        try:
            stmt = select(Enrollment)
            if student_id is not None:
                stmt = stmt.where(Enrollment.student_id == student_id)
            if course_id is not None:
                stmt = stmt.where(Enrollment.course_id == course_id)
            if active_only:
                stmt = stmt.where(Enrollment.record_state == RecordState.ACTIVE.value)
            stmt = stmt.order_by(Enrollment.enrollment_date.desc(), Enrollment.id)
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def active_student_ids(self, course_id: str) -> list[str]:
        """IDs of students holding an active enrollment in the course."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Enrollment.student_id)
                .where(
                    Enrollment.course_id == course_id,
                    Enrollment.record_state == RecordState.ACTIVE.value,
                )
                .order_by(Enrollment.enrollment_date, Enrollment.id)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def active_course_ids(self, student_id: str) -> list[str]:
        """IDs of courses the student holds an active enrollment in."""
        session = self._db.get_session()
        try:
            stmt = (
                select(Enrollment.course_id)
                .where(
                    Enrollment.student_id == student_id,
                    Enrollment.record_state == RecordState.ACTIVE.value,
                )
                .order_by(Enrollment.enrollment_date, Enrollment.id)
            )
            return list(session.execute(stmt).scalars().all())
        finally:
            session.close()

    def update_enrollment(self, enrollment_id: str, changes: Mapping[str, Any]) -> Enrollment:
        """Update grade, attendance or notes on an enrollment.

        Raises:
            EnrollmentNotFoundError: If enrollment doesn't exist
        """
        session = self._db.get_session()
        try:
            enrollment = session.get(Enrollment, enrollment_id)
            if enrollment is None:
                raise EnrollmentNotFoundError(f"Enrollment with id '{enrollment_id}' not found")

            _apply_changes(enrollment, changes, ENROLLMENT_FIELDS)
            session.commit()
            session.refresh(enrollment)
            return enrollment
        finally:
            session.close()
