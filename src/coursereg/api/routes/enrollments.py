"""Enrollment endpoints."""

from fastapi import APIRouter, status

from coursereg.api.dependencies import PrincipalDep, RegistrarDep
from coursereg.api.models import APIResponse, EnrollmentResponse, to_response
from coursereg.rules import AttendanceInput, EnrollInput, GradeInput, StatusInput

router = APIRouter(prefix="/enrollments", tags=["enrollments"])


@router.post(
    "",
    response_model=APIResponse[EnrollmentResponse],
    status_code=status.HTTP_201_CREATED,
)
def enroll(
    request: EnrollInput, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[EnrollmentResponse]:
    """Enroll a student in a course."""
    view = registrar.enroll(principal, request.course_id, request.student_id)
    return APIResponse(data=to_response(EnrollmentResponse, view))


@router.get("/student/{student_id}", response_model=APIResponse[list[EnrollmentResponse]])
def list_student_enrollments(
    student_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[list[EnrollmentResponse]]:
    views = registrar.list_student_enrollments(principal, student_id)
    return APIResponse(data=to_response(EnrollmentResponse, views))


@router.get("/course/{course_id}", response_model=APIResponse[list[EnrollmentResponse]])
def list_course_enrollments(
    course_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[list[EnrollmentResponse]]:
    views = registrar.list_course_enrollments(principal, course_id)
    return APIResponse(data=to_response(EnrollmentResponse, views))


@router.get("/{enrollment_id}", response_model=APIResponse[EnrollmentResponse])
def get_enrollment(
    enrollment_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[EnrollmentResponse]:
    view = registrar.get_enrollment(principal, enrollment_id)
    return APIResponse(data=to_response(EnrollmentResponse, view))


@router.delete("/{enrollment_id}", response_model=APIResponse[EnrollmentResponse])
def drop_enrollment(
    enrollment_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[EnrollmentResponse]:
    """Drop an enrollment, releasing the seat."""
    view = registrar.drop(principal, enrollment_id)
    return APIResponse(data=to_response(EnrollmentResponse, view))


@router.put("/{enrollment_id}/grade", response_model=APIResponse[EnrollmentResponse])
def set_grade(
    enrollment_id: str, request: GradeInput, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[EnrollmentResponse]:
    view = registrar.set_grade(principal, enrollment_id, request.grade)
    return APIResponse(data=to_response(EnrollmentResponse, view))


@router.put("/{enrollment_id}/attendance", response_model=APIResponse[EnrollmentResponse])
def set_attendance(
    enrollment_id: str,
    request: AttendanceInput,
    registrar: RegistrarDep,
    principal: PrincipalDep,
) -> APIResponse[EnrollmentResponse]:
    """Record attendance; the percentage is computed server-side."""
    view = registrar.set_attendance(
        principal, enrollment_id, request.total_classes, request.attended_classes
    )
    return APIResponse(data=to_response(EnrollmentResponse, view))


@router.put("/{enrollment_id}/status", response_model=APIResponse[EnrollmentResponse])
def set_status(
    enrollment_id: str, request: StatusInput, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[EnrollmentResponse]:
    """Mark an enrollment completed or failed."""
    view = registrar.set_status(principal, enrollment_id, request.status, request.notes)
    return APIResponse(data=to_response(EnrollmentResponse, view))
