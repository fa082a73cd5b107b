"""Course endpoints."""

from fastapi import APIRouter, status

from coursereg.api.dependencies import JSONBody, OptionalPrincipalDep, PrincipalDep, RegistrarDep
from coursereg.api.models import (
    APIResponse,
    CourseListResponse,
    CourseResponse,
    to_response,
)
from coursereg.registrar import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/courses", tags=["courses"])


@router.get("", response_model=APIResponse[CourseListResponse])
def list_courses(
    registrar: RegistrarDep,
    principal: OptionalPrincipalDep,
    department: str | None = None,
    semester: str | None = None,
    year: int | None = None,
    status: str | None = None,
    instructor: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> APIResponse[CourseListResponse]:
    """List active courses with optional filters and pagination."""
    result = registrar.list_courses(
        principal,
        department=department,
        semester=semester,
        year=year,
        status=status,
        instructor=instructor,
        page=page,
        limit=limit,
    )
    return APIResponse(data=to_response(CourseListResponse, result))


@router.get("/instructor/{instructor_id}", response_model=APIResponse[list[CourseResponse]])
def list_instructor_courses(
    instructor_id: str, registrar: RegistrarDep, principal: OptionalPrincipalDep
) -> APIResponse[list[CourseResponse]]:
    """List courses taught by an instructor (admins also see soft-deleted ones)."""
    views = registrar.list_instructor_courses(principal, instructor_id)
    return APIResponse(data=to_response(CourseResponse, views))


@router.get("/{course_id}", response_model=APIResponse[CourseResponse])
def get_course(
    course_id: str, registrar: RegistrarDep, principal: OptionalPrincipalDep
) -> APIResponse[CourseResponse]:
    """Get a course with instructor, prerequisites and enrolled students expanded."""
    return APIResponse(data=to_response(CourseResponse, registrar.get_course(principal, course_id)))


@router.post(
    "",
    response_model=APIResponse[CourseResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_course(
    payload: JSONBody, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[CourseResponse]:
    """Create a course."""
    view = registrar.create_course(principal, payload)
    return APIResponse(data=to_response(CourseResponse, view))


@router.put("/{course_id}", response_model=APIResponse[CourseResponse])
def update_course(
    course_id: str, payload: JSONBody, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[CourseResponse]:
    """Update a course (partial update)."""
    view = registrar.update_course(principal, course_id, payload)
    return APIResponse(data=to_response(CourseResponse, view))


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(course_id: str, registrar: RegistrarDep, principal: PrincipalDep) -> None:
    """Soft-delete a course."""
    registrar.delete_course(principal, course_id)
