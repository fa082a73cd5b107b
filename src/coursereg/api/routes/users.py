"""User account endpoints.

Fixed paths are declared before ``/{user_id}`` so they are not captured by it.
"""

from fastapi import APIRouter, status

from coursereg.api.dependencies import JSONBody, PrincipalDep, RegistrarDep
from coursereg.api.models import (
    APIResponse,
    UserListResponse,
    UserResponse,
    UserStatsResponse,
    UserSummaryResponse,
    stats_to_response,
    to_response,
)
from coursereg.registrar import DEFAULT_PAGE_SIZE

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=APIResponse[UserListResponse])
def list_users(
    registrar: RegistrarDep,
    principal: PrincipalDep,
    role: str | None = None,
    department: str | None = None,
    year: str | None = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> APIResponse[UserListResponse]:
    """List users (admin only).

    Deactivated accounts are included; their `isActive` is false.
    """
    result = registrar.list_users(
        principal, role=role, department=department, year=year, page=page, limit=limit
    )
    return APIResponse(data=to_response(UserListResponse, result))


@router.get("/instructors", response_model=APIResponse[list[UserSummaryResponse]])
def list_instructors(registrar: RegistrarDep) -> APIResponse[list[UserSummaryResponse]]:
    return APIResponse(data=to_response(UserSummaryResponse, registrar.list_instructors()))


@router.get("/stats", response_model=APIResponse[UserStatsResponse])
def user_stats(registrar: RegistrarDep, principal: PrincipalDep) -> APIResponse[UserStatsResponse]:
    return APIResponse(data=stats_to_response(registrar.user_stats(principal)))


@router.get(
    "/students/enrolled/{course_id}",
    response_model=APIResponse[list[UserSummaryResponse]],
)
def list_enrolled_students(
    course_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[list[UserSummaryResponse]]:
    students = registrar.list_enrolled_students(principal, course_id)
    return APIResponse(data=to_response(UserSummaryResponse, students))


@router.post(
    "/create-instructor",
    response_model=APIResponse[UserResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_instructor(
    payload: JSONBody, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[UserResponse]:
    view = registrar.create_instructor(principal, payload)
    return APIResponse(data=to_response(UserResponse, view))


@router.put("/me", response_model=APIResponse[UserResponse])
def update_profile(
    payload: JSONBody, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[UserResponse]:
    """Update the authenticated user's own profile."""
    return APIResponse(data=to_response(UserResponse, registrar.update_profile(principal, payload)))


@router.get("/{user_id}", response_model=APIResponse[UserResponse])
def get_user(
    user_id: str, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[UserResponse]:
    return APIResponse(data=to_response(UserResponse, registrar.get_user(principal, user_id)))


@router.put("/{user_id}", response_model=APIResponse[UserResponse])
def update_user(
    user_id: str, payload: JSONBody, registrar: RegistrarDep, principal: PrincipalDep
) -> APIResponse[UserResponse]:
    """Update a user (admin only, partial update)."""
    view = registrar.update_user(principal, user_id, payload)
    return APIResponse(data=to_response(UserResponse, view))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_user(user_id: str, registrar: RegistrarDep, principal: PrincipalDep) -> None:
    """Deactivate a user account."""
    registrar.deactivate_user(principal, user_id)
