"""Registration, login and current-user endpoints."""

from fastapi import APIRouter, status

from coursereg.api.dependencies import JSONBody, PrincipalDep, RegistrarDep
from coursereg.api.models import APIResponse, LoginResponse, UserResponse, to_response

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=APIResponse[LoginResponse],
    status_code=status.HTTP_201_CREATED,
)
def register(payload: JSONBody, registrar: RegistrarDep) -> APIResponse[LoginResponse]:
    """Register a student account and return a token for it."""
    result = registrar.register_student(payload)
    return APIResponse(data=to_response(LoginResponse, result))


@router.post("/login", response_model=APIResponse[LoginResponse])
def login(payload: JSONBody, registrar: RegistrarDep) -> APIResponse[LoginResponse]:
    result = registrar.login(payload)
    return APIResponse(data=to_response(LoginResponse, result))


@router.get("/me", response_model=APIResponse[UserResponse])
def me(principal: PrincipalDep, registrar: RegistrarDep) -> APIResponse[UserResponse]:
    """Get the authenticated user's full record."""
    return APIResponse(data=to_response(UserResponse, registrar.get_current_user(principal)))
