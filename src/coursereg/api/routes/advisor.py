"""AI study-helper endpoint."""

from fastapi import APIRouter

from coursereg.api.dependencies import RegistrarDep
from coursereg.api.models import AdviceRequest, AdviceResponse, APIResponse

router = APIRouter(prefix="/ai-helper", tags=["advisor"])


@router.post("", response_model=APIResponse[AdviceResponse])
def ask(request: AdviceRequest, registrar: RegistrarDep) -> APIResponse[AdviceResponse]:
    """Answer a prompt in at most 60 words."""
    return APIResponse(data=AdviceResponse(response=registrar.ask_advisor(request.prompt)))
