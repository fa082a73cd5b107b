"""REST API for coursereg."""

from coursereg.api.app import app, create_app, install_exception_handlers
from coursereg.api.models import APIResponse

__all__ = [
    "APIResponse",
    "app",
    "create_app",
    "install_exception_handlers",
]
