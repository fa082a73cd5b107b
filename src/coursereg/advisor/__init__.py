"""Advisor - Generative-AI study helper."""

from coursereg.advisor.client import AdvisorClient, limit_words
from coursereg.advisor.exceptions import (
    AdvisorError,
    AdvisorNotConfiguredError,
    AdvisorRequestError,
)

__all__ = [
    "AdvisorClient",
    "AdvisorError",
    "AdvisorNotConfiguredError",
    "AdvisorRequestError",
    "limit_words",
]
