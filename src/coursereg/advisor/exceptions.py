"""Custom exceptions for the advisor client."""


class AdvisorError(Exception):
    """Base exception for advisor errors."""


class AdvisorNotConfiguredError(AdvisorError):
    """No API key is configured."""


class AdvisorRequestError(AdvisorError):
    """The completion request failed or returned an unusable body."""
