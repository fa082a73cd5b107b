"""Custom exceptions for token handling."""


class TokenError(Exception):
    """Base exception for bearer token errors."""


class InvalidTokenError(TokenError):
    """Token is malformed, wrongly signed or lacks a subject."""


class TokenExpiredError(TokenError):
    """Token is past its expiry time."""
