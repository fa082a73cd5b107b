"""Auth - Password hashing, bearer tokens and the default authenticator."""

from coursereg.auth.authenticator import Authenticator, TokenAuthenticator
from coursereg.auth.exceptions import InvalidTokenError, TokenError, TokenExpiredError
from coursereg.auth.passwords import hash_password, verify_password
from coursereg.auth.tokens import TokenService

__all__ = [
    "Authenticator",
    "InvalidTokenError",
    "TokenAuthenticator",
    "TokenError",
    "TokenExpiredError",
    "TokenService",
    "hash_password",
    "verify_password",
]
