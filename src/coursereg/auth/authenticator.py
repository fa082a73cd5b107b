"""Authenticator - resolves a bearer credential to a Principal."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from coursereg.auth.exceptions import TokenError, TokenExpiredError
from coursereg.rules.exceptions import AuthenticationError
from coursereg.rules.permissions import Principal
from coursereg.store import Role, UserNotFoundError

if TYPE_CHECKING:
    from coursereg.auth.tokens import TokenService
    from coursereg.store import Store

logger = logging.getLogger("coursereg.auth")


class Authenticator(Protocol):
    """Anything that turns a bearer credential into a Principal."""

    def authenticate(self, token: str) -> Principal: ...


class TokenAuthenticator:
    """Verifies tokens from a TokenService and loads the user from the store."""

    def __init__(self, store: Store, tokens: TokenService) -> None:
        self.store = store
        self.tokens = tokens

    def authenticate(self, token: str) -> Principal:
        """Resolve ``token`` to the Principal of an active user.

        Raises:
            AuthenticationError: Invalid or expired token, unknown user, or a
                deactivated account.
        """
        try:
            user_id = self.tokens.verify(token)
        except TokenExpiredError as e:
            raise AuthenticationError("Token has expired") from e
        except TokenError as e:
            logger.debug("Rejected token: %s", e)
            raise AuthenticationError("Invalid token") from e

        try:
            user = self.store.get_user(user_id)
        except UserNotFoundError as e:
            raise AuthenticationError("Invalid token") from e

        if not user.is_active:
            raise AuthenticationError("Account is deactivated")
        return Principal(id=user.id, role=Role(user.role), active=True)
