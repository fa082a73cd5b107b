"""FastAPI dependencies for dependency injection."""

from __future__ import annotations

import logging
from collections.abc import Generator  # noqa: TC003
from typing import Annotated, Any

from fastapi import Body, Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from coursereg.auth import Authenticator
from coursereg.registrar import Registrar
from coursereg.rules import AuthenticationError, Principal
from coursereg.store import Store

logger = logging.getLogger("coursereg.api")

bearer_scheme = HTTPBearer(auto_error=False)

# Global Store instance (initialized on app startup)
_store: Store | None = None


def init_store(db_path: str = "coursereg.db") -> Store:
    """Initialize the global Store instance."""
    global _store  # noqa: PLW0603
    _store = Store(db_path)
    return _store


def close_store() -> None:
    """Close the global Store instance."""
    global _store  # noqa: PLW0603
    if _store is not None:
        _store.close()
        _store = None


# Global Registrar instance (initialized on app startup)
_registrar: Registrar | None = None


def init_registrar(registrar: Registrar) -> None:
    """Initialize the global Registrar instance."""
    global _registrar  # noqa: PLW0603
    _registrar = registrar


def close_registrar() -> None:
    global _registrar  # noqa: PLW0603
    _registrar = None


def get_registrar() -> Generator[Registrar, None, None]:
    """Dependency that provides the Registrar instance."""
    if _registrar is None:
        raise RuntimeError("Registrar not initialized. Call init_registrar() first.")
    yield _registrar


RegistrarDep = Annotated[Registrar, Depends(get_registrar)]

# Global Authenticator instance (initialized on app startup)
_authenticator: Authenticator | None = None


def init_authenticator(authenticator: Authenticator) -> None:
    """Initialize the global Authenticator instance."""
    global _authenticator  # noqa: PLW0603
    _authenticator = authenticator


def close_authenticator() -> None:
    global _authenticator  # noqa: PLW0603
    _authenticator = None


def get_authenticator() -> Generator[Authenticator, None, None]:
    """Dependency that provides the Authenticator instance."""
    if _authenticator is None:
        raise RuntimeError("Authenticator not initialized. Call init_authenticator() first.")
    yield _authenticator


AuthenticatorDep = Annotated[Authenticator, Depends(get_authenticator)]

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def get_principal(credentials: Credentials, authenticator: AuthenticatorDep) -> Principal:
    """Resolve the bearer token to a Principal.

    Raises:
        AuthenticationError: No token, or the authenticator rejects it.
    """
    if credentials is None:
        raise AuthenticationError("Authentication required")
    return authenticator.authenticate(credentials.credentials)


def get_optional_principal(
    credentials: Credentials, authenticator: AuthenticatorDep
) -> Principal | None:
    """Principal for public endpoints. Missing or rejected tokens read as anonymous."""
    if credentials is None:
        return None
    try:
        return authenticator.authenticate(credentials.credentials)
    except AuthenticationError as e:
        logger.debug("Ignoring rejected token on public endpoint: %s", e.message)
        return None


PrincipalDep = Annotated[Principal, Depends(get_principal)]
OptionalPrincipalDep = Annotated[Principal | None, Depends(get_optional_principal)]

# Raw JSON object bodies, validated by the registrar after its capability check
JSONBody = Annotated[dict[str, Any], Body()]
