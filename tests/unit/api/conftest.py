"""Fixtures for route tests: a bare FastAPI app wired to an in-memory store."""

from collections.abc import Callable

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from coursereg.api.app import API_PREFIX, install_exception_handlers
from coursereg.api.dependencies import get_authenticator, get_registrar
from coursereg.api.routes import advisor, auth, courses, enrollments, users
from coursereg.auth import TokenAuthenticator, TokenService
from coursereg.registrar import Registrar
from coursereg.store import Store, User


@pytest.fixture
def app(store: Store, tokens: TokenService, registrar: Registrar) -> FastAPI:
    """Create a test FastAPI app with overridden dependencies."""
    app = FastAPI()

    def override_get_registrar():
        yield registrar

    authenticator = TokenAuthenticator(store, tokens)

    def override_get_authenticator():
        yield authenticator

    app.dependency_overrides[get_registrar] = override_get_registrar
    app.dependency_overrides[get_authenticator] = override_get_authenticator

    install_exception_handlers(app)

    for module in (auth, courses, enrollments, users, advisor):
        app.include_router(module.router, prefix=API_PREFIX)

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def headers_for(tokens: TokenService) -> Callable[[User], dict[str, str]]:
    """Authorization header carrying a fresh token for a user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens.issue(user.id)}"}

    return _headers
