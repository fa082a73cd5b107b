"""Signed bearer tokens: HS256 JWTs carrying the user ID as ``sub``."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from coursereg.auth.exceptions import InvalidTokenError, TokenExpiredError

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


class TokenService:
    """Issues and verifies HS256 signed tokens.

    Tokens carry only the user ID and an expiry timestamp; role and active
    state are re-read from the store on every request.
    """

    def __init__(self, secret: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: str) -> str:
        """Create a token for ``user_id`` valid for ``ttl_seconds``."""
        issued_at = datetime.now(timezone.utc)
        claims = {
            "sub": user_id,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.ttl_seconds),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """Verify a token and return the user ID it was issued for.

        Raises:
            TokenExpiredError: Past expiry.
            InvalidTokenError: Malformed, wrongly signed or missing its subject.
        """
        try:
            claims = jwt.decode(token, self._secret, algorithms=[ALGORITHM])
        except ExpiredSignatureError as e:
            raise TokenExpiredError("Token has expired") from e
        except JWTError as e:
            raise InvalidTokenError(str(e)) from e

        user_id = claims.get("sub")
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError("Token has no subject")
        return user_id
