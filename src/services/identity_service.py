"""Verification of caller identity tokens.

The gateway accepts the HS256 JSON Web Tokens issued at login.  Both
entry points share one :class:`IdentityVerifier`; they differ only in
where they find the token (an ``Authorization`` header for HTTP, a
``token`` query parameter for WebSockets).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import lru_cache

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from ..config.auth_config import AuthConfig, get_auth_config
from ..models.identity import CallerIdentity
from ..utils.error_handler import InvalidCredential

bearer_scheme = HTTPBearer(auto_error=False)


class IdentityVerifier:
    """Turns a bearer token into a :class:`CallerIdentity`.

    The signing key is fixed at construction and only ever read, so one
    instance can serve every concurrent session.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expires_in: int = 604800,
        leeway: int = 0,
    ) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._expires_in = expires_in
        self._leeway = leeway

    @classmethod
    def from_config(cls, auth_config: AuthConfig) -> "IdentityVerifier":
        return cls(
            secret=auth_config.jwt_secret,
            algorithm=auth_config.jwt_algorithm,
            expires_in=auth_config.jwt_expires_in,
            leeway=auth_config.jwt_leeway,
        )

    def verify(self, credential: str | None) -> CallerIdentity:
        """Validate ``credential`` and return the identity it carries.

        Raises
        ------
        InvalidCredential
            If the token is missing, malformed, badly signed, expired, or
            its payload does not name a user.
        """
        if not credential:
            raise InvalidCredential("Missing authentication token")

        try:
            claims = jwt.decode(
                credential,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError as exc:
            raise InvalidCredential("Invalid or expired token") from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("Rejected token: {}", exc)
            raise InvalidCredential("Invalid or expired token") from exc

        user_id = claims.get("userId")
        if not user_id:
            raise InvalidCredential("Invalid token payload")

        try:
            return CallerIdentity(
                user_id=str(user_id),
                role=claims.get("role") or "user",
                email=claims.get("email"),
            )
        except PydanticValidationError as exc:
            raise InvalidCredential("Invalid token payload") from exc

    def issue(self, identity: CallerIdentity, expires_in: int | None = None) -> str:
        """Sign a token for ``identity`` valid for ``expires_in`` seconds."""
        now = datetime.now(timezone.utc)
        lifetime = timedelta(seconds=expires_in if expires_in is not None else self._expires_in)
        payload = {
            "userId": identity.user_id,
            "email": identity.email,
            "role": identity.role.value,
            "iat": now,
            "exp": now + lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)


@lru_cache()
def get_identity_verifier() -> IdentityVerifier:
    """Dependency returning the process-wide verifier."""
    return IdentityVerifier.from_config(get_auth_config())


async def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> CallerIdentity:
    """Resolve the caller of an HTTP request from its bearer token."""
    token = credentials.credentials if credentials else None
    return verifier.verify(token)
