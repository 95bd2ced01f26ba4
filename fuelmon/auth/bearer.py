"""
Bearer token authentication for the fuel monitor API.

Validates incoming ``Authorization: Bearer {token}`` headers carrying a
signed JWT and resolves the caller's identity from its claims. Token
issuance belongs to the identity service and is not handled here.

CHANGELOG:
- 2026-10-14: Initial creation (STORY-009)

TODO:
- None
"""

import logging
from dataclasses import dataclass

from fastapi import HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserIdentity:
    """Authenticated caller.

    Attributes:
        id: User primary key.
        username: Login name.
        role: Role name; ``admin`` sees every active site.
    """

    id: int
    username: str
    role: str


def decode_identity(token: str, secret: str, algorithm: str) -> UserIdentity | None:
    """Decode a JWT and extract the identity claims.

    Args:
        token: The bearer token extracted from the Authorization header.
        secret: HMAC signing secret.
        algorithm: Expected signing algorithm.

    Returns:
        UserIdentity | None: The identity, or None if the token is invalid,
            expired or lacks the ``id``, ``username`` or ``role`` claims.
    """
    if not token:
        return None

    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError:
        return None

    try:
        return UserIdentity(
            id=int(claims["id"]),
            username=str(claims["username"]),
            role=str(claims["role"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.warning("Token is missing identity claims")
        return None


class BearerAuth:
    """FastAPI-compatible JWT bearer authentication dependency.

    Wraps HTTPBearer for OpenAPI documentation and validates the extracted
    token signature and expiry.

    Attributes:
        secret: HMAC signing secret.
        algorithm: Expected signing algorithm.
        scheme: FastAPI HTTPBearer security scheme.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self.secret = secret
        self.algorithm = algorithm
        self.scheme = HTTPBearer(auto_error=False)

    async def verify(self, request: Request) -> UserIdentity:
        """FastAPI dependency that validates the bearer JWT.

        Args:
            request: The incoming FastAPI request.

        Returns:
            UserIdentity: The authenticated caller.

        Raises:
            HTTPException: 401 Unauthorized if the token is invalid or missing.
        """
        credentials: HTTPAuthorizationCredentials | None = await self.scheme(request)

        if credentials is None:
            raise HTTPException(
                status_code=401,
                detail="Missing authorization credentials.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        identity = decode_identity(credentials.credentials, self.secret, self.algorithm)

        if identity is None:
            raise HTTPException(
                status_code=401,
                detail="Invalid or expired token.",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return identity
