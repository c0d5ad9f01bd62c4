"""Access token verification for task API requests."""

import os
import logging
from typing import Mapping, Optional

import jwt
from pydantic import ValidationError as PydanticValidationError

from src.models.user import AuthenticatedUser
from src.utils.errors import AuthenticationError, ConfigurationError
from src.utils.logging import mask_user_id
from src.utils.settings import TaskApiConfig

logger = logging.getLogger(__name__)

MISSING_TOKEN_MESSAGE = "No token, authorization denied"
INVALID_TOKEN_MESSAGE = "Token is not valid"


def get_jwt_secret() -> str:
    """Get the token verification key from the environment."""
    secret = os.environ.get("JWT_SECRET", "").strip()
    if not secret:
        raise ConfigurationError("JWT_SECRET not set")
    return secret


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                value = candidate
                break
    return value.strip() if isinstance(value, str) else None


def extract_token(headers: Mapping[str, str]) -> Optional[str]:
    """
    Extract the access token from request headers.

    The dedicated header (`x-auth-token` by default) wins; a standard
    `Authorization: Bearer <token>` header is accepted as well.
    """
    token = _header(headers, TaskApiConfig.AUTH_TOKEN_HEADER)
    if token:
        return token

    authorization = _header(headers, "Authorization")
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


def decode_token(token: str, secret: str) -> AuthenticatedUser:
    """
    Verify signature and expiry, then read the identity claim.

    Raises AuthenticationError with the same generic message for every failure.
    """
    try:
        payload = jwt.decode(token, secret, algorithms=[TaskApiConfig.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Access token expired")
        raise AuthenticationError(INVALID_TOKEN_MESSAGE)
    except jwt.InvalidTokenError as e:
        logger.info("Access token rejected", extra={"reason": type(e).__name__})
        raise AuthenticationError(INVALID_TOKEN_MESSAGE)

    claim = payload.get("user")
    if claim is None and payload.get("sub"):
        claim = {"id": payload["sub"], "name": payload.get("name", ""), "role": payload.get("role", "user")}

    if not isinstance(claim, dict):
        logger.info("Access token has no user claim")
        raise AuthenticationError(INVALID_TOKEN_MESSAGE)

    try:
        return AuthenticatedUser.model_validate(claim)
    except PydanticValidationError:
        logger.info("Access token user claim is malformed")
        raise AuthenticationError(INVALID_TOKEN_MESSAGE)


def authenticate_request(headers: Mapping[str, str]) -> AuthenticatedUser:
    """Resolve the acting user for a request or raise AuthenticationError."""
    token = extract_token(headers)
    if not token:
        raise AuthenticationError(MISSING_TOKEN_MESSAGE)

    user = decode_token(token, get_jwt_secret())
    logger.debug("Request authenticated", extra={"user_id": mask_user_id(user.id), "role": user.role})
    return user
