"""
JWT token verification functions for Auth0 authentication.

Extracts RSA keys from the cached JWKS and decodes token payloads.
"""

import logging
from typing import Any

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from proposals_admin.core.config import settings
from proposals_admin.core.errors import UnauthorizedError
from proposals_admin.core.observability import set_user_id

from .jwks_cache import get_jwks_async
from .utils import ALL_PERMISSIONS

logger = logging.getLogger(__name__)

# Optional security scheme for bypass mode (Authorization header is optional)
_optional_security = HTTPBearer(auto_error=False)

INVALID_OR_EXPIRED_TOKEN_MSG = "Invalid or expired token"


def _extract_rsa_key_from_jwks(jwks: dict, kid: str) -> dict[str, Any]:
    """Extract RSA key from JWKS by key ID."""
    for key in jwks.get("keys", []):
        if key.get("kid") == kid:
            return {
                "kty": key["kty"],
                "kid": key["kid"],
                "use": key.get("use", "sig"),
                "n": key["n"],
                "e": key["e"],
            }
    logger.error("Unable to find matching key for kid: %s", kid)
    raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)


async def get_rsa_key_async(token: str) -> dict[str, Any]:
    """
    Extract the RSA public key from JWKS for the given token.

    Args:
        token: JWT token string

    Returns:
        RSA public key dictionary

    Raises:
        UnauthorizedError: If the header is malformed or the key ID is unknown
    """
    try:
        unverified_header = jwt.get_unverified_header(token)
    except JWTError as e:
        logger.warning("Invalid JWT header: %s", e)
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    kid = unverified_header.get("kid")
    if not kid:
        logger.warning("JWT header has no key id")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    jwks = await get_jwks_async()
    return _extract_rsa_key_from_jwks(jwks, kid)


async def verify_token_async(token: str) -> dict[str, Any]:
    """
    Verify JWT token against Auth0 and return the decoded payload.

    Performs comprehensive verification:
    - Signature verification using Auth0 public key
    - Issuer validation (must match AUTH0_DOMAIN)
    - Audience validation (must match AUTH0_AUDIENCE)
    - Expiration check

    Args:
        token: JWT token string from Authorization header

    Returns:
        Decoded token payload containing user info and claims

    Raises:
        UnauthorizedError: If token verification fails for any reason
    """
    rsa_key = await get_rsa_key_async(token)

    try:
        payload = jwt.decode(
            token,
            rsa_key,
            algorithms=settings.auth0_algorithms_list,
            audience=settings.auth0_audience,
            issuer=f"https://{settings.auth0_domain}/",
        )
    except ExpiredSignatureError:
        logger.warning("Token has expired")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTClaimsError as e:
        logger.warning(f"Invalid token claims: {e}")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)

    logger.debug(f"Token verified successfully for subject: {payload.get('sub')}")
    return payload


def _create_bypass_user() -> dict[str, Any]:
    """
    Create a mock administrator for local development when JWT validation is bypassed.

    This is ONLY used when SECURITY_SKIP_JWT_VALIDATION=True and APP_ENV=local.
    """
    return {
        "sub": "local-dev-admin",
        "name": "Local Admin",
        "permissions": sorted(ALL_PERMISSIONS),
        "aud": settings.auth0_audience,
        "iss": f"https://{settings.auth0_domain}/",
        "exp": 9999999999,
    }


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(_optional_security),
) -> dict[str, Any]:
    """
    FastAPI dependency to extract and verify the current user from JWT.

    Args:
        credentials: Automatically extracted by HTTPBearer (optional when bypass enabled)

    Returns:
        Decoded JWT payload containing user information

    Raises:
        UnauthorizedError: If token is missing or invalid
    """
    # Validation in config.py keeps the bypass out of TEST/PROD
    if settings.skip_jwt_validation:
        logger.info("JWT validation bypassed - returning local admin user")
        user = _create_bypass_user()
    else:
        if credentials is None:
            logger.warning("Missing Authorization header")
            raise UnauthorizedError(INVALID_OR_EXPIRED_TOKEN_MSG)
        user = await verify_token_async(credentials.credentials)

    set_user_id(str(user.get("sub", "")))
    return user
