"""
Security module - Auth0 JWT token verification and authorization utilities.

Submodules:

- jwks_cache.py: JWKS cache with TTL support
- jwt_verification.py: JWT verification functions
- permissions.py: Permission dependencies and component-context checks
- utils.py: Claim helpers and permission names
"""

from .jwks_cache import (
    JWKSCache,
    clear_jwks_cache,
    close_async_http_client,
    get_async_http_client,
    get_jwks_async,
)
from .jwt_verification import (
    INVALID_OR_EXPIRED_TOKEN_MSG,
    get_current_user,
    get_rsa_key_async,
    verify_token_async,
)
from .permissions import ensure_allowed, require_permission
from .utils import (
    ALL_PERMISSIONS,
    PROPOSAL_ANSWER_CREATE,
    PROPOSAL_ANSWER_PUBLISH,
    PROPOSAL_CATEGORY_UPDATE,
    PROPOSAL_CREATE,
    PROPOSAL_NOTE_CREATE,
    PROPOSAL_READ,
    PROPOSAL_SCOPE_UPDATE,
    PROPOSAL_UPDATE,
    get_user_id,
    get_user_permissions,
    get_user_sub,
    has_permission,
)

__all__ = [
    "ALL_PERMISSIONS",
    "INVALID_OR_EXPIRED_TOKEN_MSG",
    "JWKSCache",
    "PROPOSAL_ANSWER_CREATE",
    "PROPOSAL_ANSWER_PUBLISH",
    "PROPOSAL_CATEGORY_UPDATE",
    "PROPOSAL_CREATE",
    "PROPOSAL_NOTE_CREATE",
    "PROPOSAL_READ",
    "PROPOSAL_SCOPE_UPDATE",
    "PROPOSAL_UPDATE",
    "clear_jwks_cache",
    "close_async_http_client",
    "ensure_allowed",
    "get_async_http_client",
    "get_current_user",
    "get_jwks_async",
    "get_rsa_key_async",
    "get_user_id",
    "get_user_permissions",
    "get_user_sub",
    "has_permission",
    "require_permission",
    "verify_token_async",
]
