"""
Authentication middleware for the BFF.

The orchestration API is the authority on token validity. Here the bearer
token is only captured for forwarding, and its claims are read without
signature verification so routes can gate on roles and logs can carry the
caller's identity.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Optional

from fastapi import Request
from jose import JWTError, jwt

from bff_shared.errors import AuthenticationError, AuthorizationError
from bff_shared.logging import get_logger, set_user_context

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class Identity:
    """Caller identity reconstructed from unverified token claims."""

    subject: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    tenant_id: Optional[str] = None
    roles: FrozenSet[str] = field(default_factory=frozenset)

    def has_any_role(self, roles) -> bool:
        return not self.roles.isdisjoint(roles)


@dataclass(frozen=True)
class RequestAuth:
    """What the extractor attaches to ``request.state``."""

    token: Optional[str] = None
    identity: Optional[Identity] = None


def _extract_roles(claims: Dict[str, Any]) -> FrozenSet[str]:
    """Roles live in the Keycloak ``realm_access.roles`` claim; anything else counts as none."""
    realm_access = claims.get("realm_access")
    if not isinstance(realm_access, dict):
        return frozenset()
    roles = realm_access.get("roles")
    if not isinstance(roles, list):
        return frozenset()
    return frozenset(role for role in roles if isinstance(role, str))


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


class AuthMiddleware:
    """Token extraction for every request."""

    def __init__(self):
        self.logger = get_logger("bff.auth_middleware")

    def parse_authorization(self, header: Optional[str]) -> RequestAuth:
        if not header or not header.startswith(BEARER_PREFIX):
            return RequestAuth()

        token = header[len(BEARER_PREFIX):]
        if not token:
            return RequestAuth()

        return RequestAuth(token=token, identity=self.decode_identity(token))

    def decode_identity(self, token: str) -> Optional[Identity]:
        """Best-effort claim extraction; malformed tokens yield ``None``."""
        try:
            claims = jwt.get_unverified_claims(token)
        except JWTError as exc:
            self.logger.debug("Bearer token is not a decodable JWT", error=str(exc))
            return None

        if not isinstance(claims, dict):
            return None

        return Identity(
            subject=_optional_str(claims.get("sub")),
            email=_optional_str(claims.get("email")),
            name=_optional_str(claims.get("name")),
            tenant_id=_optional_str(claims.get("tenant_id")),
            roles=_extract_roles(claims),
        )

    def authenticate_request(self, request: Request) -> RequestAuth:
        """Attach token and identity to the request; anonymous requests pass through."""
        auth = self.parse_authorization(request.headers.get("Authorization"))
        request.state.token = auth.token
        request.state.identity = auth.identity

        if auth.identity is not None:
            set_user_context(auth.identity.subject, auth.identity.tenant_id)

        return auth


def get_request_auth(request: Request) -> RequestAuth:
    return RequestAuth(
        token=getattr(request.state, "token", None),
        identity=getattr(request.state, "identity", None),
    )


async def require_authenticated(request: Request) -> str:
    """FastAPI dependency: the request must carry a bearer token. Returns it."""
    auth = get_request_auth(request)
    if not auth.token:
        raise AuthenticationError("Token required")
    return auth.token


def require_any_role(*roles: str) -> Callable:
    """FastAPI dependency factory: caller must hold at least one of ``roles``."""
    required = frozenset(roles)

    async def dependency(request: Request) -> Identity:
        auth = get_request_auth(request)
        if not auth.token or auth.identity is None:
            raise AuthenticationError("Token required")
        if not auth.identity.has_any_role(required):
            raise AuthorizationError(
                f"Requires one of roles: {', '.join(roles)}",
                details={"required_roles": list(roles)},
            )
        return auth.identity

    return dependency
