"""
Unit tests for AuthMiddleware and the role gates.
"""

import base64
import json

import pytest
from starlette.requests import Request

from service_bff.app.domain.auth_middleware import (
    AuthMiddleware,
    Identity,
    require_any_role,
    require_authenticated,
)
from bff_shared.errors import AuthenticationError, AuthorizationError
from bff_shared.test_helpers import ADMIN, OPERATOR, VIEWER, mock_token_generator


def make_request(headers=None) -> Request:
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/v1/workflows",
        "query_string": b"",
        "headers": raw_headers,
        "state": {},
    })


def _segment(payload) -> str:
    raw = json.dumps(payload).encode()
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


class TestAuthMiddleware:
    """Test cases for token extraction."""

    @pytest.fixture
    def auth_middleware(self):
        """Create AuthMiddleware instance."""
        return AuthMiddleware()

    def test_no_authorization_header_is_anonymous(self, auth_middleware):
        request = make_request()

        auth = auth_middleware.authenticate_request(request)

        assert auth.token is None
        assert auth.identity is None
        assert request.state.token is None
        assert request.state.identity is None

    def test_non_bearer_scheme_is_anonymous(self, auth_middleware):
        auth = auth_middleware.parse_authorization("Basic dXNlcjpwYXNz")

        assert auth.token is None
        assert auth.identity is None

    def test_lowercase_bearer_is_not_recognised(self, auth_middleware):
        token = mock_token_generator.generate_access_token(VIEWER)

        auth = auth_middleware.parse_authorization(f"bearer {token}")

        assert auth.token is None

    def test_valid_token_populates_identity(self, auth_middleware):
        token = mock_token_generator.generate_access_token(OPERATOR)
        request = make_request({"Authorization": f"Bearer {token}"})

        auth = auth_middleware.authenticate_request(request)

        assert auth.token == token
        assert request.state.token == token
        identity = request.state.identity
        assert identity.subject == OPERATOR.user_id
        assert identity.email == OPERATOR.email
        assert identity.name == OPERATOR.name
        assert identity.tenant_id == "tenant-1"
        assert identity.roles == frozenset({"operator"})

    def test_opaque_token_keeps_token_without_identity(self, auth_middleware):
        auth = auth_middleware.parse_authorization("Bearer not-a-jwt")

        assert auth.token == "not-a-jwt"
        assert auth.identity is None

    def test_garbage_payload_segment_degrades_to_anonymous_identity(self, auth_middleware):
        token = f"{_segment({'alg': 'HS256'})}.%%%not-base64%%%.sig"

        auth = auth_middleware.parse_authorization(f"Bearer {token}")

        assert auth.token == token
        assert auth.identity is None

    def test_non_object_payload_degrades_to_anonymous_identity(self, auth_middleware):
        token = f"{_segment({'alg': 'HS256'})}.{_segment(['not', 'an', 'object'])}.sig"

        auth = auth_middleware.parse_authorization(f"Bearer {token}")

        assert auth.identity is None

    def test_missing_role_claim_means_no_roles(self, auth_middleware):
        token = mock_token_generator.generate_token_without_roles(VIEWER)

        auth = auth_middleware.parse_authorization(f"Bearer {token}")

        assert auth.identity.subject == VIEWER.user_id
        assert auth.identity.roles == frozenset()

    def test_malformed_role_claim_means_no_roles(self, auth_middleware):
        token = mock_token_generator.generate_access_token(VIEWER, realm_access={"roles": "admin"})

        auth = auth_middleware.parse_authorization(f"Bearer {token}")

        assert auth.identity.roles == frozenset()

    def test_top_level_roles_claim_is_ignored(self, auth_middleware):
        token = mock_token_generator.generate_token_without_roles(VIEWER)
        forged = mock_token_generator.generate_access_token(VIEWER, roles=["admin"])

        assert auth_middleware.parse_authorization(f"Bearer {token}").identity.roles == frozenset()
        assert "admin" not in auth_middleware.parse_authorization(f"Bearer {forged}").identity.roles


class TestRoleGates:
    """Test cases for require_authenticated / require_any_role."""

    @pytest.fixture
    def auth_middleware(self):
        return AuthMiddleware()

    def _authenticated_request(self, auth_middleware, user=None, token=None):
        if token is None:
            token = mock_token_generator.generate_access_token(user)
        request = make_request({"Authorization": f"Bearer {token}"})
        auth_middleware.authenticate_request(request)
        return request

    @pytest.mark.asyncio
    async def test_require_authenticated_rejects_anonymous(self, auth_middleware):
        request = make_request()
        auth_middleware.authenticate_request(request)

        with pytest.raises(AuthenticationError) as exc_info:
            await require_authenticated(request)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_require_authenticated_accepts_opaque_token(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, token="opaque-token")

        assert await require_authenticated(request) == "opaque-token"

    @pytest.mark.asyncio
    async def test_require_any_role_rejects_anonymous_with_401(self, auth_middleware):
        request = make_request()
        auth_middleware.authenticate_request(request)

        with pytest.raises(AuthenticationError):
            await require_any_role("operator", "admin")(request)

    @pytest.mark.asyncio
    async def test_require_any_role_rejects_undecodable_token_with_401(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, token="opaque-token")

        with pytest.raises(AuthenticationError):
            await require_any_role("operator", "admin")(request)

    @pytest.mark.asyncio
    async def test_require_any_role_rejects_missing_role_with_403(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, VIEWER)

        with pytest.raises(AuthorizationError) as exc_info:
            await require_any_role("operator", "admin")(request)

        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "Requires one of roles: operator, admin"

    @pytest.mark.asyncio
    async def test_require_any_role_accepts_any_matching_role(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, OPERATOR)

        identity = await require_any_role("operator", "admin")(request)

        assert identity.subject == OPERATOR.user_id

    @pytest.mark.asyncio
    async def test_operator_is_not_admin(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, OPERATOR)

        with pytest.raises(AuthorizationError):
            await require_any_role("admin")(request)

    @pytest.mark.asyncio
    async def test_admin_passes_admin_gate(self, auth_middleware):
        request = self._authenticated_request(auth_middleware, ADMIN)

        identity = await require_any_role("admin")(request)

        assert "admin" in identity.roles

    def test_identity_role_membership_is_exact(self):
        identity = Identity(subject="u", roles=frozenset({"administrator"}))

        assert not identity.has_any_role({"admin"})
        assert identity.has_any_role({"admin", "administrator"})
