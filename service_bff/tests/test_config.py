"""
Unit tests for environment-driven configuration.
"""

import pytest
from pydantic import ValidationError

from bff_shared.config import get_config


class TestConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BFF_UPSTREAM_API_URL", raising=False)

        config = get_config()

        assert config.service_name == "bff"
        assert config.port == 3000
        assert config.upstream_api_url == "http://localhost:8080"
        assert config.upstream_timeout_seconds == 30.0
        assert config.api_prefix == "/api/v1"
        assert config.rate_limit_per_minute == 100
        assert config.audit_require_admin is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BFF_UPSTREAM_API_URL", "http://orchestrix:9000")
        monkeypatch.setenv("BFF_PORT", "8088")
        monkeypatch.setenv("BFF_AUDIT_REQUIRE_ADMIN", "true")

        config = get_config()

        assert config.upstream_api_url == "http://orchestrix:9000"
        assert config.port == 8088
        assert config.audit_require_admin is True

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            get_config(upstream_timeout_seconds=0)

    def test_config_is_immutable(self):
        config = get_config()

        with pytest.raises(ValidationError):
            config.port = 9999
