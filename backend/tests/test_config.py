"""
Product Catalog Backend — Settings Tests
==========================================

What we test:
    ✅ Defaults (port 5000, development, 100 / 900 s rate limit)
    ✅ NODE_ENV is accepted as an alias for APP_ENV
    ✅ CORS allow-set = CLIENT_ORIGIN + dev origin
    ✅ Invalid log levels are rejected at startup
    ✅ Only the loopback proxy may set the client address by default
"""

import pytest
from pydantic import ValidationError

from catalog.config import DEV_CLIENT_ORIGIN, Settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    names = ("PORT", "APP_ENV", "NODE_ENV", "CLIENT_ORIGIN", "LOG_LEVEL", "TRUST_PROXY", "FORWARDED_ALLOW_IPS")
    for name in names:
        monkeypatch.delenv(name, raising=False)


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.port == 5000
        assert settings.app_env == "development"
        assert not settings.is_production
        assert settings.rate_limit_max == 100
        assert settings.rate_limit_window_seconds == 900
        assert settings.json_body_limit == 100 * 1024

    def test_port_from_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "8080")

        assert Settings(_env_file=None).port == 8080

    @pytest.mark.parametrize("name", ["APP_ENV", "NODE_ENV"])
    def test_production_switch(self, monkeypatch, name):
        monkeypatch.setenv(name, "Production")

        settings = Settings(_env_file=None)

        assert settings.app_env == "production"
        assert settings.is_production

    def test_cors_allow_set(self, monkeypatch):
        monkeypatch.setenv("CLIENT_ORIGIN", "https://shop.example")

        allowed = Settings(_env_file=None).cors_allowed_origins

        assert allowed == frozenset({"https://shop.example", DEV_CLIENT_ORIGIN})

    def test_log_level_is_normalized(self):
        assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, log_level="LOUD")

    def test_only_loopback_proxy_trusted_by_default(self):
        settings = Settings(_env_file=None)

        assert settings.trust_proxy
        assert settings.forwarded_allow_ips == "127.0.0.1"

    def test_forwarded_allow_ips_from_environment(self, monkeypatch):
        monkeypatch.setenv("FORWARDED_ALLOW_IPS", "10.0.0.2,10.0.0.3")

        assert Settings(_env_file=None).forwarded_allow_ips == "10.0.0.2,10.0.0.3"
