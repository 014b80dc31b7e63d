"""
MeMantra Backend — Application-Level Tests
============================================

What we test:
    ✅ /health reports database connectivity
    ✅ X-Request-ID is generated, or echoed when the client sends one
    ✅ Unknown routes use the error envelope
    ✅ Access-log level follows the status class
    ✅ Settings parsing and production checks
"""

import logging

import pytest

from app.config import DEFAULT_JWT_SECRET, Settings
from app.middleware.logging import level_for_status


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_connected_database(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["version"]


class TestRequestId:

    @pytest.mark.asyncio
    async def test_generated_when_absent(self, client):
        response = await client.get("/api/mantras")

        assert len(response.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_client_value_is_echoed(self, client):
        response = await client.get("/api/mantras", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestErrorEnvelope:

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/nope")

        assert response.status_code == 404
        assert response.json() == {"status": "error", "message": "Cannot GET /api/nope"}


class TestAccessLogLevel:

    @pytest.mark.parametrize(
        "status, level",
        [(200, logging.INFO), (201, logging.INFO), (403, logging.WARNING), (500, logging.ERROR)],
    )
    def test_level_for_status(self, status, level):
        assert level_for_status(status) == level


class TestSettings:

    def test_lists_are_split_and_normalized(self):
        s = Settings(
            admin_emails=" Admin@MeMantra.app , ops@memantra.app,",
            cors_origins="http://a.test, http://b.test",
        )

        assert s.admin_emails_set == {"admin@memantra.app", "ops@memantra.app"}
        assert s.cors_origins_list == ["http://a.test", "http://b.test"]

    def test_log_level_is_validated(self):
        assert Settings(log_level="debug").log_level == "DEBUG"
        with pytest.raises(ValueError):
            Settings(log_level="chatty")

    def test_default_jwt_secret_fails_production_check(self):
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            Settings(jwt_secret_key=DEFAULT_JWT_SECRET).validate_required_for_production()

    def test_custom_secret_passes_production_check(self):
        Settings(jwt_secret_key="a-long-random-secret").validate_required_for_production()
