"""
Tests for the health check and metrics endpoints.
"""

from unittest.mock import patch

import pytest

from config import Config


def test_health_endpoint(client):
    """Test that health endpoint returns 200 with JSON status."""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json == {"status": "ok"}


def test_health_endpoint_content_type(client):
    """Test that health endpoint returns JSON content type."""
    response = client.get("/health")
    assert response.content_type == "application/json"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"


def test_metrics_report_cache_state(client):
    """Metrics include cache statistics and the sweeper state."""
    client.get("/validate?email=user@example.com")
    client.get("/validate?email=user@example.com")

    response = client.get("/metrics")
    assert response.status_code == 200

    data = response.json
    assert data["validator_mode"] == "mock"
    assert data["mx_cache"]["hits"] == 1
    assert data["mx_cache"]["misses"] == 1
    assert data["mx_cache"]["hit_rate"] == 50.0
    assert data["mx_cache"]["size"] == 1
    assert data["mx_cache"]["enabled"] is True
    # Background threads are disabled in TESTING mode
    assert data["mx_cache"]["sweeper_running"] is False
    assert "dns_timeout_ms" in data["config"]


class TestConfig:
    """Test configuration parsing and validation."""

    def test_list_settings_are_parsed(self):
        with patch.object(Config, "DNS_NAMESERVERS", " 1.1.1.1, ,8.8.8.8 "):
            assert Config.get_nameservers() == ["1.1.1.1", "8.8.8.8"]
        with patch.object(Config, "CORS_ORIGINS", ""):
            assert Config.get_cors_origins() == []

    def test_out_of_range_values_are_rejected(self):
        Config.validate()
        with patch.object(Config, "MX_CACHE_MAX_SIZE", 0):
            with pytest.raises(ValueError, match="MX_CACHE_MAX_SIZE"):
                Config.validate()
        with patch.object(Config, "VALIDATOR_MODE", "smtp"):
            with pytest.raises(ValueError, match="VALIDATOR_MODE"):
                Config.validate()
