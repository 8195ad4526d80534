"""
Catalog Admin Endpoint Tests

- Admin key enforcement
- POST /items synthesizes a catalog and reports per-source errors
- POST /verify accepts an inline catalog or a catalog location
- GET /health needs no key

Version: app_catalog_v1
"""

import json
import os
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from appsource.catalog.admin import verify_admin_key
from main import app


PREFIX = "/api/v1/admin/catalog"


@pytest.fixture
def client():
    with patch.dict(os.environ, {"ADMIN_API_KEY": "test-secret-key"}):
        yield TestClient(app)


@pytest.fixture
def headers():
    return {"X-Admin-API-Key": "test-secret-key"}


class TestAdminEndpointSecurity:
    """Tests for admin endpoint security."""

    def test_missing_api_key_returns_401(self):
        """Missing X-Admin-API-Key header returns 401."""
        with patch.dict(os.environ, {"ADMIN_API_KEY": "test-secret-key"}):
            with pytest.raises(HTTPException) as exc_info:
                verify_admin_key(None)

            assert exc_info.value.status_code == 401
            assert "Missing" in exc_info.value.detail

    def test_invalid_api_key_returns_401(self):
        """Invalid X-Admin-API-Key returns 401."""
        with patch.dict(os.environ, {"ADMIN_API_KEY": "correct-key"}):
            with pytest.raises(HTTPException) as exc_info:
                verify_admin_key("wrong-key")

            assert exc_info.value.status_code == 401
            assert "Invalid" in exc_info.value.detail

    def test_valid_api_key_passes(self):
        with patch.dict(os.environ, {"ADMIN_API_KEY": "correct-key"}):
            assert verify_admin_key("correct-key") == "correct-key"

    def test_dev_mode_without_configured_key(self):
        with patch.dict(os.environ, {}, clear=True):
            assert verify_admin_key(None) == "dev_mode"

    def test_endpoint_rejects_missing_key(self, client, ipa_path):
        response = client.post(f"{PREFIX}/items", json={"sources": [str(ipa_path)]})

        assert response.status_code == 401


class TestCreateItems:
    """Tests for POST /items."""

    def test_create(self, client, headers, ipa_path, tmp_path):
        missing = str(tmp_path / "missing.ipa")

        response = client.post(
            f"{PREFIX}/items",
            json={
                "sources": [str(ipa_path), missing],
                "options": {"app_subtitle": ["com.example.demo=Scans things"]},
            },
            headers=headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is False
        assert list(body["errors"]) == [missing]
        app_json = body["catalog"]["apps"][0]
        assert app_json["bundleIdentifier"] == "com.example.demo"
        assert app_json["subtitle"] == "Scans things"

    def test_empty_sources_rejected(self, client, headers):
        response = client.post(f"{PREFIX}/items", json={"sources": []}, headers=headers)

        assert response.status_code == 422

    def test_unknown_option_rejected(self, client, headers, ipa_path):
        response = client.post(
            f"{PREFIX}/items",
            json={"sources": [str(ipa_path)], "options": {"app_colour": ["red"]}},
            headers=headers,
        )

        assert response.status_code == 422


class TestVerifyItems:
    """Tests for POST /verify."""

    def create_catalog_json(self, client, headers, ipa_path):
        response = client.post(f"{PREFIX}/items", json={"sources": [str(ipa_path)]}, headers=headers)
        return response.json()["catalog"]

    def test_verify_inline_catalog(self, client, headers, ipa_path):
        catalog = self.create_catalog_json(client, headers, ipa_path)

        response = client.post(f"{PREFIX}/verify", json={"catalog": catalog}, headers=headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["total_apps"] == 1
        assert body["failed_apps"] == 0
        assert body["results_hash"].startswith("sha256:")

    def test_verify_reports_failures(self, client, headers, ipa_path):
        catalog = self.create_catalog_json(client, headers, ipa_path)
        catalog["apps"][0]["size"] = 1

        response = client.post(f"{PREFIX}/verify", json={"catalog": catalog}, headers=headers)

        body = response.json()
        assert body["success"] is False
        assert body["failed_apps"] == 1
        assert body["results"][0]["failures"][0]["type"] == "size_mismatch"

    def test_verify_catalog_url(self, client, headers, ipa_path, tmp_path):
        catalog = self.create_catalog_json(client, headers, ipa_path)
        catalog["apps"][0]["downloadURL"] = ipa_path.name
        catalog_path = tmp_path / "catalog.json"
        catalog_path.write_text(json.dumps(catalog))

        response = client.post(
            f"{PREFIX}/verify", json={"catalog_url": str(catalog_path)}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_missing_catalog_file_is_404(self, client, headers, tmp_path):
        response = client.post(
            f"{PREFIX}/verify",
            json={"catalog_url": str(tmp_path / "nope.json")},
            headers=headers,
        )

        assert response.status_code == 404

    def test_invalid_catalog_document_is_422(self, client, headers, tmp_path):
        catalog_path = tmp_path / "catalog.json"
        catalog_path.write_text('{"apps": "not a list"}')

        response = client.post(
            f"{PREFIX}/verify", json={"catalog_url": str(catalog_path)}, headers=headers
        )

        assert response.status_code == 422

    def test_catalog_or_url_required(self, client, headers):
        response = client.post(f"{PREFIX}/verify", json={}, headers=headers)

        assert response.status_code == 422


class TestHealth:
    """Tests for health endpoints."""

    def test_catalog_health_without_key(self, client):
        response = client.get(f"{PREFIX}/health")

        assert response.status_code == 200
        assert response.json()["module"] == "app_catalog"

    def test_service_root(self, client):
        assert client.get("/").json()["status"] == "operational"
