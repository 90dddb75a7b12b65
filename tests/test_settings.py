"""Tests for environment/YAML configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from config import ConfigurationError, IdentitySettings, get_settings
from tests.helpers import build_settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in (
        "AZURE_AD_CLIENT_ID",
        "AZURE_AD_CLIENT_SECRET",
        "AZURE_AD_TENANT_ID",
        "GATEWAY_IDENTITY_CONFIG",
        "MCP_RESOURCE_FQDN",
        "PORT",
        "GATEWAY_TOKEN_CACHE",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_identity_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AZURE_AD_CLIENT_ID", "client-1")
    monkeypatch.setenv("AZURE_AD_CLIENT_SECRET", "secret-1")
    monkeypatch.setenv("AZURE_AD_TENANT_ID", "tenant-1")
    monkeypatch.setenv("GATEWAY_TOKEN_CACHE", "true")

    settings = get_settings()
    identity = settings.require_identity()

    assert identity.client_id == "client-1"
    assert identity.authority == "https://login.microsoftonline.com/tenant-1/v2.0"
    assert identity.token_endpoint == (
        "https://login.microsoftonline.com/tenant-1/oauth2/v2.0/token"
    )
    assert settings.token_cache_enabled is True
    assert "secret-1" not in repr(settings)


def test_yaml_identity_with_env_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    config = tmp_path / "identity.yaml"
    config.write_text(
        """
azure_ad:
  client_id: from-file
  client_secret: file-secret
  tenant_id: file-tenant
""",
        encoding="utf-8",
    )
    monkeypatch.setenv("GATEWAY_IDENTITY_CONFIG", str(config))
    monkeypatch.setenv("AZURE_AD_TENANT_ID", "env-tenant")

    identity = get_settings().require_identity()

    assert identity.client_id == "from-file"
    assert identity.client_secret == "file-secret"
    assert identity.tenant_id == "env-tenant"


def test_missing_identity_file_is_fatal(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("GATEWAY_IDENTITY_CONFIG", str(tmp_path / "absent.yaml"))
    with pytest.raises(ConfigurationError):
        get_settings()


def test_require_identity_lists_missing_fields() -> None:
    settings = build_settings(identity=IdentitySettings(client_id="c"))
    with pytest.raises(ConfigurationError) as excinfo:
        settings.require_identity()
    assert "client_secret" in str(excinfo.value)
    assert "tenant_id" in str(excinfo.value)


def test_resource_urls_follow_public_fqdn(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "8080")
    local = get_settings()
    assert local.resource_url == "http://localhost:8080/"
    assert local.server_url == "http://localhost:8080/"

    get_settings.cache_clear()
    monkeypatch.setenv("MCP_RESOURCE_FQDN", "mcp.contoso.com")
    hosted = get_settings()
    assert hosted.resource_url == "https://mcp.contoso.com/"
    assert hosted.server_url == "http://0.0.0.0:8080/"
    assert hosted.resource_metadata_url == (
        "https://mcp.contoso.com/.well-known/oauth-protected-resource"
    )
