"""Application settings sourced from environment variables."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field

LOGIN_HOST = "https://login.microsoftonline.com"
DEFAULT_DOWNSTREAM_BASE_URL = "https://dev.azure.com/"
# Azure DevOps resource application id, default-access scope
DEFAULT_DOWNSTREAM_SCOPE = "499b84ac-1321-427f-aa17-267ca6975798/.default"


class ConfigurationError(RuntimeError):
    """Raised at startup when required configuration is missing or invalid."""


def _split_csv(value: str | None) -> List[str]:
    if not value:
        return ["*"]
    parts = [item.strip() for item in value.split(",") if item.strip()]
    return parts or ["*"]


def _env_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


class IdentitySettings(BaseModel):
    """Confidential-client identity registered with Microsoft Entra ID."""

    model_config = {"frozen": True}

    client_id: str = Field(default="")
    client_secret: str = Field(default="", repr=False)
    tenant_id: str = Field(default="")

    @property
    def authority(self) -> str:
        return f"{LOGIN_HOST}/{self.tenant_id}/v2.0"

    @property
    def token_endpoint(self) -> str:
        return f"{LOGIN_HOST}/{self.tenant_id}/oauth2/v2.0/token"

    def missing_fields(self) -> List[str]:
        return [
            name
            for name in ("client_id", "client_secret", "tenant_id")
            if not getattr(self, name).strip()
        ]


class Settings(BaseModel):
    """Runtime configuration for the DevOps delegation gateway."""

    project_name: str = Field(default="DevOps Gateway")
    version: str = Field(default="0.1.0")
    api_key: str | None = Field(default=None, description="Admin API key")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    log_level: str = Field(default="INFO", description="Application log level")
    prometheus_enabled: bool = Field(
        default=False, description="Expose Prometheus metrics endpoint"
    )
    port: int = Field(default=7071)
    resource_fqdn: str | None = Field(
        default=None, description="Public FQDN when hosted behind a proxy"
    )
    scope_name: str = Field(default="mcp.tools")
    identity: IdentitySettings = Field(default_factory=IdentitySettings)
    downstream_base_url: str = Field(default=DEFAULT_DOWNSTREAM_BASE_URL)
    downstream_scope: str = Field(default=DEFAULT_DOWNSTREAM_SCOPE)
    downstream_timeout: float = Field(default=30.0, gt=0)
    token_cache_enabled: bool = Field(
        default=False, description="Reuse exchanged tokens until close to expiry"
    )
    token_refresh_margin: float = Field(default=300.0, ge=0)

    @property
    def server_url(self) -> str:
        host = "0.0.0.0" if self.resource_fqdn else "localhost"
        return f"http://{host}:{self.port}/"

    @property
    def resource_url(self) -> str:
        if self.resource_fqdn:
            return f"https://{self.resource_fqdn}/"
        return f"http://localhost:{self.port}/"

    @property
    def resource_metadata_url(self) -> str:
        return f"{self.resource_url}.well-known/oauth-protected-resource"

    @property
    def supported_scopes(self) -> List[str]:
        return [f"api://{self.identity.client_id}/{self.scope_name}"]

    def require_identity(self) -> IdentitySettings:
        """Return the identity or refuse to start when it is incomplete."""

        missing = self.identity.missing_fields()
        if missing:
            raise ConfigurationError(
                "AzureAd settings are not configured (missing: "
                + ", ".join(missing)
                + ")"
            )
        return self.identity


def _load_identity_file(path: str | None) -> Dict[str, Any]:
    if not path:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigurationError(f"Identity config not found: {config_path}")
    data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    section = data.get("azure_ad") or {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"'azure_ad' in {config_path} must be a mapping")
    return {key: str(value) for key, value in section.items() if value is not None}


def load_identity() -> IdentitySettings:
    """Merge the optional YAML identity file with environment overrides."""

    values = _load_identity_file(os.getenv("GATEWAY_IDENTITY_CONFIG"))
    env_map = {
        "client_id": "AZURE_AD_CLIENT_ID",
        "client_secret": "AZURE_AD_CLIENT_SECRET",
        "tenant_id": "AZURE_AD_TENANT_ID",
    }
    for field_name, env_name in env_map.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[field_name] = env_value
    return IdentitySettings(**values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process."""

    return Settings(
        project_name=os.getenv("GATEWAY_PROJECT_NAME", "DevOps Gateway"),
        version=os.getenv("GATEWAY_VERSION", "0.1.0"),
        api_key=os.getenv("GATEWAY_API_KEY"),
        cors_origins=_split_csv(os.getenv("GATEWAY_CORS_ORIGINS")),
        log_level=os.getenv("GATEWAY_LOG_LEVEL", "INFO"),
        prometheus_enabled=_env_bool(os.getenv("GATEWAY_PROMETHEUS_ENABLED"), False),
        port=int(os.getenv("PORT", "7071")),
        resource_fqdn=os.getenv("MCP_RESOURCE_FQDN") or None,
        identity=load_identity(),
        downstream_base_url=os.getenv(
            "GATEWAY_DOWNSTREAM_BASE_URL", DEFAULT_DOWNSTREAM_BASE_URL
        ),
        downstream_timeout=float(os.getenv("GATEWAY_DOWNSTREAM_TIMEOUT", "30")),
        token_cache_enabled=_env_bool(os.getenv("GATEWAY_TOKEN_CACHE"), False),
        token_refresh_margin=float(os.getenv("GATEWAY_TOKEN_REFRESH_MARGIN", "300")),
    )
