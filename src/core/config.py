"""Core configuration.

Settings come from environment variables (pydantic-settings), a project
`.env`, and the per-user `.env`. Boolean feature flags default to `False`
so that an unset key reads as disabled.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Per-user configuration directory (cross-platform, no extra dependencies)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "cluster-enroll"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "cluster-enroll"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "cluster-enroll"
    return Path.home() / ".config" / "cluster-enroll"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key:
            data[key] = value.strip().strip('"').strip("'")
    return data


def write_user_env_vars(values: dict[str, str], env_path: Path | None = None) -> Path:
    """Write/update variables in the user's global .env, keeping unrelated keys."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# cluster-enroll user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


# Node setting keys, as operators know them, used in error messages.
SETTING_KEYS: dict[str, str] = {
    "security_enabled": "xpack.security.enabled",
    "http_ssl_enabled": "xpack.security.http.ssl.enabled",
    "enrollment_enabled": "xpack.security.enrollment",
    "http_ssl_keystore_path": "xpack.security.http.ssl.keystore.path",
    "http_ssl_keystore_password": "xpack.security.http.ssl.keystore.secure_password",
    "http_ssl_truststore_path": "xpack.http.ssl.truststore.path",
    "http_ssl_truststore_password": "xpack.http.ssl.truststore.secure_password",
}


def setting_key(field_name: str) -> str:
    return SETTING_KEYS.get(field_name, field_name)


class AppSettings(BaseSettings):
    """Settings provider for the enrollment token tool."""

    model_config = SettingsConfigDict(
        env_prefix="CLUSTER_ENROLL_",
        extra="ignore",
        case_sensitive=False,
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    security_enabled: bool = Field(
        default=False,
        description="Whether security features are enabled on the node.",
    )
    http_ssl_enabled: bool = Field(
        default=False,
        description="Whether TLS is enabled on the node's HTTP layer.",
    )
    enrollment_enabled: bool = Field(
        default=False,
        description="Whether the enrollment feature is enabled.",
    )

    config_dir: Path = Field(
        default_factory=get_user_config_dir,
        description="Directory relative keystore/truststore paths are resolved against.",
    )
    http_ssl_keystore_path: Path | None = Field(
        default=None,
        description="Keystore holding the HTTP layer CA key and certificate.",
    )
    http_ssl_keystore_password: SecretStr | None = Field(
        default=None,
        description="Password of the HTTP layer keystore.",
    )
    http_ssl_truststore_path: Path | None = Field(
        default=None,
        description="Truststore (PKCS12 or PEM) used to verify the node's certificate.",
    )
    http_ssl_truststore_password: SecretStr | None = Field(
        default=None,
        description="Password of the truststore (PKCS12 only).",
    )

    http_host: str = Field(
        default="localhost",
        min_length=1,
        description="Host of the local node's HTTP layer.",
    )
    http_port: int = Field(
        default=9200,
        ge=1,
        le=65535,
        description="Port of the local node's HTTP layer.",
    )
    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout per request (seconds).",
    )
    user_agent: str = Field(
        default="cluster-enroll/0.1",
        min_length=1,
        description="User-Agent for requests to the node.",
    )

    username: str = Field(
        default="elastic",
        min_length=1,
        description="Operator user that authenticates both calls.",
    )
    api_key_expiration: str = Field(
        default="30m",
        pattern=r"^\d+[smhd]$",
        description="Time-to-live of the API key minted for the token.",
    )

    def default_url(self) -> str:
        """Base URL of the local node's HTTP layer."""

        scheme = "https" if self.http_ssl_enabled else "http"
        host = self.http_host
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{scheme}://{host}:{self.http_port}"

    def resolve_path(self, path: Path) -> Path:
        """Resolve a configured path against `config_dir` when relative."""

        if path.is_absolute():
            return path
        return self.config_dir / path

    def secret(self, field_name: str) -> str:
        value = getattr(self, field_name)
        if value is None:
            return ""
        return value.get_secret_value()
