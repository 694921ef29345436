"""Configuration system for spotbridge using pydantic-settings.

Supports layered configuration:
1. Built-in defaults (lowest priority)
2. pyproject.toml [tool.spotbridge] section (project-level)
3. ./spotbridge.toml (project-level, explicit)
4. ~/.config/spotbridge/config.toml (user-level, overrides project)
5. Environment variables (highest priority)

Environment variables use SPOTBRIDGE_ prefix with nested delimiter __.
Example: SPOTBRIDGE_SPOTIFY__CLIENT_ID, SPOTBRIDGE_SESSION__COOKIE_SECURE
"""

from __future__ import annotations

import os
import secrets
import sys

from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING, Any, ClassVar, Literal

from pydantic import Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from .exceptions import ConfigurationError


if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

if TYPE_CHECKING:
    from pydantic.fields import FieldInfo


def _find_config_files() -> list[Path]:
    """Find all configuration files in order of precedence (lowest first)."""
    files = []

    pyproject = Path("pyproject.toml")
    if pyproject.exists():
        files.append(pyproject)

    local_toml = Path("spotbridge.toml")
    if local_toml.exists():
        files.append(local_toml)

    if sys.platform == "win32":
        user_config = Path(os.environ.get("APPDATA", "~")) / "spotbridge" / "config.toml"
    else:
        user_config = Path("~/.config/spotbridge/config.toml")
    user_config = user_config.expanduser()
    if user_config.exists():
        files.append(user_config)

    env_config = os.environ.get("SPOTBRIDGE_CONFIG_FILE")
    if env_config:
        env_path = Path(env_config)
        if env_path.exists():
            files.append(env_path)

    return files


def _load_toml_config() -> dict[str, Any]:
    """Load and merge all TOML configuration files.

    Raises
    ------
    ConfigurationError
        If a configuration file is not valid TOML.
    """
    merged: dict[str, Any] = {}

    for config_file in _find_config_files():
        try:
            data = tomllib.loads(config_file.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            msg = f"Invalid TOML in {config_file}: {exc}"
            raise ConfigurationError(msg, path=str(config_file)) from exc

        if config_file.name == "pyproject.toml":
            data = data.get("tool", {}).get("spotbridge", {})

        merged = _deep_merge(merged, data)

    return merged


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


# Field names that contain sensitive data and must be redacted in output.
_SENSITIVE_FIELDS: set[str] = {
    "client_secret",
    "secret",
}

_REDACTED = "********"


class _TomlSectionSource(PydanticBaseSettingsSource):
    """Settings source returning one table of the merged TOML files."""

    def __init__(self, settings_cls: type[BaseSettings], section: str) -> None:
        super().__init__(settings_cls)
        self.section = section

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        # Values come from __call__ as a whole table.
        return None, field_name, False

    def __call__(self) -> dict[str, Any]:
        table = _load_toml_config().get(self.section, {})
        return table if isinstance(table, dict) else {}


class _SectionSettings(BaseSettings):
    """Base for one configuration section.

    Precedence inside a section: explicit arguments, then environment
    variables, then the section's TOML table, then defaults.
    """

    toml_section: ClassVar[str] = ""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            _TomlSectionSource(settings_cls, cls.toml_section),
            file_secret_settings,
        )


DEFAULT_SCOPES = (
    "user-read-private user-read-email user-modify-playback-state "
    "user-read-playback-state user-read-currently-playing streaming app-remote-control"
)


class SpotifySettings(_SectionSettings):
    """Spotify application credentials and endpoints.

    Environment prefix: SPOTBRIDGE_SPOTIFY__
    Example: SPOTBRIDGE_SPOTIFY__CLIENT_ID=your-client-id
    Example: SPOTBRIDGE_SPOTIFY__REDIRECT_URI=https://abc.ngrok.app/callback

    TOML section: [tool.spotbridge.spotify]
    """

    toml_section = "spotify"

    model_config = SettingsConfigDict(
        env_prefix="SPOTBRIDGE_SPOTIFY__",
        extra="ignore",
    )

    client_id: str = Field(default="", description="Client ID from the Spotify dashboard")
    client_secret: str = Field(default="", description="Client secret from the Spotify dashboard")
    redirect_uri: str = Field(
        default="http://127.0.0.1:8888/callback",
        description=(
            "Callback URL registered with Spotify. Must be reachable by the browser "
            "and byte-identical to the URL the callback is served on."
        ),
    )
    scopes: str = Field(
        default=DEFAULT_SCOPES,
        description="Space-separated OAuth2 scopes to request",
    )

    authorize_url: str = Field(default="https://accounts.spotify.com/authorize")
    token_url: str = Field(default="https://accounts.spotify.com/api/token")
    api_base_url: str = Field(default="https://api.spotify.com/v1")

    state_length: int = Field(
        default=16,
        ge=8,
        le=128,
        description="Length of the anti-forgery state token",
    )
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for calls to Spotify",
    )
    search_limit: int = Field(default=10, ge=1, le=50, description="Results per search")

    @field_validator("api_base_url", "authorize_url", "token_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalise endpoint URLs."""
        return v.rstrip("/")

    @property
    def scope_list(self) -> list[str]:
        """Scopes as a list."""
        return [s for s in self.scopes.split() if s]

    def require_credentials(self) -> None:
        """Ensure the client credentials are configured.

        Raises
        ------
        ConfigurationError
            If the client ID or secret is missing.
        """
        missing = [
            name for name in ("client_id", "client_secret") if not getattr(self, name).strip()
        ]
        if missing:
            env_names = ", ".join(f"SPOTBRIDGE_SPOTIFY__{name.upper()}" for name in missing)
            msg = f"Spotify credentials are not configured. Set {env_names}."
            raise ConfigurationError(msg, missing=missing)


class SessionSettings(_SectionSettings):
    """Browser session settings.

    Environment prefix: SPOTBRIDGE_SESSION__
    Example: SPOTBRIDGE_SESSION__COOKIE_SECURE=true
    """

    toml_section = "session"

    model_config = SettingsConfigDict(
        env_prefix="SPOTBRIDGE_SESSION__",
        extra="ignore",
    )

    secret: str = Field(
        default="",
        description=(
            "Secret used to sign session cookies. Auto-generated when empty, "
            "in which case sessions do not survive a restart."
        ),
    )
    cookie_name: str = Field(default="spotbridge_session")
    cookie_secure: bool = Field(
        default=False,
        description="Only send the session cookie over HTTPS (enable behind ngrok/TLS)",
    )
    ttl: int = Field(
        default=86400,
        ge=60,
        description="Idle session lifetime in seconds",
    )

    _secret_generated: bool = PrivateAttr(default=False)

    @property
    def secret_generated(self) -> bool:
        """Whether the signing secret was generated at startup."""
        return self._secret_generated

    def model_post_init(self, __context: Any) -> None:
        """Generate a signing secret if none was provided."""
        self._secret_generated = not self.secret
        if not self.secret:
            self.secret = secrets.token_hex(32)


class ServerSettings(_SectionSettings):
    """HTTP server settings.

    Environment prefix: SPOTBRIDGE_SERVER__
    Example: SPOTBRIDGE_SERVER__PORT=8888
    """

    toml_section = "server"

    model_config = SettingsConfigDict(
        env_prefix="SPOTBRIDGE_SERVER__",
        extra="ignore",
    )

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Server port")
    proxy_headers: bool = Field(
        default=True,
        description="Trust X-Forwarded-Proto/For (required behind ngrok or a TLS proxy)",
    )
    forwarded_allow_ips: str = Field(
        default="*",
        description="Comma-separated IPs trusted to send proxy headers",
    )
    log_level: Literal["critical", "error", "warning", "info", "debug", "trace"] = Field(
        default="info", description="Uvicorn log level"
    )


class LogSettings(_SectionSettings):
    """Application logging settings.

    Environment prefix: SPOTBRIDGE_LOG__
    """

    toml_section = "log"

    model_config = SettingsConfigDict(
        env_prefix="SPOTBRIDGE_LOG__",
        extra="ignore",
    )

    level: str = Field(default="INFO", description="Level for the spotbridge logger")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Accept standard logging level names only."""
        upper = v.upper()
        if upper not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            msg = f"Invalid log level: {v}"
            raise ValueError(msg)
        return upper


class BridgeSettings(BaseSettings):
    """Main settings aggregating all configuration sections.

    Environment prefix: SPOTBRIDGE__

    Configuration sources (in order of precedence):
    1. Built-in defaults
    2. pyproject.toml [tool.spotbridge] section
    3. ./spotbridge.toml (project-level)
    4. ~/.config/spotbridge/config.toml (user-level)
    5. Environment variables (highest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="SPOTBRIDGE__",
        env_nested_delimiter="__",
        extra="ignore",
    )

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    def __init__(self, **data: Any) -> None:
        # Sections read their own env vars and TOML tables; a plain dict
        # goes through the section class so those sources still apply.
        for name, section_cls in _SECTIONS.items():
            if isinstance(data.get(name), dict):
                data[name] = section_cls(**data[name])
        super().__init__(**data)

    def show(self) -> str:
        """Format settings as a readable table with secrets redacted."""
        lines = ["spotbridge Configuration", "=" * 60]

        show_sections = [
            ("Spotify", "spotify"),
            ("Session", "session"),
            ("Server", "server"),
            ("Logging", "log"),
        ]
        all_data = self.model_dump(
            exclude={attr: _SENSITIVE_FIELDS for _, attr in show_sections},
        )

        for display_name, attr_name in show_sections:
            section_data = all_data.get(attr_name, {})
            lines.append(f"\n{display_name}")
            lines.append("-" * 40)
            for field_name, field_value in section_data.items():
                value_str = str(field_value)
                if len(value_str) > 50:
                    value_str = value_str[:47] + "..."
                lines.append(f"  {field_name:20} = {value_str}")
            section_cls = type(getattr(self, attr_name))
            lines.extend(
                f"  {rn:20} = {_REDACTED}"
                for rn in sorted(_SENSITIVE_FIELDS & section_cls.model_fields.keys())
            )

        return "\n".join(lines)

    def to_env(self) -> str:
        """Export settings as shell ``export`` lines with secrets redacted."""
        lines = ["# spotbridge configuration"]
        env_sections = [
            ("SPOTIFY", "spotify"),
            ("SESSION", "session"),
            ("SERVER", "server"),
            ("LOG", "log"),
        ]
        all_data = self.model_dump(
            exclude={attr: _SENSITIVE_FIELDS for _, attr in env_sections},
        )

        for env_prefix, attr_name in env_sections:
            for field_name, field_value in all_data.get(attr_name, {}).items():
                env_name = f"SPOTBRIDGE_{env_prefix}__{field_name.upper()}"
                if isinstance(field_value, bool):
                    value_str = "true" if field_value else "false"
                else:
                    value_str = str(field_value)
                lines.append(f'export {env_name}="{value_str}"')
            section_cls = type(getattr(self, attr_name))
            for redacted_name in sorted(_SENSITIVE_FIELDS & section_cls.model_fields.keys()):
                env_name = f"SPOTBRIDGE_{env_prefix}__{redacted_name.upper()}"
                lines.append(f'export {env_name}="{_REDACTED}"')

        return "\n".join(lines)


_SECTIONS: dict[str, type[_SectionSettings]] = {
    cls.toml_section: cls for cls in (SpotifySettings, SessionSettings, ServerSettings, LogSettings)
}


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Get the global settings instance (cached).

    Call clear_settings() to reload configuration.
    """
    return BridgeSettings()


def clear_settings() -> None:
    """Clear the cached settings to force reload."""
    get_settings.cache_clear()


def reload_settings() -> BridgeSettings:
    """Reload settings from all sources."""
    clear_settings()
    return get_settings()
