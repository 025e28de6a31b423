"""Settings resolution: env vars and .env over an optional TOML profile file."""

import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path

import tomlkit
import typer
from pydantic import SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

CONFIG_PATH = Path.home() / ".config" / "linear-mcp" / "config.toml"

DEFAULT_API_URL = "https://api.linear.app/graphql"


class LinearSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LINEAR_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    api_key: SecretStr | None = None
    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0

    # LINEAR_MCP_READ_ONLY: hide and refuse every mutating tool
    mcp_read_only: bool = False

    # Retries apply to rate-limited requests only
    rate_limit_retries: int = 0
    rate_limit_backoff: float = 1.0

    log_level: str = "INFO"
    log_file: Path | None = None

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config-file values arrive as init kwargs; env and .env outrank them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/linear-mcp/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def _list_profiles(config: Mapping) -> list[str]:
    # tomlkit Table implements MutableMapping but not dict, so check Mapping
    return [k for k, v in config.items() if isinstance(v, Mapping)]


def _top_level_defaults(config: Mapping) -> dict:
    return {k: v for k, v in config.items() if not isinstance(v, Mapping) and k != "default_profile"}


def get_settings(profile: str | None = None) -> LinearSettings:
    """Resolve the active profile and return a fully populated LinearSettings.

    Profile precedence (highest to lowest):
    1. profile argument (--profile CLI flag)
    2. LINEAR_MCP_PROFILE env var
    3. default_profile key in ~/.config/linear-mcp/config.toml

    Top-level keys of the file apply first, the active profile table on top
    of them; env vars and .env override both.
    """
    toml_config = _load_toml()

    active = profile or os.environ.get("LINEAR_MCP_PROFILE") or toml_config.get("default_profile")

    defaults = _top_level_defaults(toml_config)
    if active:
        if active not in toml_config or not isinstance(toml_config[active], Mapping):
            profiles = _list_profiles(toml_config)
            typer.echo(f"Profile '{active}' not found in {CONFIG_PATH}. Available: {profiles or '(none)'}", err=True)
            raise typer.Exit(1)
        defaults.update(dict(toml_config[active]))

    return LinearSettings(**defaults)


def require_api_key(settings: LinearSettings) -> str:
    """Return the API key or exit with a message on stderr."""
    if settings.api_key is None or not settings.api_key.get_secret_value():
        typer.echo(
            "Error: LINEAR_API_KEY environment variable is required.\n"
            f"Set LINEAR_API_KEY or api_key in {CONFIG_PATH}, or run 'linear-mcp init'.",
            err=True,
        )
        raise typer.Exit(1)
    return settings.api_key.get_secret_value()
