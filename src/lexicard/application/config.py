from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

CONFIG_FILES = [
    Path.home() / ".config/lexicard/config.toml",
    Path.home() / ".lexicard.toml",
]


class AppConfig(BaseSettings):
    """
    Configuration model for lexicard.
    Supports loading from:
    1. Config file (~/.config/lexicard/config.toml or ~/.lexicard.toml)
    2. Environment variables (LEXICARD_*)
    3. Manual overrides (CLI / server)
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXICARD_",
        extra="ignore",
    )

    # Storage
    backend: Literal["sqlite", "memory"] = "sqlite"
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".local/share/lexicard/lexicard.db"
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8787

    # Statistics
    default_timeframe: Literal["month", "quarter", "year"] = "year"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        from pydantic_settings import TomlConfigSettingsSource

        # Find the first existing file
        toml_file = next((f for f in CONFIG_FILES if f.exists()), None)

        # Earlier sources win: overrides > env > TOML
        if toml_file:
            return (
                init_settings,
                env_settings,
                TomlConfigSettingsSource(settings_cls, toml_file=toml_file),
            )
        return (init_settings, env_settings)

    @field_validator("database_path", mode="before")
    @classmethod
    def expand_path(cls, v: Any) -> Path:
        if isinstance(v, str) and v == ":memory:":
            return Path(v)
        return Path(v).expanduser()


def resolve_config(cli_overrides: dict[str, Any] | None = None) -> AppConfig:
    """
    Multi-layered configuration resolution.
    1. Defaults in AppConfig
    2. ~/.config/lexicard/config.toml (if exists)
    3. Environment variables (LEXICARD_*)
    4. cli_overrides (passed from Typer or the server); None values are ignored
    """
    overrides = {k: v for k, v in (cli_overrides or {}).items() if v is not None}
    return AppConfig(**overrides)
