"""Room server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import StringListEnvSettingsSource, parse_string_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource


class ChromaServerSettings(BaseSettings):
    model_config = {"env_prefix": "CHROMA_"}

    # None means the catalog bundled with the package.
    catalog_path: str | None = None
    max_rounds: int = Field(default=5, ge=1)
    min_players: int = Field(default=2, ge=1)
    round_end_countdown_seconds: int = Field(default=5, ge=0)
    countdown_tick_seconds: float = Field(default=1.0, gt=0)
    guess_time_limit_seconds: int = Field(default=40, ge=1)
    room_id_length: int = Field(default=6, ge=4, le=32)
    log_dir: str | None = "backend/logs/chroma"
    cors_origins: list[str] = ["http://localhost:3000"]
    # Empty string accepts WebSocket upgrades from any origin.
    ws_allowed_origin: str = ""
    shuffle_seed: int | None = None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_string_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, StringListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings
