"""
Application settings.

Loaded from environment variables prefixed with ``BIRDBASE_`` (or a local
``.env`` file). Paths to the externally supplied tables live here so that no
personal location data is embedded in the code.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from birdbase.errors import ConfigError


class Settings(BaseSettings):
    """Runtime configuration for a dataset build."""

    model_config = SettingsConfigDict(
        env_prefix="BIRDBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "birdbase"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # Inputs
    data_dir: Path = Path("data")
    export_path: Path = Path("data/input/MyEBirdData.csv")
    ebird_api_key: SecretStr | None = None

    # Biome polygon layer (RESOLVE Ecoregions 2017 attribute names by default)
    biome_layer_path: Path = Path("data/reference/biomes/Ecoregions2017.shp")
    biome_field: str = "BIOME_NAME"
    subbiome_field: str = "ECO_NAME"
    # ~2 km at the equator, in EPSG:4326 degrees
    biome_max_distance: float = Field(default=0.018, gt=0)

    # Externally supplied reference tables (None = empty table)
    overrides_path: Path | None = None
    remaps_path: Path | None = None
    statuses_path: Path | None = None

    # External calls
    max_workers: int = Field(default=4, ge=1, le=32)
    request_timeout: float = Field(default=30.0, gt=0)

    @property
    def api_key(self) -> str | None:
        """Plain-text eBird API key, or None when not configured."""
        return self.ebird_api_key.get_secret_value() if self.ebird_api_key else None


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings (cached).

    Raises:
        ConfigError: If an environment variable holds an invalid value.
    """
    try:
        return Settings()
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ConfigError(msg) from e
