"""Configuration management."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from LTS_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LTS_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Analysis
    passability_threshold: int = Field(
        default=2, ge=1, description="Highest tier still crossable at an intersection"
    )
    level_count: int = Field(default=4, ge=1, description="Number of stress levels")

    # Boundary tracing
    trace_max_points: int = Field(
        default=100000, ge=4, description="Point cap before a trace is aborted"
    )
    trace_workers: int = Field(default=1, ge=1, description="Parallel boundary traces")

    # Output
    output_prefix: str = Field(default="level_", description="Prefix for level files")
    island_prefix: str = Field(default="island_", description="Prefix for island files")
    output_format: Literal["geojson", "osm"] = Field(
        default="geojson", description="Format of the level files"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: Literal["plain", "json"] = Field(
        default="plain", description="Logging format"
    )


settings = Settings()
