"""Application settings and configuration."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from job_board.schema import Source


class SourceConfig(BaseModel):
    enabled: bool = True
    interval_hours: PositiveInt = 24
    query: str = "golang"
    country: str = "ng"
    location: str = "nigeria"
    max_items: PositiveInt = 20
    urls: list[str] = Field(default_factory=list)


class RetryConfig(BaseModel):
    attempts: PositiveInt = 3
    min_wait: float = 1
    max_wait: float = 16


def _default_sources() -> dict[Source, SourceConfig]:
    return {
        Source.jsearch: SourceConfig(interval_hours=12, query="golang jobs in nigeria"),
        Source.indeed: SourceConfig(interval_hours=24),
        Source.apify_linkedin: SourceConfig(
            interval_hours=24,
            urls=["https://www.linkedin.com/jobs/search/?distance=25&geoId=105365761&keywords=golang"],
        ),
        Source.linkedin: SourceConfig(enabled=False, interval_hours=24),
    }


class Config(BaseModel):
    sources: dict[Source, SourceConfig] = Field(default_factory=_default_sources)
    blocked_companies: list[str] = Field(default_factory=lambda: ["canonical", "crossover"])
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("sources", mode="before")
    @classmethod
    def merge_with_defaults(cls, v: Any) -> Any:
        """Sources missing from the YAML keep their default cadence and search params."""
        if v is None:
            v = {}
        if not isinstance(v, dict):
            return v
        merged: dict[str, Any] = {str(s): cfg.model_dump() for s, cfg in _default_sources().items()}
        for key, value in v.items():
            if isinstance(value, dict) and str(key) in merged:
                merged[str(key)] = {**merged[str(key)], **value}
            else:
                merged[str(key)] = value
        return merged

    @field_validator("blocked_companies")
    @classmethod
    def lower_blocked(cls, v: list[str]) -> list[str]:
        return [name.lower() for name in v if name]

    def enabled_sources(self) -> dict[Source, SourceConfig]:
        return {source: cfg for source, cfg in self.sources.items() if cfg.enabled}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Vendor credentials
    rapid_api_key: str = Field(default="", description="RapidAPI key (JSearch, LinkedIn)")
    apify_api_key: str = Field(default="", description="Apify token (Indeed, LinkedIn scrapers)")
    brandfetch_api_key: str = Field(default="", description="BrandFetch key; empty string disables enrichment")

    # dev talks to the local stub server, production to the real vendors
    mode: Literal["dev", "production"] = "dev"
    stub_base_url: str = Field(default="http://localhost:8081", description="Base URL of the dev stub server")
    stub_port: int = 8081

    # Read API
    api_key: str = Field(default="", description="Shared secret for the /api routes")
    allowed_origins: str = Field(default="*", description="Comma-separated CORS origins")
    host: str = "0.0.0.0"
    port: int = 8080

    # Timeouts (seconds)
    request_timeout: float = 180.0
    run_timeout: float = 300.0

    # Sentry
    sentry_dsn: str = Field(default="", description="Sentry DSN; empty string disables Sentry")
    sentry_environment: str = Field(default="development", description="Sentry environment tag (e.g. production, development)")
    log_level: str = "INFO"

    # Paths
    config_file: Path = Field(default=Path("config.yaml"), description="Path to config file")
    data_dir: Path = Field(default=Path("data"), description="Directory holding the SQLite database")
    logs_dir: Path = Field(default=Path("logs"), description="Directory for log files")

    @property
    def is_production(self) -> bool:
        return self.mode == "production"

    @property
    def origins(self) -> list[str]:
        if not self.allowed_origins.strip():
            return ["*"]
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def db_path(self) -> Path:
        return self.data_dir / "jobs.db"

    def load_config(self) -> Config:
        """Load source and policy configuration from the YAML file."""
        if not self.config_file.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_file}")

        with open(self.config_file) as f:
            data = yaml.safe_load(f) or {}
            return Config.model_validate(data)
