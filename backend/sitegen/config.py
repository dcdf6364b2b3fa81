from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Site Layout Generator"
    debug: bool = True
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:9002"]
    log_level: str = "INFO"
    default_density: str = "medium"
    max_site_extent_m: float = 10_000.0  # local projection distorts beyond a few km
    max_boundary_points: int = 5_000

    model_config = SettingsConfigDict(env_prefix="SITEGEN_")


settings = Settings()
