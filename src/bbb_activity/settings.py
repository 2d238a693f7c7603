"""
bbb_activity.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (JWT secret, conferencing shared secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Site-wide configuration of the activity module.

    Per-instance values (user limit, hide-recording button) only apply when the
    matching `*_editable` flag is on; otherwise the site default wins.
    """

    model_config = SettingsConfigDict(env_prefix="BBB_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "bbb-activity"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "bbb-activity"
    jwt_audience: str = "bbb-activity-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./bbb_activity.db"

    # Host site (used for absolute URLs and origin metadata)
    wwwroot: str = "http://localhost:8080"
    release: str = "4.0"
    locale: str = "en"

    # Conferencing server
    server_url: str = "https://test-install.blindsidenetworks.com/bigbluebutton/"
    shared_secret: str = Field(default="8cd8ef52e8e101574e400365b55e11a6", repr=False)
    server_timeout: float = 10.0
    bn_server: bool = False

    # Instance defaults
    userlimit_editable: bool = False
    userlimit_default: int = 0
    recording_hide_button_editable: bool = False
    recording_hide_button_default: bool = False
    importrecordings_enabled: bool = True

    # Recordings table
    ping_interval: int = 10000

    @field_validator("server_url")
    @classmethod
    def _trailing_slash(cls, v: str) -> str:
        # API calls are built as `{server_url}api/{call}`.
        return v if v.endswith("/") else f"{v}/"

    @field_validator("wwwroot")
    @classmethod
    def _no_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Tests build `Settings(...)` directly and pass it to `create_app`; the cached
# instance is only used by the process entrypoint and default dependencies.
