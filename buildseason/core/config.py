from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_GATEWAY_API_KEY = "buildseason-dev-gateway-key"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="BUILDSEASON_", extra="ignore")

    app_name: str = "BuildSeason"
    env: str = "dev"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    log_level: str = "INFO"

    database_url: str = "sqlite+pysqlite:///./buildseason.db"

    # The upstream auth provider identifies the caller with X-User-Id and
    # proves itself with this shared key.
    auth_enabled: bool = True
    gateway_api_key: str = DEFAULT_GATEWAY_API_KEY

    notes_max_length: int = 2000
    rejection_reason_max_length: int = 1000
    part_description_max_length: int = 1000
    list_limit: int = Field(default=200, ge=1)

    # Order lifecycle policy
    reject_requires_reason: bool = Field(
        default=False,
        description="Refuse pending -> rejected without a non-empty reason",
    )
    receive_updates_inventory: bool = Field(
        default=False,
        description="Add each received item's quantity to its part's stock on ordered -> received",
    )

    def model_post_init(self, __context) -> None:
        if self.env.lower() in {"dev", "test"}:
            return
        if self.auth_enabled and self.gateway_api_key == DEFAULT_GATEWAY_API_KEY:
            raise ValueError(
                "insecure default secrets are not allowed outside dev mode; set env vars: "
                "BUILDSEASON_GATEWAY_API_KEY"
            )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
