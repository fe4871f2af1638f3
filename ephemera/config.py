from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Ephemera"
    # Used to build image URLs. Falls back to the request's Host header when unset.
    public_base_url: str | None = Field(default=None, pattern=r"^https?://")
    trust_forwarded_for: bool = True

    rate_limit_window_seconds: float = Field(default=60, gt=0)
    rate_limit_ceiling: int = Field(default=10, ge=1)
    upload_rate_limit_ceiling: int = Field(default=10, ge=1)

    blob_ttl_seconds: float = Field(default=3600, gt=0)
    blob_id_bytes: int = Field(default=16, ge=10)
    blob_max_attempts: int = Field(default=3, ge=1)
    blob_max_payload_chars: int = Field(default=10 * 1024 * 1024, ge=1)
    blob_allowed_media_prefix: str = "image/"

    store_shards: int = Field(default=16, ge=1)
    sweep_interval_seconds: float = Field(default=300, gt=0)


settings = Settings()
