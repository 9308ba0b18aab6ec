# runtime settings, read from STOREFRONT_* env vars or a local .env file

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    api_base_url: str = "http://localhost:8000/api"
    request_timeout: float = 10.0

    # catalog rows rendered per "load more"
    page_size: int = Field(default=12, ge=1)

    debug: bool = False
    log_file: Optional[str] = None


settings = Settings()
