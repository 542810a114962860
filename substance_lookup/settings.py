import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

load_dotenv()


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Data sources
    enable_psychonautwiki: bool = Field(default=True, alias="ENABLE_PSYCHONAUTWIKI")
    enable_tripsit: bool = Field(default=True, alias="ENABLE_TRIPSIT")
    psychonaut_url: str = Field(
        default="https://api.psychonautwiki.org", alias="PSYCHONAUT_URL"
    )
    tripsit_base_url: str = Field(
        default="https://tripbot.tripsit.me/api/tripsit", alias="TRIPSIT_BASE_URL"
    )

    # Cache
    cache_ttl_minutes: int = Field(default=60, alias="CACHE_TTL_MINUTES")
    cache_debug: bool = Field(default=False, alias="CACHE_DEBUG")

    # Retries and error tracking
    max_retries: int = Field(default=3, alias="MAX_RETRIES")
    retry_base_delay: float = Field(default=1.0, alias="RETRY_BASE_DELAY")
    error_threshold: int = Field(default=5, alias="ERROR_THRESHOLD")
    error_reset_minutes: int = Field(default=5, alias="ERROR_RESET_MINUTES")

    # HTTP
    request_timeout: float = Field(default=30.0, alias="REQUEST_TIMEOUT")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


global_settings = Settings.model_validate(dict(os.environ))
