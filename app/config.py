from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    # Catalog API
    api_base_url: str = "http://kids.localhost:8765/api/v1"
    http_timeout: float = 10.0  # seconds

    # Content
    cache_ttl: float = 300.0  # 5 minutes
    locale: str = "ru"
    free_pack_ids: List[int] = [5]

    # Redis (primary storage)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_timeout: float = 2.0

    # File storage (fallback)
    storage_dir: str = ".storage"

    # Speech synthesis, tuned for young children
    speech_lang: str = "ru-RU"
    speech_rate: float = 0.7
    speech_pitch: float = 1.3
    speech_volume: float = 1.0

    # Session timers (seconds)
    autoplay_delay: float = 0.5
    reveal_delay: float = 1.5
    exit_delay: float = 2.0

    # Purchases
    purchase_mode: str = "web"  # web | native
    web_purchase_delay: float = 1.5
    native_purchase_delay: float = 2.0
    restore_product_ids: List[str] = ["emotions", "objects"]

    # App Settings
    debug: bool = True

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
