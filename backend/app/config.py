from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    app_name: str = "Nano Influencer Marketplace"
    database_url: str = "sqlite+aiosqlite:///./marketplace.db"

    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    # Matching
    match_default_limit: int = 10
    match_max_limit: int = 50

    class Config:
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
