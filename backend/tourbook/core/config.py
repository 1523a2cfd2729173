from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TOURBOOK_", case_sensitive=False)

    app_name: str = "Tour Marketplace"
    environment: str = "local"
    log_level: str = "INFO"
    storage_backend: str = Field("memory", pattern="^(memory|sql)$")
    database_url: str = "sqlite:///./tourbook.db"
    seed_sample_tours: bool = True
    review_min_comment_length: int = Field(10, ge=0)
    one_review_per_user: bool = False
    strict_booking_transitions: bool = False


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env")
    return Settings()


settings = get_settings()
