from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Server settings, read from environment variables (and .env, if present)"""

    model_config = SettingsConfigDict(extra="ignore")

    firebase_credentials: str = "./firebase.json"

    s3_bucket_name: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-2"
    max_image_size_mb: int = 5

    # comma-separated
    cors_origins: str = "http://localhost:3000"
    log_level: str = "INFO"

    default_page_size: int = 10
    max_page_size: int = 100

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.strip().upper()

    @property
    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
