"""
Configuration settings for the LearnHub course platform API
"""
import json
from typing import Annotated, List
from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings"""

    # API Configuration
    API_V1_STR: str = "/api/v1"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://localhost:8000"]

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, str):
            return json.loads(v)
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    # Storage Configuration ("memory" or "mongodb")
    STORAGE_BACKEND: str = "memory"
    MONGODB_URL: str = "mongodb://localhost:27017"
    MONGODB_DATABASE: str = "learnhub"

    # Redis Configuration
    CACHE_ENABLED: bool = False
    REDIS_URL: str = "redis://localhost:6379"
    REDIS_DB: int = 0
    TRENDING_CACHE_TTL: int = 300
    POPULAR_SEARCHES_CACHE_TTL: int = 120

    # Application Configuration
    PROJECT_NAME: str = "LearnHub Course Platform"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    # Logging Configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
