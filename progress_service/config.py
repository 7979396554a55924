"""
Configuration settings for Progress Service
"""
from functools import lru_cache
from typing import Optional, List
from pydantic_settings import BaseSettings
from pydantic import ConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # App
    APP_NAME: str = "Progress Service"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "local"
    LOG_LEVEL: str = "INFO"
    
    # AWS
    AWS_REGION: str = "us-east-1"
    AWS_ACCESS_KEY_ID: Optional[str] = None  # Only for LocalStack
    AWS_SECRET_ACCESS_KEY: Optional[str] = None  # Only for LocalStack
    
    # DynamoDB
    DYNAMODB_ENDPOINT: Optional[str] = None  # None uses AWS, set for LocalStack
    DYNAMODB_PROGRESS_TABLE: str = "luganda-kids-dev-progress"
    DYNAMODB_ACHIEVEMENTS_TABLE: str = "luganda-kids-dev-child-achievements"
    
    # Achievement catalog
    CATALOG_SERVICE_URL: str = "http://localhost:8002"
    CATALOG_TIMEOUT_SECONDS: float = 5.0
    
    # Gamification
    STREAK_TIMEZONE: str = "UTC"
    
    # CORS
    CORS_ORIGINS: List[str] = ["*"]
    
    model_config = ConfigDict(
        env_file=".env",
        case_sensitive=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Returns cached settings instance (singleton)"""
    return Settings()
