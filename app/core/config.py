"""
Application configuration management using Pydantic Settings
Handles all environment variables and application settings
"""

from pydantic_settings import BaseSettings
from typing import Optional, List
from functools import lru_cache

class Settings(BaseSettings):
    """Main application settings"""

    # Application Settings
    APP_NAME: str = "Audience Insights API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    WORKERS: int = 4

    # Database Configuration
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 40
    DATABASE_POOL_TIMEOUT: int = 30
    DATABASE_ECHO: bool = False

    # Redis Configuration
    REDIS_URL: Optional[str] = None
    REDIS_DECODE_RESPONSES: bool = True
    REDIS_MAX_CONNECTIONS: int = 50
    DASHBOARD_CACHE_TTL: int = 300  # seconds, 0 disables

    # CORS Configuration
    ALLOWED_HOSTS: List[str] = ["*"]
    CORS_ORIGINS: List[str] = ["https://admin.shopify.com"]
    CORS_ALLOW_CREDENTIALS: bool = True

    # Shopify App Settings
    SHOPIFY_API_KEY: str
    SHOPIFY_API_SECRET: str
    SHOPIFY_API_VERSION: str = "2024-10"
    SHOPIFY_HTTP_TIMEOUT: float = 30.0
    SESSION_TOKEN_LEEWAY: int = 10

    # AI chat workflow webhook
    AI_WEBHOOK_URL: Optional[str] = None
    AI_WEBHOOK_TIMEOUT: float = 60.0

    # Metrics and segment matching
    METRIC_PAGE_SIZE: int = 250
    METRIC_RECORD_CAP: Optional[int] = None
    SEGMENT_PAGE_SIZE: int = 250
    SEGMENT_ORDER_PAGE_SIZE: int = 50
    SEGMENT_MAX_CUSTOMERS: int = 1000
    SEGMENT_PREVIEW_DEBOUNCE_MS: int = 500
    CUSTOMER_LOOKUP_BATCH_SIZE: int = 50
    FILTER_OPTIONS_PRODUCT_CAP: int = 500
    FILTER_OPTIONS_COLLECTION_CAP: int = 250
    FILTER_OPTIONS_CACHE_TTL: int = 600

    # Calendar zone for date ranges, process local zone when unset
    STORE_TIMEZONE: Optional[str] = None

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_STORAGE_URI: str = "memory://"
    RATE_LIMIT_DEFAULT: str = "1000/hour"
    RATE_LIMIT_AI_CHAT: str = "30/minute"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def database_url_async(self) -> str:
        """Convert sync database URL to async"""
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://")
        elif self.DATABASE_URL.startswith("sqlite://"):
            return self.DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://")
        return self.DATABASE_URL

@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()

# Global settings instance
settings = get_settings()
