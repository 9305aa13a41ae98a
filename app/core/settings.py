from pydantic_settings import BaseSettings
from pydantic import Field
from typing import List

class Settings(BaseSettings):
    # Core
    app_name: str = "vARYLite Cache Service"
    environment: str = "development"
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    # Admin actions (warm / clear / invalidate). Open when unset.
    admin_token: str | None = None
    clear_rate_limit: str = "10/minute"
    warm_model_cache_on_startup: bool = True

    # CORS
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    cors_allow_methods: List[str] = ["GET", "POST", "DELETE", "OPTIONS"]
    cors_allow_headers: List[str] = ["*"]

    # User records and credit balances
    user_cache_ttl_seconds: float = Field(600, gt=0)
    user_cache_max_size: int = Field(500, gt=0)
    user_cache_cleanup_interval_seconds: float = Field(120, gt=0)
    user_credits_ttl_seconds: float = Field(300, gt=0)  # balances move faster than profiles

    # Model health and cost metadata
    model_cache_ttl_seconds: float = Field(1800, gt=0)
    model_cache_max_size: int = Field(100, gt=0)
    model_cache_cleanup_interval_seconds: float = Field(300, gt=0)
    model_cost_ttl_seconds: float = Field(3600, gt=0)

    # Paginated gallery listings
    gallery_cache_ttl_seconds: float = Field(900, gt=0)
    gallery_cache_max_size: int = Field(200, gt=0)
    gallery_cache_cleanup_interval_seconds: float = Field(300, gt=0)

    class Config:
        env_file = ".env"
        case_sensitive = False
        protected_namespaces = ()

settings = Settings()
