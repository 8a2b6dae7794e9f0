"""
Core configuration module with environment-based settings.
"""
import os
from typing import List, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application settings
    app_name: str = "Carebridge"
    app_version: str = "1.0.0"
    debug: bool = False
    port: int = 8000
    environment: str = "development"

    # CORS settings
    cors_origins: list = [
        "http://localhost:3000",
        "http://localhost:8080",
    ]
    cors_allow_credentials: bool = True
    cors_allow_methods: list = ["*"]
    cors_allow_headers: list = ["*"]

    # Backend API settings
    api_base_url: Optional[str] = None
    api_key: Optional[str] = None
    request_timeout_seconds: float = 15.0

    # Redis settings (realtime transport)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0
    realtime_channel_prefix: str = "realtime"

    @property
    def redis_url(self) -> str:
        """Construct Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    # Session token settings
    jwt_secret_key: Optional[str] = None
    jwt_algorithm: str = "HS256"

    # Chat reconciliation settings
    optimistic_match_window_seconds: float = 5.0
    temp_id_prefix: str = "temp-"
    deleted_message_placeholder: str = "This message was deleted"
    messages_page_size: int = 50

    # Logging settings
    log_level: str = "INFO"
    suppress_noisy_logs: bool = True
    extra_suppressed_patterns: List[str] = []

    # OAuth callback settings
    site_url: Optional[str] = None
    oauth_error_path: str = "/auth/auth-code-error"
    oauth_loading_path: str = "/auth/callback/loading"
    oauth_storage_key: str = "rcr.oauth.payload"

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v):
        """Ensure the backend key is set in production."""
        if not v and os.getenv("ENVIRONMENT") == "production":
            raise ValueError("API key must be set in production")
        return v

    @field_validator("optimistic_match_window_seconds")
    @classmethod
    def validate_match_window(cls, v):
        if v < 0:
            raise ValueError("Match window cannot be negative")
        return v

    @property
    def backend_configured(self) -> bool:
        """Whether backend credentials are present."""
        return bool(self.api_base_url and self.api_key)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False
    }


# Global settings instance
settings = Settings()
