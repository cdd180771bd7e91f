"""
Application configuration
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    # Application
    APP_NAME: str = "DevInsights"
    APP_VERSION: str = "1.0.0"
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Analytics API (remote backend)
    ANALYTICS_API_URL: str = "http://localhost:8000"
    API_TIMEOUT: float = 30.0
    STATUS_CHECK_TIMEOUT: float = 3.0
    INGESTION_TIMEOUT: float = 120.0
    AUTH_VALIDATE_TIMEOUT: float = 3.0
    AUTH_EXCHANGE_TIMEOUT: float = 10.0

    # Ingestion
    INGESTION_BRANCH: str = "main"
    INGESTION_COMMIT_LIMIT: int = 100

    # Readiness polling (unset bounds poll until success or cancellation)
    POLL_INTERVAL_SECONDS: float = 3.0
    POLL_MAX_ATTEMPTS: Optional[int] = None
    POLL_MAX_DURATION_SECONDS: Optional[float] = None

    # Cosmetic progress
    PROGRESS_TICK_SECONDS: float = 0.5
    PROGRESS_STEP: float = 0.5
    PROGRESS_CEILING: float = 90.0

    # Front-end routes
    DEFAULT_REDIRECT_PATH: str = "/reports/traceability"
    MANAGE_REPOSITORIES_PATH: str = "/settings/repositories"
    PROCESSING_PATH_PREFIX: str = "/process-repository"

    # Client state
    STATE_BACKEND: str = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"
    STATE_NAMESPACE: str = "devinsights:default"

    # SSE
    SSE_HEARTBEAT_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
