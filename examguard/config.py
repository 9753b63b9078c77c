"""
ExamGuard Configuration Settings

Everything here can be overridden from the environment or a .env file.
Scoring policy lives here too so the flag threshold and weights are never
hard-coded in the scorer.
"""
from typing import Dict, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration for the ExamGuard core service."""

    # Database
    DATABASE_URL: str = "sqlite:///examguard.db"

    # JWT (tokens are issued by the identity provider, we only verify)
    JWT_SECRET: str = "your-super-secret-key-min-32-chars-here"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_DIR: str = "logs"

    # Rate limiting (code guessing on join endpoints)
    REDIS_URL: str = "redis://localhost:6379"
    RATE_LIMIT_ENABLED: bool = True

    # Code generation
    CODE_MAX_ATTEMPTS: int = 25

    # Risk scoring policy
    FLAG_THRESHOLD: int = 70
    AUTO_FLAG_ON_THRESHOLD: bool = False
    SEVERITY_WEIGHTS: Dict[str, int] = {"low": 1, "medium": 3, "high": 7}
    VIOLATION_POINT_VALUE: float = 4.0
    MAX_TAB_SWITCHES: int = 10
    VIOLATION_COMPONENT_WEIGHT: float = 0.60
    TAB_SWITCH_COMPONENT_WEIGHT: float = 0.15
    PLAGIARISM_COMPONENT_WEIGHT: float = 0.25

    # Tab switch severity escalation (running count)
    TAB_SWITCH_MEDIUM_AFTER: int = 2
    TAB_SWITCH_HIGH_AFTER: int = 5

    # Violation log
    ALLOW_VIOLATION_EDITS: bool = False

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # CORS
    CORS_ORIGINS: Optional[str] = "*"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


settings = Settings()
