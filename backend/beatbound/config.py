from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "beatbound-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "BeatBound")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/beatbound_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    db_echo: bool = os.getenv("DB_ECHO", "false").lower() == "true"
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "5"))

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_token_ttl_minutes: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_token_ttl_minutes: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d

    # Voting
    vote_rate_limit_max: int = int(os.getenv("VOTE_RATE_LIMIT_MAX", "100"))  # votes per window per user
    vote_rate_limit_window_seconds: int = int(os.getenv("VOTE_RATE_LIMIT_WINDOW_SECONDS", "3600"))
    live_feed_keepalive_seconds: float = float(os.getenv("LIVE_FEED_KEEPALIVE_SECONDS", "30"))
    leaderboard_limit: int = int(os.getenv("LEADERBOARD_LIMIT", "50"))

settings = Settings()
