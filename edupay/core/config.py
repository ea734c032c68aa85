from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Academic session context (e.g. "2024-25")
    current_session: str = Field("2024-25", alias="CURRENT_SESSION")
    available_sessions: List[str] = Field(
        default_factory=lambda: ["2023-24", "2024-25", "2025-26"],
        alias="AVAILABLE_SESSIONS",
    )
    school_name: str = Field("Akshara School of Excellence", alias="SCHOOL_NAME")
    seed_demo_data: bool = Field(True, alias="SEED_DEMO_DATA")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    gemini_api_key: Optional[str] = Field(None, alias="GEMINI_API_KEY")
    gemini_model: str = Field("gemini-2.0-flash", alias="GEMINI_MODEL")
    gemini_api_base: str = Field(
        "https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_API_BASE"
    )
    insights_timeout_seconds: float = Field(15.0, alias="INSIGHTS_TIMEOUT_SECONDS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
