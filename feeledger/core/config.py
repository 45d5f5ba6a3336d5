from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    fee_api_base_url: str = Field("http://localhost:5000/api", alias="FEE_API_BASE_URL")
    fee_api_timeout_seconds: float = Field(30.0, alias="FEE_API_TIMEOUT_SECONDS")
    fee_api_token: Optional[str] = Field(None, alias="FEE_API_TOKEN")
    academic_year_id: Optional[str] = Field(None, alias="ACADEMIC_YEAR_ID")

    # Re-fetch the school summary after each payment mutation.
    confirm_with_server: bool = Field(True, alias="CONFIRM_WITH_SERVER")
    notification_duration_ms: int = Field(3000, alias="NOTIFICATION_DURATION_MS")

    cors_allow_origins: List[str] = Field(["http://localhost:3000"], alias="CORS_ALLOW_ORIGINS")
    proxy_target: str = Field("http://localhost:5000", alias="PROXY_TARGET")
    proxy_port: int = Field(3001, alias="PROXY_PORT")

    sandbox_database_url: str = Field(
        "sqlite+aiosqlite:///./feeledger_sandbox.db", alias="SANDBOX_DATABASE_URL"
    )

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
