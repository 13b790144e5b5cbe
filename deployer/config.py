"""Worker configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Worker settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"

    # AWS
    aws_region: str = "eu-north-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    # Object storage
    s3_bucket_name: str = "aws-auto-deployer"

    # CDN
    cloudfront_distribution_id: str | None = None
    cloudfront_domain: str | None = None
    cloudfront_region: str = "us-east-1"

    # Working directories
    work_dir: Path = Path("temp")
    dist_dir: Path = Path("dist")

    # Queue
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "build-and-deploy"
    worker_concurrency: int = Field(default=2, ge=1)
    poll_timeout_seconds: int = Field(default=5, ge=1)

    # External tools
    git_command: str = "git"
    npm_command: str = "npm"
    command_timeout_seconds: float = Field(default=900, gt=0)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["console", "json"] = "console"
    log_directory: str = "logs"
    log_file_name: str = "deployer.log"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def storage_domain(self) -> str:
        """Regional S3 endpoint host used for direct object URLs."""
        return f"s3.{self.aws_region}.amazonaws.com"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
