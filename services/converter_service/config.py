from functools import lru_cache
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
import os
import tempfile

class Settings(BaseSettings):
    # Application settings
    app_name: str = "Converter Service"
    environment: str = Field(
        "development", validation_alias=AliasChoices("environment", "PYTHON_ENV")
    )
    log_level: str = "INFO"
    port: int = Field(3000, validation_alias=AliasChoices("port", "API_PORT"))

    # AWS settings
    aws_region: str = "us-east-1"
    aws_bucket: str = "hackaton-converter"
    aws_sqs_url: str = ""
    aws_endpoint_url: Optional[str] = None  # LocalStack / MinIO

    # Queue settings
    sqs_max_messages: int = 10
    sqs_visibility_timeout: int = 20
    sqs_wait_time_seconds: int = 0

    # Poll loop settings
    poll_enabled: bool = True
    poll_interval_seconds: float = 60.0
    max_concurrent_conversions: int = 0  # 0 = unbounded
    wait_for_batch_completion: bool = False

    # Tracking service settings
    tracking_api_base_url: str = Field(
        "http://localhost:8080",
        validation_alias=AliasChoices("tracking_api_base_url", "HACKATON_API_BASE_URL")
    )
    notification_timeout_seconds: float = 10.0
    notification_retry_attempts: int = 3
    notification_retry_base_delay: float = 1.0

    # Processing settings
    temp_dir: str = os.path.join(tempfile.gettempdir(), "hackaton-converter")
    ffmpeg_path: str = "ffmpeg"
    frame_quality: int = 2
    archive_compression_level: int = 9

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
