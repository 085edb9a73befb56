"""
Configuration management using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from pathlib import Path
from dotenv import load_dotenv
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

# Load .env file into os.environ so all nested BaseSettings pick up values
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path)


class ScraperSettings(BaseSettings):
    """Periodic scraper configuration"""
    delay_minutes: int = Field(default=1)
    delay_unit_seconds: float = Field(default=60.0)
    shutdown_grace_seconds: float = Field(default=1.0)
    settings_backend: str = Field(default="memory")
    settings_key_prefix: str = Field(default="applink_exporter")

    class Config:
        env_prefix = "SCRAPER_"


class RedisSettings(BaseSettings):
    """Redis connection configuration (delay persistence)"""
    host: str = Field(default="localhost")
    port: int = Field(default=6379)
    password: Optional[str] = Field(default=None)
    db: int = Field(default=0)

    class Config:
        env_prefix = "REDIS_"


class DatabaseSettings(BaseSettings):
    """Attachment database configuration"""
    path: Optional[str] = Field(default=None)

    class Config:
        env_prefix = "DATABASE_"


class ManifestSettings(BaseSettings):
    """Application link manifest lookup configuration"""
    timeout_seconds: float = Field(default=5.0)
    max_attempts: int = Field(default=3)

    class Config:
        env_prefix = "MANIFEST_"


class MonitoringSettings(BaseSettings):
    """Monitoring and health check configuration"""
    metrics_port: int = Field(default=9090)
    health_check_port: int = Field(default=8080)

    class Config:
        env_prefix = ""


class LoggingSettings(BaseSettings):
    """Logging configuration"""
    level: str = Field(default="INFO")
    format: str = Field(default="json")

    class Config:
        env_prefix = "LOG_"


class Settings(BaseSettings):
    """Main settings aggregating all configuration sections"""
    scraper: ScraperSettings = Field(default_factory=ScraperSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    manifest: ManifestSettings = Field(default_factory=ManifestSettings)
    monitoring: MonitoringSettings = Field(default_factory=MonitoringSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    class Config:
        extra = "ignore"


# Singleton instance - import this in other modules
try:
    settings = Settings()
except Exception as e:
    # A malformed environment variable must not break imports in tests
    print(f"Warning: Could not load settings: {e}")
    settings = None
