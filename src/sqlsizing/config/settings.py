# config/settings.py
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List
from enum import Enum
from dotenv import load_dotenv

# Load .env file explicitly
load_dotenv()


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AzureSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="AZURE_")

    subscription_ids: Optional[str] = Field(None, description="Comma separated subscriptions to scan; empty scans every accessible one")
    tenant_id: Optional[str] = Field(None, description="Azure tenant ID")
    client_id: Optional[str] = Field(None, description="Azure client ID for service principal")
    client_secret: Optional[str] = Field(None, description="Azure client secret")

    def subscription_list(self) -> List[str]:
        """Configured subscription ids as a list."""
        return [s.strip() for s in (self.subscription_ids or "").split(",") if s.strip()]


class AdvisorSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ADVISOR_")

    include_scale_up: bool = Field(False, description="Keep ScaleUp suggestions in the report")
    call_delay_ms: int = Field(0, ge=0, description="Delay after every billing API call in milliseconds")
    retry_attempts: int = Field(5, ge=1, description="Maximum attempts per throttled billing call")
    lookback_days: int = Field(30, ge=1, description="Utilization lookback window")
    output_path: str = Field("./data/sql_rightsizing_report.csv", description="CSV report path")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    debug: bool = Field(False, description="Debug mode")
    log_level: LogLevel = Field(LogLevel.INFO, description="Log level")
    log_format: str = Field("text", description="Log format (json or text)")

    azure: AzureSettings = Field(default_factory=lambda: AzureSettings())
    advisor: AdvisorSettings = Field(default_factory=lambda: AdvisorSettings())

    @field_validator('log_level', mode='before')
    @classmethod
    def validate_log_level(cls, v):
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @classmethod
    def create_from_env(cls) -> "Settings":
        """Create settings instance from environment variables."""
        return cls()
