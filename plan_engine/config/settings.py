from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Default database URL: a SQLite file next to the repository root.

    Use DATABASE_URL to point at PostgreSQL outside local development.
    """
    db_path = Path(__file__).parent.parent.parent / "plan_engine.db"
    return f"sqlite:///{db_path.resolve()}"


class Settings(BaseSettings):
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    calibration_version: str = Field(
        default="v1",
        validation_alias="CALIBRATION_VERSION",
        description="Calibration file name (without .yaml) under the calibration directory",
    )
    calibration_dir: str | None = Field(
        default=None,
        validation_alias="CALIBRATION_DIR",
        description="Optional directory overriding the bundled calibration files",
    )
    api_host: str = Field(default="127.0.0.1", validation_alias="API_HOST")
    api_port: int = Field(default=8000, validation_alias="API_PORT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(sorted(valid_levels))}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("calibration_version")
    @classmethod
    def validate_calibration_version(cls, value: str) -> str:
        """Reject path-like calibration versions."""
        if not value or "/" in value or "\\" in value or value.startswith("."):
            raise ValueError(f"Invalid CALIBRATION_VERSION: {value!r}")
        return value

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
