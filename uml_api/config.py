"""Configuration using pydantic-settings."""

import os
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with validation and constants."""

    host: str = "0.0.0.0"  # nosec B104 - Required for container deployment
    port: int = 8000
    log_level: str = "INFO"
    log_file: str | None = None

    environment: Literal["development", "docker", "lambda"] = "development"

    # Assistant service
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    code_generator_assistant_id: str | None = None
    code_examiner_assistant_id: str | None = None
    assistant_poll_interval: float = 0.5
    generator_timeout_ms: int = 60000
    examiner_timeout_ms: int = 10000

    # Render service
    plantuml_server_url: str = "https://www.plantuml.com/plantuml"
    render_timeout: float = 5.0

    # Diagram store
    database_url: str = "sqlite+aiosqlite:///./data/uml.db"
    aws_region: str = "us-east-1"
    dynamodb_table: str = "uml-documents"
    transaction_attempts: int = 5

    cors_origins: list[str] = ["*"]

    @property
    def is_lambda_environment(self) -> bool:
        """Check if running in AWS Lambda."""
        return self.environment == "lambda" or bool(os.getenv("AWS_LAMBDA_FUNCTION_NAME"))

    @property
    def effective_database_url(self) -> str:
        """Get the effective database URL based on environment."""
        if self.is_lambda_environment and not self.database_url.startswith("dynamodb://"):
            return f"dynamodb://{self.dynamodb_table}?region={self.aws_region}"
        return self.database_url

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Reject timings that would make polling or rendering meaningless."""
        if self.assistant_poll_interval <= 0:
            raise ValueError("UML_ASSISTANT_POLL_INTERVAL must be greater than zero.")
        if self.render_timeout <= 0:
            raise ValueError("UML_RENDER_TIMEOUT must be greater than zero.")
        if self.transaction_attempts < 1:
            raise ValueError("UML_TRANSACTION_ATTEMPTS must be at least 1.")
        return self

    @model_validator(mode="after")
    def validate_environment(self) -> "Settings":
        """Set environment based on UML_ENV or AWS Lambda detection."""
        env = os.getenv("UML_ENV", "").lower()
        if env in ("lambda", "docker", "development"):
            self.environment = env  # type: ignore[assignment]
        elif os.getenv("AWS_LAMBDA_FUNCTION_NAME"):
            self.environment = "lambda"
        return self

    class Config:
        """Pydantic config."""

        env_prefix = "UML_"
        env_file = ".env"
        extra = "ignore"


settings = Settings()


def get_settings() -> Settings:
    """Get settings instance (for dependency injection)."""
    return settings
