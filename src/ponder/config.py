"""Configuration settings for the application."""

from pydantic import (
    BaseModel,
    Field,
)
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    PLANNER: str = "gemini"  # Options: gemini, openai, anthropic
    GOOGLE_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash"
    OPENAI_MODEL: str = "gpt-4o-mini"
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"
    PROVIDER_MAX_ATTEMPTS: int = 3
    PROVIDER_BACKOFF_MS: int = 200

    # Agent loop
    MAX_TURNS: int = 10
    TOOL_TIMEOUT_MS: int = 10_000
    OBSERVATION_CHAR_LIMIT: int = 3000

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


class AgentConfig(BaseModel):
    """Constants that bound a single agent run."""

    max_turns: int = Field(10, ge=1, description="Safety brake: planning rounds per run")
    tool_timeout_ms: int = Field(10_000, gt=0, description="Wall-clock budget per tool call")
    observation_char_limit: int = Field(
        3000, ge=0, description="Maximum characters kept from a tool observation"
    )

    @classmethod
    def from_settings(cls, source: Settings) -> "AgentConfig":
        """Build the loop configuration from application settings."""
        return cls(
            max_turns=source.MAX_TURNS,
            tool_timeout_ms=source.TOOL_TIMEOUT_MS,
            observation_char_limit=source.OBSERVATION_CHAR_LIMIT,
        )


settings = Settings()
