"""Configuration schema using Pydantic.

Persisted to ~/.apienvelope/config.json; environment variables use the
APIENVELOPE_ prefix with ``__`` between nested sections.
"""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EncodingConfig(BaseModel):
    """Response encoding behaviour."""
    escape_html: bool = True  # Escape <, > and & inside JSON strings
    fallback_message: str = "internal system error"  # Written verbatim when encoding fails
    strict: bool = False  # Raise EncodeError instead of writing the fallback


class LoggingConfig(BaseModel):
    """Log sink configuration."""
    level: str = "INFO"
    file: str = ""  # Optional rotating log file; empty disables it
    rotation: str = "10 MB"
    retention: str = "14 days"


class Config(BaseSettings):
    """Root configuration for apienvelope."""
    encoding: EncodingConfig = Field(default_factory=EncodingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="APIENVELOPE_",
        env_nested_delimiter="__",
    )
