"""Configuration schema definitions using Pydantic."""

from typing import Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(extra='forbid')

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level"
    )
    format: Literal["simple", "detailed", "json"] = Field(
        default="simple",
        description="Log format type"
    )
    file: Optional[str] = Field(default=None, description="Optional log file path")
    max_file_size_mb: int = Field(default=10, ge=1)
    backup_count: int = Field(default=5, ge=0)

    @field_validator('level', mode='before')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize log level to uppercase for case-insensitive input."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator('format', mode='before')
    @classmethod
    def normalize_format(cls, v: str) -> str:
        """Normalize format to lowercase for case-insensitive input."""
        if isinstance(v, str):
            return v.lower()
        return v


class PipeDefaults(BaseModel):
    """Defaults applied to the stages the command line builds."""

    model_config = ConfigDict(extra='forbid')

    chunk_size: int = Field(
        default=64 * 1024,
        ge=1,
        description="Bytes read per chunk by file sources"
    )
    high_water_mark: int = Field(
        default=16 * 1024,
        ge=1,
        description="Buffered bytes at which a sink reports backpressure"
    )
    compression_level: int = Field(
        default=6,
        ge=0,
        le=9,
        description="zlib compression level for gzip stages"
    )


class Config(BaseModel):
    """Root configuration."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    pipe: PipeDefaults = Field(default_factory=PipeDefaults)
