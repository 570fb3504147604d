import codecs
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="HANDLEKIT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="handlekit", description="Application name")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment mode"
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log output format"
    )

    # File handles
    default_encoding: Optional[str] = Field(
        default=None,
        description="Encoding used for text handles opened without one (None: require it)",
    )
    encoding_errors: str = Field(
        default="strict", description="Codec error handler for text handles"
    )
    buffer_size: int = Field(
        default=8192, gt=0, description="Write buffer size in bytes"
    )
    read_chunk_size: int = Field(
        default=8192, gt=0, description="Bytes fetched per raw read"
    )
    fsync_on_flush: bool = Field(
        default=False, description="Call fsync after every flush"
    )

    # Directories
    sort_listings: bool = Field(
        default=False, description="Sort directory listings by name"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @field_validator("default_encoding")
    @classmethod
    def validate_default_encoding(cls, v):
        if v is not None:
            try:
                codecs.lookup(v)
            except LookupError:
                raise ValueError(f"unknown encoding: {v}")
        return v

    @field_validator("encoding_errors")
    @classmethod
    def validate_encoding_errors(cls, v):
        try:
            codecs.lookup_error(v)
        except LookupError:
            raise ValueError(f"unknown error handler: {v}")
        return v

    @model_validator(mode="after")
    def force_json_in_production(self):
        if self.environment == "production":
            self.log_format = "json"
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
