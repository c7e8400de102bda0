# kidneycare/config.py - Environment driven configuration
from dotenv import load_dotenv

load_dotenv()
from typing import Union
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings with validation and environment variable support (Pydantic V2 Syntax)"""

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Application
    app_name: str = "KidneyCare Clinic"
    app_version: str = "1.0.0"
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # Database
    database_url: str = Field(default="sqlite:///./kidneycare.db", alias="DATABASE_URL")

    # Security
    secret_key: str = Field(..., alias="JWT_SECRET")
    algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    token_expire_days: int = Field(default=7, alias="TOKEN_EXPIRE_DAYS")

    # CORS
    cors_origins: Union[str, list[str]] = Field(default=["http://localhost:3000"], alias="CORS_ORIGINS")

    # Chatbot completion service
    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    chatbot_model: str = Field(default="gpt-3.5-turbo", alias="CHATBOT_MODEL")
    chatbot_max_tokens: int = Field(default=200, alias="CHATBOT_MAX_TOKENS")
    chatbot_temperature: float = Field(default=0.3, alias="CHATBOT_TEMPERATURE")
    chatbot_history_limit: int = Field(default=20, alias="CHATBOT_HISTORY_LIMIT")

    # --- Pydantic V2 Validators ---
    @field_validator("cors_origins", mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return ["http://localhost:3000"]
            return [origin.strip() for origin in v.split(',') if origin.strip()]
        return v

    @field_validator("database_url")
    @classmethod
    def validate_database_url(cls, v):
        if not v:
            raise ValueError("DATABASE_URL is required")
        if not v.startswith(("postgresql://", "postgresql+psycopg2://", "sqlite://")):
            raise ValueError("DATABASE_URL must be a valid PostgreSQL or SQLite URL")
        return v

    @field_validator("secret_key")
    @classmethod
    def validate_key_length(cls, v):
        if not v or len(v) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters long")
        return v

    @field_validator("chatbot_history_limit")
    @classmethod
    def validate_history_limit(cls, v):
        if v < 1:
            raise ValueError("CHATBOT_HISTORY_LIMIT must be positive")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"

    @property
    def chatbot_enabled(self) -> bool:
        return bool(self.openai_api_key)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

# Note: Do not instantiate settings at import time to avoid failing
# on missing environment variables. Use `get_settings()` instead.
