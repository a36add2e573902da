"""
Configuration settings for Andy AI
"""

import os
from typing import Optional, Dict, List
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_SECRET_KEY = "andy-ai-secret"


class Settings(BaseSettings):
    """Application settings"""

    # App Info
    APP_NAME: str = "Andy AI"
    APP_VERSION: str = "1.0.0"
    APP_DESCRIPTION: str = "AI financial assistant: chat, credit score, transactions and account linking"

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 4000
    DEBUG: bool = False
    RELOAD: bool = False

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", DEFAULT_SECRET_KEY)
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    SESSION_MAX_AGE: int = 24 * 60 * 60  # 24h
    SESSION_HTTPS_ONLY: bool = False
    SEED_DEMO_USER: bool = False

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./andy_ai.db")

    # OpenAI
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_CHAT_MODEL: str = "gpt-4-1106-preview"
    OPENAI_ANALYSIS_MODEL: str = "gpt-4"
    CHAT_TEMPERATURE: float = 0.8
    CHAT_MAX_TOKENS: int = 1000
    ONBOARDING_TEMPERATURE: float = 0.7
    ONBOARDING_MAX_TOKENS: int = 500
    ANALYSIS_MAX_CHARS: int = 48000

    # Plaid
    PLAID_CLIENT_ID: str = os.getenv("PLAID_CLIENT_ID", "")
    PLAID_SECRET: str = os.getenv("PLAID_SECRET", "")
    PLAID_ENV: str = os.getenv("PLAID_ENV", "sandbox")
    PLAID_PRODUCTS: List[str] = ["transactions"]
    PLAID_COUNTRY_CODES: List[str] = ["US"]
    PLAID_LANGUAGE: str = "en"
    PLAID_HISTORY_DAYS: int = 90

    # Sync
    ENABLE_PLAID_SYNC: bool = False
    PLAID_SYNC_HOUR: int = 4
    PLAID_SYNC_TIMEZONE: str = "America/New_York"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_PER_HOUR: int = 100

    # File Upload
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "./uploads")
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB
    MAX_UPLOAD_FILES: int = 5
    ALLOWED_UPLOAD_TYPES: Dict[str, List[str]] = {
        "image/jpeg": [".jpg", ".jpeg"],
        "image/png": [".png"],
        "application/pdf": [".pdf"],
        "text/plain": [".txt"],
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": [".docx"],
    }
    CREDIT_REPORT_TYPES: List[str] = ["application/pdf", "image/jpeg", "image/png"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Create settings instance
settings = Settings()


# Validate critical settings
def validate_settings(config: Settings = settings):
    """Validate that critical settings are configured"""
    errors = []

    if config.ENVIRONMENT == "production":
        if config.SECRET_KEY == DEFAULT_SECRET_KEY:
            errors.append("SECRET_KEY must be set in production")

        if not config.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY must be set for the assistant")

        if not config.PLAID_CLIENT_ID or not config.PLAID_SECRET:
            errors.append("PLAID_CLIENT_ID and PLAID_SECRET must be set for account linking")

        if not config.DATABASE_URL.startswith("postgresql"):
            errors.append("PostgreSQL database required in production")

    if errors:
        raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Run validation
if settings.ENVIRONMENT == "production":
    validate_settings()
