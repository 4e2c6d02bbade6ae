"""
Configuration management for SmartDocs API
Uses pydantic-settings for environment variable validation
"""

from pydantic_settings import BaseSettings
from pydantic import model_validator
from typing import List
import os


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database (all from environment - no defaults for credentials)
    POSTGRES_USER: str = ""
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "smartdocs"
    DATABASE_URL: str = "sqlite:///./smartdocs.db"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = True
    DEBUG: bool = False

    # Security (all from environment - no defaults for secrets)
    SECRET_KEY: str = ""
    API_KEY_PREFIX: str = "sd_"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Application
    APP_NAME: str = "SmartDocs"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"  # development or production
    APP_URL: str = "http://localhost:3000"  # Frontend base URL used in emails and redirects

    # Redis & Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_TASK_ALWAYS_EAGER: bool = False

    # Storage
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10MB per file
    STORAGE_BACKEND: str = "local"  # "local" or "s3"

    # S3 Storage (if STORAGE_BACKEND="s3")
    S3_BUCKET_NAME: str = "smartdocs-uploads"
    S3_ACCESS_KEY_ID: str = ""
    S3_SECRET_ACCESS_KEY: str = ""
    S3_REGION: str = "us-east-1"
    S3_ENDPOINT_URL: str = ""  # Optional: for MinIO, DigitalOcean Spaces, etc.
    S3_PRESIGNED_URL_EXPIRY: int = 3600

    # LLM (LiteLLM format: provider/model)
    LLM_PROVIDER: str = "openai"
    CHAT_MODEL: str = "gpt-4o-mini"
    FALLBACK_MODEL: str = "gemini/gemini-1.5-flash"
    OPENAI_API_KEY: str = ""
    GEMINI_API_KEY: str = ""
    CHAT_TEMPERATURE: float = 0.7
    CHAT_MAX_TOKENS: int = 2000
    DOCUMENT_MAX_TOKENS: int = 8000
    LLM_API_BASE: str = ""  # Optional: custom API base URL
    LLM_TIMEOUT: int = 60  # Timeout in seconds for LLM requests

    # Stripe (international payments)
    STRIPE_SECRET_KEY: str = ""
    STRIPE_PUBLISHABLE_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""

    # Moyasar (local payments for Arabic-speaking countries)
    MOYASAR_API_URL: str = "https://api.moyasar.com/v1"
    MOYASAR_SECRET_KEY: str = ""
    MOYASAR_PUBLISHABLE_KEY: str = ""
    MOYASAR_WEBHOOK_SECRET: str = ""
    MOYASAR_TIMEOUT: int = 30

    # Email (Mailjet SMTP relay when keys are present, generic SMTP otherwise)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False
    MAILJET_API_KEY: str = ""
    MAILJET_SECRET_KEY: str = ""
    FROM_EMAIL: str = "noreply@smartdocs.ai"

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_CHAT: str = "20/minute"
    RATE_LIMIT_GENERATION: str = "10/minute"
    RATE_LIMIT_AUTH: str = "5/minute"
    RATE_LIMIT_UPLOAD: str = "20/hour"

    # Retry Logic
    RETRY_ENABLED: bool = True
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_EXPONENTIAL_BASE: int = 2

    @model_validator(mode='after')
    def detect_docker_environment(self):
        """
        Detect if running inside Docker container and adjust service URLs

        - localhost:5432 → postgres:5432 (PostgreSQL)
        - localhost:6379 → redis:6379 (Redis)

        Detection method: Check for /.dockerenv file (created by Docker)
        """
        if os.path.exists('/.dockerenv'):
            if 'localhost' in self.DATABASE_URL:
                self.DATABASE_URL = self.DATABASE_URL.replace('localhost', 'postgres')

            if 'localhost' in self.REDIS_URL:
                self.REDIS_URL = self.REDIS_URL.replace('localhost', 'redis')

        return self

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
