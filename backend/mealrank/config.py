"""
Configuration management for the application.

Loads environment variables and provides centralized config access.
"""

import os
from typing import Optional
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    # Flask settings
    FLASK_ENV: str = os.getenv("FLASK_ENV", "development")
    DEBUG: bool = FLASK_ENV == "development"
    FRONTEND_URL: Optional[str] = os.getenv("FRONTEND_URL")

    # Database
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")

    # Auth (tokens are issued elsewhere, we only verify them)
    AUTH_JWT_SECRET: Optional[str] = os.getenv("AUTH_JWT_SECRET")
    AUTH_JWT_ALGORITHM: str = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
    AUTH_JWT_ISSUER: Optional[str] = os.getenv("AUTH_JWT_ISSUER")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    @classmethod
    def validate(cls):
        """Validate required configuration"""
        errors = []

        if not cls.AUTH_JWT_SECRET:
            errors.append("AUTH_JWT_SECRET is not set")

        if cls.FLASK_ENV == "production" and not cls.DATABASE_URL:
            errors.append("DATABASE_URL is not set")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")


# Create config instance
config = Config()
