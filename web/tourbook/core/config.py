import os
from typing import List
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()  # allow local development with a .env file


class Settings:
    """Application settings read from the environment"""
    
    def __init__(self):
        # Database
        self.DB_DSN: str = os.getenv("DB_DSN", "")
        self.DB_POOL_SIZE: int = int(os.getenv("DB_POOL_SIZE", "5"))
        self.DB_ECHO: bool = os.getenv("DB_ECHO", "false").lower() == "true"

        # Security
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.ALGORITHM: str = "HS256"

        # CORS
        self.CORS_ALLOW_ORIGINS: List[str] = []
        self.CORS_ALLOW_CREDENTIALS: bool = True

        # Stripe
        self.STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")

        # Rate Limiting
        self.RATE_LIMIT_DEFAULT: str = os.getenv("RATE_LIMIT_DEFAULT", "100/minute")

        # Admission control
        self.ADMISSION_LOCK_TIMEOUT: float = float(os.getenv("ADMISSION_LOCK_TIMEOUT", "5.0"))
        self.ADMISSION_RETRY_DELAY: float = float(os.getenv("ADMISSION_RETRY_DELAY", "0.05"))
        self.TRANSIENT_RETRY_ATTEMPTS: int = int(os.getenv("TRANSIENT_RETRY_ATTEMPTS", "3"))
        self.TRANSIENT_RETRY_BASE_DELAY: float = float(os.getenv("TRANSIENT_RETRY_BASE_DELAY", "0.1"))

        # Business Rules
        self.DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "usd").lower()

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

        self._validate()
        self._parse_cors_origins()
    
    def _validate(self):
        """Validate required settings"""
        if not self.SECRET_KEY:
            raise ValueError("SECRET_KEY environment variable must be set")
        if not self.DB_DSN:
            raise ValueError("DB_DSN environment variable must be set")
    
    def _parse_cors_origins(self):
        """Parse CORS origins from environment"""
        raw_origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
        
        if raw_origins.strip() == "*":
            self.CORS_ALLOW_ORIGINS = ["*"]
            self.CORS_ALLOW_CREDENTIALS = False  # wildcard forbids credentials
        else:
            self.CORS_ALLOW_ORIGINS = [o.strip() for o in raw_origins.split(",") if o.strip()]
            self.CORS_ALLOW_CREDENTIALS = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
