"""Environment configuration for the expense service"""
import os
import logging
from typing import List, Optional
from dotenv import load_dotenv
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Settings(BaseModel):
    """Runtime settings. Built from the environment by load_settings()."""
    mongodb_uri: str = "mongodb://localhost:27017"
    db_name: str = "e-wallet"
    collection_name: str = "expenses"
    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    max_body_size: int = 1 * 1024 * 1024  # 1MB limit
    rate_limit: Optional[str] = None  # slowapi limit string, e.g. "60/minute"


def load_settings() -> Settings:
    """Loads settings from the process environment and any .env file."""
    load_dotenv() # Searches for .env in current dir and parents

    mongodb_uri = os.getenv("MONGODB_URI") or os.getenv("DATABASE_URI")
    if not mongodb_uri:
        logger.warning("MONGODB_URI environment variable not set! Falling back to localhost.")

    values = {
        "mongodb_uri": mongodb_uri,
        "db_name": os.getenv("DB_NAME"),
        "collection_name": os.getenv("COLLECTION_NAME"),
        "host": os.getenv("HOST"),
        "port": os.getenv("PORT"),
        "log_level": os.getenv("LOG_LEVEL", "").upper() or None,
        "cors_origins": [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()] or None,
        "max_body_size": os.getenv("MAX_BODY_SIZE"),
        "rate_limit": os.getenv("RATE_LIMIT") or None,
    }
    # Unset variables keep the model defaults
    return Settings(**{key: value for key, value in values.items() if value is not None})
