"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""

    # Book-info service
    BOOK_INFO_BASE_URL = os.getenv("BOOK_INFO_BASE_URL", "http://book-info-service")

    # Transport defaults
    DEFAULT_TIMEOUT = float(os.getenv("DEFAULT_TIMEOUT", "1.0"))
    DEFAULT_MAX_RETRIES = int(os.getenv("DEFAULT_MAX_RETRIES", "1"))
    DEFAULT_BACKOFF = float(os.getenv("DEFAULT_BACKOFF", "0.5"))
    MAX_CONCURRENT = int(os.getenv("MAX_CONCURRENT", "5"))

    # Circuit breaker
    BREAKER_WINDOW_SECONDS = float(os.getenv("BREAKER_WINDOW_SECONDS", "10"))
    BREAKER_REQUEST_VOLUME = int(os.getenv("BREAKER_REQUEST_VOLUME", "20"))
    BREAKER_ERROR_PERCENTAGE = float(os.getenv("BREAKER_ERROR_PERCENTAGE", "50"))
    BREAKER_SLEEP_WINDOW_SECONDS = float(os.getenv("BREAKER_SLEEP_WINDOW_SECONDS", "5"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
