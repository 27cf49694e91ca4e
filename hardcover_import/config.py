"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""
    
    # API
    HARDCOVER_API_TOKEN = os.getenv("HARDCOVER_API_TOKEN")
    HARDCOVER_API_URL = os.getenv("HARDCOVER_API_URL", "https://api.hardcover.app/v1/graphql")
    USER_AGENT = os.getenv(
        "HARDCOVER_USER_AGENT",
        "hardcover-import/1.0 (+https://hardcover.app)"
    )
    
    # Defaults
    DEFAULT_TIMEOUT = float(os.getenv("DEFAULT_TIMEOUT", "30"))
    DEFAULT_MAX_ATTEMPTS = int(os.getenv("DEFAULT_MAX_ATTEMPTS", "3"))
    DEFAULT_RETRY_AFTER = float(os.getenv("DEFAULT_RETRY_AFTER", "60"))
