"""Configuration management for the installctl application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

class Config:
    """Application configuration with sensible defaults."""

    # Record store
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "file").lower()
    STORE_PATH: str = os.getenv("STORE_PATH", "clusters/cluster-store.json")

    # Generated assets (kubeconfig, logs) written by the reconciler
    ASSETS_DIR: str = os.getenv("ASSETS_DIR", "clusters/assets")
    LOG_FILE_NAME: str = os.getenv("LOG_FILE_NAME", "installctl.log")

    # API server
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8080"))
    API_KEY: str = os.getenv("INSTALLCTL_API_KEY", "")

    # CLI client
    SERVER_URL: str = os.getenv("INSTALLCTL_SERVER", "http://localhost:8080")
    API_TIMEOUT: int = int(os.getenv("API_TIMEOUT", "30"))

    # Watch subscriptions
    WATCH_BUFFER_SIZE: int = int(os.getenv("WATCH_BUFFER_SIZE", "100"))
    WATCH_POLL_INTERVAL: float = float(os.getenv("WATCH_POLL_INTERVAL", "0.1"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT: str = os.getenv(
        "LOG_FORMAT",
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Security
    REDACT_KEYS: tuple = ("accesskey", "password", "secret", "token", "api_key")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration values."""
        problems = []
        if cls.STORE_BACKEND not in ("file", "memory"):
            problems.append(f"STORE_BACKEND must be 'file' or 'memory', got '{cls.STORE_BACKEND}'")
        if cls.STORE_BACKEND == "file" and not cls.STORE_PATH:
            problems.append("STORE_PATH is required for the file store")
        if cls.WATCH_BUFFER_SIZE <= 0:
            problems.append("WATCH_BUFFER_SIZE must be greater than 0")
        if cls.WATCH_POLL_INTERVAL <= 0:
            problems.append("WATCH_POLL_INTERVAL must be greater than 0")
        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")

# Don't validate on import to allow for dynamic configuration
# Call Config.validate() explicitly when needed
