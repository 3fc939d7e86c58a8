import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Database settings
    database_file: str = os.getenv("LIBRARY_DB_FILE", "bookmanager.db")

    # Open Library settings
    openlibrary_api_url: str = os.getenv("OPENLIBRARY_API_URL", "https://openlibrary.org/api/books")
    openlibrary_cover_url: str = os.getenv(
        "OPENLIBRARY_COVER_URL",
        "https://covers.openlibrary.org/b/isbn/{isbn}-L.jpg"
    )
    openlibrary_timeout: float = float(os.getenv("OPENLIBRARY_TIMEOUT", "10"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Book Manager")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Apply the configured log level to the root logger."""
    name = (level or settings.log_level).upper()
    if settings.debug:
        name = "DEBUG"
    logging.basicConfig(
        level=getattr(logging, name, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
