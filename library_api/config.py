import os
import tempfile
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Database settings
    # LIBRARY_DB_FILE wins; otherwise a per-process temp file
    database_file: str = os.getenv(
        "LIBRARY_DB_FILE",
        os.path.join(tempfile.gettempdir(), f"library_api_{os.getpid()}.db"),
    )
    seed_on_startup: bool = os.getenv("SEED_ON_STARTUP", "False").lower() in ("true", "1", "yes")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library API")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Paging settings
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "20"))


settings = Settings()
