"""
Configuration settings for ControlStock
"""
import os
from pathlib import Path
from typing import List

import dotenv
from pydantic_settings import BaseSettings

# Resolve .env paths relative to this file so settings load regardless of cwd.
_CONFIG_DIR = Path(__file__).resolve().parent.parent  # backend/
_PROJECT_ROOT = _CONFIG_DIR.parent
_ENV_CANDIDATES = [
    _CONFIG_DIR / ".env",
    _PROJECT_ROOT / ".env",
]
_ENV_FILE = [str(p) for p in _ENV_CANDIDATES if p.is_file()]

# Load .env into os.environ so os.getenv defaults below see it too.
for _p in _ENV_CANDIDATES:
    if _p.is_file():
        dotenv.load_dotenv(_p, override=False)
        break


def normalize_database_url(url: str) -> str:
    """Plain postgresql:// URLs are routed to the psycopg (v3) driver."""
    url = (url or "").strip()
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


class Settings(BaseSettings):
    """Application settings"""

    # App
    APP_NAME: str = "ControlStock"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "False").lower() == "true"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Database. SQLite file for local development; set DATABASE_URL for PostgreSQL.
    DATABASE_URL: str = os.getenv("DATABASE_URL", f"sqlite:///{_CONFIG_DIR / 'controlstock.db'}")

    @property
    def database_connection_string(self) -> str:
        return normalize_database_url(self.DATABASE_URL)

    # CORS - comma-separated string
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:5173"

    @property
    def cors_origins_list(self) -> List[str]:
        origins = [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]
        return list(dict.fromkeys(origins))

    # Security
    SECRET_KEY: str = os.getenv("SECRET_KEY", "change-me-in-production")
    ALGORITHM: str = "HS256"
    # Token lifetime caps a session even when it stays active (one pharmacy shift)
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "720"))
    # Sessions with no authenticated request for this long are closed
    INACTIVITY_TIMEOUT_MINUTES: float = float(os.getenv("INACTIVITY_TIMEOUT_MINUTES", "15"))

    # Stock ledger
    # True: an exit larger than the warehouse stock is rejected (409).
    # False: the exit is clamped at zero and the shortfall is stored on the movement.
    REJECT_OVERDRAWN_EXITS: bool = os.getenv("REJECT_OVERDRAWN_EXITS", "true").lower() in ("true", "1", "yes")
    MOVEMENT_RETRY_ATTEMPTS: int = int(os.getenv("MOVEMENT_RETRY_ATTEMPTS", "3"))

    # Seed default warehouses, medicines and one user per role on startup (empty DB only)
    SEED_DEFAULT_DATA: bool = os.getenv("SEED_DEFAULT_DATA", "").lower() in ("true", "1", "yes")

    @property
    def inactivity_timeout_seconds(self) -> float:
        return self.INACTIVITY_TIMEOUT_MINUTES * 60

    class Config:
        env_file = _ENV_FILE if _ENV_FILE else [".env", "../.env"]
        case_sensitive = True
        extra = "ignore"


settings = Settings()
