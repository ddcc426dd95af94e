import os
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Ensure .env is loaded from project root even if server is started elsewhere
BASE_DIR = Path(__file__).resolve().parents[2]
ENV_PATH = BASE_DIR / ".env"

DEFAULT_SECRET_KEY = "change-me-in-production"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes")


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Runtime configuration, read from the environment once at startup.

    Keyword arguments override the environment, which is how tests build
    an isolated instance.
    """

    def __init__(self, **overrides):
        load_dotenv(dotenv_path=ENV_PATH)

        # Application
        self.PROJECT_NAME: str = os.getenv("PROJECT_NAME", "Secure Files")
        self.API_PREFIX: str = os.getenv("API_PREFIX", "/api").rstrip("/")
        self.HOST: str = os.getenv("HOST", "0.0.0.0")
        self.PORT: int = int(os.getenv("PORT", "5000"))
        self.CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "*"))
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

        # Security
        # Strip values to avoid accidental whitespace from .env
        secret = os.getenv("SECRET_KEY") or os.getenv("JWT_SECRET") or DEFAULT_SECRET_KEY
        self.SECRET_KEY: str = secret.strip()
        self.ALGORITHM: str = os.getenv("ALGORITHM", "HS256").strip()
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))
        self.MIN_PASSWORD_LENGTH: int = int(os.getenv("MIN_PASSWORD_LENGTH", "8"))

        # Database
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./secure_files.db")
        self.DB_ECHO: bool = _env_bool("DB_ECHO", "false")

        # File Upload
        self.UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
        self.MAX_FILE_SIZE_MB: int = int(os.getenv("MAX_FILE_SIZE_MB", "20"))
        self.ALLOWED_MIME: List[str] = _split_csv(
            os.getenv("ALLOWED_MIME", "application/pdf,video/mp4")
        )
        self.SERVE_UPLOADS: bool = _env_bool("SERVE_UPLOADS", "true")

        for name, value in overrides.items():
            if not hasattr(self, name):
                raise AttributeError(f"Unknown setting: {name}")
            setattr(self, name, value)

    @property
    def max_upload_bytes(self) -> int:
        return self.MAX_FILE_SIZE_MB * 1024 * 1024

    @property
    def upload_root(self) -> Path:
        return Path(self.UPLOAD_DIR).resolve()

    @property
    def uses_default_secret(self) -> bool:
        return self.SECRET_KEY == DEFAULT_SECRET_KEY

    def share_link(self, share_id: Optional[str]) -> Optional[str]:
        if not share_id:
            return None
        return f"{self.API_PREFIX}/files/share/{share_id}/download"


@lru_cache
def get_settings() -> Settings:
    return Settings()
