# edudesk/core/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Runtime configuration read from the environment (and .env)."""

    def __init__(self):
        self.database_url = os.getenv("DATABASE_URL", "sqlite:///./edudesk.db")
        self.sql_echo = _as_bool(os.getenv("SQL_ECHO", "false"))
        self.upload_root = os.getenv("UPLOAD_ROOT", "./uploads")

        # Use environment variables in production!
        self.secret_key = os.getenv("SECRET_KEY", "change-this-secret-key")
        self.algorithm = os.getenv("ALGORITHM", "HS256")
        self.access_token_expire_minutes = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "30"))

        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        self.admin_email = os.getenv("ADMIN_EMAIL", "admin@edudesk.local")
        self.admin_password = os.getenv("ADMIN_PASSWORD", "AdminPass123!")

    def upload_root_path(self) -> Path:
        return Path(self.upload_root).resolve()


settings = Settings()
