import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.jwt_secret = self._get("JWT_SECRET")
        self.token_ttl_minutes = self._get_int("TOKEN_TTL_MINUTES", default=60)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.totp_window = self._get_int("TOTP_WINDOW", default=1)
        self.totp_reject_replay = self._get_bool("TOTP_REJECT_REPLAY", default=True)
        self.mfa_issuer = os.getenv("MFA_ISSUER", "Bondfire")
        self.reset_token_ttl_minutes = self._get_int("RESET_TOKEN_TTL_MINUTES", default=60)
        database_path = os.getenv("DATABASE_PATH")
        self.database_path: Optional[Path] = Path(database_path).resolve() if database_path else None
        self.frontend_base_url = os.getenv("FRONTEND_BASE_URL", "http://localhost:5173")
        self.smtp_host = os.getenv("SMTP_HOST")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME")
        self.smtp_password = os.getenv("SMTP_PASSWORD")
        self.smtp_from_email = os.getenv("SMTP_FROM_EMAIL")
        self.seed_user_name = os.getenv("SEED_USER_NAME")
        self.seed_user_email = os.getenv("SEED_USER_EMAIL")
        self.seed_user_password = os.getenv("SEED_USER_PASSWORD")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    @staticmethod
    def _get(key: str) -> str:
        value = os.getenv(key)
        if not value:
            raise RuntimeError(f"Missing required environment variable: {key}")
        return value

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() in {"1", "true", "yes", "on"}
