"""Accountability Buddy Server Configuration."""

import logging
import os
import secrets
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

SECRETS_FILENAME = ".secrets"


class Settings(BaseSettings):
    # Server
    server_name: str = "Accountability Buddy"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "accountability-buddy" / "data"

    # Database
    db_path: Path = Path.home() / "accountability-buddy" / "data" / "buddy.db"

    # JWT
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 1440  # 24 hours

    # Collaboration goals
    invite_batch_limit: int = 20
    activity_page_size: int = 50

    model_config = {"env_prefix": "BUDDY_"}

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("invite_batch_limit", "activity_page_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Load or generate the JWT signing secret.

        A secret given through ``BUDDY_JWT_SECRET`` is used as is and never
        written to disk. Otherwise the secret stored under ``data_dir`` is
        reused, and a new one is generated and stored (owner-readable only)
        on first start so issued tokens survive restarts.
        """
        if self.jwt_secret:
            return

        secrets_file = self.data_dir / SECRETS_FILENAME
        if secrets_file.exists():
            for line in secrets_file.read_text().splitlines():
                key, _, value = line.partition("=")
                if key.strip() == "jwt_secret" and value.strip():
                    self.jwt_secret = value.strip()
                    return

        self.jwt_secret = secrets.token_urlsafe(32)
        secrets_file.write_text(f"jwt_secret={self.jwt_secret}\n")
        os.chmod(secrets_file, 0o600)


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
