import os
import logging
from pathlib import Path
from pydantic import BaseModel, Field
from typing import List
from dotenv import load_dotenv

load_dotenv()

_PACKAGE_DIR = Path(__file__).resolve().parent.parent
DEFAULT_ADMIN_TOKEN = "admin123"


class Config(BaseModel):
    app_name: str = "Peer Feedback Service"
    environment: str = os.getenv("APP_ENV", "development")
    api_prefix: str = "/api"
    version: str = "1.0.0"

    # Storage
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./data/feedback.db")

    # Roster (static table, loaded once at startup)
    roster_file: str = os.getenv("ROSTER_FILE", str(_PACKAGE_DIR / "data" / "roster.json"))

    # Client application
    public_dir: str = os.getenv("PUBLIC_DIR", "public")

    # Admin read-back: shared bearer secret
    admin_token: str = os.getenv("ADMIN_TOKEN", DEFAULT_ADMIN_TOKEN)

    # completedAt is rendered for people in this zone
    display_timezone: str = os.getenv("DISPLAY_TIMEZONE", "Asia/Kolkata")

    request_id_header: str = "X-Request-ID"

    # CORS: comma-separated origins, "*" allows any.
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "*").split(",")
            if o.strip()
        ]
    )

    # Rate limiting
    rate_limit_enabled: bool = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
    submission_rate_limit: str = os.getenv("SUBMISSION_RATE_LIMIT", "20/minute")


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.admin_token == DEFAULT_ADMIN_TOKEN:
    if settings.environment == "production":
        raise RuntimeError(
            "FATAL: ADMIN_TOKEN must be set for production. "
            "Set it as an environment variable."
        )
    _logger.warning("⚠ Using default ADMIN_TOKEN; only acceptable outside production.")
