from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class AuthConfig:
    secret_key: str = os.getenv("PALATE_SECRET_KEY", "palate-secret-change-in-production")
    token_max_age: int = int(os.getenv("PALATE_TOKEN_MAX_AGE", str(24 * 60 * 60)))
    token_salt: str = "palate-bearer"
    guest_prefix: str = "Guest"


DEFAULT_AUTH_CONFIG = AuthConfig()
