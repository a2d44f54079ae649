from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LobbyConfig:
    code_length: int = 6
    code_attempts: int = 5
    min_participants: int = 2
    candidate_limit: int = 20
    lobby_ttl: timedelta = timedelta(hours=float(os.getenv("PALATE_LOBBY_TTL_HOURS", "6")))


DEFAULT_LOBBY_CONFIG = LobbyConfig()
