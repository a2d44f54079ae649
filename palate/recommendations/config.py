from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

_BUNDLED_CATALOG = Path(__file__).resolve().parent.parent / "data" / "restaurants.csv"


@dataclass(frozen=True)
class CatalogConfig:
    catalog_path: Path = Path(os.getenv("PALATE_CATALOG_PATH", str(_BUNDLED_CATALOG)))
    limit: int = 20
    min_candidates: int = 5
    weights: dict[str, float] = field(
        default_factory=lambda: {
            "rating": 0.3,
            "budget": 0.25,
            "meal": 0.15,
            "mood": 0.15,
            "distance": 0.15,
        }
    )


DEFAULT_CATALOG_CONFIG = CatalogConfig()
