from __future__ import annotations

from pathlib import Path

import pandas as pd

from .config import DEFAULT_CATALOG_CONFIG

_df: pd.DataFrame | None = None


def _split_tags(value: object) -> list[str]:
    if not isinstance(value, str):
        return []
    return [t.strip().lower() for t in value.split(";") if t.strip()]


def load_catalog(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"id": str})

    # Pre-parse tag columns into lowercase lists for matching
    df["dietary_list"] = df["dietary_tags"].apply(_split_tags)
    df["mood_list"] = df["mood_tags"].apply(_split_tags)
    df["allergen_list"] = df["allergens"].apply(_split_tags)

    df["cuisine_lower"] = df["cuisine"].fillna("").str.lower()
    df["locality_lower"] = df["locality"].fillna("").str.lower()

    # Catalog ids are unique; keep the first row if the file disagrees
    return df.drop_duplicates(subset="id", keep="first").reset_index(drop=True)


def get_dataframe() -> pd.DataFrame:
    """Return the in-memory restaurant catalog, loading it on first call."""
    global _df
    if _df is None:
        _df = load_catalog(DEFAULT_CATALOG_CONFIG.catalog_path)
    return _df


def set_dataframe(df: pd.DataFrame | None) -> None:
    """Replace (or with ``None``, drop) the cached catalog."""
    global _df
    _df = df
