from __future__ import annotations

import logging

import pandas as pd

from .config import DEFAULT_CATALOG_CONFIG, CatalogConfig
from .data_store import get_dataframe
from .models import CandidateRequest, Restaurant

logger = logging.getLogger(__name__)

BUDGET_TIERS: dict[str, set[str]] = {
    "cheap": {"$"},
    "moderate": {"$$"},
    "fancy": {"$$$", "$$$$"},
}

# Upper bound in km for each distance answer
DISTANCE_LIMITS: dict[str, float] = {
    "nearby": 2.0,
    "moderate": 8.0,
}


def _share(votes: dict[str, int], satisfied: set[str]) -> float:
    """Fraction of the expressed answers that a restaurant satisfies."""
    total = sum(votes.values())
    if total == 0:
        return 1.0
    return sum(count for answer, count in votes.items() if answer in satisfied) / total


def _satisfied_budgets(price_tier: object) -> set[str]:
    return {answer for answer, tiers in BUDGET_TIERS.items() if price_tier in tiers}


def _satisfied_distances(distance_km: object) -> set[str]:
    if pd.isna(distance_km):
        return set()
    return {answer for answer, limit in DISTANCE_LIMITS.items() if float(distance_km) <= limit}


def _score_row(
    row: pd.Series,
    request: CandidateRequest,
    weights: dict[str, float],
) -> float:
    """Compute a heuristic score for a single restaurant row."""
    rating = row.get("rating")
    rating_score = (float(rating) / 5.0) if pd.notna(rating) else 0.0

    meal = row.get("meal_size")
    meal_score = _share(request.meal_votes, {meal} if isinstance(meal, str) else set())
    budget_score = _share(request.budget_votes, _satisfied_budgets(row.get("price_tier")))
    mood_score = _share(request.mood_votes, set(row.get("mood_list", [])))
    distance_score = _share(request.distance_votes, _satisfied_distances(row.get("distance_km")))

    return (
        weights["rating"] * rating_score
        + weights["budget"] * budget_score
        + weights["meal"] * meal_score
        + weights["mood"] * mood_score
        + weights["distance"] * distance_score
    )


def _filter_mask(df: pd.DataFrame, request: CandidateRequest) -> pd.Series:
    mask = pd.Series(True, index=df.index)

    if request.location:
        location_lower = request.location.strip().lower()
        mask = mask & df["locality_lower"].str.contains(location_lower, na=False, regex=False)

    if request.disliked_cuisines:
        disliked = {c.strip().lower() for c in request.disliked_cuisines}
        mask = mask & ~df["cuisine_lower"].isin(disliked)

    if request.allergies:
        allergies = {a.strip().lower() for a in request.allergies}
        mask = mask & df["allergen_list"].apply(lambda tags: not (allergies & set(tags)))

    if request.dietary_requirements:
        required = {d.strip().lower() for d in request.dietary_requirements}
        mask = mask & df["dietary_list"].apply(lambda tags: required <= set(tags))

    return mask


def _to_restaurant(row: pd.Series) -> Restaurant:
    return Restaurant(
        id=str(row["id"]),
        name=row["name"],
        cuisine=row["cuisine"] if pd.notna(row["cuisine"]) else "Various",
        price_tier=row["price_tier"] if pd.notna(row["price_tier"]) else None,
        rating=float(row["rating"]) if pd.notna(row["rating"]) else None,
        description=row["description"] if pd.notna(row["description"]) else "",
        dietary_tags=row["dietary_list"],
        image=row["image"] if pd.notna(row["image"]) else None,
        locality=row["locality"] if pd.notna(row["locality"]) else None,
        meal_size=row["meal_size"] if pd.notna(row["meal_size"]) else None,
        mood_tags=row["mood_list"],
        allergens=row["allergen_list"],
        distance_km=float(row["distance_km"]) if pd.notna(row["distance_km"]) else None,
    )


def get_candidates(
    request: CandidateRequest,
    config: CatalogConfig = DEFAULT_CATALOG_CONFIG,
) -> list[Restaurant]:
    """Rank the catalog against the group's preferences.

    Returns at most ``request.limit`` restaurants, best first. When the hard
    filters leave fewer than ``config.min_candidates`` rows the whole catalog
    is ranked instead, so a picky group still gets something to swipe on.
    """
    df = get_dataframe()
    if df.empty:
        return []

    candidates = df.loc[_filter_mask(df, request)].copy()
    if len(candidates) < config.min_candidates:
        logger.info(
            "Only %d catalog rows passed the group filters, relaxing to the full catalog",
            len(candidates),
        )
        candidates = df.copy()

    candidates["_score"] = candidates.apply(
        _score_row,
        axis=1,
        request=request,
        weights=config.weights,
    )
    candidates["_rating"] = candidates["rating"].fillna(0.0)

    limit = min(request.limit, config.limit)
    top = candidates.sort_values(
        ["_score", "_rating"], ascending=[False, False], kind="mergesort"
    ).head(limit)

    return [_to_restaurant(row) for _, row in top.iterrows()]
