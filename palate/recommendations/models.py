from __future__ import annotations

from pydantic import BaseModel, Field


class Restaurant(BaseModel):
    id: str
    name: str
    cuisine: str
    price_tier: str | None = None
    rating: float | None = None
    description: str = ""
    dietary_tags: list[str] = Field(default_factory=list)
    image: str | None = None
    locality: str | None = None
    meal_size: str | None = None
    mood_tags: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)
    distance_km: float | None = None


class CandidateRequest(BaseModel):
    """Group preferences handed to the candidate supplier.

    The ``*_votes`` maps count how many participants asked for each concrete
    answer; wildcard answers are not counted.
    """

    participant_count: int = Field(default=0, ge=0)
    budget_votes: dict[str, int] = Field(default_factory=dict)
    meal_votes: dict[str, int] = Field(default_factory=dict)
    mood_votes: dict[str, int] = Field(default_factory=dict)
    distance_votes: dict[str, int] = Field(default_factory=dict)
    allergies: list[str] = Field(default_factory=list)
    dietary_requirements: list[str] = Field(default_factory=list)
    disliked_cuisines: list[str] = Field(default_factory=list)
    location: str | None = None
    limit: int = Field(default=20, ge=1, le=50)
