from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from ..visits.models import VisitOut


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=8, max_length=72)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class GuestRequest(BaseModel):
    name: str | None = Field(default=None, max_length=32)


class UserOut(BaseModel):
    user_id: str
    username: str
    is_guest: bool


class TokenResponse(BaseModel):
    token: str
    user: UserOut


class PreferencesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    budget: str = Field(default="any", pattern="^(cheap|moderate|fancy|any)$")
    allergies: list[str] = Field(default_factory=list)
    dietary_preferences: list[str] = Field(default_factory=list, alias="dietaryPreferences")
    disliked_cuisines: list[str] = Field(default_factory=list, alias="dislikedCuisines")


class Preferences(BaseModel):
    budget: str
    allergies: list[str]
    dietary_preferences: list[str]
    disliked_cuisines: list[str]


class ProfileResponse(BaseModel):
    user: UserOut
    preferences: Preferences
    recent_visits: list[VisitOut]
    total_visits: int
    pending_feedback: int
