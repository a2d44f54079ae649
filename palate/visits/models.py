from __future__ import annotations

from pydantic import BaseModel, Field


class VisitOut(BaseModel):
    id: str
    lobby_id: str
    round: int
    restaurant_id: str
    restaurant_name: str
    restaurant_cuisine: str | None = None
    restaurant_image: str | None = None
    visited_at: float
    rating: int | None = None
    review: str | None = None
    would_return: bool | None = None
    feedback_completed: bool = False
    feedback_at: float | None = None


class VisitFeedbackRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: str | None = Field(default=None, max_length=1000)
    would_return: bool | None = None


class VisitListResponse(BaseModel):
    visits: list[VisitOut]
    total: int
    page: int = 1
    total_pages: int = 1


class VisitUpdateRequest(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    review: str | None = Field(default=None, max_length=1000)


class VisitDetailResponse(BaseModel):
    visit: VisitOut


class VisitUpdateResponse(BaseModel):
    success: bool = True
    message: str = "Visit updated"
    visit: VisitOut
