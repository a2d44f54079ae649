from __future__ import annotations

import threading
import time
import uuid
from typing import Any

from ..errors import NotFoundError

_visits: dict[str, list[dict[str, Any]]] = {}
_lock = threading.Lock()


def record_visit(
    user_id: str,
    lobby_id: str,
    round_number: int,
    restaurant: dict[str, Any],
) -> dict[str, Any]:
    """Add a visit to *user_id*'s history, newest first.

    A second call for the same ``(user_id, lobby_id, round_number)`` returns the
    visit that is already stored instead of adding another.
    """
    with _lock:
        history = _visits.setdefault(user_id, [])
        for visit in history:
            if visit["lobby_id"] == lobby_id and visit["round"] == round_number:
                return visit
        visit = {
            "id": uuid.uuid4().hex,
            "user_id": user_id,
            "lobby_id": lobby_id,
            "round": round_number,
            "restaurant_id": restaurant["id"],
            "restaurant_name": restaurant["name"],
            "restaurant_cuisine": restaurant.get("cuisine"),
            "restaurant_image": restaurant.get("image"),
            "visited_at": time.time(),
            "rating": None,
            "review": None,
            "would_return": None,
            "feedback_completed": False,
            "feedback_at": None,
        }
        history.insert(0, visit)
        return visit


def get_visits(user_id: str) -> list[dict[str, Any]]:
    return list(_visits.get(user_id, []))


def get_pending_feedback(user_id: str) -> list[dict[str, Any]]:
    return [v for v in _visits.get(user_id, []) if not v["feedback_completed"]]


def record_feedback(
    user_id: str,
    visit_id: str,
    rating: int,
    review: str | None = None,
    would_return: bool | None = None,
) -> dict[str, Any]:
    with _lock:
        for visit in _visits.get(user_id, []):
            if visit["id"] == visit_id:
                visit.update({
                    "rating": rating,
                    "review": review,
                    "would_return": would_return,
                    "feedback_completed": True,
                    "feedback_at": time.time(),
                })
                return visit
    raise NotFoundError("Visit not found")


def get_visit(user_id: str, visit_id: str) -> dict[str, Any]:
    for visit in _visits.get(user_id, []):
        if visit["id"] == visit_id:
            return visit
    raise NotFoundError("Visit not found")


def update_visit(
    user_id: str,
    visit_id: str,
    rating: int | None = None,
    review: str | None = None,
) -> dict[str, Any]:
    """Edit the rating or review of a stored visit. Omitted fields are kept."""
    with _lock:
        visit = get_visit(user_id, visit_id)
        if rating is not None:
            visit["rating"] = rating
        if review is not None:
            visit["review"] = review
        return visit


def clear_visits() -> None:
    with _lock:
        _visits.clear()
