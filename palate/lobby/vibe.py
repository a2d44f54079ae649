from __future__ import annotations

from collections import Counter
from typing import Any, Callable

from ..errors import InvalidStateError
from ..recommendations.models import CandidateRequest
from .models import (
    Lobby,
    LobbyStatus,
    VibeCheck,
    VibeStatusParticipant,
    VibeStatusResponse,
)
from .participants import require_participant

_WILDCARDS = {"any", "anywhere"}


def apply_vibe_check(lobby: Lobby, user_id: str, vibe: VibeCheck) -> VibeCheck:
    """Store (or overwrite) the caller's vibe check and mark them ready."""
    if lobby.status != LobbyStatus.waiting:
        raise InvalidStateError("Vibe check can only be submitted while waiting")
    participant = require_participant(lobby, user_id, "submit a vibe check")
    participant.vibe_check = vibe
    participant.is_ready = True
    return vibe


def all_ready(lobby: Lobby) -> bool:
    return bool(lobby.participants) and all(p.is_ready for p in lobby.participants)


def vibe_status(lobby: Lobby, user_id: str | None) -> VibeStatusResponse:
    me = lobby.find_participant(user_id) if user_id else None
    return VibeStatusResponse(
        status=lobby.status,
        user_vibe_check=me.vibe_check if me else None,
        user_is_ready=me.is_ready if me else False,
        participants=[
            VibeStatusParticipant(
                user_id=p.user_id,
                name=p.name,
                is_ready=p.is_ready,
                has_vibe_check=p.vibe_check is not None,
            )
            for p in lobby.participants
        ],
        all_ready=all_ready(lobby),
        ready_count=sum(1 for p in lobby.participants if p.is_ready),
        total_count=len(lobby.participants),
    )


def _count(values: list[str]) -> dict[str, int]:
    return dict(Counter(v for v in values if v not in _WILDCARDS))


def aggregate_preferences(
    lobby: Lobby,
    profile_lookup: Callable[[str], dict[str, Any]],
    *,
    location: str | None = None,
    limit: int = 20,
) -> CandidateRequest:
    """Fold every participant's vibe check and saved profile into one request.

    Allergies and disliked cuisines are unioned (anyone can veto); dietary
    requirements are intersected (only what everybody needs is enforced).
    """
    vibes = [p.vibe_check or VibeCheck() for p in lobby.participants]

    allergies: set[str] = set()
    disliked: set[str] = set()
    dietary: set[str] | None = None
    for participant in lobby.participants:
        prefs = profile_lookup(participant.user_id) or {}
        allergies.update(prefs.get("allergies") or [])
        disliked.update(prefs.get("disliked_cuisines") or [])
        mine = set(prefs.get("dietary_preferences") or [])
        dietary = mine if dietary is None else dietary & mine

    return CandidateRequest(
        participant_count=len(lobby.participants),
        budget_votes=_count([v.budget_today.value for v in vibes]),
        meal_votes=_count([v.meal_type.value for v in vibes]),
        mood_votes=_count([v.mood.value for v in vibes]),
        distance_votes=_count([v.distance.value for v in vibes]),
        allergies=sorted(allergies),
        dietary_requirements=sorted(dietary or set()),
        disliked_cuisines=sorted(disliked),
        location=location,
        limit=limit,
    )
