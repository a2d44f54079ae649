from __future__ import annotations

from collections import Counter

from ..errors import ConflictError, InvalidStateError, ValidationError
from .models import (
    Lobby,
    LobbyStatus,
    ParticipantProgress,
    Swipe,
    SwipeDirection,
    SwipeProgress,
)
from .participants import require_participant


class DuplicateSwipeError(ConflictError):
    code = "DUPLICATE_SWIPE"
    default_message = "You already swiped on this restaurant"


def record_swipe(
    lobby: Lobby,
    user_id: str,
    restaurant_id: str,
    direction: SwipeDirection,
) -> Swipe:
    """Append one like/pass decision to the round's ledger.

    A swipe is final: a second one for the same restaurant is rejected.
    """
    if lobby.status != LobbyStatus.matching:
        raise InvalidStateError("Lobby is not in matching phase")
    require_participant(lobby, user_id, "swipe")
    if lobby.restaurant_by_id(restaurant_id) is None:
        raise ValidationError("Restaurant is not part of this round")
    for swipe in lobby.swipes:
        if swipe.user_id == user_id and swipe.restaurant_id == restaurant_id:
            raise DuplicateSwipeError()

    swipe = Swipe(user_id=user_id, restaurant_id=restaurant_id, direction=direction)
    lobby.swipes.append(swipe)
    return swipe


def _swiped_ids(lobby: Lobby, user_id: str) -> set[str]:
    snapshot = {r.id for r in lobby.restaurants}
    return {s.restaurant_id for s in lobby.swipes if s.user_id == user_id and s.restaurant_id in snapshot}


def is_done_swiping(lobby: Lobby, user_id: str) -> bool:
    return len(_swiped_ids(lobby, user_id)) == len(lobby.restaurants)


def all_done_swiping(lobby: Lobby) -> bool:
    return all(is_done_swiping(lobby, p.user_id) for p in lobby.participants)


def remaining_for(lobby: Lobby, user_id: str) -> list[str]:
    """Snapshot ids *user_id* still has to swipe on, in snapshot order."""
    swiped = _swiped_ids(lobby, user_id)
    return [r.id for r in lobby.restaurants if r.id not in swiped]


def swipe_progress(lobby: Lobby, user_id: str) -> SwipeProgress:
    total = len(lobby.restaurants)
    participants = [
        ParticipantProgress(
            user_id=p.user_id,
            swiped_count=len(_swiped_ids(lobby, p.user_id)),
            total_restaurants=total,
            done=is_done_swiping(lobby, p.user_id),
        )
        for p in lobby.participants
    ]
    mine = len(_swiped_ids(lobby, user_id))
    return SwipeProgress(
        user_swipe_count=mine,
        total_restaurants=total,
        user_done=mine == total,
        all_done=all(p.done for p in participants),
        participants=participants,
    )


def compute_ballot(lobby: Lobby) -> list[str]:
    """Restaurants every participant swiped right on, in snapshot order."""
    if not lobby.participants:
        return []
    likes = Counter(
        s.restaurant_id
        for s in lobby.swipes
        if s.direction == SwipeDirection.right and lobby.find_participant(s.user_id)
    )
    needed = len(lobby.participants)
    return [r.id for r in lobby.restaurants if likes[r.id] == needed]
