from __future__ import annotations

from typing import Any

from ..errors import InvalidStateError, UnauthorizedError, ValidationError
from .models import Lobby, LobbyStatus, Participant


def new_lobby(code: str, host: dict[str, Any], name: str | None = None) -> Lobby:
    """Build a lobby whose only participant is its host."""
    return Lobby(
        code=code,
        name=name or f"Lobby {code}",
        host_id=host["user_id"],
        participants=[
            Participant(user_id=host["user_id"], name=host["username"], is_host=True),
        ],
    )


def add_participant(lobby: Lobby, user: dict[str, Any]) -> tuple[Participant, bool]:
    """Add *user* to the lobby.

    Returns ``(participant, created)``. Joining twice hands back the existing
    membership whatever the lobby status is. A host who left and comes back
    takes the host seat again.
    """
    existing = lobby.find_participant(user["user_id"])
    if existing is not None:
        return existing, False

    if lobby.status != LobbyStatus.waiting:
        raise InvalidStateError("Lobby is no longer accepting new participants")

    participant = Participant(
        user_id=user["user_id"],
        name=user["username"],
        is_host=user["user_id"] == lobby.host_id,
    )
    lobby.participants.append(participant)
    return participant, True


def remove_participant(lobby: Lobby, user_id: str) -> Participant:
    """Drop *user_id* and everything they contributed to the current round.

    The host flag is never handed to someone else.
    """
    participant = lobby.find_participant(user_id)
    if participant is None:
        raise ValidationError("You are not a participant in this lobby")

    lobby.participants = [p for p in lobby.participants if p.user_id != user_id]
    lobby.swipes = [s for s in lobby.swipes if s.user_id != user_id]
    lobby.votes = [v for v in lobby.votes if v.user_id != user_id]
    return participant


def require_participant(lobby: Lobby, user_id: str, action: str) -> Participant:
    participant = lobby.find_participant(user_id)
    if participant is None:
        raise UnauthorizedError(f"You must be a participant to {action}")
    return participant
