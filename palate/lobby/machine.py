"""
Lobby lifecycle.

    waiting ──start-matching──▶ matching ──all swiped──▶ voting ──all voted──▶ completed
                                                          │  ▲
                                                    tie   ▼  │ revote
                                                       voting (tied)

Any state goes back to ``waiting`` on a host reset. Every function here
mutates the draft lobby it is given; callers run them inside a store
transaction so a raised error leaves the stored lobby as it was.
"""
from __future__ import annotations

import logging
from typing import Callable

from ..errors import InvalidStateError, PreconditionFailedError, UnauthorizedError
from ..recommendations.models import Restaurant
from .config import DEFAULT_LOBBY_CONFIG, LobbyConfig
from .models import Lobby, LobbyStatus
from .swipes import all_done_swiping, compute_ballot
from .vibe import all_ready
from .voting import VoteOutcome, resolve

logger = logging.getLogger(__name__)


def require_host(lobby: Lobby, user_id: str, action: str) -> None:
    """Host powers need both the lobby's host id and a current host seat."""
    participant = lobby.find_participant(user_id)
    if lobby.host_id != user_id or participant is None or not participant.is_host:
        raise UnauthorizedError(f"Only the lobby host can {action}")


def start_matching(
    lobby: Lobby,
    user_id: str,
    fetch_candidates: Callable[[Lobby], list[Restaurant]],
    config: LobbyConfig = DEFAULT_LOBBY_CONFIG,
) -> bool:
    """waiting → matching.

    Returns ``False`` without fetching anything when matching already
    started, so a duplicate trigger is harmless.
    """
    require_host(lobby, user_id, "start matching")
    if lobby.status == LobbyStatus.matching:
        return False
    if lobby.status != LobbyStatus.waiting:
        raise InvalidStateError("Matching can only be started from the waiting room")
    if len(lobby.participants) < config.min_participants:
        raise PreconditionFailedError(
            f"At least {config.min_participants} participants are required to start matching"
        )
    if not all_ready(lobby):
        raise PreconditionFailedError("Every participant has to finish the vibe check first")

    snapshot: list[Restaurant] = []
    seen: set[str] = set()
    for restaurant in fetch_candidates(lobby):
        if restaurant.id in seen:
            continue
        seen.add(restaurant.id)
        snapshot.append(restaurant)
        if len(snapshot) == config.candidate_limit:
            break

    lobby.restaurants = snapshot
    lobby.swipes = []
    lobby.consensus_restaurants = []
    lobby.ballot = []
    lobby.votes = []
    lobby.tied_restaurants = []
    lobby.winning_restaurant = None
    lobby.status = LobbyStatus.matching
    logger.info("Lobby %s started matching with %d candidates", lobby.id, len(snapshot))
    return True


def maybe_open_voting(lobby: Lobby) -> bool:
    """matching → voting once every participant swiped the whole snapshot."""
    if lobby.status != LobbyStatus.matching or not lobby.participants:
        return False
    if not all_done_swiping(lobby):
        return False

    ballot = compute_ballot(lobby)
    lobby.consensus_restaurants = ballot
    lobby.ballot = list(ballot)
    lobby.votes = []
    lobby.tied_restaurants = []
    lobby.status = LobbyStatus.voting
    logger.info("Lobby %s opened voting with %d options", lobby.id, len(ballot))
    return True


def maybe_complete(lobby: Lobby) -> VoteOutcome:
    """voting → completed, or into the tied sub-state."""
    outcome = resolve(lobby)
    if outcome.winner:
        logger.info("Lobby %s completed, winner %s", lobby.id, outcome.winner)
    elif outcome.tied:
        logger.info("Lobby %s tied between %s", lobby.id, ", ".join(outcome.tied))
    return outcome


def claim_visit(lobby: Lobby) -> bool:
    """Flip the one-shot visit guard. Only the first caller gets ``True``."""
    if lobby.status != LobbyStatus.completed or lobby.visit_recorded:
        return False
    lobby.visit_recorded = True
    return True


def revote(lobby: Lobby, user_id: str, tied_only: bool) -> list[str]:
    """voting (tied) → voting with a fresh ballot and no votes."""
    require_host(lobby, user_id, "trigger a revote")
    if not lobby.is_tied:
        raise PreconditionFailedError("Revote is only available when voting ended in a tie")

    lobby.ballot = list(lobby.tied_restaurants) if tied_only else list(lobby.consensus_restaurants)
    lobby.votes = []
    lobby.tied_restaurants = []
    logger.info("Lobby %s revoting on %d options", lobby.id, len(lobby.ballot))
    return lobby.ballot


def reset(lobby: Lobby, user_id: str) -> None:
    """Any state → waiting, keeping the participants."""
    require_host(lobby, user_id, "reset the lobby")
    lobby.restaurants = []
    lobby.swipes = []
    lobby.consensus_restaurants = []
    lobby.ballot = []
    lobby.votes = []
    lobby.tied_restaurants = []
    lobby.winning_restaurant = None
    lobby.visit_recorded = False
    lobby.status = LobbyStatus.waiting
    lobby.round += 1
    for participant in lobby.participants:
        participant.is_ready = False
        participant.vibe_check = None
    logger.info("Lobby %s reset for round %d", lobby.id, lobby.round)


def settle(lobby: Lobby) -> tuple[bool, VoteOutcome]:
    """Run every automatic transition the current ledger allows."""
    opened = maybe_open_voting(lobby)
    return opened, maybe_complete(lobby)

