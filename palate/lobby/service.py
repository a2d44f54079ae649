from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Callable

from ..auth.users import get_preferences
from ..errors import InvalidStateError, NotFoundError
from ..recommendations.models import CandidateRequest, Restaurant
from ..recommendations.retrieval import get_candidates
from ..visits.store import record_visit
from . import machine
from .codes import CodeGenerationError, generate_code, normalize_code
from .config import DEFAULT_LOBBY_CONFIG, LobbyConfig
from .models import (
    ActionResponse,
    BallotEntry,
    LeaveResponse,
    Lobby,
    LobbyOut,
    LobbyStatus,
    ParticipantOut,
    RestaurantsResponse,
    ResultsResponse,
    RevoteResponse,
    SwipeDirection,
    SwipeResponse,
    VibeCheck,
    VibeCheckResponse,
    VibeStatusResponse,
    VoteResponse,
    VotingDataResponse,
    utcnow,
)
from .participants import add_participant, new_lobby, remove_participant
from .store import CodeInUseError, LobbyStore
from .swipes import record_swipe, remaining_for, swipe_progress
from .vibe import aggregate_preferences, all_ready, apply_vibe_check, vibe_status
from .voting import cast_vote, tally, voting_data

logger = logging.getLogger(__name__)

CandidateSupplier = Callable[[CandidateRequest], list[Restaurant]]
VisitRecorder = Callable[[str, str, int, dict[str, Any]], Any]
ProfileLookup = Callable[[str], dict[str, Any]]


def _profile_or_empty(user_id: str) -> dict[str, Any]:
    try:
        return get_preferences(user_id)
    except NotFoundError:
        return {}


def lobby_out(lobby: Lobby) -> LobbyOut:
    return LobbyOut(
        id=lobby.id,
        code=lobby.code,
        name=lobby.name,
        host_id=lobby.host_id,
        status=lobby.status,
        participants=[
            ParticipantOut(
                user_id=p.user_id,
                name=p.name,
                is_host=p.is_host,
                is_ready=p.is_ready,
                has_vibe_check=p.vibe_check is not None,
            )
            for p in lobby.participants
        ],
        restaurants=lobby.restaurants,
        round=lobby.round,
    )


class LobbyService:
    """Every lobby operation a request can trigger.

    Each mutating call is one store transaction. Collaborators (candidate
    supplier, visit recorder, profile lookup) are injected so tests can
    swap them out.
    """

    def __init__(
        self,
        store: LobbyStore | None = None,
        *,
        supplier: CandidateSupplier = get_candidates,
        visit_recorder: VisitRecorder = record_visit,
        profile_lookup: ProfileLookup = _profile_or_empty,
        config: LobbyConfig = DEFAULT_LOBBY_CONFIG,
    ) -> None:
        self.store = store or LobbyStore()
        self._supplier = supplier
        self._visit_recorder = visit_recorder
        self._profile_lookup = profile_lookup
        self._config = config

    # ── Participant registry ─────────────────────────────────────────────

    def create_lobby(self, host: dict[str, Any], name: str | None = None) -> Lobby:
        self.store.purge_older_than(utcnow() - self._config.lobby_ttl)
        # The free-code check and the insert are separate steps, so a code can
        # be claimed in between; redraw when that happens.
        for _ in range(self._config.code_attempts):
            code = generate_code(self.store.code_in_use, config=self._config)
            try:
                lobby = self.store.insert(new_lobby(code, host, name))
            except CodeInUseError:
                logger.debug("Code %s was claimed before insert, redrawing", code)
                continue
            logger.info("Created lobby %s with code %s for %s", lobby.id, code, host["user_id"])
            return lobby
        raise CodeGenerationError()

    def join_lobby(self, raw_code: str | int, user: dict[str, Any]) -> Lobby:
        code = normalize_code(raw_code)
        lobby_id = self.store.get_by_code(code).id
        with self.store.transaction(lobby_id) as lobby:
            _, created = add_participant(lobby, user)
        if created:
            logger.info("User %s joined lobby %s", user["user_id"], lobby_id)
        return lobby

    def get_lobby(self, lobby_id: str) -> LobbyOut:
        return lobby_out(self.store.get(lobby_id))

    def leave_lobby(self, lobby_id: str, user_id: str) -> LeaveResponse:
        with self.store.transaction(lobby_id) as lobby:
            participant = remove_participant(lobby, user_id)
            # The leaver may have been the one everybody was waiting on
            machine.settle(lobby)
            visit_due = machine.claim_visit(lobby)
        if visit_due:
            self._record_visits(lobby)

        deleted = self.store.delete_if_empty(lobby_id)
        if participant.is_host and not deleted:
            logger.warning("Host %s left lobby %s; the lobby has no host now", user_id, lobby_id)
        return LeaveResponse(
            message="You left the lobby. Lobby was deleted as no participants remain."
            if deleted
            else "You left the lobby.",
            lobby_deleted=deleted,
        )

    # ── Vibe check ───────────────────────────────────────────────────────

    def submit_vibe_check(self, lobby_id: str, user_id: str, vibe: VibeCheck) -> VibeCheckResponse:
        with self.store.transaction(lobby_id) as lobby:
            stored = apply_vibe_check(lobby, user_id, vibe)
        return VibeCheckResponse(vibe_check=stored, all_ready=all_ready(lobby))

    def get_vibe_status(self, lobby_id: str, user_id: str) -> VibeStatusResponse:
        return vibe_status(self.store.get(lobby_id), user_id)

    # ── Matching ─────────────────────────────────────────────────────────

    def start_matching(
        self, lobby_id: str, user_id: str, location: str | None = None
    ) -> ActionResponse:
        def fetch(lobby: Lobby) -> list[Restaurant]:
            request = aggregate_preferences(
                lobby,
                self._profile_lookup,
                location=location,
                limit=self._config.candidate_limit,
            )
            return self._supplier(request)

        with self.store.transaction(lobby_id) as lobby:
            started = machine.start_matching(lobby, user_id, fetch, self._config)
            # An empty snapshot means there is nothing to swipe on
            machine.settle(lobby)

        return ActionResponse(
            message="Matching started" if started else "Matching already in progress",
            lobby_status=lobby.status,
        )

    def get_restaurants(self, lobby_id: str, user_id: str) -> RestaurantsResponse:
        lobby = self.store.get(lobby_id)
        if lobby.status == LobbyStatus.waiting:
            raise InvalidStateError("Lobby is not in matching phase")
        remaining = remaining_for(lobby, user_id)
        total = len(lobby.restaurants)
        return RestaurantsResponse(
            status=lobby.status,
            restaurants=lobby.restaurants,
            remaining_restaurant_ids=remaining,
            total_restaurants=total,
            swiped_count=total - len(remaining),
            remaining_count=len(remaining),
        )

    def swipe(
        self,
        lobby_id: str,
        user_id: str,
        restaurant_id: str,
        direction: SwipeDirection,
    ) -> SwipeResponse:
        with self.store.transaction(lobby_id) as lobby:
            record_swipe(lobby, user_id, restaurant_id, direction)
            progress = swipe_progress(lobby, user_id)
            opened = machine.maybe_open_voting(lobby)
        return SwipeResponse(
            progress=progress,
            transitioned_to_voting=opened,
            lobby_status=lobby.status,
        )

    # ── Voting ───────────────────────────────────────────────────────────

    def get_voting_data(self, lobby_id: str, user_id: str) -> VotingDataResponse:
        return voting_data(self.store.get(lobby_id), user_id)

    def vote(self, lobby_id: str, user_id: str, restaurant_id: str) -> VoteResponse:
        with self.store.transaction(lobby_id) as lobby:
            cast_vote(lobby, user_id, restaurant_id)
            outcome = machine.maybe_complete(lobby)
            visit_due = machine.claim_visit(lobby)
        if visit_due:
            self._record_visits(lobby)

        if outcome.tied:
            message = "Voting complete but resulted in a tie"
        elif outcome.winner:
            message = "Voting complete"
        else:
            message = "Vote recorded"
        return VoteResponse(
            message=message,
            all_voted=outcome.all_voted,
            winner=outcome.winner,
            is_tied=bool(outcome.tied),
            tied_restaurants=outcome.tied,
            lobby_status=lobby.status,
        )

    def revote(self, lobby_id: str, user_id: str, tied_only: bool) -> RevoteResponse:
        with self.store.transaction(lobby_id) as lobby:
            ballot = machine.revote(lobby, user_id, tied_only)
        return RevoteResponse(
            message="Revoting with tied restaurants only"
            if tied_only
            else "Revoting with all consensus restaurants",
            ballot=ballot,
        )

    def get_results(self, lobby_id: str) -> ResultsResponse:
        lobby = self.store.get(lobby_id)
        if lobby.status != LobbyStatus.completed:
            raise InvalidStateError("Voting is not yet complete")
        counts = tally(lobby)
        winner = lobby.restaurant_by_id(lobby.winning_restaurant or "")
        return ResultsResponse(
            status=lobby.status,
            winner=BallotEntry(restaurant=winner, vote_count=counts[winner.id]) if winner else None,
            total_votes=len(lobby.votes),
            participant_count=len(lobby.participants),
        )

    # ── Session management ───────────────────────────────────────────────

    def reset(self, lobby_id: str, user_id: str) -> ActionResponse:
        with self.store.transaction(lobby_id) as lobby:
            machine.reset(lobby, user_id)
        return ActionResponse(message="Lobby reset successfully", lobby_status=lobby.status)

    def _record_visits(self, lobby: Lobby) -> None:
        winner = lobby.restaurant_by_id(lobby.winning_restaurant or "")
        if winner is None:
            return
        for participant in lobby.participants:
            try:
                self._visit_recorder(
                    participant.user_id, lobby.id, lobby.round, winner.model_dump()
                )
            except Exception:
                logger.warning(
                    "Failed to record visit for %s in lobby %s",
                    participant.user_id,
                    lobby.id,
                    exc_info=True,
                )


@lru_cache()
def get_lobby_service() -> LobbyService:
    return LobbyService()
