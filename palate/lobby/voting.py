from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from ..errors import InvalidStateError, ValidationError
from .models import BallotEntry, Lobby, LobbyStatus, Vote, VotingDataResponse, utcnow
from .participants import require_participant


@dataclass
class VoteOutcome:
    all_voted: bool
    winner: str | None = None
    tied: list[str] = field(default_factory=list)


def cast_vote(lobby: Lobby, user_id: str, restaurant_id: str) -> Vote:
    """Record (or replace) the caller's vote on the current ballot."""
    if lobby.status != LobbyStatus.voting:
        raise InvalidStateError("Lobby is not in voting phase")
    if lobby.is_tied:
        raise InvalidStateError("Voting ended in a tie, waiting for the host to start a revote")
    require_participant(lobby, user_id, "vote")
    if restaurant_id not in lobby.ballot:
        raise ValidationError("Restaurant is not in the voting options")

    for vote in lobby.votes:
        if vote.user_id == user_id:
            vote.restaurant_id = restaurant_id
            vote.timestamp = utcnow()
            return vote

    vote = Vote(user_id=user_id, restaurant_id=restaurant_id)
    lobby.votes.append(vote)
    return vote


def tally(lobby: Lobby) -> Counter[str]:
    return Counter(v.restaurant_id for v in lobby.votes)


def voter_count(lobby: Lobby) -> int:
    voted = {v.user_id for v in lobby.votes}
    return sum(1 for p in lobby.participants if p.user_id in voted)


def all_voted(lobby: Lobby) -> bool:
    return bool(lobby.participants) and voter_count(lobby) == len(lobby.participants)


def resolve(lobby: Lobby) -> VoteOutcome:
    """Settle the round once everyone has voted.

    A single leader completes the lobby. Several restaurants sharing the top
    count put the lobby in the tied sub-state; nothing is picked for the group.
    """
    if lobby.status != LobbyStatus.voting or lobby.is_tied or not all_voted(lobby):
        return VoteOutcome(all_voted=all_voted(lobby), tied=list(lobby.tied_restaurants))

    counts = tally(lobby)
    if not counts:
        return VoteOutcome(all_voted=True)

    top = max(counts.values())
    leaders = [rid for rid in lobby.ballot if counts[rid] == top]
    if len(leaders) == 1:
        lobby.winning_restaurant = leaders[0]
        lobby.status = LobbyStatus.completed
        return VoteOutcome(all_voted=True, winner=leaders[0])

    lobby.tied_restaurants = leaders
    return VoteOutcome(all_voted=True, tied=leaders)


def voting_data(lobby: Lobby, user_id: str | None) -> VotingDataResponse:
    if lobby.status not in (LobbyStatus.voting, LobbyStatus.completed):
        raise InvalidStateError("Lobby is not in voting phase")

    counts = tally(lobby)
    entries = []
    for rid in lobby.ballot:
        restaurant = lobby.restaurant_by_id(rid)
        if restaurant is not None:
            entries.append(BallotEntry(restaurant=restaurant, vote_count=counts[rid]))

    user_vote = next((v.restaurant_id for v in lobby.votes if v.user_id == user_id), None)
    return VotingDataResponse(
        status=lobby.status,
        restaurants=entries,
        user_vote=user_vote,
        all_voted=all_voted(lobby),
        participant_count=len(lobby.participants),
        vote_count=voter_count(lobby),
        winning_restaurant=lobby.winning_restaurant,
        is_tied=lobby.is_tied,
        tied_restaurants=list(lobby.tied_restaurants) if lobby.is_tied else [],
    )
