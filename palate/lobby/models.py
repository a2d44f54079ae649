from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from ..recommendations.models import Restaurant


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LobbyStatus(str, Enum):
    waiting = "waiting"
    matching = "matching"
    voting = "voting"
    completed = "completed"


class MealType(str, Enum):
    light = "light"
    moderate = "moderate"
    heavy = "heavy"
    any = "any"


class Budget(str, Enum):
    cheap = "cheap"
    moderate = "moderate"
    fancy = "fancy"
    any = "any"


class Mood(str, Enum):
    adventurous = "adventurous"
    comfort = "comfort"
    healthy = "healthy"
    indulgent = "indulgent"
    any = "any"


class Distance(str, Enum):
    nearby = "nearby"
    moderate = "moderate"
    anywhere = "anywhere"


class SwipeDirection(str, Enum):
    left = "left"
    right = "right"


# ── Lobby document ───────────────────────────────────────────────────────


class VibeCheck(BaseModel):
    meal_type: MealType = MealType.any
    budget_today: Budget = Budget.any
    mood: Mood = Mood.any
    distance: Distance = Distance.anywhere


class Participant(BaseModel):
    user_id: str
    name: str
    is_host: bool = False
    is_ready: bool = False
    vibe_check: VibeCheck | None = None
    joined_at: datetime = Field(default_factory=utcnow)


class Swipe(BaseModel):
    user_id: str
    restaurant_id: str
    direction: SwipeDirection
    timestamp: datetime = Field(default_factory=utcnow)


class Vote(BaseModel):
    user_id: str
    restaurant_id: str
    timestamp: datetime = Field(default_factory=utcnow)


class Lobby(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    code: str
    name: str
    host_id: str
    participants: list[Participant] = Field(default_factory=list)
    status: LobbyStatus = LobbyStatus.waiting
    restaurants: list[Restaurant] = Field(default_factory=list)
    swipes: list[Swipe] = Field(default_factory=list)
    # Full ballot as computed when voting opened
    consensus_restaurants: list[str] = Field(default_factory=list)
    # Ballot currently being voted on (narrowed by a tied-only revote)
    ballot: list[str] = Field(default_factory=list)
    votes: list[Vote] = Field(default_factory=list)
    tied_restaurants: list[str] = Field(default_factory=list)
    winning_restaurant: str | None = None
    visit_recorded: bool = False
    round: int = 1
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def find_participant(self, user_id: str) -> Participant | None:
        for participant in self.participants:
            if participant.user_id == user_id:
                return participant
        return None

    def restaurant_by_id(self, restaurant_id: str) -> Restaurant | None:
        for restaurant in self.restaurants:
            if restaurant.id == restaurant_id:
                return restaurant
        return None

    @property
    def is_tied(self) -> bool:
        return self.status == LobbyStatus.voting and len(self.tied_restaurants) > 1


# ── Requests ─────────────────────────────────────────────────────────────


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateLobbyRequest(_CamelRequest):
    name: str | None = Field(default=None, max_length=64)
    guest_name: str | None = Field(default=None, alias="guestName", max_length=32)


class JoinLobbyRequest(_CamelRequest):
    code: str | int
    guest_name: str | None = Field(default=None, alias="guestName", max_length=32)


class StartMatchingRequest(_CamelRequest):
    location: str | None = Field(default=None, max_length=128)


class VibeCheckRequest(_CamelRequest):
    meal_type: MealType | None = Field(default=None, alias="mealType")
    budget_today: Budget | None = Field(default=None, alias="budgetToday")
    mood: Mood | None = None
    distance: Distance | None = None

    def to_vibe_check(self) -> VibeCheck:
        return VibeCheck(
            meal_type=self.meal_type or MealType.any,
            budget_today=self.budget_today or Budget.any,
            mood=self.mood or Mood.any,
            distance=self.distance or Distance.anywhere,
        )


class SwipeRequest(_CamelRequest):
    restaurant_id: str = Field(..., min_length=1, alias="restaurantId")
    direction: SwipeDirection


class VoteRequest(_CamelRequest):
    restaurant_id: str = Field(..., min_length=1, alias="restaurantId")


class RevoteRequest(_CamelRequest):
    use_tied_only: bool = Field(default=False, alias="useTiedOnly")


# ── Responses ────────────────────────────────────────────────────────────


class LobbyMembershipResponse(BaseModel):
    lobby_id: str
    code: str
    token: str | None = None


class ParticipantOut(BaseModel):
    user_id: str
    name: str
    is_host: bool
    is_ready: bool
    has_vibe_check: bool


class LobbyOut(BaseModel):
    id: str
    code: str
    name: str
    host_id: str
    status: LobbyStatus
    participants: list[ParticipantOut]
    restaurants: list[Restaurant]
    round: int


class ActionResponse(BaseModel):
    success: bool = True
    message: str
    lobby_status: LobbyStatus | None = None


class VibeStatusParticipant(BaseModel):
    user_id: str
    name: str
    is_ready: bool
    has_vibe_check: bool


class VibeCheckResponse(BaseModel):
    success: bool = True
    vibe_check: VibeCheck
    all_ready: bool


class VibeStatusResponse(BaseModel):
    status: LobbyStatus
    user_vibe_check: VibeCheck | None
    user_is_ready: bool
    participants: list[VibeStatusParticipant]
    all_ready: bool
    ready_count: int
    total_count: int


class ParticipantProgress(BaseModel):
    user_id: str
    swiped_count: int
    total_restaurants: int
    done: bool


class SwipeProgress(BaseModel):
    user_swipe_count: int
    total_restaurants: int
    user_done: bool
    all_done: bool
    participants: list[ParticipantProgress]


class RestaurantsResponse(BaseModel):
    status: LobbyStatus
    restaurants: list[Restaurant]
    remaining_restaurant_ids: list[str]
    total_restaurants: int
    swiped_count: int
    remaining_count: int


class SwipeResponse(BaseModel):
    success: bool = True
    progress: SwipeProgress
    transitioned_to_voting: bool
    lobby_status: LobbyStatus


class BallotEntry(BaseModel):
    restaurant: Restaurant
    vote_count: int


class VotingDataResponse(BaseModel):
    status: LobbyStatus
    restaurants: list[BallotEntry]
    user_vote: str | None
    all_voted: bool
    participant_count: int
    vote_count: int
    winning_restaurant: str | None
    is_tied: bool
    tied_restaurants: list[str]


class VoteResponse(BaseModel):
    success: bool = True
    message: str
    all_voted: bool
    winner: str | None
    is_tied: bool
    tied_restaurants: list[str]
    lobby_status: LobbyStatus


class RevoteResponse(BaseModel):
    success: bool = True
    message: str
    ballot: list[str]


class ResultsResponse(BaseModel):
    status: LobbyStatus
    winner: BallotEntry | None
    total_votes: int
    participant_count: int


class LeaveResponse(BaseModel):
    success: bool = True
    message: str
    lobby_deleted: bool
