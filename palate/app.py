from __future__ import annotations

import math
from typing import Any

from fastapi import Depends, FastAPI, Query

from .auth.dependencies import get_current_user, require_user
from .auth.models import (
    GuestRequest,
    LoginRequest,
    Preferences,
    PreferencesRequest,
    ProfileResponse,
    RegisterRequest,
    TokenResponse,
    UserOut,
)
from .auth.tokens import issue_token
from .auth.users import authenticate, create_guest, get_preferences, register, save_preferences
from .errors import AuthenticationRequiredError, register_error_handlers
from .lobby.models import (
    ActionResponse,
    CreateLobbyRequest,
    JoinLobbyRequest,
    LeaveResponse,
    LobbyMembershipResponse,
    LobbyOut,
    RestaurantsResponse,
    ResultsResponse,
    RevoteRequest,
    RevoteResponse,
    StartMatchingRequest,
    SwipeRequest,
    SwipeResponse,
    VibeCheckRequest,
    VibeCheckResponse,
    VibeStatusResponse,
    VoteRequest,
    VoteResponse,
    VotingDataResponse,
)
from .lobby.service import LobbyService, get_lobby_service
from .visits.models import (
    VisitDetailResponse,
    VisitFeedbackRequest,
    VisitListResponse,
    VisitOut,
    VisitUpdateRequest,
    VisitUpdateResponse,
)
from .visits.store import (
    get_pending_feedback,
    get_visit,
    get_visits,
    record_feedback,
    update_visit,
)

app = FastAPI(title="Palate Group Dining API", version="1.0.0")
register_error_handlers(app)


def _token_response(user: dict[str, Any]) -> TokenResponse:
    return TokenResponse(token=issue_token(user), user=UserOut(**user))


def _identity_or_guest(
    user: dict[str, Any] | None, guest_name: str | None
) -> tuple[dict[str, Any], str | None]:
    """Return the caller, issuing a guest identity (and its token) if there is none."""
    if user is not None:
        return user, None
    guest = create_guest(guest_name)
    return guest, issue_token(guest)


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


# ── Auth endpoints ───────────────────────────────────────────────────────


@app.post("/auth/register", response_model=TokenResponse)
def auth_register(body: RegisterRequest) -> TokenResponse:
    return _token_response(register(body.username, body.password))


@app.post("/auth/login", response_model=TokenResponse)
def auth_login(body: LoginRequest) -> TokenResponse:
    user = authenticate(body.username, body.password)
    if not user:
        raise AuthenticationRequiredError("Invalid credentials")
    return _token_response(user)


@app.post("/auth/guest", response_model=TokenResponse)
def auth_guest(body: GuestRequest | None = None) -> TokenResponse:
    return _token_response(create_guest(body.name if body else None))


@app.get("/auth/me", response_model=UserOut)
def auth_me(user: dict = Depends(require_user)) -> UserOut:
    return UserOut(**user)


# ── Lobby endpoints ──────────────────────────────────────────────────────


@app.post("/lobby/create", response_model=LobbyMembershipResponse)
def lobby_create(
    body: CreateLobbyRequest | None = None,
    user: dict | None = Depends(get_current_user),
    service: LobbyService = Depends(get_lobby_service),
) -> LobbyMembershipResponse:
    body = body or CreateLobbyRequest()
    host, token = _identity_or_guest(user, body.guest_name)
    lobby = service.create_lobby(host, body.name)
    return LobbyMembershipResponse(lobby_id=lobby.id, code=lobby.code, token=token)


@app.post("/lobby/join", response_model=LobbyMembershipResponse)
def lobby_join(
    body: JoinLobbyRequest,
    user: dict | None = Depends(get_current_user),
    service: LobbyService = Depends(get_lobby_service),
) -> LobbyMembershipResponse:
    member, token = _identity_or_guest(user, body.guest_name)
    lobby = service.join_lobby(body.code, member)
    return LobbyMembershipResponse(lobby_id=lobby.id, code=lobby.code, token=token)


@app.get("/lobby/{lobby_id}", response_model=LobbyOut)
def lobby_get(
    lobby_id: str,
    service: LobbyService = Depends(get_lobby_service),
) -> LobbyOut:
    return service.get_lobby(lobby_id)


@app.post("/lobby/{lobby_id}/vibe-check", response_model=VibeCheckResponse)
def lobby_vibe_check(
    lobby_id: str,
    body: VibeCheckRequest,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> VibeCheckResponse:
    return service.submit_vibe_check(lobby_id, user["user_id"], body.to_vibe_check())


@app.get("/lobby/{lobby_id}/vibe-check", response_model=VibeStatusResponse)
def lobby_vibe_status(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> VibeStatusResponse:
    return service.get_vibe_status(lobby_id, user["user_id"])


@app.post("/lobby/{lobby_id}/start-matching", response_model=ActionResponse)
def lobby_start_matching(
    lobby_id: str,
    body: StartMatchingRequest | None = None,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> ActionResponse:
    location = body.location if body else None
    return service.start_matching(lobby_id, user["user_id"], location)


@app.get("/lobby/{lobby_id}/restaurants", response_model=RestaurantsResponse)
def lobby_restaurants(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> RestaurantsResponse:
    return service.get_restaurants(lobby_id, user["user_id"])


@app.post("/lobby/{lobby_id}/swipe", response_model=SwipeResponse)
def lobby_swipe(
    lobby_id: str,
    body: SwipeRequest,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> SwipeResponse:
    return service.swipe(lobby_id, user["user_id"], body.restaurant_id, body.direction)


@app.get("/lobby/{lobby_id}/voting", response_model=VotingDataResponse)
def lobby_voting(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> VotingDataResponse:
    return service.get_voting_data(lobby_id, user["user_id"])


@app.post("/lobby/{lobby_id}/vote", response_model=VoteResponse)
def lobby_vote(
    lobby_id: str,
    body: VoteRequest,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> VoteResponse:
    return service.vote(lobby_id, user["user_id"], body.restaurant_id)


@app.get("/lobby/{lobby_id}/results", response_model=ResultsResponse)
def lobby_results(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> ResultsResponse:
    return service.get_results(lobby_id)


@app.post("/lobby/{lobby_id}/revote", response_model=RevoteResponse)
def lobby_revote(
    lobby_id: str,
    body: RevoteRequest | None = None,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> RevoteResponse:
    tied_only = body.use_tied_only if body else False
    return service.revote(lobby_id, user["user_id"], tied_only)


@app.post("/lobby/{lobby_id}/reset", response_model=ActionResponse)
def lobby_reset(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> ActionResponse:
    return service.reset(lobby_id, user["user_id"])


@app.post("/lobby/{lobby_id}/leave", response_model=LeaveResponse)
def lobby_leave(
    lobby_id: str,
    user: dict = Depends(require_user),
    service: LobbyService = Depends(get_lobby_service),
) -> LeaveResponse:
    return service.leave_lobby(lobby_id, user["user_id"])


# ── User endpoints ───────────────────────────────────────────────────────


@app.get("/user/profile", response_model=ProfileResponse)
def user_profile(user: dict = Depends(require_user)) -> ProfileResponse:
    visits = get_visits(user["user_id"])
    return ProfileResponse(
        user=UserOut(**user),
        preferences=Preferences(**get_preferences(user["user_id"])),
        recent_visits=[VisitOut(**v) for v in visits[:10]],
        total_visits=len(visits),
        pending_feedback=len(get_pending_feedback(user["user_id"])),
    )


@app.post("/user/preferences", response_model=Preferences)
def user_preferences(
    body: PreferencesRequest,
    user: dict = Depends(require_user),
) -> Preferences:
    saved = save_preferences(user["user_id"], body.model_dump())
    return Preferences(**saved)


@app.get("/user/visits", response_model=VisitListResponse)
def user_visits(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    pending_only: bool = False,
    user: dict = Depends(require_user),
) -> VisitListResponse:
    if pending_only:
        visits = get_pending_feedback(user["user_id"])
    else:
        visits = get_visits(user["user_id"])
    start = (page - 1) * limit
    return VisitListResponse(
        visits=[VisitOut(**v) for v in visits[start:start + limit]],
        total=len(visits),
        page=page,
        total_pages=math.ceil(len(visits) / limit),
    )


@app.get("/user/visits/pending", response_model=VisitListResponse)
def user_visits_pending(user: dict = Depends(require_user)) -> VisitListResponse:
    visits = get_pending_feedback(user["user_id"])
    return VisitListResponse(visits=[VisitOut(**v) for v in visits], total=len(visits))


@app.get("/user/visits/{visit_id}", response_model=VisitDetailResponse)
def user_visit_detail(visit_id: str, user: dict = Depends(require_user)) -> VisitDetailResponse:
    return VisitDetailResponse(visit=VisitOut(**get_visit(user["user_id"], visit_id)))


@app.put("/user/visits/{visit_id}", response_model=VisitUpdateResponse)
def user_visit_update(
    visit_id: str,
    body: VisitUpdateRequest,
    user: dict = Depends(require_user),
) -> VisitUpdateResponse:
    visit = update_visit(user["user_id"], visit_id, body.rating, body.review)
    return VisitUpdateResponse(visit=VisitOut(**visit))


@app.post("/user/visits/{visit_id}/feedback", response_model=VisitOut)
def user_visit_feedback(
    visit_id: str,
    body: VisitFeedbackRequest,
    user: dict = Depends(require_user),
) -> VisitOut:
    visit = record_feedback(
        user["user_id"],
        visit_id,
        body.rating,
        body.review,
        body.would_return,
    )
    return VisitOut(**visit)
