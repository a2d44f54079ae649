from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from palate.app import app
from palate.lobby.models import Lobby, LobbyStatus, SwipeDirection
from palate.lobby.participants import add_participant, new_lobby
from palate.lobby.service import LobbyService, get_lobby_service
from palate.lobby.store import LobbyStore
from palate.lobby.swipes import record_swipe
from palate.recommendations.models import Restaurant
from palate.visits.store import clear_visits

MENU = [
    Restaurant(id=str(i), name=f"Place {i}", cuisine=cuisine, price_tier="$$", rating=4.0)
    for i, cuisine in enumerate(["Thai", "Italian", "Mexican", "Indian", "Korean"], start=1)
]

ALICE = {"user_id": "alice", "username": "Alice"}
BOB = {"user_id": "bob", "username": "Bob"}


def waiting_lobby(*users: dict, code: str = "384920") -> Lobby:
    """Lobby hosted by Alice with *users* joined, still waiting."""
    lobby = new_lobby(code, ALICE)
    for user in users:
        add_participant(lobby, user)
    return lobby


def matching_lobby(*users: dict, menu: list[Restaurant] = MENU) -> Lobby:
    lobby = waiting_lobby(*users)
    lobby.restaurants = list(menu)
    lobby.status = LobbyStatus.matching
    return lobby


def swipe_all(lobby: Lobby, user_id: str, liked: set[str]) -> None:
    for restaurant in lobby.restaurants:
        direction = SwipeDirection.right if restaurant.id in liked else SwipeDirection.left
        record_swipe(lobby, user_id, restaurant.id, direction)


@pytest.fixture
def supplier() -> MagicMock:
    return MagicMock(return_value=list(MENU))


@pytest.fixture
def lobby_service(supplier: MagicMock) -> LobbyService:
    clear_visits()
    return LobbyService(LobbyStore(), supplier=supplier)


@pytest.fixture
def client(lobby_service: LobbyService) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_lobby_service] = lambda: lobby_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_lobby_service, None)
