from __future__ import annotations

from unittest.mock import patch

from conftest import MENU


def _guest(c, name: str) -> dict[str, str]:
    token = c.post("/auth/guest", json={"name": name}).json()["token"]
    return {"Authorization": f"Bearer {token}"}


def _me(c, headers) -> str:
    return c.get("/auth/me", headers=headers).json()["user_id"]


def _lobby_of_two(c):
    host = _guest(c, None)
    guest = _guest(c, None)
    created = c.post("/lobby/create", json={"name": "Dinner"}, headers=host).json()
    c.post("/lobby/join", json={"code": created["code"]}, headers=guest)
    return created["lobby_id"], host, guest


def _ready(c, lobby_id, *headers):
    for h in headers:
        c.post(f"/lobby/{lobby_id}/vibe-check", json={"mood": "comfort"}, headers=h)


def _swipe(c, lobby_id, headers, liked):
    resp = None
    for restaurant in MENU:
        direction = "right" if restaurant.id in liked else "left"
        resp = c.post(
            f"/lobby/{lobby_id}/swipe",
            json={"restaurantId": restaurant.id, "direction": direction},
            headers=headers,
        )
    return resp


def _to_voting(c, liked_by_host=("1", "3", "5"), liked_by_guest=("3", "4", "5")):
    lobby_id, host, guest = _lobby_of_two(c)
    _ready(c, lobby_id, host, guest)
    c.post(f"/lobby/{lobby_id}/start-matching", json={}, headers=host)
    _swipe(c, lobby_id, host, set(liked_by_host))
    _swipe(c, lobby_id, guest, set(liked_by_guest))
    return lobby_id, host, guest


# ── Create / join ────────────────────────────────────────────────────────


@patch("palate.lobby.service.generate_code", return_value="384920")
def test_create_and_join_by_code(_mock_code, client):
    host = _guest(client, "Ana")
    created = client.post("/lobby/create", json={}, headers=host)
    assert created.status_code == 200
    body = created.json()
    assert body["code"] == "384920"
    assert body["token"] is None

    guest = _guest(client, "Bia")
    joined = client.post("/lobby/join", json={"code": "384920"}, headers=guest)
    assert joined.status_code == 200
    assert joined.json()["lobby_id"] == body["lobby_id"]

    lobby = client.get(f"/lobby/{body['lobby_id']}").json()
    assert lobby["status"] == "waiting"
    assert lobby["name"] == "Lobby 384920"
    assert [p["is_host"] for p in lobby["participants"]] == [True, False]
    assert lobby["host_id"] == _me(client, host)


def test_create_without_identity_issues_guest_token(client):
    resp = client.post("/lobby/create", json={"guestName": "Walk-in"})
    body = resp.json()
    assert body["token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {body['token']}"}).json()
    assert me["is_guest"] is True
    lobby = client.get(f"/lobby/{body['lobby_id']}").json()
    assert lobby["host_id"] == me["user_id"]


def test_join_accepts_numeric_code(client):
    host = _guest(client, None)
    created = client.post("/lobby/create", json={}, headers=host).json()
    resp = client.post("/lobby/join", json={"code": int(created["code"])}, headers=_guest(client, None))
    assert resp.status_code == 200


def test_join_twice_is_idempotent(client):
    lobby_id, _, guest = _lobby_of_two(client)
    code = client.get(f"/lobby/{lobby_id}").json()["code"]
    again = client.post("/lobby/join", json={"code": code}, headers=guest)
    assert again.status_code == 200
    assert len(client.get(f"/lobby/{lobby_id}").json()["participants"]) == 2


def test_join_with_malformed_code(client):
    resp = client.post("/lobby/join", json={"code": "12ab56"}, headers=_guest(client, None))
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


def test_join_unknown_code(client):
    resp = client.post("/lobby/join", json={"code": "000000"}, headers=_guest(client, None))
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "NOT_FOUND"


def test_join_after_matching_started_rejected(client):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    code = client.get(f"/lobby/{lobby_id}").json()["code"]
    resp = client.post("/lobby/join", json={"code": code}, headers=_guest(client, None))
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "INVALID_STATE"


def test_unknown_lobby_is_not_found(client):
    assert client.get("/lobby/does-not-exist").status_code == 404


# ── Vibe check / start matching ──────────────────────────────────────────


def test_vibe_check_status_and_start_matching(client, supplier):
    lobby_id, host, guest = _lobby_of_two(client)
    resp = client.post(
        f"/lobby/{lobby_id}/vibe-check",
        json={"mealType": "light", "budgetToday": "cheap", "mood": "healthy", "distance": "nearby"},
        headers=host,
    )
    assert resp.status_code == 200
    assert resp.json()["vibe_check"]["budget_today"] == "cheap"
    assert resp.json()["all_ready"] is False

    client.post(f"/lobby/{lobby_id}/vibe-check", json={}, headers=guest)
    status = client.get(f"/lobby/{lobby_id}/vibe-check", headers=guest).json()
    assert status["all_ready"] is True
    assert status["ready_count"] == 2
    assert status["total_count"] == 2
    assert status["user_vibe_check"]["mood"] == "any"

    started = client.post(
        f"/lobby/{lobby_id}/start-matching", json={"location": "Downtown"}, headers=host
    )
    assert started.status_code == 200
    assert started.json()["lobby_status"] == "matching"

    request = supplier.call_args.args[0]
    assert request.budget_votes == {"cheap": 1}
    assert request.location == "Downtown"

    restaurants = client.get(f"/lobby/{lobby_id}/restaurants", headers=guest).json()
    assert [r["id"] for r in restaurants["restaurants"]] == ["1", "2", "3", "4", "5"]
    assert restaurants["remaining_count"] == 5


def test_saved_preferences_reach_candidate_request(client, supplier):
    lobby_id, host, guest = _lobby_of_two(client)
    client.post(
        "/user/preferences",
        json={"allergies": ["nuts"], "dislikedCuisines": ["Thai"]},
        headers=guest,
    )
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)

    request = supplier.call_args.args[0]
    assert request.allergies == ["nuts"]
    assert request.disliked_cuisines == ["Thai"]
    assert request.participant_count == 2


def test_vibe_check_rejects_unknown_answer(client):
    lobby_id, host, _ = _lobby_of_two(client)
    resp = client.post(f"/lobby/{lobby_id}/vibe-check", json={"mood": "grumpy"}, headers=host)
    assert resp.status_code == 422


def test_non_host_cannot_start_matching(client, supplier):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    resp = client.post(f"/lobby/{lobby_id}/start-matching", headers=guest)
    assert resp.status_code == 403
    assert resp.json()["error"]["code"] == "UNAUTHORIZED"
    assert client.get(f"/lobby/{lobby_id}").json()["status"] == "waiting"
    supplier.assert_not_called()


def test_start_matching_before_everyone_ready(client):
    lobby_id, host, _ = _lobby_of_two(client)
    _ready(client, lobby_id, host)
    resp = client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    assert resp.status_code == 412
    assert resp.json()["error"]["code"] == "PRECONDITION_FAILED"


def test_start_matching_twice_fetches_once(client, supplier):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    again = client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    assert again.status_code == 200
    assert again.json()["message"] == "Matching already in progress"
    assert supplier.call_count == 1


def test_empty_candidate_list_goes_straight_to_voting(client, supplier):
    supplier.return_value = []
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    resp = client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    assert resp.json()["lobby_status"] == "voting"
    voting = client.get(f"/lobby/{lobby_id}/voting", headers=host).json()
    assert voting["restaurants"] == []


def test_restaurants_unavailable_while_waiting(client):
    lobby_id, host, _ = _lobby_of_two(client)
    resp = client.get(f"/lobby/{lobby_id}/restaurants", headers=host)
    assert resp.status_code == 409


# ── Swiping ──────────────────────────────────────────────────────────────


def test_swipes_build_the_ballot(client):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)

    last = _swipe(client, lobby_id, host, {"1", "3", "5"}).json()
    assert last["progress"]["user_done"] is True
    assert last["progress"]["all_done"] is False
    assert last["transitioned_to_voting"] is False

    last = _swipe(client, lobby_id, guest, {"3", "4", "5"}).json()
    assert last["transitioned_to_voting"] is True
    assert last["lobby_status"] == "voting"

    voting = client.get(f"/lobby/{lobby_id}/voting", headers=host).json()
    assert [e["restaurant"]["id"] for e in voting["restaurants"]] == ["3", "5"]


def test_duplicate_swipe_is_conflict(client):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    body = {"restaurantId": "1", "direction": "right"}
    assert client.post(f"/lobby/{lobby_id}/swipe", json=body, headers=host).status_code == 200
    resp = client.post(f"/lobby/{lobby_id}/swipe", json=body, headers=host)
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "DUPLICATE_SWIPE"


def test_outsider_cannot_swipe(client):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    resp = client.post(
        f"/lobby/{lobby_id}/swipe",
        json={"restaurant_id": "1", "direction": "left"},
        headers=_guest(client, None),
    )
    assert resp.status_code == 403


# ── Voting, tie and revote ───────────────────────────────────────────────


def test_tie_then_revote_then_winner_records_one_visit(client):
    lobby_id, host, guest = _to_voting(client)

    first = client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=host).json()
    assert first["all_voted"] is False
    tie = client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "5"}, headers=guest).json()
    assert tie["is_tied"] is True
    assert tie["tied_restaurants"] == ["3", "5"]
    assert tie["lobby_status"] == "voting"

    blocked = client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=guest)
    assert blocked.status_code == 409

    revote = client.post(f"/lobby/{lobby_id}/revote", json={"useTiedOnly": True}, headers=host)
    assert revote.status_code == 200
    assert revote.json()["ballot"] == ["3", "5"]
    voting = client.get(f"/lobby/{lobby_id}/voting", headers=guest).json()
    assert voting["vote_count"] == 0
    assert voting["status"] == "voting"

    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=host)
    done = client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=guest).json()
    assert done["lobby_status"] == "completed"
    assert done["winner"] == "3"

    results = client.get(f"/lobby/{lobby_id}/results", headers=host).json()
    assert results["winner"]["restaurant"]["id"] == "3"
    assert results["winner"]["vote_count"] == 2
    assert results["total_votes"] == 2

    for headers in (host, guest):
        visits = client.get("/user/visits", headers=headers).json()
        assert visits["total"] == 1
        assert visits["visits"][0]["restaurant_id"] == "3"
        assert visits["visits"][0]["lobby_id"] == lobby_id


def test_non_host_cannot_revote(client):
    lobby_id, host, guest = _to_voting(client)
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=host)
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "5"}, headers=guest)
    resp = client.post(f"/lobby/{lobby_id}/revote", json={"useTiedOnly": True}, headers=guest)
    assert resp.status_code == 403


def test_revote_without_tie_is_precondition_failure(client):
    lobby_id, host, _ = _to_voting(client)
    resp = client.post(f"/lobby/{lobby_id}/revote", json={}, headers=host)
    assert resp.status_code == 412


def test_vote_for_restaurant_off_the_ballot(client):
    lobby_id, host, _ = _to_voting(client)
    resp = client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "1"}, headers=host)
    assert resp.status_code == 400


def test_results_before_completion(client):
    lobby_id, host, _ = _to_voting(client)
    resp = client.get(f"/lobby/{lobby_id}/results", headers=host)
    assert resp.status_code == 409


# ── Reset / leave ────────────────────────────────────────────────────────


def test_reset_starts_a_new_round(client, supplier):
    lobby_id, host, guest = _to_voting(client, ("3",), ("3",))
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=host)
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=guest)

    assert client.post(f"/lobby/{lobby_id}/reset", headers=guest).status_code == 403
    resp = client.post(f"/lobby/{lobby_id}/reset", headers=host)
    assert resp.json()["lobby_status"] == "waiting"

    lobby = client.get(f"/lobby/{lobby_id}").json()
    assert lobby["round"] == 2
    assert lobby["restaurants"] == []
    assert len(lobby["participants"]) == 2
    assert not any(p["is_ready"] for p in lobby["participants"])

    # Second round completes and records a second visit
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    _swipe(client, lobby_id, host, {"2"})
    _swipe(client, lobby_id, guest, {"2"})
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "2"}, headers=host)
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "2"}, headers=guest)
    visits = client.get("/user/visits", headers=guest).json()
    assert [v["restaurant_id"] for v in visits["visits"]] == ["2", "3"]
    assert supplier.call_count == 2


def test_leave_unblocks_remaining_swipers(client):
    lobby_id, host, guest = _lobby_of_two(client)
    _ready(client, lobby_id, host, guest)
    client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    _swipe(client, lobby_id, host, {"1", "2"})

    resp = client.post(f"/lobby/{lobby_id}/leave", headers=guest)
    assert resp.status_code == 200
    assert resp.json()["lobby_deleted"] is False

    lobby = client.get(f"/lobby/{lobby_id}").json()
    assert lobby["status"] == "voting"
    assert len(lobby["participants"]) == 1


def test_host_leaving_keeps_lobby_without_host(client):
    lobby_id, host, _ = _lobby_of_two(client)
    client.post(f"/lobby/{lobby_id}/leave", headers=host)
    lobby = client.get(f"/lobby/{lobby_id}").json()
    assert not any(p["is_host"] for p in lobby["participants"])


def test_last_participant_leaving_deletes_lobby(client):
    lobby_id, host, guest = _lobby_of_two(client)
    client.post(f"/lobby/{lobby_id}/leave", headers=guest)
    resp = client.post(f"/lobby/{lobby_id}/leave", headers=host).json()
    assert resp["lobby_deleted"] is True
    assert client.get(f"/lobby/{lobby_id}").status_code == 404


def test_leave_when_not_a_member(client):
    lobby_id, _, _ = _lobby_of_two(client)
    resp = client.post(f"/lobby/{lobby_id}/leave", headers=_guest(client, None))
    assert resp.status_code == 400


def test_departed_host_cannot_reset_or_start_matching(client, supplier):
    lobby_id, host, guest = _lobby_of_two(client)
    third = _guest(client, None)
    code = client.get(f"/lobby/{lobby_id}").json()["code"]
    client.post("/lobby/join", json={"code": code}, headers=third)
    client.post(f"/lobby/{lobby_id}/leave", headers=host)
    _ready(client, lobby_id, guest, third)

    reset = client.post(f"/lobby/{lobby_id}/reset", headers=host)
    assert reset.status_code == 403
    assert reset.json()["error"]["code"] == "UNAUTHORIZED"
    start = client.post(f"/lobby/{lobby_id}/start-matching", headers=host)
    assert start.status_code == 403

    lobby = client.get(f"/lobby/{lobby_id}").json()
    assert lobby["status"] == "waiting"
    assert lobby["round"] == 1
    supplier.assert_not_called()


def test_host_rejoining_is_host_again(client):
    lobby_id, host, guest = _lobby_of_two(client)
    code = client.get(f"/lobby/{lobby_id}").json()["code"]
    client.post(f"/lobby/{lobby_id}/leave", headers=host)

    rejoined = client.post("/lobby/join", json={"code": code}, headers=host)
    assert rejoined.status_code == 200

    lobby = client.get(f"/lobby/{lobby_id}").json()
    hosts = [p["user_id"] for p in lobby["participants"] if p["is_host"]]
    assert hosts == [_me(client, host)]
    assert lobby["host_id"] == hosts[0]
    assert client.post(f"/lobby/{lobby_id}/reset", headers=host).status_code == 200
    assert client.post(f"/lobby/{lobby_id}/reset", headers=guest).status_code == 403


def test_leave_during_voting_completes_and_records_visit_for_those_left(client):
    lobby_id, host, guest = _to_voting(client)
    client.post(f"/lobby/{lobby_id}/vote", json={"restaurantId": "3"}, headers=host)

    resp = client.post(f"/lobby/{lobby_id}/leave", headers=guest)
    assert resp.status_code == 200
    assert resp.json()["lobby_deleted"] is False

    assert client.get(f"/lobby/{lobby_id}").json()["status"] == "completed"
    results = client.get(f"/lobby/{lobby_id}/results", headers=host).json()
    assert results["winner"]["restaurant"]["id"] == "3"

    host_visits = client.get("/user/visits", headers=host).json()
    assert host_visits["total"] == 1
    assert host_visits["visits"][0]["restaurant_id"] == "3"
    assert client.get("/user/visits", headers=guest).json()["total"] == 0
