"""
HTTP API against an in-memory SQLite database.
"""

import threading

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from circus.api.database import get_db, init_db
from circus.api.main import app, game_lock


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    init_db(bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def create_game(client, players=None, board_id="sideshow"):
    players = players or [{"display_name": "Alice"}, {"display_name": "Bob"}]
    resp = client.post("/games", json={"board_id": board_id, "players": players})
    assert resp.status_code == 200, resp.text
    return resp.json()["game_id"]


def play_roll(client, game_id, face):
    """Roll, report face, acknowledge every move. Returns the last response body."""
    body = client.post(f"/games/{game_id}/roll").json()
    body = client.post(f"/games/{game_id}/dice", json={"face": face}).json()
    while body["state"]["awaiting_move"] is not None:
        resp = client.post(f"/games/{game_id}/move-complete", json={"tile_index": body["state"]["awaiting_move"]})
        assert resp.status_code == 200, resp.text
        body = resp.json()
    return body


def test_root_and_boards(client):
    assert client.get("/").json()["message"] == "Circus Board API"
    boards = {b["id"] for b in client.get("/boards").json()["boards"]}
    assert {"circus", "sideshow"} <= boards


def test_create_game(client):
    resp = client.post("/games", json={"board_id": "sideshow", "players": [{"display_name": "Alice"}]})
    assert resp.status_code == 200
    body = resp.json()
    assert body["events"][0]["type"] == "game_started"
    state = body["state"]
    assert state["phase"] == "waiting_for_roll"
    assert state["players"][0]["board_index"] == 0
    assert state["summary"]["finish_index"] == 9

    fetched = client.get(f"/games/{body['game_id']}").json()
    assert fetched["board"]["id"] == "sideshow"


def test_create_game_rejects_bad_config(client):
    assert client.post("/games", json={"board_id": "sideshow", "players": []}).status_code == 400
    assert client.post("/games", json={"board_id": "nope", "players": [{"display_name": "A"}]}).status_code == 400
    resp = client.post("/games", json={"board_id": "sideshow", "players": [{"display_name": "A"}], "steps_per_face": 0})
    assert resp.status_code == 400


def test_full_roll_persists_between_requests(client):
    game_id = create_game(client)
    body = play_roll(client, game_id, 3)

    assert body["events"][-1]["type"] == "turn_changed"
    state = client.get(f"/games/{game_id}").json()["state"]
    assert state["players"][0]["board_index"] == 3
    assert state["current_player_index"] == 1
    assert state["total_rolls"] == 1


def test_second_roll_request_is_ignored(client):
    game_id = create_game(client)
    client.post(f"/games/{game_id}/roll")
    resp = client.post(f"/games/{game_id}/roll")
    assert resp.status_code == 200
    assert resp.json()["events"] == []
    assert resp.json()["state"]["total_rolls"] == 1


def test_invalid_dice_forfeits_turn(client):
    game_id = create_game(client)
    client.post(f"/games/{game_id}/roll")
    body = client.post(f"/games/{game_id}/dice", json={"face": "seven"}).json()
    assert [e["type"] for e in body["events"]] == ["roll_failed", "turn_changed"]
    assert body["state"]["current_player_index"] == 1


def test_action_in_wrong_phase_is_400(client):
    game_id = create_game(client)
    assert client.post(f"/games/{game_id}/dice", json={"face": 3}).status_code == 400
    assert client.post(f"/games/{game_id}/move-complete", json={"tile_index": 1}).status_code == 400
    assert client.post(f"/games/{game_id}/tick", json={"seconds": -1}).status_code == 400


def test_unknown_game_is_404(client):
    assert client.get("/games/missing").status_code == 404
    assert client.post("/games/missing/roll").status_code == 404
    assert client.delete("/games/missing").status_code == 404


def test_win_updates_leaderboard(client):
    game_id = create_game(client, players=[{"display_name": "Alice"}])
    client.post(f"/games/{game_id}/tick", json={"seconds": 20})
    play_roll(client, game_id, 6)
    body = play_roll(client, game_id, 6)

    assert body["state"]["is_game_over"]
    assert [e["type"] for e in body["events"]].count("game_won") == 1

    board = client.get("/leaderboard").json()
    assert board["entries"] == [{"player_name": "Alice", "points": 2000 - 20 - 2 * 5}]
    assert board["text"].startswith("LEADERBOARD\n1. Alice")

    assert client.delete("/leaderboard").status_code == 200
    assert client.get("/leaderboard").json()["text"] == "No scores yet."


def test_delete_game(client):
    game_id = create_game(client)
    assert client.delete(f"/games/{game_id}").status_code == 200
    assert client.get(f"/games/{game_id}").status_code == 404


def test_game_lock_is_shared_per_game():
    assert game_lock("a") is game_lock("a")
    assert game_lock("a") is not game_lock("b")


def test_roll_waits_for_in_flight_action_on_same_game(client):
    game_id = create_game(client)
    results = []

    def roll():
        results.append(client.post(f"/games/{game_id}/roll").json())

    with game_lock(game_id):
        worker = threading.Thread(target=roll)
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert results == []

    worker.join(timeout=5)
    assert not worker.is_alive()
    assert [e["type"] for e in results[0]["events"]] == ["roll_started"]

    second = client.post(f"/games/{game_id}/roll").json()
    assert second["events"] == []
    assert second["state"]["total_rolls"] == 1


def test_non_finite_tick_is_rejected_by_validation(client):
    game_id = create_game(client)
    resp = client.post(f"/games/{game_id}/tick", content='{"seconds": Infinity}',
                       headers={"Content-Type": "application/json"})
    assert resp.status_code in (400, 422)
    state = client.get(f"/games/{game_id}").json()["state"]
    assert state["elapsed_seconds"] == 0.0
