import pytest
from fastapi.testclient import TestClient

from ttt_timetravel import main
from ttt_timetravel.store import InMemoryStore


client = TestClient(main.app)


def _new_session():
    response = client.post("/game")
    assert response.status_code == 200
    return response.json()["session_id"]


def _move(session_id, cell):
    return client.post(f"/game/{session_id}/move", json={"cell_index": cell})


def test_health_check():
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": "Healthy"}


def test_create_game_returns_fresh_state():
    response = client.post("/game")
    body = response.json()
    state = body["state"]
    assert body["session_id"]
    assert state["board"] == [""] * 9
    assert state["status"] == "Next turn: PlayerA"
    assert state["history_length"] == 1
    assert state["current_index"] == 0
    assert state["winning_line"] is None
    assert state["moves"] == [{
        "index": 0, "label": "Go to game start", "active": True,
        "cell_index": None, "player": None,
    }]


def test_move_and_get_state():
    session_id = _new_session()
    response = _move(session_id, 4)
    assert response.status_code == 200
    assert response.json()["accepted"] is True

    state = client.get(f"/game/{session_id}").json()
    assert state["board"][4] == "X"
    assert state["status"] == "Next turn: PlayerB"


def test_rejected_move_is_silent():
    session_id = _new_session()
    _move(session_id, 4)
    response = _move(session_id, 4)
    assert response.status_code == 200
    body = response.json()
    assert body["accepted"] is False
    assert body["state"]["history_length"] == 2
    assert body["state"]["current_index"] == 1


def test_move_outside_board_fails_validation():
    session_id = _new_session()
    assert _move(session_id, 9).status_code == 422


def test_win_then_moves_are_ignored():
    session_id = _new_session()
    for cell in (0, 3, 1, 4, 2):
        state = _move(session_id, cell).json()["state"]
    assert state["status"] == "Win by PlayerA"
    assert state["winning_line"] == [0, 1, 2]
    assert state["outcome"] == {"kind": "win", "winner": "X", "line": [0, 1, 2]}
    assert state["next_player"] is None

    body = _move(session_id, 8).json()
    assert body["accepted"] is False
    assert body["state"] == state


def test_jump_and_branch():
    session_id = _new_session()
    for cell in (0, 1, 2):
        _move(session_id, cell)

    body = client.post(f"/game/{session_id}/jump", json={"index": 1}).json()
    assert body["accepted"] is True
    assert body["state"]["current_index"] == 1
    assert body["state"]["history_length"] == 4
    assert body["state"]["status"] == "Next turn: PlayerB"

    state = _move(session_id, 4).json()["state"]
    assert state["history_length"] == 3
    assert state["board"] == ["X", "", "", "", "O", "", "", "", ""]


def test_jump_out_of_range_is_ignored():
    session_id = _new_session()
    body = client.post(f"/game/{session_id}/jump", json={"index": 5}).json()
    assert body["accepted"] is False
    assert body["state"]["current_index"] == 0


def test_reset():
    session_id = _new_session()
    for cell in (0, 4, 8):
        _move(session_id, cell)
    body = client.post(f"/game/{session_id}/reset").json()
    assert body["accepted"] is True
    assert body["state"]["history_length"] == 1
    assert body["state"]["board"] == [""] * 9
    assert body["state"]["status"] == "Next turn: PlayerA"


def test_unknown_session_is_404():
    assert client.get("/game/nope").status_code == 404
    assert _move("nope", 0).status_code == 404
    assert client.post("/game/nope/reset").status_code == 404
    assert client.delete("/game/nope").status_code == 404


def test_list_and_delete():
    session_id = _new_session()
    ids = [g["session_id"] for g in client.get("/game/list").json()]
    assert session_id in ids

    assert client.delete(f"/game/{session_id}").status_code == 204
    assert client.get(f"/game/{session_id}").status_code == 404


def test_websocket_broadcasts_intents():
    session_id = _new_session()
    with client.websocket_connect(f"/ws/game/{session_id}") as ws:
        ws.send_json({"action": "move", "cell_index": 4})
        message = ws.receive_json()
        assert message["type"] == "game_state"
        assert message["accepted"] is True
        assert message["state"]["board"][4] == "X"

        ws.send_json({"action": "move", "cell_index": 4})
        assert ws.receive_json()["accepted"] is False

        ws.send_json({"action": "jump", "index": 0})
        assert ws.receive_json()["state"]["current_index"] == 0

        ws.send_json({"action": "reset"})
        assert ws.receive_json()["state"]["history_length"] == 1

        ws.send_json({"action": "fly"})
        assert ws.receive_json() == {"error": "Invalid command"}

        ws.send_json({"action": "move", "cell_index": 12})
        assert ws.receive_json() == {"error": "Invalid command"}


def test_websocket_unknown_session():
    with client.websocket_connect("/ws/game/nope") as ws:
        ws.send_json({"action": "reset"})
        assert ws.receive_json() == {"error": "Session not found."}


def test_create_game_with_single_session_limit(monkeypatch):
    monkeypatch.setattr(main, "STORE", InMemoryStore(max_sessions=1))
    first = client.post("/game")
    second = client.post("/game")
    assert first.status_code == second.status_code == 200
    assert second.json()["state"]["history_length"] == 1
    assert client.get(f"/game/{first.json()['session_id']}").status_code == 404


@pytest.mark.parametrize("cell", [True, "4", 4.0])
def test_move_with_non_integer_cell_fails_validation(cell):
    session_id = _new_session()
    assert _move(session_id, cell).status_code == 422
    assert client.get(f"/game/{session_id}").json()["history_length"] == 1


@pytest.mark.parametrize("index", [True, "0"])
def test_jump_with_non_integer_index_fails_validation(index):
    session_id = _new_session()
    _move(session_id, 4)
    response = client.post(f"/game/{session_id}/jump", json={"index": index})
    assert response.status_code == 422
    assert client.get(f"/game/{session_id}").json()["current_index"] == 1


def test_websocket_rejects_non_integer_indices():
    session_id = _new_session()
    with client.websocket_connect(f"/ws/game/{session_id}") as ws:
        ws.send_json({"action": "move", "cell_index": True})
        assert ws.receive_json() == {"error": "Invalid command"}
        ws.send_json({"action": "move", "cell_index": "4"})
        assert ws.receive_json() == {"error": "Invalid command"}
        ws.send_json({"action": "jump", "index": True})
        assert ws.receive_json() == {"error": "Invalid command"}
    assert client.get(f"/game/{session_id}").json()["board"] == [""] * 9


def test_websocket_survives_non_json_frames():
    session_id = _new_session()
    with client.websocket_connect(f"/ws/game/{session_id}") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"error": "Invalid command"}
        ws.send_json({"action": "move", "cell_index": 0})
        assert ws.receive_json()["accepted"] is True
    assert session_id not in main.manager.active_connections
