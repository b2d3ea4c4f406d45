import pytest
from starlette.websockets import WebSocketDisconnect

from planning_poker.services.connection_manager import CLOSE_SUPERSEDED


def _join(ws, room_id, name):
    ws.send_json({"type": "Join", "room_id": room_id, "name": name})
    joined = ws.receive_json()
    state = ws.receive_json()
    assert joined["type"] == "Joined"
    assert state["type"] == "RoomState"
    return joined["user_id"], state


def test_join_receives_identity_then_state(client, room_id):
    with client.websocket_connect("/ws") as ws:
        user_id, state = _join(ws, room_id, "Alice")

    room = state["room"]
    assert room["id"] == room_id
    assert room["revealed"] is False
    assert room["users"][user_id] == {
        "id": user_id,
        "name": "Alice",
        "estimate": None,
        "voted": False,
        "online": True,
    }


def test_vote_show_clear_scenario(client, room_id):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        alice_id, _ = _join(alice, room_id, "Alice")
        bob_id, _ = _join(bob, room_id, "Bob")
        alice.receive_json()  # Bob's arrival

        alice.send_json({"type": "Vote", "room_id": room_id, "user_id": alice_id, "estimate": "5"})
        own_view = alice.receive_json()["room"]
        other_view = bob.receive_json()["room"]
        assert own_view["users"][alice_id]["estimate"] == "5"
        assert other_view["users"][alice_id]["estimate"] is None
        assert other_view["users"][alice_id]["voted"] is True
        assert client.get(f"/api/room/{room_id}/mean").json() is None
        assert client.get(f"/api/room/{room_id}").json()["users"][alice_id]["estimate"] is None

        bob.send_json({"type": "Show", "room_id": room_id})
        for ws in (alice, bob):
            room = ws.receive_json()["room"]
            assert room["revealed"] is True
            assert room["users"][alice_id]["estimate"] == "5"
            assert room["users"][bob_id]["estimate"] is None
        assert client.get(f"/api/room/{room_id}/mean").json() == 5.0

        bob.send_json({"type": "Clear", "room_id": room_id})
        for ws in (alice, bob):
            room = ws.receive_json()["room"]
            assert room["revealed"] is False
            assert all(u["estimate"] is None and not u["voted"] for u in room["users"].values())


def test_rejoin_preserves_estimate_and_reveal(client, room_id):
    with client.websocket_connect("/ws") as ws:
        user_id, _ = _join(ws, room_id, "Alice")
        ws.send_json({"type": "Vote", "room_id": room_id, "user_id": user_id, "estimate": 8})
        assert ws.receive_json()["room"]["users"][user_id]["estimate"] == "8"
        ws.send_json({"type": "Show", "room_id": room_id})
        ws.receive_json()

    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "Rejoin", "room_id": room_id, "user_id": user_id, "name": "Alice 2"})
        joined = ws.receive_json()
        room = ws.receive_json()["room"]

    assert joined == {"type": "Joined", "user_id": user_id, "room_id": room_id}
    assert room["revealed"] is True
    assert room["users"][user_id]["estimate"] == "8"
    assert room["users"][user_id]["name"] == "Alice 2"


def test_rejoin_with_unknown_id_is_an_error(client, room_id):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "Rejoin", "room_id": room_id, "user_id": "stale", "name": "Alice"})
        error = ws.receive_json()

    assert error["type"] == "Error"
    assert error["code"] == "UserNotFound"
    assert client.get(f"/api/room/{room_id}").json()["users"] == {}


def test_malformed_frame_keeps_connection_open(client, room_id):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("definitely not json")
        error = ws.receive_json()
        assert error["type"] == "Error"
        assert error["code"] == "MalformedCommand"

        user_id, state = _join(ws, room_id, "Alice")
        assert user_id in state["room"]["users"]


def test_unknown_room(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "Join", "room_id": "no-such-room", "name": "Alice"})
        error = ws.receive_json()
    assert error["code"] == "RoomNotFound"


def test_vote_for_unknown_user(client, room_id):
    with client.websocket_connect("/ws") as ws:
        ws.send_json({"type": "Vote", "room_id": room_id, "user_id": "ghost", "estimate": "3"})
        assert ws.receive_json()["code"] == "UserNotFound"


def test_new_connection_supersedes_old_one(client, room_id):
    with client.websocket_connect("/ws") as first:
        user_id, _ = _join(first, room_id, "Alice")

        with client.websocket_connect("/ws") as second:
            second.send_json({"type": "Rejoin", "room_id": room_id, "user_id": user_id, "name": "Alice"})
            assert second.receive_json()["type"] == "Joined"
            room = second.receive_json()["room"]
            assert list(room["users"]) == [user_id]

            with pytest.raises(WebSocketDisconnect) as exc:
                first.receive_json()
            assert exc.value.code == CLOSE_SUPERSEDED


def test_disconnect_keeps_user_and_marks_offline(client, room_id):
    with client.websocket_connect("/ws") as alice:
        alice_id, _ = _join(alice, room_id, "Alice")
        with client.websocket_connect("/ws") as bob:
            bob_id, _ = _join(bob, room_id, "Bob")
            alice.receive_json()
            bob.send_json({"type": "Vote", "room_id": room_id, "user_id": bob_id, "estimate": "3"})
            alice.receive_json()

        room = alice.receive_json()["room"]
        assert room["users"][bob_id]["online"] is False
        assert room["users"][bob_id]["voted"] is True
        assert room["users"][alice_id]["online"] is True


@pytest.fixture()
def deck_config(config):
    config.ESTIMATE_DECK = ["1", "2", "3", "5", "8", "?"]
    return config


def test_deck_is_enforced_when_configured(deck_config, client, room_id):
    with client.websocket_connect("/ws") as ws:
        user_id, _ = _join(ws, room_id, "Alice")
        ws.send_json({"type": "Vote", "room_id": room_id, "user_id": user_id, "estimate": "4"})
        assert ws.receive_json()["code"] == "InvalidEstimate"
        ws.send_json({"type": "Vote", "room_id": room_id, "user_id": user_id, "estimate": "?"})
        assert ws.receive_json()["room"]["users"][user_id]["estimate"] == "?"
