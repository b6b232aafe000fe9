from models import MatchStatus
from tests.conftest import P1, P2, P3


async def paired_match(coordinator):
    await coordinator.join_matchmaking(P1, "10", "sid-1")
    result = await coordinator.join_matchmaking(P2, "10", "sid-2")
    return result["match_id"]


def errors_for(sio, sid):
    return [data for data, target in sio.events("error") if target == sid]


async def test_handlers_registered(coordinator, sio):
    assert set(sio.handlers) == {"connect", "join_game", "player_staked", "make_move", "disconnect"}


async def test_join_game_enters_room_and_sends_state(coordinator, sio):
    match_id = await paired_match(coordinator)
    gateway = coordinator.gateway

    await gateway.on_connect("sid-1", {})
    await gateway.on_join_game("sid-1", {"match_id": match_id, "player_address": P1.lower()})

    assert "sid-1" in sio.rooms[match_id]
    assert gateway.session_for(P1) == "sid-1"
    assert gateway.connected_count() == 1
    states = sio.events("game_state")
    assert states[-1][1] == "sid-1"
    assert states[-1][0]["match_id"] == match_id


async def test_join_unknown_game_sends_error(coordinator, sio):
    await coordinator.gateway.on_join_game("sid-9", {"match_id": "match_nope", "player_address": P3})

    assert errors_for(sio, "sid-9") == [
        {"code": "NOT_FOUND", "message": "Match match_nope not found"}
    ]
    assert "match_nope" not in sio.rooms
    assert coordinator.gateway.connected_count() == 0
    assert coordinator.gateway.session_for(P3) is None


async def test_malformed_payload_sends_error(coordinator, sio):
    await coordinator.gateway.on_join_game("sid-9", {"player_address": P1})
    await coordinator.gateway.on_make_move("sid-9", "garbage")

    codes = [e["code"] for e in errors_for(sio, "sid-9")]
    assert codes == ["INVALID_INPUT", "INVALID_INPUT"]


async def test_socket_game_flow(coordinator, sio, bridge):
    match_id = await paired_match(coordinator)
    gateway = coordinator.gateway

    for sid, player in (("sid-1", P1), ("sid-2", P2)):
        await gateway.on_join_game(sid, {"match_id": match_id, "player_address": player})
        await gateway.on_player_staked(
            sid, {"match_id": match_id, "player_address": player, "tx_hash": f"0x{sid}"}
        )

    match = coordinator.registry.require(match_id)
    assert match.status == MatchStatus.PLAYING
    assert match.player2_stake_tx == "0xsid-2"

    moves = [("sid-1", P1, 0), ("sid-2", P2, 3), ("sid-1", P1, 1), ("sid-2", P2, 4), ("sid-1", P1, 2)]
    for sid, player, position in moves:
        await gateway.on_make_move(sid, {"match_id": match_id, "player_address": player, "position": position})

    assert match.winner == P1
    assert len(sio.events("game_move")) == 5
    assert all(target == match_id for _, target in sio.events("game_move"))
    assert bridge.committed == [(match_id, P1)]


async def test_rejected_move_only_reaches_sender(coordinator, sio):
    match_id = await paired_match(coordinator)
    gateway = coordinator.gateway
    await coordinator.registry.confirm_stake(match_id, P1, "0x1")
    await coordinator.registry.confirm_stake(match_id, P2, "0x2")

    await gateway.on_make_move("sid-2", {"match_id": match_id, "player_address": P2, "position": 0})

    assert errors_for(sio, "sid-2")[0]["code"] == "OUT_OF_TURN"
    assert errors_for(sio, "sid-1") == []
    assert sio.events("game_move") == []


async def test_stake_accepted_after_create_failure(coordinator, sio, bridge):
    bridge.register_error = "nonce too low"
    match_id = await paired_match(coordinator)

    await coordinator.gateway.on_player_staked(
        "sid-1", {"match_id": match_id, "player_address": P1, "tx_hash": "0x1"}
    )

    assert errors_for(sio, "sid-1") == []
    assert coordinator.registry.require(match_id).player1_staked


async def test_stake_rejection_reported(coordinator, sio):
    match_id = await paired_match(coordinator)
    await coordinator.registry.confirm_stake(match_id, P1, "0x1")
    await coordinator.registry.confirm_stake(match_id, P2, "0x2")

    await coordinator.gateway.on_player_staked(
        "sid-1", {"match_id": match_id, "player_address": P3, "tx_hash": "0x3"}
    )
    await coordinator.gateway.on_player_staked(
        "sid-2", {"match_id": match_id, "player_address": P2, "tx_hash": "0x2"}
    )

    assert errors_for(sio, "sid-1")[0]["code"] == "INVALID_INPUT"
    assert errors_for(sio, "sid-2")[0]["code"] == "NOT_PLAYABLE"


async def test_disconnect_clears_session_and_queue(coordinator, sio):
    gateway = coordinator.gateway
    await gateway.on_connect("sid-3", {})
    await coordinator.join_matchmaking(P3, "10", "sid-3")

    await gateway.on_disconnect("sid-3")

    assert coordinator.queue.total_queued() == 0
    assert gateway.connection_count() == 0


async def test_disconnect_keeps_newer_session(coordinator, sio):
    match_id = await paired_match(coordinator)
    gateway = coordinator.gateway
    await gateway.on_join_game("old", {"match_id": match_id, "player_address": P1})
    await gateway.on_join_game("new", {"match_id": match_id, "player_address": P1})

    await gateway.on_disconnect("old")

    assert gateway.session_for(P1) == "new"


async def test_send_to_player_falls_back_to_address(coordinator, sio):
    match_id = await paired_match(coordinator)
    gateway = coordinator.gateway
    await gateway.on_join_game("sid-7", {"match_id": match_id, "player_address": P1})

    await gateway.send_to_player(None, P1, "ping", {"ok": True})
    await gateway.send_to_player(None, P3, "ping", {"ok": True})

    assert sio.events("ping") == [({"ok": True}, "sid-7")]
