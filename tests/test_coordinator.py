import pytest
from web3 import Web3

from core.coordinator import GameCoordinator
from core.exceptions import (
    ChainCallFailure,
    InsufficientAllowance,
    InsufficientBalance,
    InvalidInput,
)
from tests.conftest import ONE_GT, P1, P2, P3


async def test_join_normalizes_address(coordinator):
    lower = "0x" + "ab" * 20
    result = await coordinator.join_matchmaking(lower, "10", "sid-1")

    assert result == {"message": "Added to queue", "position": 1, "queue_size": 1}
    assert coordinator.queue.position(Web3.to_checksum_address(lower)) == 1
    assert coordinator.queue.position(lower) is None


async def test_join_accepts_numeric_stake(coordinator):
    await coordinator.join_matchmaking(P1, 10, "sid-1")
    result = await coordinator.join_matchmaking(P2, "10", "sid-2")

    assert result["message"] == "Match found!"


async def test_join_twice_reports_existing_position(coordinator):
    await coordinator.join_matchmaking(P1, "10", "sid-1")
    result = await coordinator.join_matchmaking(P1, "10", "sid-1")

    assert result["message"] == "Already in queue"
    assert result["position"] == 1
    assert result["queue_size"] == 1


@pytest.mark.parametrize("address", ["", "0x123", "not-an-address", None])
async def test_join_rejects_bad_address(coordinator, address):
    with pytest.raises(InvalidInput):
        await coordinator.join_matchmaking(address, "10")


@pytest.mark.parametrize("stake", ["0", "-5", "abc", "NaN", "Infinity", "0.0000000000000000001"])
async def test_join_rejects_bad_stake(coordinator, stake):
    with pytest.raises(InvalidInput):
        await coordinator.join_matchmaking(P1, stake)


async def test_join_checks_balance(coordinator, bridge):
    bridge.balances[P1] = 5 * ONE_GT

    with pytest.raises(InsufficientBalance) as exc:
        await coordinator.join_matchmaking(P1, "10")

    assert exc.value.required_wei == 10 * ONE_GT
    assert coordinator.queue.total_queued() == 0


async def test_fractional_stake_checks_exact_wei(coordinator, bridge):
    bridge.balances[P1] = ONE_GT // 2

    result = await coordinator.join_matchmaking(P1, "0.5")

    assert result["message"] == "Added to queue"
    assert coordinator.queue.sizes_by_tier() == {"0.5": 1}


async def test_join_checks_allowance_when_enabled(bridge, sio):
    coordinator = GameCoordinator(bridge, sio, check_allowance=True)
    bridge.allowances[P1] = 0
    try:
        with pytest.raises(InsufficientAllowance):
            await coordinator.join_matchmaking(P1, "10")
        assert coordinator.queue.total_queued() == 0
    finally:
        coordinator.shutdown()


async def test_balance_read_failure_propagates(coordinator, bridge):
    bridge.read_error = "connection refused"
    with pytest.raises(ChainCallFailure):
        await coordinator.join_matchmaking(P1, "10")


async def test_leave_and_disconnect(coordinator):
    await coordinator.join_matchmaking(P1, "10", "sid-1")
    await coordinator.join_matchmaking(P3, "20", "sid-3")

    assert coordinator.leave_matchmaking(P1) is True
    assert coordinator.leave_matchmaking(P1) is False

    coordinator.handle_disconnect("sid-3")
    assert coordinator.queue.total_queued() == 0


async def test_health_and_stats(coordinator):
    await coordinator.join_matchmaking(P1, "10", "sid-1")
    await coordinator.join_matchmaking(P2, "10", "sid-2")
    await coordinator.join_matchmaking(P3, "25", "sid-3")

    health = coordinator.health()
    assert health["status"] == "healthy"
    assert health["active_games"] == 1
    assert health["queued_players"] == 1
    assert health["connected_players"] == 0

    stats = coordinator.stats()
    assert stats["queues_by_stake"] == {"25": 1}
    assert stats["total_queued"] == 1
    assert stats["stuck_matches"] == []


async def test_shutdown_clears_state(coordinator):
    await coordinator.join_matchmaking(P1, "10", "sid-1")
    await coordinator.join_matchmaking(P2, "10", "sid-2")

    coordinator.shutdown()

    assert coordinator.registry.active_count() == 0
    assert coordinator.queue.total_queued() == 0
