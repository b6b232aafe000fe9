"""
GameCoordinator：組裝並持有所有記憶體狀態的服務物件

- 在 FastAPI lifespan 啟動時建立，關閉時 shutdown()
- 透過 dependency 注入到 API handler，不使用模組層級的全域 dict
- 測試時可以直接用假的 bridge / socket server 建立，互不干擾
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from core.chain_bridge import ChainBridge
from core.exceptions import InsufficientAllowance, InsufficientBalance
from core.match_registry import MatchRegistry
from core.matchmaking import MatchmakingQueue, QueueEntry
from core.scheduler import RetentionScheduler
from core.session_gateway import SessionGateway
from core.stake_verifier import StakeVerifier, build_stake_verifier
from services.history_service import record_match_result
from services.naming_service import generate_match_id
from services.validation_service import normalize_address, parse_stake

logger = logging.getLogger(__name__)


def history_listener(session_factory):
    """對局結束時寫入 match_results"""
    def _record(match):
        db = session_factory()
        try:
            record_match_result(db, match)
        finally:
            db.close()
    return _record


class GameCoordinator:
    def __init__(
        self,
        bridge,
        sio,
        stake_verifier: Optional[StakeVerifier] = None,
        retention_seconds: float = 300.0,
        check_allowance: bool = False,
        session_factory=None,
    ):
        self.bridge = bridge
        self.check_allowance = check_allowance
        self.queue = MatchmakingQueue()
        self.scheduler = RetentionScheduler()
        self.gateway = SessionGateway(sio)
        self.registry = MatchRegistry(
            bridge,
            self.gateway,
            stake_verifier=stake_verifier,
            scheduler=self.scheduler,
            retention_seconds=retention_seconds,
        )
        self.gateway.attach(self)

        if session_factory is not None:
            self.registry.add_finish_listener(history_listener(session_factory))

    @classmethod
    def from_settings(cls, settings, sio, session_factory=None) -> "GameCoordinator":
        bridge = ChainBridge.from_settings(settings)
        return cls(
            bridge,
            sio,
            stake_verifier=build_stake_verifier(settings.stake_verification, bridge),
            retention_seconds=settings.match_retention_seconds,
            check_allowance=settings.check_allowance,
            session_factory=session_factory,
        )

    # ============ Matchmaking ============

    async def join_matchmaking(self, address, stake, session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        加入配對佇列

        流程：
        1. 驗證地址與押注金額（InvalidInput）
        2. 檢查 GT 餘額（InsufficientBalance），必要時檢查授權額度（InsufficientAllowance）
        3. 放入佇列；已在佇列中則回傳既有位置
        4. 湊滿兩人就建立對局（含鏈上登記）

        返回：
            排隊中：{message, position, queue_size}
            配對成功：{message, match_id, opponent}
        """
        address = normalize_address(address)
        _, stake_wei = parse_stake(stake)
        stake_key = str(stake).strip()

        balance = await self.bridge.balance_of(address)
        if balance < stake_wei:
            raise InsufficientBalance(address, balance, stake_wei)

        if self.check_allowance:
            allowance = await self.bridge.allowance(address)
            if allowance < stake_wei:
                raise InsufficientAllowance(address, allowance, stake_wei)

        outcome = self.queue.join(
            QueueEntry(address=address, stake=stake_key, stake_wei=stake_wei, session_id=session_id)
        )

        if outcome.already_queued:
            return {
                "message": "Already in queue",
                "position": outcome.position,
                "queue_size": self.queue.queue_size(outcome.tier),
            }

        if not outcome.matched:
            return {
                "message": "Added to queue",
                "position": outcome.position,
                "queue_size": self.queue.queue_size(stake_key),
            }

        first, second = outcome.pair
        match_id = generate_match_id()
        await self.registry.create_match(match_id, first, second)
        opponent = first.address if second.address == address else second.address
        return {"message": "Match found!", "match_id": match_id, "opponent": opponent}

    def leave_matchmaking(self, address) -> bool:
        return self.queue.leave(normalize_address(address))

    def handle_disconnect(self, session_id: str, address: Optional[str] = None) -> None:
        """斷線：清掉該 session 的排隊資料，以及該地址的排隊資料"""
        self.queue.remove_session(session_id)
        if address is not None:
            self.queue.leave(address)

    # ============ 統計 ============

    def health(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "active_games": self.registry.active_count(),
            "queued_players": self.queue.total_queued(),
            "connected_players": self.gateway.connected_count(),
        }

    def stats(self) -> Dict[str, Any]:
        return {
            "active_games": self.registry.active_count(),
            "total_queued": self.queue.total_queued(),
            "connected_players": self.gateway.connected_count(),
            "open_connections": self.gateway.connection_count(),
            "queues_by_stake": self.queue.sizes_by_tier(),
            "stuck_matches": [
                {"match_id": m.match_id, "error": m.create_error}
                for m in self.registry.stuck_matches()
            ],
        }

    def shutdown(self) -> None:
        logger.info(
            f"Shutting down coordinator with {self.registry.active_count()} active matches "
            f"and {self.queue.total_queued()} queued players (in-memory state is lost)"
        )
        self.registry.clear()
        self.queue.clear()
