"""
Match Registry：管理 Match 的完整生命週期

職責：
1. 建立 Match 並在鏈上登記（createMatch）
2. 接收雙方押注確認，兩人都押注後開始遊戲
3. 處理落子（委派給 move_processor）
4. 結算：有勝者時在鏈上 commitResult，平手不做鏈上呼叫
5. 結束後保留一段時間再從記憶體移除

原則：
- 單一職責：這裡是 Match 狀態唯一的擁有者，Gateway 只轉發
- 所有狀態變更經過 MatchStateMachine
- 同步修改狀態後才 await（廣播或鏈上呼叫），讀取者不會看到寫到一半的棋盤
- 鏈上失敗一律標註在 Match 上後繼續（不回滾記憶體狀態，也不重試）
  createMatch 失敗的對局仍可押注與落子，結算時 commitResult 會失敗並記錄 payout_error
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional

from models import MatchStatus
from core.chain_bridge import ChainResult
from core.exceptions import IllegalTransition, InvalidInput, MatchNotFound, NotPlayable
from core.match import Match
from core.matchmaking import QueueEntry
from core.move_processor import apply_move
from core.scheduler import RetentionScheduler
from core.stake_verifier import ClientAssertedStakeVerifier, StakeVerifier
from core.state_machine import MatchStateMachine
from services.tictactoe_service import winning_line

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 5 * 60


class MatchRegistry:
    """Match 生命週期管理器（記憶體）"""

    def __init__(
        self,
        bridge,
        notifier,
        stake_verifier: Optional[StakeVerifier] = None,
        scheduler: Optional[RetentionScheduler] = None,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
    ):
        self.bridge = bridge
        self.notifier = notifier
        self.stake_verifier = stake_verifier or ClientAssertedStakeVerifier()
        self.scheduler = scheduler or RetentionScheduler()
        self.retention_seconds = retention_seconds
        self._matches: Dict[str, Match] = {}
        self._settled: set = set()
        self._finish_listeners: List[Callable[[Match], None]] = []

    # ============ 查詢 ============

    def get(self, match_id: str) -> Optional[Match]:
        return self._matches.get(match_id)

    def require(self, match_id: str) -> Match:
        match = self._matches.get(match_id)
        if match is None:
            raise MatchNotFound(match_id)
        return match

    def active_count(self) -> int:
        return len(self._matches)

    def stuck_matches(self) -> List[Match]:
        """鏈上登記失敗的對局（記憶體中仍可進行，但結算一定會失敗）"""
        return [m for m in self._matches.values() if m.create_error is not None]

    def add_finish_listener(self, listener: Callable[[Match], None]) -> None:
        self._finish_listeners.append(listener)

    # ============ 生命週期 ============

    async def create_match(self, match_id: str, first: QueueEntry, second: QueueEntry) -> Match:
        """
        建立新對局並在鏈上登記

        流程：
        1. 寫入 created 狀態的記錄（await 之前就可被讀取）
        2. 呼叫 bridge.register_match
           - 成功：記錄 create_tx（狀態維持 created，等第一筆押注）
           - 失敗：記錄 create_error，對局照常進行（結算時會失敗）
        3. 通知雙方 match_found

        參數：
            match_id: 新對局 ID
            first: 先加入佇列的玩家（player1，先手 X）
            second: 後加入佇列的玩家（player2，後手 O）

        返回：
            新建立的 Match
        """
        if match_id in self._matches:
            raise IllegalTransition(f"Match {match_id} already exists")

        match = Match(
            match_id=match_id,
            player1=first.address,
            player2=second.address,
            stake=first.stake,
            stake_wei=first.stake_wei,
        )
        self._matches[match_id] = match
        logger.info(
            f"Match created: {match_id} between {match.player1} and {match.player2} (stake {match.stake})"
        )

        result: ChainResult = await self.bridge.register_match(
            match_id, match.player1, match.player2, match.stake_wei
        )
        if result.ok:
            match.create_tx = result.tx_hash
            logger.info(f"Match {match_id} created on chain: {result.tx_hash}")
        else:
            match.create_error = result.error
            logger.error(f"Failed to create match {match_id} on chain, continuing in memory: {result.error}")

        snapshot = match.to_dict()
        await self.notifier.send_to_player(
            first.session_id, first.address, "match_found",
            {"match_id": match_id, "opponent": second.address, "game_state": snapshot},
        )
        await self.notifier.send_to_player(
            second.session_id, second.address, "match_found",
            {"match_id": match_id, "opponent": first.address, "game_state": snapshot},
        )
        return match

    async def confirm_stake(self, match_id: str, player: str, tx_hash: Optional[str]) -> Match:
        """
        記錄玩家押注（客戶端回報的交易 hash，由 stake_verifier 決定是否相信）

        前置條件：
        1. Match 存在且 player 是其中一方
        2. 狀態是 created 或 staking（鏈上登記失敗不影響押注）

        效果：
        - 設定該玩家的 staked 旗標與 tx hash，廣播 stake_confirmed
        - 第一筆押注：created -> staking
        - 兩人都押注：staking -> playing，廣播 game_started
        - 重複確認不會有副作用

        異常：
            MatchNotFound / InvalidInput / NotPlayable / StakeNotVerified
        """
        match = self.require(match_id)
        if not match.has_player(player):
            raise InvalidInput(f"{player} is not a player in match {match_id}")

        self._require_staking(match)

        already_staked = match.player1_staked if player == match.player1 else match.player2_staked
        if already_staked:
            logger.info(f"Stake for {player} in {match_id} already confirmed")
            return match

        await self.stake_verifier.verify(match_id, player, tx_hash)
        # 驗證期間狀態可能被改變，重新檢查
        self._require_staking(match)

        if player == match.player1:
            match.player1_staked = True
            match.player1_stake_tx = tx_hash
        else:
            match.player2_staked = True
            match.player2_stake_tx = tx_hash

        if match.status == MatchStatus.CREATED:
            MatchStateMachine.transition(match, MatchStatus.STAKING)

        started = False
        if match.both_staked:
            MatchStateMachine.transition(match, MatchStatus.PLAYING)
            started = True

        logger.info(f"{player} staked in match {match_id}: {tx_hash}")
        await self.notifier.broadcast(
            match_id, "stake_confirmed",
            {"match_id": match_id, "player": player, "tx_hash": tx_hash, "game_state": match.to_dict()},
        )

        if started:
            logger.info(f"Game {match_id} started - both players staked")
            await self.notifier.broadcast(
                match_id, "game_started", {"match_id": match_id, "game_state": match.to_dict()}
            )

        return match

    async def submit_move(self, match_id: str, player: str, position) -> Match:
        """
        落子

        流程：
        1. 找到 Match（MatchNotFound）
        2. 驗證並套用（OutOfTurn / NotPlayable / InvalidPosition / CellOccupied）
        3. 廣播 game_move
        4. 對局結束時結算

        返回：
            更新後的 Match
        """
        match = self.require(match_id)
        apply_move(match, player, position)

        await self.notifier.broadcast(
            match_id, "game_move",
            {"match_id": match_id, "player": player, "position": position, "game_state": match.to_dict()},
        )

        if match.status == MatchStatus.FINISHED:
            await self.settle(match_id)

        return match

    async def settle(self, match_id: str) -> Match:
        """
        結算已結束的對局（每個對局只執行一次）

        - 有勝者：bridge.commit_result，成功記錄 payout_tx，失敗記錄 payout_error
        - 平手：不做鏈上呼叫，押注留在合約裡（沒有平手退款流程）
        - 一律廣播 game_ended、通知歷史紀錄、排程移除
        """
        match = self.require(match_id)
        if match.status != MatchStatus.FINISHED:
            raise NotPlayable(f"Match {match_id} is not finished (status: {match.status.value})")
        if match_id in self._settled:
            return match
        self._settled.add(match_id)

        logger.info(f"Game {match_id} ended. Winner: {match.winner or 'Draw'}")

        if match.winner:
            result: ChainResult = await self.bridge.commit_result(match_id, match.winner)
            if result.ok:
                match.payout_tx = result.tx_hash
                logger.info(f"Payout completed for {match.winner}: {result.tx_hash}")
            else:
                match.payout_error = result.error
                logger.error(f"Failed to commit result for {match_id}: {result.error}")
        else:
            logger.warning(f"Match {match_id} is a draw; no payout issued, stakes remain escrowed")

        await self.notifier.broadcast(
            match_id, "game_ended",
            {
                "match_id": match_id,
                "winner": match.winner,
                "draw": match.is_draw,
                "winning_line": winning_line(match.board),
                "payout_tx": match.payout_tx,
                "payout_error": match.payout_error,
                "game_state": match.to_dict(),
            },
        )

        await self._notify_finished(match)
        self.scheduler.schedule(match_id, self.retention_seconds, lambda: self.remove(match_id))
        return match

    def remove(self, match_id: str) -> bool:
        self.scheduler.cancel(match_id)
        self._settled.discard(match_id)
        removed = self._matches.pop(match_id, None)
        if removed is not None:
            logger.info(f"Match {match_id} removed from registry")
        return removed is not None

    def clear(self) -> None:
        self.scheduler.shutdown()
        self._matches.clear()
        self._settled.clear()

    def _require_staking(self, match: Match) -> None:
        if match.status not in (MatchStatus.CREATED, MatchStatus.STAKING):
            raise NotPlayable(
                f"Match {match.match_id} is not accepting stakes (status: {match.status.value})"
            )

    async def _notify_finished(self, match: Match) -> None:
        # listener 可能寫資料庫，丟到 worker thread 避免卡住 event loop
        for listener in self._finish_listeners:
            try:
                await asyncio.to_thread(listener, match)
            except Exception as e:
                logger.error(f"Finish listener failed for match {match.match_id}: {e}", exc_info=True)
