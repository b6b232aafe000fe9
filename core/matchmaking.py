"""
Matchmaking Queue：依押注等級（tier）分開的 FIFO 佇列

規則：
- tier key 就是客戶端送來的押注字串（例如 "10"），不做正規化
- 同一個地址同時只能排在一個 tier；重複加入回傳既有位置，不重複插入
- 同一 tier 累積到 2 人時，取出最早加入的兩位配對（不跳號）

佇列操作全部是同步的，在 event loop 上不會被打斷。
"""
import logging
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class QueueEntry:
    address: str
    stake: str
    stake_wei: int
    session_id: Optional[str] = None
    joined_at: float = field(default_factory=time.time)


@dataclass
class JoinOutcome:
    """
    join() 的結果

    - pair 為 None：仍在排隊，position 為 1 起算的位置
    - pair 不為 None：配對成功（最早加入者在前）
    """
    position: Optional[int] = None
    tier: Optional[str] = None
    pair: Optional[Tuple[QueueEntry, QueueEntry]] = None
    already_queued: bool = False

    @property
    def matched(self) -> bool:
        return self.pair is not None


class MatchmakingQueue:
    """押注等級 -> 排隊玩家"""

    def __init__(self):
        self._queues: "OrderedDict[str, List[QueueEntry]]" = OrderedDict()

    def join(self, entry: QueueEntry) -> JoinOutcome:
        """
        加入佇列並嘗試配對

        參數：
            entry: 已通過驗證與餘額檢查的排隊資料

        返回：
            JoinOutcome
        """
        found = self._find(entry.address)
        if found is not None:
            tier, index = found
            logger.info(f"{entry.address} already queued for stake {tier} at position {index + 1}")
            return JoinOutcome(position=index + 1, tier=tier, already_queued=True)

        queue = self._queues.setdefault(entry.stake, [])
        queue.append(entry)
        logger.info(f"{entry.address} queued for stake {entry.stake} (queue size {len(queue)})")

        if len(queue) >= 2:
            first = queue.pop(0)
            second = queue.pop(0)
            self._drop_if_empty(entry.stake)
            logger.info(f"Paired {first.address} with {second.address} for stake {entry.stake}")
            return JoinOutcome(tier=entry.stake, pair=(first, second))

        return JoinOutcome(position=len(queue), tier=entry.stake)

    def leave(self, address: str) -> bool:
        """
        從所在 tier 移除玩家（冪等：不存在也不會出錯）

        返回：
            True 如果真的有移除
        """
        found = self._find(address)
        if found is None:
            return False

        tier, index = found
        self._queues[tier].pop(index)
        self._drop_if_empty(tier)
        logger.info(f"{address} left queue for stake {tier}")
        return True

    def remove_session(self, session_id: str) -> List[QueueEntry]:
        """斷線時依 session 移除所有相關的排隊資料"""
        removed: List[QueueEntry] = []
        if not session_id:
            return removed
        for tier in list(self._queues.keys()):
            queue = self._queues[tier]
            kept = [e for e in queue if e.session_id != session_id]
            removed.extend(e for e in queue if e.session_id == session_id)
            self._queues[tier] = kept
            self._drop_if_empty(tier)

        for entry in removed:
            logger.info(f"{entry.address} removed from stake {entry.stake} queue (session {session_id} gone)")
        return removed

    def position(self, address: str) -> Optional[int]:
        found = self._find(address)
        return found[1] + 1 if found else None

    def queue_size(self, stake: str) -> int:
        return len(self._queues.get(stake, []))

    def total_queued(self) -> int:
        return sum(len(q) for q in self._queues.values())

    def sizes_by_tier(self) -> Dict[str, int]:
        return {tier: len(queue) for tier, queue in self._queues.items()}

    def clear(self) -> None:
        self._queues.clear()

    def _find(self, address: str) -> Optional[Tuple[str, int]]:
        for tier, queue in self._queues.items():
            for index, entry in enumerate(queue):
                if entry.address == address:
                    return tier, index
        return None

    def _drop_if_empty(self, tier: str) -> None:
        if tier in self._queues and not self._queues[tier]:
            del self._queues[tier]
