"""
對局狀態機：集中管理所有 Match 狀態轉換

合法路徑：
    created -> staking -> playing -> finished

- created：記錄已建立，等待押注
- staking：至少一方已押注，等待另一方
- playing：雙方都已押注，可以落子
- finished：分出勝負或平手
"""
import logging

from models import MatchStatus
from core.exceptions import IllegalTransition
from core.match import Match, now_ms

logger = logging.getLogger(__name__)


class MatchStateMachine:
    """Match 狀態轉換規則"""

    TRANSITIONS = {
        MatchStatus.CREATED: {MatchStatus.STAKING},
        MatchStatus.STAKING: {MatchStatus.PLAYING},
        MatchStatus.PLAYING: {MatchStatus.FINISHED},
        MatchStatus.FINISHED: set(),
    }

    @classmethod
    def can_transition(cls, current: MatchStatus, new_status: MatchStatus) -> bool:
        return new_status in cls.TRANSITIONS[current]

    @classmethod
    def transition(cls, match: Match, new_status: MatchStatus) -> Match:
        """
        轉換 Match 狀態

        參數：
            match: 要轉換的 Match
            new_status: 目標狀態

        返回：
            同一個 Match（已更新）

        異常：
            IllegalTransition: 目標狀態不在合法路徑上
        """
        if not cls.can_transition(match.status, new_status):
            raise IllegalTransition(
                f"Match {match.match_id} cannot go from {match.status.value} to {new_status.value}"
            )

        old_status = match.status
        match.status = new_status
        if new_status == MatchStatus.PLAYING:
            match.game_start_time = now_ms()
        elif new_status == MatchStatus.FINISHED:
            match.finished_at = now_ms()

        logger.info(f"Match {match.match_id}: {old_status.value} -> {new_status.value}")
        return match
