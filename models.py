"""
資料模型

- MatchStatus：對局狀態（記憶體中的 Match 與資料庫共用）
- MatchResult：已結束對局的歷史紀錄（排行榜的資料來源）

進行中的對局與排隊佇列只存在記憶體中，不寫入資料庫。
"""
import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text

from database import Base


class MatchStatus(str, enum.Enum):
    CREATED = "created"
    STAKING = "staking"
    PLAYING = "playing"
    FINISHED = "finished"


def _utcnow():
    return datetime.now(timezone.utc)


class MatchResult(Base):
    __tablename__ = "match_results"

    id = Column(Integer, primary_key=True, autoincrement=True)
    match_id = Column(String(64), unique=True, nullable=False, index=True)
    player1 = Column(String(42), nullable=False, index=True)
    player2 = Column(String(42), nullable=False, index=True)
    stake = Column(String(78), nullable=False)
    # wei 可能超過 64-bit，以字串保存
    stake_wei = Column(String(78), nullable=False)
    winner = Column(String(42), nullable=True)
    is_draw = Column(Boolean, nullable=False, default=False)
    move_count = Column(Integer, nullable=False, default=0)
    create_tx = Column(String(66), nullable=True)
    payout_tx = Column(String(66), nullable=True)
    payout_error = Column(Text, nullable=True)
    finished_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    @property
    def settled(self) -> bool:
        return self.payout_tx is not None
