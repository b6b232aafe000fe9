"""
Match：記憶體中的對局狀態

由 MatchRegistry 獨佔持有，其他元件只讀取 to_dict() 的快照。
"""
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from models import MatchStatus

BOARD_SIZE = 9
PLAYER1_SYMBOL = "X"
PLAYER2_SYMBOL = "O"


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class MoveRecord:
    player: str
    position: int
    symbol: str
    timestamp: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "player": self.player,
            "position": self.position,
            "symbol": self.symbol,
            "timestamp": self.timestamp,
        }


@dataclass
class Match:
    match_id: str
    player1: str
    player2: str
    stake: str
    stake_wei: int
    status: MatchStatus = MatchStatus.CREATED
    current_player: Optional[str] = None
    board: List[Optional[str]] = field(default_factory=lambda: [None] * BOARD_SIZE)
    moves: List[MoveRecord] = field(default_factory=list)
    winner: Optional[str] = None

    player1_staked: bool = False
    player2_staked: bool = False
    player1_stake_tx: Optional[str] = None
    player2_stake_tx: Optional[str] = None

    create_tx: Optional[str] = None
    create_error: Optional[str] = None
    payout_tx: Optional[str] = None
    payout_error: Optional[str] = None

    created_at: int = field(default_factory=now_ms)
    game_start_time: Optional[int] = None
    finished_at: Optional[int] = None

    def __post_init__(self):
        if self.current_player is None:
            self.current_player = self.player1

    def has_player(self, address: str) -> bool:
        return address in (self.player1, self.player2)

    def opponent_of(self, address: str) -> str:
        return self.player2 if address == self.player1 else self.player1

    @property
    def is_draw(self) -> bool:
        return self.status == MatchStatus.FINISHED and self.winner is None

    @property
    def both_staked(self) -> bool:
        return self.player1_staked and self.player2_staked

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_id": self.match_id,
            "player1": self.player1,
            "player2": self.player2,
            "stake": self.stake,
            "stake_wei": str(self.stake_wei),
            "status": self.status.value,
            "current_player": self.current_player,
            "board": list(self.board),
            "moves": [m.to_dict() for m in self.moves],
            "winner": self.winner,
            "draw": self.is_draw,
            "player1_staked": self.player1_staked,
            "player2_staked": self.player2_staked,
            "player1_stake_tx": self.player1_stake_tx,
            "player2_stake_tx": self.player2_stake_tx,
            "create_tx": self.create_tx,
            "create_error": self.create_error,
            "payout_tx": self.payout_tx,
            "payout_error": self.payout_error,
            "created_at": self.created_at,
            "game_start_time": self.game_start_time,
            "finished_at": self.finished_at,
        }
