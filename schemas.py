"""
API Request / Response schemas（Pydantic）
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# ============ Matchmaking ============

class MatchmakingJoin(BaseModel):
    address: str
    stake: str
    session_id: Optional[str] = None

    @field_validator("stake", mode="before")
    @classmethod
    def stake_as_string(cls, value):
        # 前端有時送數字，tier key 一律用字串
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class MatchmakingLeave(BaseModel):
    address: str


class MatchmakingResponse(BaseModel):
    message: str
    position: Optional[int] = None
    queue_size: Optional[int] = None
    match_id: Optional[str] = None
    opponent: Optional[str] = None


class MessageResponse(BaseModel):
    message: str


# ============ Game ============

class MoveRecordResponse(BaseModel):
    player: str
    position: int
    symbol: str
    timestamp: int


class GameStateResponse(BaseModel):
    match_id: str
    player1: str
    player2: str
    stake: str
    stake_wei: str
    status: str
    current_player: str
    board: List[Optional[str]]
    moves: List[MoveRecordResponse]
    winner: Optional[str] = None
    draw: bool
    player1_staked: bool
    player2_staked: bool
    player1_stake_tx: Optional[str] = None
    player2_stake_tx: Optional[str] = None
    create_tx: Optional[str] = None
    create_error: Optional[str] = None
    payout_tx: Optional[str] = None
    payout_error: Optional[str] = None
    created_at: int
    game_start_time: Optional[int] = None
    finished_at: Optional[int] = None


class MoveSubmit(BaseModel):
    player: str
    # 範圍檢查交給 move processor，才能回傳 INVALID_POSITION
    position: Any = Field(...)


class OnChainMatchResponse(BaseModel):
    match_id: str
    p1: str
    p2: str
    stake_wei: str
    start_time: int
    status: int
    status_name: str
    winner: Optional[str] = None


# ============ Stats / Leaderboard ============

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    active_games: int
    queued_players: int
    connected_players: int


class StuckMatch(BaseModel):
    match_id: str
    error: Optional[str] = None


class GameStatsResponse(BaseModel):
    active_games: int
    total_queued: int
    connected_players: int
    open_connections: int
    queues_by_stake: Dict[str, int]
    stuck_matches: List[StuckMatch]


class LeaderboardEntry(BaseModel):
    address: str
    wins: int
    losses: int
    draws: int
    matches_played: int
    gt_won: str
    gt_won_wei: str
    gt_lost: str
    gt_lost_wei: str


class PlayerHistoryEntry(BaseModel):
    match_id: str
    opponent: str
    stake: str
    result: str
    winner: Optional[str] = None
    payout_tx: Optional[str] = None
    payout_error: Optional[str] = None
    finished_at: Optional[str] = None
