"""
Stats API Endpoints

唯讀，沒有副作用：
1. 健康檢查
2. 對局 / 佇列 / 連線統計
3. 排行榜與個人戰績
"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
import logging

from database import get_db
from schemas import GameStatsResponse, HealthResponse, LeaderboardEntry, PlayerHistoryEntry
from core.coordinator import GameCoordinator
from core.exceptions import InvalidInput
from services.history_service import get_leaderboard, get_player_history
from services.validation_service import normalize_address
from api.dependencies import get_coordinator

router = APIRouter(tags=["stats"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
def health(coordinator: GameCoordinator = Depends(get_coordinator)):
    return coordinator.health()


@router.get("/stats/games", response_model=GameStatsResponse)
def game_stats(coordinator: GameCoordinator = Depends(get_coordinator)):
    """
    對局統計

    stuck_matches 列出鏈上登記失敗的對局（結算時 commitResult 會失敗）
    """
    return coordinator.stats()


@router.get("/leaderboard", response_model=List[LeaderboardEntry])
def leaderboard(limit: int = Query(50, ge=1, le=500), db: Session = Depends(get_db)):
    try:
        return get_leaderboard(db, limit=limit)

    except Exception as e:
        logger.error(f"Failed to build leaderboard: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal error"}
        )


@router.get("/leaderboard/{address}/history", response_model=List[PlayerHistoryEntry])
def player_history(address: str, db: Session = Depends(get_db)):
    """單一玩家已結束的對局（新到舊）"""
    try:
        return get_player_history(db, normalize_address(address))

    except InvalidInput as e:
        raise HTTPException(status_code=400, detail=e.to_detail())
