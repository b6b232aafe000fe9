"""
Game API Endpoints

職責：
1. 查詢對局狀態
2. 落子（HTTP 版本，socket 的 make_move 走同一條路徑）
3. 查詢鏈上 match 結構（排查鏈上登記失敗的對局）
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import GameStateResponse, MoveSubmit, OnChainMatchResponse
from core.coordinator import GameCoordinator
from core.exceptions import ArenaException, MatchNotFound
from services.validation_service import normalize_address
from api.dependencies import get_coordinator

router = APIRouter(prefix="/game", tags=["games"])
logger = logging.getLogger(__name__)


@router.get("/{match_id}", response_model=GameStateResponse)
def get_game(match_id: str, coordinator: GameCoordinator = Depends(get_coordinator)):
    """
    取得對局狀態

    注意：對局結束後只保留 5 分鐘，之後回傳 404
    """
    try:
        match = coordinator.registry.require(match_id)
        return match.to_dict()

    except MatchNotFound as e:
        raise HTTPException(status_code=404, detail=e.to_detail())


@router.post("/{match_id}/move", response_model=GameStateResponse)
async def make_move(
    match_id: str,
    payload: MoveSubmit,
    coordinator: GameCoordinator = Depends(get_coordinator)
):
    """
    落子

    前置條件：
    - 對局存在（404 NOT_FOUND）
    - 輪到該玩家（409 OUT_OF_TURN）
    - 對局狀態是 playing（409 NOT_PLAYABLE）
    - 位置在 0-8（400 INVALID_POSITION）
    - 格子是空的（409 CELL_OCCUPIED）

    效果：
    - 廣播 game_move 到對局 room
    - 對局結束時觸發結算（有勝者才上鏈）

    返回：
        更新後的對局狀態
    """
    try:
        player = normalize_address(payload.player)
        match = await coordinator.registry.submit_move(match_id, player, payload.position)
        return match.to_dict()

    except ArenaException as e:
        logger.info(f"Move rejected in {match_id}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to process move: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal error"}
        )


@router.get("/{match_id}/chain", response_model=OnChainMatchResponse)
async def get_onchain_match(match_id: str, coordinator: GameCoordinator = Depends(get_coordinator)):
    """
    讀取 PlayGame.matches(match_id)

    用途：
        比對記憶體與鏈上狀態（鏈上呼叫失敗時兩邊會不一致，需要人工處理）
    """
    try:
        return await coordinator.bridge.get_match(match_id)

    except ArenaException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
