"""
Matchmaking API Endpoints

職責：
1. 加入配對佇列（可能立即配對成功並建立對局）
2. 離開配對佇列
"""
from fastapi import APIRouter, Depends, HTTPException
import logging

from schemas import MatchmakingJoin, MatchmakingLeave, MatchmakingResponse, MessageResponse
from core.coordinator import GameCoordinator
from core.exceptions import ArenaException
from api.dependencies import get_coordinator

router = APIRouter(prefix="/matchmaking", tags=["matchmaking"])
logger = logging.getLogger(__name__)


@router.post("/join", response_model=MatchmakingResponse)
async def join_matchmaking(
    payload: MatchmakingJoin,
    coordinator: GameCoordinator = Depends(get_coordinator)
):
    """
    加入配對佇列

    前置條件：
    - address 是合法地址
    - stake 是正數
    - GT 餘額 >= stake

    返回：
        - 排隊中：message, position, queue_size
        - 配對成功：message, match_id, opponent
    """
    try:
        result = await coordinator.join_matchmaking(
            payload.address, payload.stake, payload.session_id
        )
        return MatchmakingResponse(**result)

    except ArenaException as e:
        logger.info(f"Matchmaking join rejected for {payload.address}: {e}")
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
    except Exception as e:
        logger.error(f"Failed to join matchmaking: {e}", exc_info=True)
        raise HTTPException(
            status_code=500, detail={"code": "INTERNAL_ERROR", "message": "Internal error"}
        )


@router.post("/leave", response_model=MessageResponse)
def leave_matchmaking(
    payload: MatchmakingLeave,
    coordinator: GameCoordinator = Depends(get_coordinator)
):
    """
    離開配對佇列（冪等：不在佇列中也回傳成功）
    """
    try:
        coordinator.leave_matchmaking(payload.address)
        return MessageResponse(message="Left matchmaking queue")

    except ArenaException as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
