from fastapi import Request

from core.coordinator import GameCoordinator


def get_coordinator(request: Request) -> GameCoordinator:
    """FastAPI dependency：取得 lifespan 建立的 GameCoordinator"""
    return request.app.state.coordinator
