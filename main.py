from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

import socketio

from database import Base, SessionLocal, engine, get_settings
from api import games, matchmaking, stats
from core.coordinator import GameCoordinator

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=settings.cors_origins)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: 建立資料表與 coordinator（測試可以預先放入自己的 coordinator）
    Base.metadata.create_all(bind=engine)
    if getattr(app.state, "coordinator", None) is None:
        app.state.coordinator = GameCoordinator.from_settings(settings, sio, session_factory=SessionLocal)
    logger.info("Game server ready")
    yield
    # Shutdown: 取消所有延遲清除，記憶體中的對局與佇列會遺失
    app.state.coordinator.shutdown()


app = FastAPI(
    title="PlayGame Arena API",
    description="Matchmaking and staked tic-tac-toe match coordination backed by the PlayGame escrow contract",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(matchmaking.router)
app.include_router(games.router)
app.include_router(stats.router)

# Socket.IO 掛在 /socket.io，其餘請求交給 FastAPI
asgi_app = socketio.ASGIApp(sio, other_asgi_app=app)


@app.get("/")
def root():
    return {"message": "PlayGame Arena API", "status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(asgi_app, host=settings.host, port=settings.port)
