import os
import tempfile
from collections import defaultdict

# 測試用資料庫，必須在 import database 之前設定
_TEST_DIR = tempfile.mkdtemp(prefix="playgame-arena-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TEST_DIR, 'test.db')}"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base
from core.chain_bridge import ChainResult
from core.coordinator import GameCoordinator
from core.exceptions import ChainCallFailure
from core.matchmaking import QueueEntry
from services.validation_service import parse_stake

P1 = "0x1111111111111111111111111111111111111111"
P2 = "0x2222222222222222222222222222222222222222"
P3 = "0x3333333333333333333333333333333333333333"
PLAYGAME = "0x9999999999999999999999999999999999999999"
ONE_GT = 10**18


class FakeBridge:
    """記錄所有呼叫的假 ChainBridge"""

    playgame_address = PLAYGAME

    def __init__(self):
        self.balances = defaultdict(lambda: 1000 * ONE_GT)
        self.allowances = defaultdict(lambda: 1000 * ONE_GT)
        self.registered = []
        self.on_chain = set()
        self.committed = []
        self.receipts = {}
        self.register_error = None
        self.commit_error = None
        self.read_error = None
        self._counter = 0

    def _next_hash(self):
        self._counter += 1
        return "0x" + f"{self._counter:064x}"

    async def register_match(self, match_id, player1, player2, stake_wei):
        self.registered.append((match_id, player1, player2, stake_wei))
        if self.register_error:
            return ChainResult.failure(self.register_error)
        self.on_chain.add(match_id)
        return ChainResult.success(self._next_hash())

    async def commit_result(self, match_id, winner):
        self.committed.append((match_id, winner))
        if self.commit_error:
            return ChainResult.failure(self.commit_error)
        if match_id not in self.on_chain:
            return ChainResult.failure("execution reverted: match not created")
        return ChainResult.success(self._next_hash())

    async def balance_of(self, address):
        if self.read_error:
            raise ChainCallFailure(self.read_error)
        return self.balances[address]

    async def allowance(self, owner, spender=None):
        if self.read_error:
            raise ChainCallFailure(self.read_error)
        return self.allowances[owner]

    async def get_match(self, match_id):
        if self.read_error:
            raise ChainCallFailure(self.read_error)
        return {
            "match_id": match_id,
            "p1": P1,
            "p2": P2,
            "stake_wei": str(10 * ONE_GT),
            "start_time": 0,
            "status": 1,
            "status_name": "CREATED",
            "winner": None,
        }

    async def get_receipt(self, tx_hash):
        return self.receipts.get(tx_hash)


class FakeSocketServer:
    """記錄 emit 與 room 的假 socketio.AsyncServer"""

    def __init__(self):
        self.handlers = {}
        self.emitted = []
        self.rooms = defaultdict(set)

    def on(self, event, handler=None):
        self.handlers[event] = handler

    async def emit(self, event, data=None, to=None, room=None):
        self.emitted.append((event, data, to or room))

    async def enter_room(self, sid, room):
        self.rooms[room].add(sid)

    def events(self, name):
        return [(data, target) for event, data, target in self.emitted if event == name]


def entry(address, stake="10", session_id=None):
    _, stake_wei = parse_stake(stake)
    return QueueEntry(address=address, stake=stake, stake_wei=stake_wei, session_id=session_id)


@pytest.fixture
def bridge():
    return FakeBridge()


@pytest.fixture
def sio():
    return FakeSocketServer()


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def coordinator(bridge, sio, session_factory):
    coord = GameCoordinator(bridge, sio, session_factory=session_factory)
    yield coord
    coord.shutdown()


@pytest.fixture
def registry(coordinator):
    return coordinator.registry


async def start_game(coordinator, first=P1, second=P2, stake="10"):
    """兩人排隊 -> 配對 -> 雙方押注，回傳 playing 狀態的 Match"""
    await coordinator.join_matchmaking(first, stake, "sid-1")
    result = await coordinator.join_matchmaking(second, stake, "sid-2")
    match_id = result["match_id"]
    await coordinator.registry.confirm_stake(match_id, first, "0xstake1")
    await coordinator.registry.confirm_stake(match_id, second, "0xstake2")
    return coordinator.registry.require(match_id)
