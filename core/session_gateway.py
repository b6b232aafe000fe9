"""
Session Gateway：Socket.IO 即時通道（一個對局一個 room）

職責：
1. 維護 session(sid) -> 玩家地址 / match_id 的對應（只是暫存，不是權威狀態）
2. 轉發客戶端事件給 MatchRegistry：加入對局、押注確認、落子
3. 把 Registry 的事件廣播到對局 room，或送給單一玩家
4. 斷線時清理對應，並連帶清掉排隊資料

客戶端事件（inbound）：
    join_game      {match_id, player_address}
    player_staked  {match_id, player_address, tx_hash}
    make_move      {match_id, player_address, position}

伺服器事件（outbound）：
    match_found / game_state / stake_confirmed / game_started /
    game_move / game_ended / error
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from core.exceptions import ArenaException, InvalidInput, MatchNotFound
from services.validation_service import normalize_address

logger = logging.getLogger(__name__)


@dataclass
class SessionInfo:
    address: str
    match_id: str


class SessionGateway:
    def __init__(self, sio):
        self.sio = sio
        self._connections: Set[str] = set()
        self._sessions: Dict[str, SessionInfo] = {}
        self._player_sessions: Dict[str, str] = {}
        self._coordinator = None

    def attach(self, coordinator) -> None:
        """綁定 coordinator 並註冊 socket 事件"""
        self._coordinator = coordinator
        self.sio.on("connect", self.on_connect)
        self.sio.on("join_game", self.on_join_game)
        self.sio.on("player_staked", self.on_player_staked)
        self.sio.on("make_move", self.on_make_move)
        self.sio.on("disconnect", self.on_disconnect)

    @property
    def registry(self):
        return self._coordinator.registry

    # ============ 查詢 ============

    def connected_count(self) -> int:
        """已加入對局 room 的 session 數"""
        return len(self._sessions)

    def connection_count(self) -> int:
        return len(self._connections)

    def session_for(self, address: str) -> Optional[str]:
        return self._player_sessions.get(address)

    # ============ Outbound ============

    async def broadcast(self, match_id: str, event: str, payload: Dict[str, Any]) -> None:
        await self.sio.emit(event, payload, room=match_id)

    async def send_to_player(
        self, session_id: Optional[str], address: str, event: str, payload: Dict[str, Any]
    ) -> None:
        """優先送到排隊時帶的 session，沒有就用地址最近一次的 session"""
        sid = session_id or self._player_sessions.get(address)
        if not sid:
            logger.debug(f"No session for {address}, dropping {event}")
            return
        await self.sio.emit(event, payload, to=sid)

    async def send_error(self, sid: str, error: ArenaException) -> None:
        await self.sio.emit("error", error.to_detail(), to=sid)

    # ============ Inbound ============

    async def on_connect(self, sid, environ, auth=None):
        self._connections.add(sid)
        logger.info(f"Player connected: {sid}")

    async def on_join_game(self, sid, data):
        """
        加入對局 room，並只對這個 session 重送目前的對局狀態
        """
        try:
            match_id, address = self._parse_identity(data)
        except ArenaException as e:
            await self.send_error(sid, e)
            return

        match = self.registry.get(match_id)
        if match is None:
            await self.send_error(sid, MatchNotFound(match_id))
            return

        await self.sio.enter_room(sid, match_id)
        self._sessions[sid] = SessionInfo(address=address, match_id=match_id)
        self._player_sessions[address] = sid
        logger.info(f"{address} joined game room {match_id}")
        await self.sio.emit("game_state", match.to_dict(), to=sid)

    async def on_player_staked(self, sid, data):
        try:
            match_id, address = self._parse_identity(data)
            await self.registry.confirm_stake(match_id, address, data.get("tx_hash"))
        except ArenaException as e:
            logger.info(f"Stake confirmation rejected for session {sid}: {e}")
            await self.send_error(sid, e)

    async def on_make_move(self, sid, data):
        try:
            match_id, address = self._parse_identity(data)
            await self.registry.submit_move(match_id, address, data.get("position"))
        except ArenaException as e:
            logger.info(f"Move rejected for session {sid}: {e}")
            await self.send_error(sid, e)

    async def on_disconnect(self, sid, reason=None):
        logger.info(f"Player disconnected: {sid}")
        self._connections.discard(sid)

        info = self._sessions.pop(sid, None)
        address = None
        if info is not None:
            address = info.address
            if self._player_sessions.get(address) == sid:
                del self._player_sessions[address]

        if self._coordinator is not None:
            self._coordinator.handle_disconnect(sid, address)

    def _parse_identity(self, data):
        if not isinstance(data, dict):
            raise InvalidInput("Event payload must be an object")
        match_id = data.get("match_id")
        if not match_id or not isinstance(match_id, str):
            raise InvalidInput("match_id is required")
        return match_id, normalize_address(data.get("player_address"))
