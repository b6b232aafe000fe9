"""
On-Chain Bridge：PlayGame / GameToken 合約的薄轉接層

職責：
1. 寫入：createMatch、commitResult（送出交易並等待上鏈確認）
2. 讀取：GT 餘額、授權額度、鏈上 match 結構、交易 receipt

錯誤處理：
- 寫入失敗不拋例外，回傳 ChainResult.failure(reason)，
  由 MatchRegistry 決定要回滾還是標註後繼續（目前一律標註後繼續）
- 讀取失敗拋 ChainCallFailure，讓 API 層直接回給呼叫者
- 不做任何自動重試

web3 的呼叫都是阻塞的，一律丟到 worker thread 執行，避免卡住 event loop。
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from eth_account import Account
from web3 import Web3
from web3.exceptions import TransactionNotFound

from core.abis import ERC20_ABI, ONCHAIN_MATCH_STATUS, PLAYGAME_ABI
from core.exceptions import ChainCallFailure
from services.naming_service import encode_bytes32

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@dataclass(frozen=True)
class ChainResult:
    """鏈上寫入的結果：Ok(tx_hash) | Err(error)"""
    ok: bool
    tx_hash: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, tx_hash: str) -> "ChainResult":
        return cls(ok=True, tx_hash=tx_hash)

    @classmethod
    def failure(cls, error: str) -> "ChainResult":
        return cls(ok=False, error=error)


def describe_error(error: Exception) -> str:
    message = getattr(error, "message", None) or str(error)
    return message or error.__class__.__name__


class ChainBridge:
    """PlayGame 合約的 operator 端轉接器"""

    def __init__(
        self,
        w3: Web3,
        account,
        playgame_address: str,
        gametoken_address: str,
        chain_id: Optional[int] = None,
        tx_timeout: float = 120.0,
    ):
        self.w3 = w3
        self.account = account
        self.playgame_address = Web3.to_checksum_address(playgame_address)
        self.gametoken_address = Web3.to_checksum_address(gametoken_address)
        self.playgame = w3.eth.contract(address=self.playgame_address, abi=PLAYGAME_ABI)
        self.game_token = w3.eth.contract(address=self.gametoken_address, abi=ERC20_ABI)
        self.tx_timeout = tx_timeout
        self._chain_id = chain_id
        # 同一個 operator 帳號的交易要依序送出，nonce 才不會撞
        self._tx_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings) -> "ChainBridge":
        """依照 Settings 建立連線與 operator 帳號"""
        if not settings.private_key:
            raise RuntimeError("PRIVATE_KEY not set (needed to submit createMatch/commitResult)")
        if not settings.playgame_addr or not settings.gametoken_addr:
            raise RuntimeError("PLAYGAME_ADDR and GAMETOKEN_ADDR must be configured")

        w3 = Web3(Web3.HTTPProvider(settings.rpc_url))
        account = Account.from_key(settings.private_key)
        logger.info(f"Chain bridge using operator {account.address} on {settings.rpc_url}")
        return cls(
            w3,
            account,
            settings.playgame_addr,
            settings.gametoken_addr,
            chain_id=settings.chain_id,
            tx_timeout=settings.tx_timeout_seconds,
        )

    @property
    def operator_address(self) -> str:
        return self.account.address

    # ============ 寫入 ============

    async def register_match(self, match_id: str, player1: str, player2: str, stake_wei: int) -> ChainResult:
        """在 PlayGame 合約上登記對局（createMatch）"""
        try:
            match_key = encode_bytes32(match_id)
        except ValueError as e:
            return ChainResult.failure(str(e))

        fn = self.playgame.functions.createMatch(match_key, player1, player2, stake_wei)
        return await self._transact("createMatch", match_id, fn)

    async def commit_result(self, match_id: str, winner: str) -> ChainResult:
        """提交勝者，合約會把獎池付給 winner（commitResult）"""
        try:
            match_key = encode_bytes32(match_id)
        except ValueError as e:
            return ChainResult.failure(str(e))

        fn = self.playgame.functions.commitResult(match_key, winner)
        return await self._transact("commitResult", match_id, fn)

    async def _transact(self, label: str, match_id: str, fn) -> ChainResult:
        async with self._tx_lock:
            try:
                tx_hash = await asyncio.to_thread(self._send_and_wait, fn)
            except Exception as e:
                logger.error(f"{label} failed for match {match_id}: {e}", exc_info=True)
                return ChainResult.failure(describe_error(e))

        logger.info(f"{label} confirmed for match {match_id}: {tx_hash}")
        return ChainResult.success(tx_hash)

    def _send_and_wait(self, fn) -> str:
        sender = self.account.address
        tx = fn.build_transaction(
            {
                "from": sender,
                "nonce": self.w3.eth.get_transaction_count(sender, "pending"),
                "chainId": self._get_chain_id(),
            }
        )
        signed = self.account.sign_transaction(tx)
        raw_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        tx_hash = Web3.to_hex(raw_hash)

        receipt = self.w3.eth.wait_for_transaction_receipt(raw_hash, timeout=self.tx_timeout)
        if receipt["status"] != 1:
            raise ChainCallFailure(f"Transaction {tx_hash} reverted")
        return tx_hash

    def _get_chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = self.w3.eth.chain_id
        return self._chain_id

    # ============ 讀取 ============

    async def balance_of(self, address: str) -> int:
        """GT 餘額（wei）"""
        return await self._call("balanceOf", self.game_token.functions.balanceOf(address))

    async def allowance(self, owner: str, spender: Optional[str] = None) -> int:
        """owner 給 spender（預設 PlayGame）的 GT 授權額度（wei）"""
        spender = spender or self.playgame_address
        return await self._call("allowance", self.game_token.functions.allowance(owner, spender))

    async def get_match(self, match_id: str) -> Dict[str, Any]:
        """
        讀取鏈上的 match 結構（診斷用）

        返回：
            {p1, p2, stake_wei, start_time, status, status_name, winner}
            鏈上不存在時 status 為 0（NONE）
        """
        try:
            match_key = encode_bytes32(match_id)
        except ValueError as e:
            raise ChainCallFailure(str(e)) from e

        p1, p2, stake, start_time, status, winner = await self._call(
            "matches", self.playgame.functions.matches(match_key)
        )
        return {
            "match_id": match_id,
            "p1": p1,
            "p2": p2,
            "stake_wei": str(stake),
            "start_time": start_time,
            "status": status,
            "status_name": ONCHAIN_MATCH_STATUS[status] if status < len(ONCHAIN_MATCH_STATUS) else "UNKNOWN",
            "winner": None if winner == ZERO_ADDRESS else winner,
        }

    async def get_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """
        取得交易 receipt（尚未上鏈或不存在時回傳 None）

        返回：
            {from, to, status}
        """
        def _fetch():
            try:
                receipt = self.w3.eth.get_transaction_receipt(tx_hash)
            except TransactionNotFound:
                return None
            return {"from": receipt["from"], "to": receipt["to"], "status": receipt["status"]}

        try:
            return await asyncio.to_thread(_fetch)
        except Exception as e:
            logger.error(f"get_transaction_receipt failed for {tx_hash}: {e}", exc_info=True)
            raise ChainCallFailure(f"Failed to fetch receipt for {tx_hash}: {describe_error(e)}") from e

    async def _call(self, label: str, fn):
        try:
            return await asyncio.to_thread(fn.call)
        except Exception as e:
            logger.error(f"{label} call failed: {e}", exc_info=True)
            raise ChainCallFailure(f"{label} call failed: {describe_error(e)}") from e
