"""
押注確認的驗證策略

客戶端在鏈上呼叫 PlayGame.stake() 後，會把交易 hash 透過 socket 回報。
要不要相信這個 hash，由 StakeVerifier 決定：

- ClientAssertedStakeVerifier：直接相信（預設，與既有前端行為一致）
- ReceiptStakeVerifier：查 receipt，確認交易成功、由該玩家送出、目標是 PlayGame
"""
import logging
from typing import Optional

from core.exceptions import StakeNotVerified

logger = logging.getLogger(__name__)


class StakeVerifier:
    """驗證介面"""

    async def verify(self, match_id: str, player: str, tx_hash: Optional[str]) -> None:
        """驗證失敗時拋出 StakeNotVerified"""
        raise NotImplementedError


class ClientAssertedStakeVerifier(StakeVerifier):
    async def verify(self, match_id: str, player: str, tx_hash: Optional[str]) -> None:
        logger.debug(f"Trusting client-reported stake for {player} in {match_id}: {tx_hash}")


class ReceiptStakeVerifier(StakeVerifier):
    def __init__(self, bridge):
        self.bridge = bridge

    async def verify(self, match_id: str, player: str, tx_hash: Optional[str]) -> None:
        if not tx_hash:
            raise StakeNotVerified(f"Missing stake transaction hash for {player}")

        receipt = await self.bridge.get_receipt(tx_hash)
        if receipt is None:
            raise StakeNotVerified(f"Stake transaction {tx_hash} not found or not mined yet")
        if receipt["status"] != 1:
            raise StakeNotVerified(f"Stake transaction {tx_hash} reverted")
        if (receipt["from"] or "").lower() != player.lower():
            raise StakeNotVerified(f"Stake transaction {tx_hash} was not sent by {player}")
        if (receipt["to"] or "").lower() != self.bridge.playgame_address.lower():
            raise StakeNotVerified(f"Stake transaction {tx_hash} did not target PlayGame")

        logger.info(f"Verified stake tx {tx_hash} for {player} in {match_id}")


def build_stake_verifier(mode: str, bridge) -> StakeVerifier:
    if mode == "client":
        return ClientAssertedStakeVerifier()
    if mode == "receipt":
        return ReceiptStakeVerifier(bridge)
    raise ValueError(f"Unknown stake verification mode: {mode!r} (expected 'client' or 'receipt')")
