"""
輸入驗證服務：地址與押注金額

純計算邏輯，不涉及狀態轉換
"""
from decimal import Decimal, InvalidOperation
from typing import Tuple

from web3 import Web3

from core.exceptions import InvalidInput

TOKEN_DECIMALS = 18


def normalize_address(address) -> str:
    """
    驗證並轉成 EIP-55 checksum 地址

    範例：
        normalize_address("0xabc...") -> "0xAbC..."

    異常：
        InvalidInput: 不是合法的地址
    """
    if not isinstance(address, str) or not Web3.is_address(address):
        raise InvalidInput(f"Invalid address: {address!r}")
    return Web3.to_checksum_address(address)


def parse_stake(stake) -> Tuple[Decimal, int]:
    """
    解析押注金額（以 GT 為單位的十進位字串）

    返回：
        (Decimal 金額, wei)

    異常：
        InvalidInput: 不是正數、不是有限值、或小數位超過 18 位
    """
    try:
        amount = Decimal(str(stake).strip())
    except (InvalidOperation, ValueError):
        raise InvalidInput(f"Invalid stake amount: {stake!r}")

    if not amount.is_finite() or amount <= 0:
        raise InvalidInput(f"Invalid stake amount: {stake!r}")

    if -amount.as_tuple().exponent > TOKEN_DECIMALS:
        raise InvalidInput(f"Stake {stake!r} has more than {TOKEN_DECIMALS} decimal places")

    return amount, Web3.to_wei(amount, "ether")
