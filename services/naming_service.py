"""
命名服務：生成 Match ID 與鏈上 bytes32 編碼

純計算邏輯，不涉及狀態轉換
"""
import uuid

MATCH_ID_PREFIX = "match_"
BYTES32_MAX_TEXT = 31


def generate_match_id() -> str:
    """
    生成唯一的 Match ID

    格式：match_ + 24 位十六進位（取自 UUID4）
    範例：match_3f2a9c0d7b1e4f6a8c5d2e1b

    注意：
    - 總長 30 bytes，可以放進 bytes32（formatBytes32String 最多 31 bytes）
    - 16^24 種可能，碰撞機率可忽略
    """
    return f"{MATCH_ID_PREFIX}{uuid.uuid4().hex[:24]}"


def encode_bytes32(text: str) -> bytes:
    """
    把字串編成 bytes32（UTF-8，右側補 0，最多 31 bytes 以保留結尾的 0）

    異常：
        ValueError: 字串太長
    """
    raw = text.encode("utf-8")
    if len(raw) > BYTES32_MAX_TEXT:
        raise ValueError(f"String too long for bytes32: {text!r} ({len(raw)} bytes)")
    return raw.ljust(32, b"\x00")


def decode_bytes32(value: bytes) -> str:
    return bytes(value).rstrip(b"\x00").decode("utf-8")
