"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層與 Socket 層統一處理。
每個異常都帶有機器可讀的 code 與對應的 HTTP status_code。
"""


class ArenaException(Exception):
    """所有對局異常的基類"""
    code = "ARENA_ERROR"
    status_code = 400

    def to_detail(self) -> dict:
        return {"code": self.code, "message": str(self)}


# ============ 輸入相關異常 ============

class InvalidInput(ArenaException):
    """格式錯誤的地址、金額或位置（不重試，直接回給呼叫者）"""
    code = "INVALID_INPUT"


class InvalidPosition(InvalidInput):
    """落子位置不在 0-8 之間"""
    code = "INVALID_POSITION"

    def __init__(self, position):
        self.position = position
        super().__init__(f"Invalid position {position!r}, expected 0-8")


# ============ 餘額相關異常 ============

class InsufficientBalance(ArenaException):
    """GT 餘額不足以支付押注"""
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, address, balance_wei: int, required_wei: int):
        self.address = address
        self.balance_wei = balance_wei
        self.required_wei = required_wei
        super().__init__(
            f"Insufficient GT balance for {address}: has {balance_wei} wei, needs {required_wei} wei"
        )


class InsufficientAllowance(ArenaException):
    """PlayGame 合約的 GT 授權額度不足"""
    code = "INSUFFICIENT_ALLOWANCE"

    def __init__(self, address, allowance_wei: int, required_wei: int):
        self.address = address
        self.allowance_wei = allowance_wei
        self.required_wei = required_wei
        super().__init__(
            f"Insufficient GT allowance for {address}: approved {allowance_wei} wei, needs {required_wei} wei"
        )


# ============ Match 相關異常 ============

class MatchNotFound(ArenaException):
    """對局不存在（或已過保留期被清除）"""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, match_id):
        self.match_id = match_id
        super().__init__(f"Match {match_id} not found")


# ============ 狀態轉換異常 ============

class IllegalTransition(ArenaException):
    """非法的狀態轉換"""
    code = "ILLEGAL_TRANSITION"
    status_code = 409


class OutOfTurn(IllegalTransition):
    """不是該玩家的回合"""
    code = "OUT_OF_TURN"

    def __init__(self, player):
        self.player = player
        super().__init__(f"Not your turn: {player}")


class NotPlayable(IllegalTransition):
    """對局目前不是 playing 狀態"""
    code = "NOT_PLAYABLE"


class CellOccupied(IllegalTransition):
    """格子已經有棋子"""
    code = "CELL_OCCUPIED"

    def __init__(self, position):
        self.position = position
        super().__init__(f"Position {position} already taken")


class StakeNotVerified(IllegalTransition):
    """押注交易驗證失敗"""
    code = "STAKE_NOT_VERIFIED"


# ============ 鏈上呼叫異常 ============

class ChainCallFailure(ArenaException):
    """RPC 或合約呼叫失敗"""
    code = "CHAIN_CALL_FAILURE"
    status_code = 502
