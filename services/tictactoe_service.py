"""
井字棋規則服務：勝負判定

純計算邏輯，不涉及狀態轉換

棋盤以長度 9 的 list 表示，索引對應：
    0 | 1 | 2
    ---------
    3 | 4 | 5
    ---------
    6 | 7 | 8
每格為 None（空）或棋子符號（"X" / "O"）。
"""
from typing import Optional, Sequence, Tuple

WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    # 橫排
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    # 直排
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    # 對角線
    (0, 4, 8),
    (2, 4, 6),
)


def check_winner(board: Sequence[Optional[str]]) -> Optional[str]:
    """
    檢查棋盤上是否有連成一線的符號

    參數：
        board: 9 格棋盤

    返回：
        連線的符號；沒有連線則回傳 None

    範例：
        check_winner(["X", "X", "X", None, "O", "O", None, None, None]) -> "X"
        check_winner([None] * 9) -> None
    """
    for a, b, c in WINNING_LINES:
        if board[a] and board[a] == board[b] == board[c]:
            return board[a]
    return None


def winning_line(board: Sequence[Optional[str]]) -> Optional[Tuple[int, int, int]]:
    """回傳連線的三個位置（前端用來標示勝利線）"""
    for line in WINNING_LINES:
        a, b, c = line
        if board[a] and board[a] == board[b] == board[c]:
            return line
    return None


def is_board_full(board: Sequence[Optional[str]]) -> bool:
    return all(cell is not None for cell in board)


def is_valid_position(position) -> bool:
    """位置必須是 0-8 的整數（bool 不算）"""
    return isinstance(position, int) and not isinstance(position, bool) and 0 <= position <= 8
