"""
Move Processor：把一步棋套用到 Match 上

流程：
1. 驗證（回合、狀態、位置、格子是否已佔用），任何一項失敗都不會動到棋盤
2. 落子並寫入 move log
3. 勝負判定：連線 -> finished + winner；滿盤 -> finished（平手）；否則換手

整個流程是同步的，中間沒有 await，所以不需要鎖。
"""
import logging

from models import MatchStatus
from core.exceptions import CellOccupied, InvalidPosition, NotPlayable, OutOfTurn
from core.match import Match, MoveRecord, PLAYER1_SYMBOL, PLAYER2_SYMBOL
from core.state_machine import MatchStateMachine
from services.tictactoe_service import check_winner, is_board_full, is_valid_position

logger = logging.getLogger(__name__)


def symbol_for(match: Match, player: str) -> str:
    return PLAYER1_SYMBOL if player == match.player1 else PLAYER2_SYMBOL


def owner_of(match: Match, symbol: str) -> str:
    return match.player1 if symbol == PLAYER1_SYMBOL else match.player2


def validate_move(match: Match, player: str, position) -> None:
    """
    驗證一步棋是否合法

    檢查順序：
        OutOfTurn -> NotPlayable -> InvalidPosition -> CellOccupied

    異常：
        OutOfTurn: player 不是 current_player
        NotPlayable: 對局不是 playing
        InvalidPosition: 位置不在 0-8
        CellOccupied: 格子已被佔用
    """
    if player != match.current_player:
        raise OutOfTurn(player)

    if match.status != MatchStatus.PLAYING:
        raise NotPlayable(
            f"Match {match.match_id} is not active (status: {match.status.value})"
        )

    if not is_valid_position(position):
        raise InvalidPosition(position)

    if match.board[position] is not None:
        raise CellOccupied(position)


def apply_move(match: Match, player: str, position: int) -> Match:
    """
    套用一步棋（先驗證，再修改）

    參數：
        match: 進行中的 Match
        player: 落子玩家（checksum 地址）
        position: 0-8

    返回：
        同一個 Match（已更新）
    """
    validate_move(match, player, position)

    symbol = symbol_for(match, player)
    match.board[position] = symbol
    match.moves.append(MoveRecord(player=player, position=position, symbol=symbol))

    winning_symbol = check_winner(match.board)
    if winning_symbol:
        match.winner = owner_of(match, winning_symbol)
        MatchStateMachine.transition(match, MatchStatus.FINISHED)
        logger.info(f"Match {match.match_id} won by {match.winner} ({winning_symbol})")
    elif is_board_full(match.board):
        match.winner = None
        MatchStateMachine.transition(match, MatchStatus.FINISHED)
        logger.info(f"Match {match.match_id} ended in a draw")
    else:
        match.current_player = match.opponent_of(player)

    return match
