"""
Match history service.

Persists every finished match and builds the leaderboard from those rows,
so rankings survive a restart even though live matches do not.
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List

from sqlalchemy.orm import Session
from web3 import Web3

from database import transactional
from models import MatchResult


@transactional
def record_match_result(db: Session, match) -> MatchResult:
    """
    Store a finished match. Recording the same match twice returns the
    existing row untouched.
    """
    existing = db.query(MatchResult).filter(MatchResult.match_id == match.match_id).first()
    if existing:
        return existing

    finished_at = (
        datetime.fromtimestamp(match.finished_at / 1000, tz=timezone.utc)
        if match.finished_at
        else datetime.now(timezone.utc)
    )
    row = MatchResult(
        match_id=match.match_id,
        player1=match.player1,
        player2=match.player2,
        stake=match.stake,
        stake_wei=str(match.stake_wei),
        winner=match.winner,
        is_draw=match.winner is None,
        move_count=len(match.moves),
        create_tx=match.create_tx,
        payout_tx=match.payout_tx,
        payout_error=match.payout_error,
        finished_at=finished_at,
    )
    db.add(row)
    return row


def _empty_entry(address: str) -> Dict[str, Any]:
    return {
        "address": address,
        "wins": 0,
        "losses": 0,
        "draws": 0,
        "matches_played": 0,
        "gt_won_wei": 0,
        "gt_lost_wei": 0,
    }


def get_leaderboard(db: Session, limit: int = 50) -> List[Dict[str, Any]]:
    """
    Aggregate wins/losses/draws per address.

    GT amounts only count matches whose payout actually landed on chain:
    the winner receives the whole pool (2 x stake), the loser loses one stake.
    """
    board: Dict[str, Dict[str, Any]] = defaultdict(dict)

    for row in db.query(MatchResult).all():
        for address in (row.player1, row.player2):
            if not board[address]:
                board[address] = _empty_entry(address)
            board[address]["matches_played"] += 1

        if row.is_draw:
            board[row.player1]["draws"] += 1
            board[row.player2]["draws"] += 1
            continue

        loser = row.player2 if row.winner == row.player1 else row.player1
        board[row.winner]["wins"] += 1
        board[loser]["losses"] += 1

        if row.settled:
            stake_wei = int(row.stake_wei)
            board[row.winner]["gt_won_wei"] += 2 * stake_wei
            board[loser]["gt_lost_wei"] += stake_wei

    entries = sorted(
        board.values(),
        key=lambda e: (e["wins"], e["gt_won_wei"], -e["losses"]),
        reverse=True,
    )[:limit]

    for entry in entries:
        entry["gt_won"] = str(Web3.from_wei(entry["gt_won_wei"], "ether"))
        entry["gt_lost"] = str(Web3.from_wei(entry["gt_lost_wei"], "ether"))
        entry["gt_won_wei"] = str(entry["gt_won_wei"])
        entry["gt_lost_wei"] = str(entry["gt_lost_wei"])

    return entries


def get_player_history(db: Session, address: str) -> List[Dict[str, Any]]:
    """Finished matches for one address, newest first."""
    rows = (
        db.query(MatchResult)
        .filter((MatchResult.player1 == address) | (MatchResult.player2 == address))
        .order_by(MatchResult.finished_at.desc())
        .all()
    )

    history: List[Dict[str, Any]] = []
    for row in rows:
        if row.is_draw:
            result = "draw"
        elif row.winner == address:
            result = "win"
        else:
            result = "loss"

        history.append({
            "match_id": row.match_id,
            "opponent": row.player2 if row.player1 == address else row.player1,
            "stake": row.stake,
            "result": result,
            "winner": row.winner,
            "payout_tx": row.payout_tx,
            "payout_error": row.payout_error,
            "finished_at": row.finished_at.isoformat() if row.finished_at else None,
        })

    return history
