"""
Turn parity, colour assignment and move-format checks.

Whose turn it is is always derived from the move history; nothing here keeps
state.
"""

from __future__ import annotations

import re

from lichessbot.events import Color, User

RESIGN = "resign"

# Origin square, destination square, optional promotion piece.
_MOVE_RE = re.compile(r"[a-h][1-8][a-h][1-8][knbrq]?")


class IdentityMismatchError(RuntimeError):
    """The server put us in a game where neither side is our account."""


class InvalidMoveError(ValueError):
    """An engine returned something that is neither a coordinate move nor 'resign'."""


def count_half_moves(moves: str | None) -> int:
    if moves is None or not moves.strip():
        return 0
    return len(moves.strip().split(" "))


def side_to_move(moves: str | None) -> Color:
    """White moves after an even number of half-moves, Black after an odd one."""
    return Color.WHITE if count_half_moves(moves) % 2 == 0 else Color.BLACK


def assign_color(account_id: str, white: User, black: User) -> Color:
    if white.id is not None and white.id == account_id:
        return Color.WHITE
    if black.id is not None and black.id == account_id:
        return Color.BLACK
    raise IdentityMismatchError(
        "In a game where neither player's ID matches my own. "
        f"White: {white.id}, Black: {black.id}, Me: {account_id}"
    )


def normalize_move(candidate: str | None) -> str | None:
    return candidate.strip().lower() if candidate is not None else None


def is_resign(move: str | None) -> bool:
    return normalize_move(move) == RESIGN


def is_valid_move(move: str | None) -> bool:
    normalized = normalize_move(move)
    return normalized is not None and _MOVE_RE.fullmatch(normalized) is not None
