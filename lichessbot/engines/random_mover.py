"""
RandomEngine — plays a uniformly random legal move.

Rebuilds the position from the server's move history on every update, so it
never drifts from what the server believes. Resigns when it has no legal
move left (the game is over and the server will end the stream anyway).
"""

from __future__ import annotations

import random

from lichessbot.board import ChessBoard
from lichessbot.engines.base import Engine

_GREETINGS = ("hi", "hello", "hey", "gl", "good luck", "glhf")


class RandomEngine(Engine):
    """
    Args:
        chess960: Parse castling moves in king-takes-rook form.
        seed: Seed for the move picker (tests use this for repeatability).
    """

    def __init__(self, chess960: bool = False, seed: int | None = None) -> None:
        self._chess960 = chess960
        self._rng = random.Random(seed)
        self._board = ChessBoard(chess960=chess960)

    def on_chat_message(self, username: str, text: str) -> str | None:
        if text.strip().lower().rstrip("!.") in _GREETINGS:
            return f"Good luck, {username}! I pick my moves at random."
        return None

    def initialize_board_state(self, initial_fen: str, playing_white: bool) -> None:
        self._board = ChessBoard(initial_fen, chess960=self._chess960)

    def update_game_state(self, moves: str, wtime: int, btime: int, winc: int, binc: int) -> None:
        self._board.replay(moves)

    def make_move(self) -> str | None:
        legal = self._board.legal_moves_uci()
        if not legal:
            return "resign"
        return self._rng.choice(legal)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(chess960={self._chess960})"
