"""
Thin facade over python-chess used by the bundled engines.

The game session never looks at the board; it only relays move strings.
Engines that want legal moves rebuild the position here from the initial FEN
and the server's UCI move history.
"""

from __future__ import annotations

import chess

from lichessbot.events import Color

STARTPOS = "startpos"


class ChessBoard:
    """Facade over chess.Board, rebuilt from a move history string."""

    def __init__(self, initial_fen: str | None = None, chess960: bool = False) -> None:
        self._initial_fen = None if not initial_fen or initial_fen == STARTPOS else initial_fen
        self._chess960 = chess960
        self._board = self._fresh_board()

    # ------------------------------------------------------------------ #
    # State queries                                                        #
    # ------------------------------------------------------------------ #

    @property
    def fen(self) -> str:
        return self._board.fen()

    @property
    def turn(self) -> Color:
        return Color.WHITE if self._board.turn == chess.WHITE else Color.BLACK

    @property
    def is_game_over(self) -> bool:
        return self._board.is_game_over(claim_draw=True)

    def legal_moves_uci(self) -> list[str]:
        return [m.uci() for m in self._board.legal_moves]

    # ------------------------------------------------------------------ #
    # Move application                                                    #
    # ------------------------------------------------------------------ #

    def replay(self, moves: str) -> None:
        """
        Reset to the initial position and apply a space-separated UCI history.

        Raises:
            ValueError: a move can't be parsed or isn't legal in sequence.
        """
        board = self._fresh_board()
        for uci in moves.split():
            try:
                move = board.parse_uci(uci)
            except ValueError as exc:
                raise ValueError(f"Cannot apply move '{uci}' at {board.fen()}: {exc}") from exc
            board.push(move)
        self._board = board

    def _fresh_board(self) -> chess.Board:
        if self._initial_fen:
            return chess.Board(self._initial_fen, chess960=self._chess960)
        return chess.Board(chess960=self._chess960)
