"""
Abstract Engine interface — the decision-making capability behind one game.

A GameSession owns all I/O and protocol concerns and calls into its Engine
for decisions only. One Engine instance is created per game, so an engine may
keep whatever per-game state it likes; the session never inspects it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable


class Engine(ABC):
    """Abstract base class for all bot engines."""

    @abstractmethod
    def on_chat_message(self, username: str, text: str) -> str | None:
        """
        React to a chat line in the player room.

        Return the reply text, or None / a blank string to stay silent.
        """
        ...

    @abstractmethod
    def initialize_board_state(self, initial_fen: str, playing_white: bool) -> None:
        """Called once per game with the starting position ("startpos" for the standard one)."""
        ...

    @abstractmethod
    def update_game_state(self, moves: str, wtime: int, btime: int, winc: int, binc: int) -> None:
        """
        Receive the latest move history and clocks.

        Args:
            moves: Space-separated UCI history, e.g. "e2e4 c7c5 g1f3".
            wtime: White's remaining time (millis).
            btime: Black's remaining time (millis).
            winc:  White's increment per move (millis).
            binc:  Black's increment per move (millis).
        """
        ...

    @abstractmethod
    def make_move(self) -> str | None:
        """
        Choose a move. Only called on the bot's turn.

        Returns a UCI move such as "e2e4" or "a7a8q", or "resign".
        Anything else is treated as a bug in the engine.
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


# Called once per game so every game starts with a clean engine.
EngineFactory = Callable[[], Engine]
