"""ResigningEngine — resigns on its first turn and never chats."""

from __future__ import annotations

from lichessbot.engines.base import Engine


class ResigningEngine(Engine):
    def on_chat_message(self, username: str, text: str) -> str | None:
        return None

    def initialize_board_state(self, initial_fen: str, playing_white: bool) -> None:
        pass

    def update_game_state(self, moves: str, wtime: int, btime: int, winc: int, binc: int) -> None:
        pass

    def make_move(self) -> str | None:
        return "resign"
