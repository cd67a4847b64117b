"""
GameSession — one per active game, run on a worker thread by the bot.

Lifecycle:
    UNASSIGNED --gameFull--> ASSIGNED --stream ends / fatal error--> TERMINATED

The session streams its game, replays each event into the Engine and relays
the engine's decisions (move, resign, chat reply) back to the server.

Error policy:
  - ServiceError / TransportError on an outbound request: logged, the session
    carries on. No retry; the next gameState event carries the truth.
  - Malformed stream, broken stream, identity mismatch, invalid engine move,
    engine exception: fatal. Logged with the game id and re-raised, which ends
    this session only.
"""

from __future__ import annotations

import logging
from enum import Enum

from lichessbot.client import LichessClient, ServiceError, TransportError
from lichessbot.engines.base import Engine
from lichessbot.events import (
    Account,
    ChatLine,
    Color,
    GameEvent,
    GameFull,
    GameState,
    UnknownGameEvent,
)
from lichessbot.turns import (
    IdentityMismatchError,
    InvalidMoveError,
    assign_color,
    is_resign,
    is_valid_move,
    normalize_move,
    side_to_move,
)

logger = logging.getLogger(__name__)

PLAYER_ROOM = "player"


class SessionState(Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    TERMINATED = "terminated"


class GameSession:
    """Turn-taking state machine for a single game."""

    def __init__(
        self,
        game_id: str,
        account: Account,
        client: LichessClient,
        engine: Engine,
    ) -> None:
        self.game_id = game_id
        self._account = account
        self._client = client
        self._engine = engine
        self._color = Color.UNKNOWN
        self._terminated = False
        self._resigned = False

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    @property
    def color(self) -> Color:
        return self._color

    @property
    def state(self) -> SessionState:
        if self._terminated:
            return SessionState.TERMINATED
        if self._color is Color.UNKNOWN:
            return SessionState.UNASSIGNED
        return SessionState.ASSIGNED

    @property
    def resigned(self) -> bool:
        return self._resigned

    def run(self) -> None:
        """
        Stream the game until the server closes it.

        Blocks the calling thread for the life of the game.
        """
        logger.info("Game %s: session started with %r", self.game_id, self._engine)
        try:
            self._client.stream_game(self.game_id, self.handle_event)
        except Exception:
            logger.exception("Game %s: exception occurred, game processing stopped", self.game_id)
            raise
        finally:
            self._terminated = True
        logger.info("Game %s: stream closed", self.game_id)

    def handle_event(self, event: GameEvent) -> None:
        """Apply one game event. Events must be fed in arrival order."""
        match event:
            case GameFull():
                self._on_full(event)
            case GameState():
                self._on_state(event)
            case ChatLine():
                self._on_chat(event)
            case UnknownGameEvent():
                logger.debug("Game %s: ignoring '%s' event", self.game_id, event.type)

    def is_my_turn(self, moves: str | None) -> bool:
        return self._color is not Color.UNKNOWN and side_to_move(moves) is self._color

    # ------------------------------------------------------------------ #
    # Event handlers                                                       #
    # ------------------------------------------------------------------ #

    def _on_full(self, event: GameFull) -> None:
        color = assign_color(self._account.id, event.white, event.black)
        if self._color is Color.UNKNOWN:
            self._color = color
            logger.info(
                "Game %s: playing %s (%s) vs %s",
                self.game_id,
                color.value,
                event.variant.name,
                _opponent_name(event, color),
            )
        elif color is not self._color:
            raise IdentityMismatchError(
                f"Game {self.game_id}: colour changed from {self._color.value} to {color.value}"
            )

        state = event.state
        self._engine.initialize_board_state(event.initial_fen, self._color is Color.WHITE)
        self._engine.update_game_state(state.moves, state.wtime, state.btime, state.winc, state.binc)
        self._maybe_move(state.moves)

    def _on_state(self, event: GameState) -> None:
        if self._color is Color.UNKNOWN:
            logger.warning("Game %s: gameState before gameFull, ignoring", self.game_id)
            return
        self._engine.update_game_state(event.moves, event.wtime, event.btime, event.winc, event.binc)
        self._maybe_move(event.moves)

    def _on_chat(self, event: ChatLine) -> None:
        if event.room != PLAYER_ROOM:
            return
        if event.username.lower() == self._account.username.lower():
            return
        reply = self._engine.on_chat_message(event.username, event.text)
        if reply is not None and reply.strip():
            self._send_chat(reply.strip())

    # ------------------------------------------------------------------ #
    # Outbound actions                                                     #
    # ------------------------------------------------------------------ #

    def _maybe_move(self, moves: str) -> None:
        if self._resigned or not self.is_my_turn(moves):
            return
        self._submit(self._engine.make_move())

    def _submit(self, candidate: str | None) -> None:
        move = normalize_move(candidate)
        if is_resign(move):
            self._resign()
            return
        if not is_valid_move(move):
            raise InvalidMoveError(f"Invalid move from {self._engine!r}: {candidate!r}")

        logger.info("Game %s: making move %s", self.game_id, move)
        try:
            self._client.make_move(self.game_id, move)
        except ServiceError as exc:
            logger.warning("Game %s: couldn't make move %s because: %s", self.game_id, move, exc)
        except TransportError as exc:
            logger.error("Game %s: unable to make move %s: %s", self.game_id, move, exc)
        else:
            logger.debug("Game %s: move %s accepted", self.game_id, move)

    def _resign(self) -> None:
        try:
            self._client.resign(self.game_id)
        except ServiceError as exc:
            logger.warning("Game %s: couldn't resign because: %s", self.game_id, exc)
        except TransportError as exc:
            logger.error("Game %s: unable to resign: %s", self.game_id, exc)
        else:
            self._resigned = True
            logger.info("Game %s: resigned", self.game_id)

    def _send_chat(self, text: str) -> None:
        try:
            self._client.send_chat(self.game_id, PLAYER_ROOM, text)
        except ServiceError as exc:
            logger.warning("Game %s: couldn't send message %r because: %s", self.game_id, text, exc)
        except TransportError as exc:
            logger.error("Game %s: unable to send message %r: %s", self.game_id, text, exc)
        else:
            logger.info("Game %s: message sent: %s", self.game_id, text)

    def __repr__(self) -> str:
        return f"GameSession(game_id={self.game_id!r}, state={self.state.value}, color={self._color.value})"


def _opponent_name(event: GameFull, color: Color) -> str:
    opponent = event.black if color is Color.WHITE else event.white
    if opponent.ai_level is not None:
        return f"AI level {opponent.ai_level}"
    return opponent.name or opponent.id or "?"
