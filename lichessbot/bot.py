"""
LichessBot — listens on the account feed and dispatches its events.

  challenge  → ChallengePolicy decides → accept / decline request
  gameStart  → new GameSession with a fresh Engine, submitted to a bounded
               thread pool (max_games workers; extra games wait in the queue)

The dispatcher holds no per-game state beyond the set of running game ids.
A failing session is logged at the task boundary and never reaches the
account stream or other sessions. Failures of the account stream itself
propagate out of listen().

Usage:
    bot = LichessBot(client, engine_factory("random"), AcceptAllPolicy())
    bot.connect()
    bot.listen()
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor

from lichessbot.challenges import ChallengePolicy
from lichessbot.client import LichessClient, ServiceError, TransportError
from lichessbot.engines.base import EngineFactory
from lichessbot.events import (
    Account,
    AccountEvent,
    Challenge,
    ChallengeEvent,
    GameStartEvent,
    UnknownAccountEvent,
)
from lichessbot.session import GameSession

logger = logging.getLogger(__name__)

MAX_GAMES = 8


class LichessBot:
    def __init__(
        self,
        client: LichessClient,
        engine_factory: EngineFactory,
        challenge_policy: ChallengePolicy,
        max_games: int = MAX_GAMES,
    ) -> None:
        if max_games < 1:
            raise ValueError("max_games must be >= 1")
        self._client = client
        self._engine_factory = engine_factory
        self._challenge_policy = challenge_policy
        self._max_games = max_games
        self._account: Account | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._active_games: dict[str, Future] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    @property
    def account(self) -> Account:
        if self._account is None:
            raise RuntimeError("Not connected; call connect() first")
        return self._account

    @property
    def active_games(self) -> list[str]:
        with self._lock:
            return list(self._active_games)

    def connect(self, register: bool = False) -> Account:
        """
        Load the operating account and make sure it is a BOT account.

        Raises:
            ValueError: the account is not a bot and register is False, or
                        the upgrade request was refused.
            TransportError: the server could not be reached.
        """
        account = self._client.get_account()
        if not account.is_bot:
            if not register:
                raise ValueError(
                    f"Account '{account.username}' is not a BOT account. "
                    "Set lichess.register_bot to upgrade it (only possible before any game is played)."
                )
            try:
                self._client.upgrade_to_bot()
            except ServiceError as exc:
                raise ValueError(f"Unable to register bot account: {exc}") from exc
            logger.info("Bot account successfully registered")

        self._account = account
        logger.info("Session open with username %s", account.username)
        return account

    def listen(self) -> None:
        """
        Stream the account feed until the server closes it.

        When the server closes the stream, waits for running games to finish
        before returning. When the stream fails (or the caller is
        interrupted), queued games are cancelled and the error propagates
        at once; games already running are left to their own streams.
        """
        account = self.account
        logger.info("Listening for challenges as %s (max %d games)", account.username, self._max_games)
        executor = ThreadPoolExecutor(max_workers=self._max_games, thread_name_prefix="game")
        self._executor = executor
        closed_by_server = False
        try:
            self._client.stream_events(self.handle_event)
            closed_by_server = True
        finally:
            self._executor = None
            if closed_by_server:
                logger.info("Account stream closed; waiting for %d game(s)", len(self.active_games))
            else:
                logger.warning("Account stream stopped; abandoning %d game(s)", len(self.active_games))
            executor.shutdown(wait=closed_by_server, cancel_futures=not closed_by_server)

    def handle_event(self, event: AccountEvent) -> None:
        match event:
            case ChallengeEvent():
                self._handle_challenge(event.challenge)
            case GameStartEvent():
                self._start_game(event.game_id)
            case UnknownAccountEvent():
                logger.debug("Ignoring '%s' event", event.type)

    # ------------------------------------------------------------------ #
    # Challenges                                                           #
    # ------------------------------------------------------------------ #

    def _handle_challenge(self, challenge: Challenge) -> None:
        challenger = challenge.challenger.name if challenge.challenger else "?"
        logger.info(
            "Challenge %s from %s (%s, %s, %s)",
            challenge.id,
            challenger,
            challenge.variant.key,
            challenge.time_control.show or challenge.time_control.type,
            "rated" if challenge.rated else "casual",
        )
        self._send_challenge_reply(challenge, self._challenge_policy.should_accept(challenge))

    def _send_challenge_reply(self, challenge: Challenge, accept: bool) -> None:
        action = "accept" if accept else "decline"
        try:
            if accept:
                self._client.accept_challenge(challenge.id)
            else:
                self._client.decline_challenge(
                    challenge.id, self._challenge_policy.decline_reason(challenge)
                )
        except ServiceError as exc:
            logger.warning("Failed to %s challenge %s because: %s", action, challenge.id, exc)
        except TransportError as exc:
            logger.error("Unable to %s challenge %s: %s", action, challenge.id, exc)
        else:
            logger.info("Challenge %s %s.", challenge.id, "accepted" if accept else "declined")

    # ------------------------------------------------------------------ #
    # Games                                                                #
    # ------------------------------------------------------------------ #

    def _start_game(self, game_id: str) -> None:
        if self._executor is None:
            raise RuntimeError("gameStart received outside listen()")

        with self._lock:
            if game_id in self._active_games:
                logger.info("Game %s already running, ignoring duplicate gameStart", game_id)
                return
            session = GameSession(game_id, self.account, self._client, self._engine_factory())
            future = self._executor.submit(session.run)
            self._active_games[game_id] = future

        logger.info("Game %s queued (%d active)", game_id, len(self.active_games))
        future.add_done_callback(lambda f: self._on_game_done(game_id, f))

    def _on_game_done(self, game_id: str, future: Future) -> None:
        with self._lock:
            self._active_games.pop(game_id, None)
        # GameSession.run already logged the traceback; just record the outcome.
        if future.cancelled():
            logger.info("Game %s cancelled", game_id)
        elif future.exception() is not None:
            logger.info("Game %s ended with an error", game_id)
        else:
            logger.info("Game %s finished", game_id)
