import threading
import time
import unittest

from lichessbot.bot import LichessBot
from lichessbot.challenges import AcceptAllPolicy, ChallengePolicy
from lichessbot.client import ServiceError, TransportError
from lichessbot.engines.resigning import ResigningEngine
from lichessbot.events import (
    Account,
    Challenge,
    ChallengeEvent,
    GameFull,
    GameStartEvent,
    GameState,
    UnknownAccountEvent,
    User,
)
from lichessbot.stream import StreamDecodeError

BOT_ACCOUNT = Account(id="u1", username="MyBot", title="BOT")


class _FakeClient:
    def __init__(
        self,
        account: Account = BOT_ACCOUNT,
        account_events: list | None = None,
        game_events: dict[str, list] | None = None,
    ) -> None:
        self.account = account
        self.account_events = account_events or []
        self.game_events = game_events or {}
        self.broken_games: set[str] = set()
        self.requests: list[tuple] = []
        self.fail_with: Exception | None = None
        self.upgrade_error: Exception | None = None
        self.account_error: Exception | None = None   # raised once the account feed is exhausted
        self.hold_games: threading.Event | None = None   # game streams stay open until set
        self.release_on_feed_end = False
        self.opened_games: list[str] = []
        self._lock = threading.Lock()

    def get_account(self) -> Account:
        return self.account

    def upgrade_to_bot(self) -> None:
        self._record("upgrade")
        if self.upgrade_error is not None:
            raise self.upgrade_error

    def stream_events(self, processor) -> None:
        for event in self.account_events:
            processor(event)
        if self.release_on_feed_end and self.hold_games is not None:
            self.hold_games.set()
        if self.account_error is not None:
            raise self.account_error

    def stream_game(self, game_id, processor) -> None:
        with self._lock:
            self.opened_games.append(game_id)
        for event in self.game_events.get(game_id, []):
            processor(event)
        if self.hold_games is not None:
            self.hold_games.wait(timeout=30)
        if game_id in self.broken_games:
            raise StreamDecodeError("Could not parse JSON")

    def accept_challenge(self, challenge_id) -> None:
        self._record("accept", challenge_id)
        self._maybe_fail()

    def decline_challenge(self, challenge_id, reason="generic") -> None:
        self._record("decline", challenge_id, reason)
        self._maybe_fail()

    def make_move(self, game_id, move) -> None:
        self._record("move", game_id, move)

    def resign(self, game_id) -> None:
        self._record("resign", game_id)

    def send_chat(self, game_id, room, text) -> None:
        self._record("chat", game_id, room, text)

    def _record(self, *request) -> None:
        with self._lock:
            self.requests.append(request)

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with


class _RejectAll(ChallengePolicy):
    def should_accept(self, challenge: Challenge) -> bool:
        return False

    def decline_reason(self, challenge: Challenge) -> str:
        return "variant"


def _full(game_id: str, white: str = "u1", black: str = "u2") -> GameFull:
    return GameFull(id=game_id, white=User(id=white), black=User(id=black), state=GameState())


def _bot(client: _FakeClient, policy: ChallengePolicy | None = None, max_games: int = 2) -> LichessBot:
    bot = LichessBot(client, ResigningEngine, policy or AcceptAllPolicy(), max_games=max_games)
    bot.connect()
    return bot


class ConnectTests(unittest.TestCase):
    def test_bot_account_connects(self) -> None:
        client = _FakeClient()
        bot = LichessBot(client, ResigningEngine, AcceptAllPolicy())
        self.assertEqual(bot.connect(), BOT_ACCOUNT)
        self.assertEqual(bot.account.username, "MyBot")
        self.assertEqual(client.requests, [])

    def test_non_bot_account_without_register_raises(self) -> None:
        client = _FakeClient(account=Account(id="u1", username="Human"))
        bot = LichessBot(client, ResigningEngine, AcceptAllPolicy())
        with self.assertRaises(ValueError):
            bot.connect()

    def test_non_bot_account_is_upgraded_when_registering(self) -> None:
        client = _FakeClient(account=Account(id="u1", username="Human"))
        bot = LichessBot(client, ResigningEngine, AcceptAllPolicy())
        bot.connect(register=True)
        self.assertEqual(client.requests, [("upgrade",)])

    def test_refused_upgrade_raises_value_error(self) -> None:
        client = _FakeClient(account=Account(id="u1", username="Human"))
        client.upgrade_error = ServiceError("This account has already played games")
        bot = LichessBot(client, ResigningEngine, AcceptAllPolicy())
        with self.assertRaises(ValueError):
            bot.connect(register=True)

    def test_account_before_connect_raises(self) -> None:
        bot = LichessBot(_FakeClient(), ResigningEngine, AcceptAllPolicy())
        with self.assertRaises(RuntimeError):
            bot.account

    def test_max_games_must_be_positive(self) -> None:
        with self.assertRaises(ValueError):
            LichessBot(_FakeClient(), ResigningEngine, AcceptAllPolicy(), max_games=0)


class ChallengeDispatchTests(unittest.TestCase):
    def test_accepted_challenge(self) -> None:
        client = _FakeClient()
        bot = _bot(client)
        bot.handle_event(ChallengeEvent(challenge=Challenge(id="c1")))
        self.assertEqual(client.requests, [("accept", "c1")])

    def test_declined_challenge_uses_policy_reason(self) -> None:
        client = _FakeClient()
        bot = _bot(client, policy=_RejectAll())
        bot.handle_event(ChallengeEvent(challenge=Challenge(id="c1")))
        self.assertEqual(client.requests, [("decline", "c1", "variant")])

    def test_refused_acknowledgement_is_logged_not_raised(self) -> None:
        client = _FakeClient()
        client.fail_with = ServiceError("Challenge not found", status_code=404)
        bot = _bot(client)
        with self.assertLogs("lichessbot.bot", level="WARNING"):
            bot.handle_event(ChallengeEvent(challenge=Challenge(id="c1")))

    def test_transport_failure_is_logged_not_raised(self) -> None:
        client = _FakeClient()
        client.fail_with = TransportError("connection reset")
        bot = _bot(client, policy=_RejectAll())
        with self.assertLogs("lichessbot.bot", level="ERROR"):
            bot.handle_event(ChallengeEvent(challenge=Challenge(id="c1")))

    def test_unknown_event_is_ignored(self) -> None:
        client = _FakeClient()
        bot = _bot(client)
        bot.handle_event(UnknownAccountEvent(type="challengeDeclined"))
        self.assertEqual(client.requests, [])


class GameDispatchTests(unittest.TestCase):
    def test_game_start_runs_a_session(self) -> None:
        client = _FakeClient(
            account_events=[GameStartEvent(game_id="g1")],
            game_events={"g1": [_full("g1")]},
        )
        bot = _bot(client)

        bot.listen()

        self.assertEqual(client.requests, [("resign", "g1")])
        self.assertEqual(bot.active_games, [])

    def test_game_start_outside_listen_raises(self) -> None:
        bot = _bot(_FakeClient())
        with self.assertRaises(RuntimeError):
            bot.handle_event(GameStartEvent(game_id="g1"))

    def test_failing_session_does_not_stop_dispatcher_or_other_games(self) -> None:
        client = _FakeClient(
            account_events=[
                GameStartEvent(game_id="bad"),
                ChallengeEvent(challenge=Challenge(id="c1")),
                GameStartEvent(game_id="good"),
            ],
            game_events={
                "bad": [_full("bad", white="x", black="y")],   # not our game
                "good": [_full("good")],
            },
        )
        client.broken_games.add("good")   # stream breaks after the first event
        bot = _bot(client)

        with self.assertLogs("lichessbot.session", level="ERROR") as logs:
            bot.listen()

        self.assertIn(("accept", "c1"), client.requests)
        self.assertIn(("resign", "good"), client.requests)
        self.assertEqual(len(logs.records), 2)

    def test_more_games_than_workers_are_queued_not_dropped(self) -> None:
        game_ids = [f"g{i}" for i in range(5)]
        client = _FakeClient(
            account_events=[GameStartEvent(game_id=g) for g in game_ids],
            game_events={g: [_full(g)] for g in game_ids},
        )
        bot = _bot(client, max_games=1)

        bot.listen()

        self.assertEqual(sorted(client.requests), [("resign", g) for g in game_ids])

    def test_each_game_gets_a_fresh_engine(self) -> None:
        created = []

        def factory() -> ResigningEngine:
            engine = ResigningEngine()
            created.append(engine)
            return engine

        client = _FakeClient(
            account_events=[GameStartEvent(game_id="g1"), GameStartEvent(game_id="g2")],
            game_events={"g1": [_full("g1")], "g2": [_full("g2")]},
        )
        bot = LichessBot(client, factory, AcceptAllPolicy())
        bot.connect()

        bot.listen()

        self.assertEqual(len(created), 2)
        self.assertIsNot(created[0], created[1])

    def test_duplicate_game_start_is_ignored_while_game_runs(self) -> None:
        created = []

        def factory() -> ResigningEngine:
            engine = ResigningEngine()
            created.append(engine)
            return engine

        client = _FakeClient(
            account_events=[GameStartEvent(game_id="g1"), GameStartEvent(game_id="g1")],
            game_events={"g1": [_full("g1")]},
        )
        client.hold_games = threading.Event()
        client.release_on_feed_end = True
        self.addCleanup(client.hold_games.set)
        bot = LichessBot(client, factory, AcceptAllPolicy())
        bot.connect()

        bot.listen()

        self.assertEqual(client.opened_games, ["g1"])
        self.assertEqual(len(created), 1)
        self.assertEqual(client.requests, [("resign", "g1")])


class AccountStreamFailureTests(unittest.TestCase):
    def _listen_with_running_game(self, error: Exception) -> tuple[_FakeClient, float]:
        client = _FakeClient(
            account_events=[GameStartEvent(game_id="g1"), GameStartEvent(game_id="g2")],
            game_events={"g1": [_full("g1")], "g2": [_full("g2")]},
        )
        client.hold_games = threading.Event()   # g1 stays live like a real game
        client.account_error = error
        self.addCleanup(client.hold_games.set)
        bot = _bot(client, max_games=1)

        started = time.monotonic()
        with self.assertLogs("lichessbot.bot", level="WARNING"):
            with self.assertRaises(type(error)):
                bot.listen()
        return client, time.monotonic() - started

    def test_decode_error_leaves_listen_without_waiting_for_games(self) -> None:
        client, elapsed = self._listen_with_running_game(StreamDecodeError("Could not parse JSON"))

        self.assertLess(elapsed, 5)
        self.assertFalse(client.hold_games.is_set())
        self.assertNotIn("g2", client.opened_games)

    def test_transport_error_leaves_listen_without_waiting_for_games(self) -> None:
        client, elapsed = self._listen_with_running_game(TransportError("connection reset"))

        self.assertLess(elapsed, 5)
        self.assertFalse(client.hold_games.is_set())
