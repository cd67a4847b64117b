"""
Typed event dataclasses for the two server feeds.

The account feed carries challenge / gameStart notifications; each game feed
carries gameFull / gameState / chatLine. Raw JSON objects from the stream
decoder are turned into these frozen dataclasses by the parse_* functions so
the session and dispatcher never touch raw dicts.

Unknown ``type`` tags decode to an explicit Unknown* variant instead of
failing, so consumers match on a closed union:

    match event:
        case GameFull(): ...
        case GameState(): ...
        case ChatLine(): ...
        case UnknownGameEvent(): ...
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Color(Enum):
    WHITE = "white"
    BLACK = "black"
    UNKNOWN = "unknown"


class EventFormatError(ValueError):
    """A decoded JSON object does not have the shape its ``type`` promises."""


# --------------------------------------------------------------------------- #
# Shared value types                                                           #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Account:
    id: str
    username: str
    title: str | None = None

    @property
    def is_bot(self) -> bool:
        return (self.title or "").lower() == "bot"


@dataclass(frozen=True)
class User:
    id: str | None = None      # absent for AI opponents
    name: str | None = None
    title: str | None = None
    rating: int | None = None
    ai_level: int | None = None


@dataclass(frozen=True)
class Variant:
    key: str = "standard"
    name: str = "Standard"
    short: str = "Std"


@dataclass(frozen=True)
class TimeControl:
    type: str = "unlimited"     # "clock" | "correspondence" | "unlimited"
    limit: int | None = None    # seconds
    increment: int | None = None
    show: str | None = None


@dataclass(frozen=True)
class Perf:
    name: str | None = None


@dataclass(frozen=True)
class Clock:
    initial: int = 0     # millis
    increment: int = 0   # millis


@dataclass(frozen=True)
class Challenge:
    id: str
    status: str | None = None
    challenger: User | None = None
    dest_user: User | None = None
    variant: Variant = Variant()
    rated: bool = False
    time_control: TimeControl = TimeControl()
    color: str | None = None
    speed: str | None = None
    perf: Perf = Perf()


# --------------------------------------------------------------------------- #
# Account feed                                                                 #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class ChallengeEvent:
    challenge: Challenge


@dataclass(frozen=True)
class GameStartEvent:
    game_id: str


@dataclass(frozen=True)
class UnknownAccountEvent:
    type: str


AccountEvent = ChallengeEvent | GameStartEvent | UnknownAccountEvent


# --------------------------------------------------------------------------- #
# Game feed                                                                    #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class GameState:
    moves: str = ""   # space-separated UCI half-moves
    wtime: int = 0    # millis remaining
    btime: int = 0
    winc: int = 0     # millis added per move
    binc: int = 0
    status: str | None = None


@dataclass(frozen=True)
class GameFull:
    id: str
    white: User
    black: User
    state: GameState
    initial_fen: str = "startpos"
    variant: Variant = Variant()
    rated: bool = False
    clock: Clock | None = None
    speed: str | None = None
    perf: Perf = Perf()
    created_at: int | None = None


@dataclass(frozen=True)
class ChatLine:
    username: str
    text: str
    room: str


@dataclass(frozen=True)
class UnknownGameEvent:
    type: str


GameEvent = GameFull | GameState | ChatLine | UnknownGameEvent


# --------------------------------------------------------------------------- #
# Parsing                                                                      #
# --------------------------------------------------------------------------- #

def parse_account(raw: dict[str, Any]) -> Account:
    try:
        return Account(
            id=str(raw["id"]),
            username=str(raw["username"]),
            title=raw.get("title"),
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise EventFormatError(f"Invalid account object: {exc}") from exc


def parse_account_event(raw: dict[str, Any]) -> AccountEvent:
    """Build an AccountEvent from one object of the account stream."""
    kind = _event_type(raw)
    try:
        match kind:
            case "challenge":
                return ChallengeEvent(challenge=_challenge(raw["challenge"]))
            case "gameStart":
                return GameStartEvent(game_id=str(raw["game"]["id"]))
            case _:
                return UnknownAccountEvent(type=kind)
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise EventFormatError(f"Invalid '{kind}' event: {exc}") from exc


def parse_game_event(raw: dict[str, Any]) -> GameEvent:
    """Build a GameEvent from one object of a game stream."""
    kind = _event_type(raw)
    try:
        match kind:
            case "gameFull":
                return GameFull(
                    id=str(raw["id"]),
                    white=_user(raw.get("white")) or User(),
                    black=_user(raw.get("black")) or User(),
                    state=_game_state(raw["state"]),
                    initial_fen=raw.get("initialFen") or "startpos",
                    variant=_variant(raw.get("variant")),
                    rated=bool(raw.get("rated", False)),
                    clock=_clock(raw.get("clock")),
                    speed=raw.get("speed"),
                    perf=_perf(raw.get("perf")),
                    created_at=raw.get("createdAt"),
                )
            case "gameState":
                return _game_state(raw)
            case "chatLine":
                return ChatLine(
                    username=str(raw["username"]),
                    text=str(raw["text"]),
                    room=str(raw["room"]),
                )
            case _:
                return UnknownGameEvent(type=kind)
    except (KeyError, TypeError, AttributeError, ValueError) as exc:
        raise EventFormatError(f"Invalid '{kind}' event: {exc}") from exc


def _event_type(raw: Any) -> str:
    if not isinstance(raw, dict):
        raise EventFormatError(f"Expected a JSON object, got {type(raw).__name__}")
    kind = raw.get("type")
    if not isinstance(kind, str):
        raise EventFormatError(f"Event without a 'type' discriminator: {raw!r}")
    return kind


def _game_state(raw: dict[str, Any]) -> GameState:
    return GameState(
        moves=raw.get("moves") or "",
        wtime=int(raw.get("wtime", 0)),
        btime=int(raw.get("btime", 0)),
        winc=int(raw.get("winc", 0)),
        binc=int(raw.get("binc", 0)),
        status=raw.get("status"),
    )


def _challenge(raw: dict[str, Any]) -> Challenge:
    return Challenge(
        id=str(raw["id"]),
        status=raw.get("status"),
        challenger=_user(raw.get("challenger")),
        dest_user=_user(raw.get("destUser")),
        variant=_variant(raw.get("variant")),
        rated=bool(raw.get("rated", False)),
        time_control=_time_control(raw.get("timeControl")),
        color=raw.get("color"),
        speed=raw.get("speed"),
        perf=_perf(raw.get("perf")),
    )


def _user(raw: dict[str, Any] | None) -> User | None:
    if raw is None:
        return None
    rating = raw.get("rating")
    ai_level = raw.get("aiLevel")
    return User(
        id=raw.get("id"),
        name=raw.get("name") or raw.get("username"),
        title=raw.get("title"),
        rating=int(rating) if rating is not None else None,
        ai_level=int(ai_level) if ai_level is not None else None,
    )


def _variant(raw: dict[str, Any] | None) -> Variant:
    if not raw:
        return Variant()
    return Variant(
        key=raw.get("key", "standard"),
        name=raw.get("name", "Standard"),
        short=raw.get("short", "Std"),
    )


def _time_control(raw: dict[str, Any] | None) -> TimeControl:
    if not raw:
        return TimeControl()
    return TimeControl(
        type=raw.get("type", "unlimited"),
        limit=raw.get("limit"),
        increment=raw.get("increment"),
        show=raw.get("show"),
    )


def _clock(raw: dict[str, Any] | None) -> Clock | None:
    if not raw:
        return None
    return Clock(initial=int(raw.get("initial", 0)), increment=int(raw.get("increment", 0)))


def _perf(raw: dict[str, Any] | None) -> Perf:
    return Perf(name=raw.get("name")) if raw else Perf()
