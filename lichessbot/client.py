"""
HTTP transport for the Lichess Bot API.

A thin wrapper over requests.Session that:
  - adds the bearer token to every request,
  - turns every POST reply into either success or a ServiceError carrying the
    server's error text,
  - turns every requests exception into a TransportError,
  - feeds streaming GET responses to the incremental decoder in stream.py.

Callers never see requests exceptions; they branch on ServiceError (the server
understood and refused) vs TransportError (the request never completed).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Iterator, TypeVar
from urllib.parse import quote, urljoin

import requests

from lichessbot.events import (
    Account,
    AccountEvent,
    GameEvent,
    parse_account,
    parse_account_event,
    parse_game_event,
)
from lichessbot.stream import process_stream

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://lichess.org"

_ENDPOINTS = {
    "account": "api/account",
    "upgrade": "api/bot/account/upgrade",
    "stream_event": "api/stream/event",
    "stream_game": "api/bot/game/stream/{}",
    "accept": "api/challenge/{}/accept",
    "decline": "api/challenge/{}/decline",
    "move": "api/bot/game/{}/move/{}",
    "resign": "api/bot/game/{}/resign",
    "chat": "api/bot/game/{}/chat",
}


class ServiceError(Exception):
    """The server answered but refused the request (``ok`` was not true)."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class TransportError(Exception):
    """The request could not be completed (connection, timeout, broken stream, HTTP error)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class LichessClient:
    """Authenticated GET / POST / streaming GET against one server."""

    def __init__(
        self,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {token}",
            "User-Agent": "lichessbot/1.0",
        })

    # ------------------------------------------------------------------ #
    # Generic requests                                                     #
    # ------------------------------------------------------------------ #

    def get_json(self, path: str) -> dict[str, Any]:
        url = self._url(path)
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise TransportError(f"GET {path} failed: {exc}", exc) from exc
        except ValueError as exc:
            raise TransportError(f"GET {path} returned invalid JSON", exc) from exc

    def post(self, path: str, data: dict[str, str] | None = None) -> None:
        """
        POST and check the ``{"ok": true}`` acknowledgement.

        Raises:
            ServiceError: the server replied with anything other than ok=true.
            TransportError: the request did not complete.
        """
        url = self._url(path)
        try:
            response = self._session.post(url, data=data, timeout=self._timeout)
        except requests.RequestException as exc:
            raise TransportError(f"POST {path} failed: {exc}", exc) from exc

        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get("ok") is True:
            return
        error = body.get("error") if isinstance(body, dict) else None
        raise ServiceError(
            str(error) if error else f"HTTP {response.status_code} {response.reason or ''}".strip(),
            status_code=response.status_code,
        )

    def stream(
        self,
        path: str,
        decode: Callable[[dict[str, Any]], T],
        processor: Callable[[T], None],
    ) -> None:
        """
        Open a streaming GET and pass each decoded event to processor.

        Returns when the server closes the stream. There is no read timeout:
        the call blocks for as long as the server keeps the connection idle.

        Raises:
            TransportError: the stream could not be opened or broke mid-way.
            StreamDecodeError: the stream carried malformed JSON.
            Anything processor raises.
        """
        url = self._url(path)
        logger.debug("Opening stream %s", url)
        try:
            response = self._session.get(url, stream=True, timeout=(self._timeout, None))
        except requests.RequestException as exc:
            raise TransportError(f"Could not open stream {path}: {exc}", exc) from exc
        try:
            response.raise_for_status()
        except requests.RequestException as exc:
            response.close()
            raise TransportError(f"Could not open stream {path}: {exc}", exc) from exc

        with response:
            process_stream(_chunks(response, path), decode, processor)
        logger.debug("Stream %s closed by server", url)

    # ------------------------------------------------------------------ #
    # Endpoints                                                            #
    # ------------------------------------------------------------------ #

    def get_account(self) -> Account:
        return parse_account(self.get_json(_ENDPOINTS["account"]))

    def upgrade_to_bot(self) -> None:
        self.post(_ENDPOINTS["upgrade"])

    def stream_events(self, processor: Callable[[AccountEvent], None]) -> None:
        self.stream(_ENDPOINTS["stream_event"], parse_account_event, processor)

    def stream_game(self, game_id: str, processor: Callable[[GameEvent], None]) -> None:
        self.stream(_ENDPOINTS["stream_game"].format(quote(game_id)), parse_game_event, processor)

    def accept_challenge(self, challenge_id: str) -> None:
        self.post(_ENDPOINTS["accept"].format(quote(challenge_id)))

    def decline_challenge(self, challenge_id: str, reason: str = "generic") -> None:
        self.post(_ENDPOINTS["decline"].format(quote(challenge_id)), data={"reason": reason})

    def make_move(self, game_id: str, move: str) -> None:
        self.post(_ENDPOINTS["move"].format(quote(game_id), quote(move)))

    def resign(self, game_id: str) -> None:
        self.post(_ENDPOINTS["resign"].format(quote(game_id)))

    def send_chat(self, game_id: str, room: str, text: str) -> None:
        self.post(_ENDPOINTS["chat"].format(quote(game_id)), data={"room": room, "text": text})

    def _url(self, path: str) -> str:
        return urljoin(self._base_url, path.lstrip("/"))


def _chunks(response: requests.Response, path: str) -> Iterator[bytes]:
    """Yield body chunks as they arrive, converting I/O failures to TransportError."""
    try:
        yield from response.iter_content(chunk_size=None)
    except requests.RequestException as exc:
        raise TransportError(f"Stream {path} broke: {exc}", exc) from exc
