"""
Incremental decoder for long-lived JSON event streams.

The server keeps a response open for the whole life of a game and writes one
JSON object per event, either newline-delimited or wrapped in a JSON array.
json.loads() needs the whole document, so this module scans the byte chunks
itself, cuts out each complete top-level object and hands only that slice to
the json module.

Usage:
    for obj in iter_json_objects(response.iter_content(chunk_size=None)):
        ...

The generator never pulls another chunk once the object it is working on is
complete, so it blocks on I/O only when it actually needs more bytes. Streams
that never end are fine; the loop just waits for the next event.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, Callable, Iterable, Iterator, TypeVar

T = TypeVar("T")

_WHITESPACE = " \t\r\n"


class StreamDecodeError(Exception):
    """Raised when a stream contains malformed JSON (as opposed to simply ending)."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class _ChunkBuffer:
    """Text buffer fed lazily from an iterable of byte chunks."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks = iter(chunks)
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._exhausted = False
        self.text = ""
        self.pos = 0

    def fill(self) -> bool:
        """Append the next non-empty chunk. Returns False once the stream is exhausted."""
        while not self._exhausted:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                tail = self._decode(b"", final=True)
                if tail:
                    self.text += tail
                    return True
                return False
            text = self._decode(chunk)
            if text:
                self.text += text
                return True
        return False

    def peek(self) -> str | None:
        """Return the next non-whitespace character without consuming it (None at EOF)."""
        while True:
            while self.pos < len(self.text) and self.text[self.pos] in _WHITESPACE:
                self.pos += 1
            if self.pos < len(self.text):
                return self.text[self.pos]
            # Only whitespace left (keep-alive newlines); drop it before waiting.
            self.text = ""
            self.pos = 0
            if not self.fill():
                return None

    def advance(self) -> None:
        self.pos += 1

    def take_object(self) -> str:
        """
        Consume one complete JSON object starting at the current '{'.

        Tracks string and escape state so braces inside strings don't count.
        Stops reading as soon as the closing brace is seen.
        """
        start = self.pos
        i = start
        depth = 0
        in_string = False
        escaped = False
        while True:
            if i >= len(self.text):
                if not self.fill():
                    raise StreamDecodeError("Stream ended in the middle of a JSON object")
                continue
            ch = self.text[i]
            i += 1
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
            elif ch == '"':
                in_string = True
            elif ch in "{[":
                depth += 1
            elif ch in "}]":
                depth -= 1
                if depth == 0:
                    obj_text = self.text[start:i]
                    self.text = self.text[i:]
                    self.pos = 0
                    return obj_text

    def _decode(self, chunk: bytes, final: bool = False) -> str:
        try:
            return self._decoder.decode(chunk, final)
        except UnicodeDecodeError as exc:
            raise StreamDecodeError("Stream is not valid UTF-8", exc) from exc


def iter_json_objects(chunks: Iterable[bytes]) -> Iterator[dict[str, Any]]:
    """
    Lazily yield each top-level JSON object found in a byte stream.

    Accepts a bare object, a sequence of objects (newline-delimited or
    comma-separated), or an array of objects. The sequence ends cleanly at
    the array end, at end of stream, or at the first token that is not an
    object. Empty and whitespace-only streams yield nothing.

    Raises:
        StreamDecodeError: malformed JSON, invalid UTF-8, or a truncated object.
    """
    buf = _ChunkBuffer(chunks)

    token = buf.peek()
    if token == "[":
        buf.advance()
    elif token != "{":
        return

    while True:
        token = buf.peek()
        while token == ",":
            buf.advance()
            token = buf.peek()
        if token != "{":
            return

        obj_text = buf.take_object()
        try:
            value = json.loads(obj_text)
        except json.JSONDecodeError as exc:
            raise StreamDecodeError(f"Could not parse JSON: {exc}", exc) from exc
        yield value


def process_stream(
    chunks: Iterable[bytes],
    decode: Callable[[dict[str, Any]], T],
    processor: Callable[[T], None],
) -> None:
    """
    Decode every object in the stream and pass it to processor, in order.

    processor runs to completion before the next object is read. Anything it
    raises ends the loop and propagates unchanged; the stream is not resumed.

    Raises:
        StreamDecodeError: the stream is malformed or an object fails to decode.
    """
    for raw in iter_json_objects(chunks):
        try:
            value = decode(raw)
        except ValueError as exc:
            raise StreamDecodeError(f"Could not decode event: {exc}", exc) from exc
        processor(value)
