"""
Lichess bot — entry point.

Wires together:  config → logging → client → engine factory → challenge policy → bot

Usage:
    python main.py [--config config.yaml] [--register]
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from rich.console import Console

from lichessbot.bot import LichessBot
from lichessbot.challenges import ConfiguredChallengePolicy
from lichessbot.client import LichessClient, TransportError
from lichessbot.config import load_config
from lichessbot.engines import engine_factory
from lichessbot.logs import configure_logging

console = Console(legacy_windows=False)
logger = logging.getLogger("lichessbot")


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play on Lichess with a BOT account.")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    parser.add_argument(
        "--register",
        action="store_true",
        help="Upgrade the account to a BOT account if it isn't one (overrides lichess.register_bot)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except FileNotFoundError as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    configure_logging(config.logging)

    try:
        factory = engine_factory(config.bot.engine, **config.bot.engine_options)
    except ValueError as exc:
        console.print(f"[red]Config error:[/] {exc}")
        sys.exit(1)

    client = LichessClient(
        config.lichess.token,
        config.lichess.base_url,
        timeout=config.lichess.timeout,
    )
    bot = LichessBot(
        client,
        factory,
        ConfiguredChallengePolicy(config.challenge),
        max_games=config.bot.max_games,
    )

    try:
        bot.connect(register=args.register or config.lichess.register_bot)
    except (ValueError, TransportError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        sys.exit(1)

    try:
        bot.listen()
    except KeyboardInterrupt:
        console.print("[yellow]Stopped by user[/]")
        _exit_now(130)
    except Exception:
        logger.exception("Account stream failed, shutting down")
        _exit_now(1)


def _exit_now(code: int) -> None:
    # Game threads block on their own streams; the interpreter would join them on exit.
    logging.shutdown()
    os._exit(code)


if __name__ == "__main__":
    main()
