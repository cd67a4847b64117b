"""
Configuration loading from config.yaml.

Uses typed dataclasses throughout so the rest of the app gets IDE
completion and type-checker support without touching raw dicts.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from lichessbot.client import DEFAULT_BASE_URL
from lichessbot.engines import ENGINE_NAMES

TOKEN_ENV_VAR = "LICHESS_BOT_TOKEN"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class LichessConfig:
    token: str = ""
    base_url: str = DEFAULT_BASE_URL
    register_bot: bool = False   # upgrade the account to BOT if it isn't one yet
    timeout: float = 10.0        # seconds, for non-streaming requests and stream connects


@dataclass
class BotConfig:
    engine: str = "resign"
    engine_options: dict[str, Any] = field(default_factory=dict)
    max_games: int = 8   # games played at once; further games wait in the queue


@dataclass
class ChallengeConfig:
    accept: bool = True
    variants: list[str] = field(default_factory=lambda: ["standard"])
    rated: bool = True
    casual: bool = True
    correspondence: bool = False
    min_initial: int = 0              # seconds on the clock at start
    max_initial: int | None = None


@dataclass
class LoggingConfig:
    level: str = "INFO"
    file: str | None = "./logs/lichessbot.log"

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level)


@dataclass
class Config:
    lichess: LichessConfig
    bot: BotConfig = field(default_factory=BotConfig)
    challenge: ChallengeConfig = field(default_factory=ChallengeConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path = "config.yaml") -> Config:
    """
    Load and validate config.yaml.

    The API token may be left out of the file and supplied through the
    LICHESS_BOT_TOKEN environment variable instead.

    Raises:
        FileNotFoundError: config.yaml is missing.
        ValueError: required fields are absent or invalid.
    """
    cfg_path = Path(path)
    if not cfg_path.exists():
        raise FileNotFoundError(
            f"Config file not found: {cfg_path.resolve()}\n"
            "Copy config.example.yaml to config.yaml and fill in your API token."
        )

    with cfg_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        lichess_raw = raw.get("lichess") or {}
        lichess_cfg = LichessConfig(
            token=str(lichess_raw.get("token") or os.environ.get(TOKEN_ENV_VAR, "")),
            base_url=str(lichess_raw.get("base_url", DEFAULT_BASE_URL)),
            register_bot=bool(lichess_raw.get("register_bot", False)),
            timeout=float(lichess_raw.get("timeout", 10.0)),
        )

        bot_raw = raw.get("bot") or {}
        bot_cfg = BotConfig(
            engine=str(bot_raw.get("engine", "resign")),
            engine_options=dict(bot_raw.get("engine_options") or {}),
            max_games=int(bot_raw.get("max_games", 8)),
        )

        challenge_raw = raw.get("challenge") or {}
        max_initial = challenge_raw.get("max_initial")
        challenge_cfg = ChallengeConfig(
            accept=bool(challenge_raw.get("accept", True)),
            variants=challenge_raw.get("variants", ["standard"]),
            rated=bool(challenge_raw.get("rated", True)),
            casual=bool(challenge_raw.get("casual", True)),
            correspondence=bool(challenge_raw.get("correspondence", False)),
            min_initial=int(challenge_raw.get("min_initial", 0)),
            max_initial=int(max_initial) if max_initial is not None else None,
        )

        logging_raw = raw.get("logging") or {}
        logging_cfg = LoggingConfig(
            level=str(logging_raw.get("level", "INFO")).upper(),
            file=logging_raw.get("file", "./logs/lichessbot.log"),
        )

        config = Config(
            lichess=lichess_cfg,
            bot=bot_cfg,
            challenge=challenge_cfg,
            logging=logging_cfg,
        )
        _validate(config)
        return config

    except (AttributeError, KeyError, TypeError) as exc:
        raise ValueError(f"Invalid config.yaml structure: {exc}") from exc


def _validate(config: Config) -> None:
    if not config.lichess.token:
        raise ValueError(
            f"lichess.token is required (or set the {TOKEN_ENV_VAR} environment variable)"
        )
    if config.bot.engine not in ENGINE_NAMES:
        raise ValueError(f"bot.engine must be one of {ENGINE_NAMES}, got '{config.bot.engine}'")
    if config.bot.max_games < 1:
        raise ValueError("bot.max_games must be >= 1")
    if config.logging.level not in _LOG_LEVELS:
        raise ValueError(f"logging.level must be one of {_LOG_LEVELS}, got '{config.logging.level}'")
    cc = config.challenge
    if not isinstance(cc.variants, list) or not all(isinstance(v, str) for v in cc.variants):
        raise ValueError(
            f"challenge.variants must be a list of variant keys, e.g. [standard], got {cc.variants!r}"
        )
    if cc.min_initial < 0:
        raise ValueError("challenge.min_initial must be >= 0")
    if cc.max_initial is not None and cc.max_initial < cc.min_initial:
        raise ValueError("challenge.max_initial must be >= challenge.min_initial")
