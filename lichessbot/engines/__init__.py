"""
Engine factory.

create_engine() is the single entry point for instantiating any Engine.

To add a new engine type:
  1. Create lichessbot/engines/<name>.py implementing Engine
  2. Add a case here
  3. Set bot.engine in config.yaml
"""

from __future__ import annotations

from lichessbot.engines.base import Engine, EngineFactory
from lichessbot.engines.random_mover import RandomEngine
from lichessbot.engines.resigning import ResigningEngine

__all__ = [
    "Engine",
    "EngineFactory",
    "RandomEngine",
    "ResigningEngine",
    "create_engine",
    "engine_factory",
]

ENGINE_NAMES = ("resign", "random")


def create_engine(name: str, **options) -> Engine:
    """
    Instantiate the named engine. Each call returns a fresh instance.

    options are passed to the engine constructor (bot.engine_options in config.yaml).
    """
    match name:
        case "resign":
            return ResigningEngine(**options)
        case "random":
            return RandomEngine(**options)
        case _:
            raise ValueError(
                f"Unknown engine: '{name}'. Supported: {', '.join(ENGINE_NAMES)}"
            )


def engine_factory(name: str, **options) -> EngineFactory:
    """Validate the engine name and options now and return a factory for per-game instances."""
    try:
        create_engine(name, **options)
    except TypeError as exc:
        raise ValueError(f"Invalid options for engine '{name}': {exc}") from exc
    return lambda: create_engine(name, **options)
