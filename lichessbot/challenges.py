"""
Challenge policies — decide whether an incoming challenge is accepted.

The bot asks the policy once per challenge event and sends the matching
accept / decline request. Decline reasons use the server's reason keys so the
challenger sees why.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lichessbot.config import ChallengeConfig
from lichessbot.events import Challenge


class ChallengePolicy(ABC):
    @abstractmethod
    def should_accept(self, challenge: Challenge) -> bool:
        ...

    def decline_reason(self, challenge: Challenge) -> str:
        return "generic"


class AcceptAllPolicy(ChallengePolicy):
    def should_accept(self, challenge: Challenge) -> bool:
        return True


class ConfiguredChallengePolicy(ChallengePolicy):
    """Accepts challenges that match the challenge section of config.yaml."""

    def __init__(self, config: ChallengeConfig) -> None:
        self._config = config

    def should_accept(self, challenge: Challenge) -> bool:
        return self._rejection(challenge) is None

    def decline_reason(self, challenge: Challenge) -> str:
        return self._rejection(challenge) or "generic"

    def _rejection(self, challenge: Challenge) -> str | None:
        """Return the first reason to decline, or None if the challenge is acceptable."""
        cfg = self._config
        if not cfg.accept:
            return "generic"
        if challenge.variant.key not in cfg.variants:
            return "variant"
        if challenge.rated and not cfg.rated:
            return "casual"
        if not challenge.rated and not cfg.casual:
            return "rated"

        tc = challenge.time_control
        if tc.type != "clock":
            return None if cfg.correspondence else "timeControl"
        initial = tc.limit or 0
        if initial < cfg.min_initial:
            return "tooFast"
        if cfg.max_initial is not None and initial > cfg.max_initial:
            return "tooSlow"
        return None
