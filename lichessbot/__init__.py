"""Lichess bot client: streams account and game events and relays engine decisions."""

__version__ = "1.0.0"
