"""Twitch chat listener and EventSub webhook bridge."""

__version__ = "0.1.0"
