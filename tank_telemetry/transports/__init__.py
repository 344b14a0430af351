"""Transportes de entrada del feed en vivo."""

from .thingspeak import ThingSpeakFeedClient

__all__ = ["ThingSpeakFeedClient"]
