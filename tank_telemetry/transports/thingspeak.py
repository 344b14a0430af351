"""Cliente HTTP del canal ThingSpeak del tanque.

Mapeo de campos del canal:
- created_at → timestamp
- field1 → nivel de agua (%)
- field2 → sensor de flotador / pulsador de emergencia ("0"/"1")
- field3 → estado de la bomba ("0"/"1")
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import orjson
import requests

from ..errors import ParseError, TransportError

logger = logging.getLogger(__name__)


class ThingSpeakFeedClient:
    """Obtiene el último registro del canal y lo normaliza a payload de feed."""

    DEFAULT_BASE_URL = "https://api.thingspeak.com"

    def __init__(
        self,
        channel_id: str,
        timeout_seconds: float,
        base_url: str = DEFAULT_BASE_URL,
        read_key: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.channel_id = channel_id
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.read_key = read_key
        self._session = session or requests.Session()

    @property
    def url(self) -> str:
        return f"{self.base_url}/channels/{self.channel_id}/feeds.json"

    def fetch(self) -> dict[str, Any]:
        """Descarga el último feed.

        Returns:
            Payload {timestamp, waterLevelRaw, pumpRaw, emergencyRaw}

        Raises:
            TransportError: Fallo de red, timeout o HTTP != 2xx
            ParseError: Respuesta sin JSON válido o sin feeds
        """
        params: dict[str, Any] = {"results": 1}
        if self.read_key:
            params["api_key"] = self.read_key

        try:
            response = self._session.get(self.url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
        except requests.Timeout:
            raise TransportError(self.url, f"timeout after {self.timeout_seconds:.1f}s")
        except requests.RequestException as e:
            raise TransportError(self.url, str(e)[:200])

        try:
            data = orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise ParseError(f"invalid JSON from ThingSpeak: {e}")

        return self.to_payload(data)

    @staticmethod
    def to_payload(data: Any) -> dict[str, Any]:
        """Convierte la respuesta de feeds.json al payload del parser."""
        if not isinstance(data, dict):
            raise ParseError("ThingSpeak response is not an object")

        feeds = data.get("feeds") or []
        if not feeds or not isinstance(feeds[0], dict):
            raise ParseError("ThingSpeak response has no feeds", payload=data)

        latest = feeds[0]
        return {
            "timestamp": latest.get("created_at"),
            "waterLevelRaw": latest.get("field1"),
            "emergencyRaw": latest.get("field2"),
            "pumpRaw": latest.get("field3"),
        }

    def close(self) -> None:
        self._session.close()
