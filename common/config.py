from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def _default_env_file() -> str:
    # .env junto al proceso; el dashboard web y el motor comparten el mismo archivo.
    return str(Path.cwd() / ".env")


def load_env() -> None:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("TANK_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)


@dataclass(frozen=True)
class Settings:
    thingspeak_base_url: str
    thingspeak_channel_id: str
    thingspeak_read_key: Optional[str]

    # JSON con registros precargados para playback (opcional)
    playback_file: Optional[str]
    playback_seed: int

    log_level: str


def get_settings() -> Settings:
    load_env()

    base_url = os.getenv("THINGSPEAK_BASE_URL", "https://api.thingspeak.com").rstrip("/")
    channel_id = os.getenv("THINGSPEAK_CHANNEL_ID", "3024727")

    # Canales públicos no necesitan read key.
    read_key = os.getenv("THINGSPEAK_READ_KEY") or None

    playback_file = os.getenv("TANK_PLAYBACK_FILE") or None
    raw_seed = os.getenv("TANK_PLAYBACK_SEED", "42")
    try:
        playback_seed = int(raw_seed)
    except ValueError as e:
        from tank_telemetry.errors import ConfigError

        raise ConfigError("TANK_PLAYBACK_SEED", raw_seed, "must be an integer") from e

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    return Settings(
        thingspeak_base_url=base_url,
        thingspeak_channel_id=channel_id,
        thingspeak_read_key=read_key,
        playback_file=playback_file,
        playback_seed=playback_seed,
        log_level=log_level,
    )
