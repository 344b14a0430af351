"""CLI entry point for the tank telemetry engine."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from dataclasses import replace

from common.config import get_settings

from .config import EngineConfig, SourceMode
from .engine import build_engine
from .errors import ConfigError
from .state.current_state import MissingDataMarker

logger = logging.getLogger(__name__)


def _log_current(engine) -> None:
    current = engine.get_current()
    if isinstance(current, MissingDataMarker):
        logger.info("[CLI] %s: awaiting data (%s)", current.entity_name, current.reason)
        return
    logger.info(
        "[CLI] %s: water=%.1f%% fuel=%.1f%% pump=%s emergency=%s status=%s source=%s",
        current.entity_name,
        current.water_level,
        current.fuel_level,
        current.pump_state.value,
        current.emergency_state.value,
        current.status.value,
        current.source.value,
    )


def main(argv=None) -> int:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    p = argparse.ArgumentParser(description="Tank telemetry ingestion engine")
    p.add_argument("--mode", choices=[m.value for m in SourceMode], default=None)
    p.add_argument("--entity", default=None, help="tank name (default TANK_ENTITY_NAME)")
    p.add_argument("--report-seconds", type=float, default=30.0)
    p.add_argument("--once", action="store_true", help="run a single polling cycle and exit")
    p.add_argument("--serve", action="store_true", help="serve the HTTP API with uvicorn")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=8000)
    args = p.parse_args(argv)

    try:
        config = EngineConfig.from_env()
        overrides = {}
        if args.mode:
            overrides["source_mode"] = SourceMode(args.mode)
        if args.entity:
            overrides["entity_name"] = args.entity
        if overrides:
            config = replace(config, **overrides)
    except ConfigError as e:
        logger.error("[CLI] %s", e)
        return 2

    engine = build_engine(config, settings)

    if args.serve:
        import uvicorn

        from .main import create_app

        uvicorn.run(create_app(engine), host=args.host, port=args.port)
        return 0

    if args.once:
        outcome = engine.scheduler.run_cycle()
        logger.info("[CLI] Cycle outcome: %s", outcome.value)
        _log_current(engine)
        return 0

    engine.add_halt_listener(lambda err: logger.error("[CLI] Live feed halted: %s", err))
    engine.start()
    logger.info(
        "[CLI] Engine running mode=%s poll=%dms playback=%dms",
        config.source_mode.value,
        config.poll_interval_ms,
        config.playback_interval_ms,
    )
    try:
        while True:
            time.sleep(args.report_seconds)
            _log_current(engine)
            logger.info("[CLI] %s", engine.stats)
    except KeyboardInterrupt:
        logger.info("[CLI] Interrupted")
    finally:
        engine.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
