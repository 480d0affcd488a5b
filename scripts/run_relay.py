"""Run the Here Comes The Bus -> Home Assistant relay.

Starts the health endpoint, then triggers a cycle every POLL_INTERVAL_SECONDS
inside the active window until interrupted.

Run with: python scripts/run_relay.py
Once:     python scripts/run_relay.py --once
No health server: python scripts/run_relay.py --no-health

Exit codes:
  0 = stopped cleanly (or single cycle done)
  1 = startup error (message on stderr)
"""

import argparse
import os
import signal
import sys
import threading
from datetime import datetime

from dotenv import load_dotenv

load_dotenv()

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.hctb_relay.config import get_config  # noqa: E402
from src.hctb_relay.health import start_health_server  # noqa: E402
from src.hctb_relay.logging import get_logger, setup_logging  # noqa: E402
from src.hctb_relay.orchestrator import build_orchestrator  # noqa: E402
from src.hctb_relay.scheduler import Scheduler  # noqa: E402
from src.hctb_relay.session import HealthState  # noqa: E402


def _parse_args() -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Relay Here Comes The Bus locations to Home Assistant.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle now (ignoring the active window) and exit.",
    )
    parser.add_argument(
        "--no-health",
        action="store_true",
        help="Do not start the health check HTTP server.",
    )
    return parser.parse_args()


def main(args: argparse.Namespace) -> None:
    config = get_config()
    setup_logging(json_output=config.log_json, log_level=config.log_level)
    log = get_logger("run_relay")

    if not config.schools:
        print("ERROR: HCTB_SCHOOLCODE must list at least one school code", file=sys.stderr)
        sys.exit(1)

    health = HealthState()
    orchestrator = build_orchestrator(config, health=health)
    log.info("relay_started", schools=config.schools)

    if args.once:
        orchestrator.run_cycle(datetime.now())
        return

    server = None
    if not args.no_health:
        server = start_health_server(health, config.health_host, config.health_port)

    stop = threading.Event()
    signal.signal(signal.SIGTERM, lambda *_: stop.set())
    try:
        Scheduler(config, orchestrator).run_forever(stop)
    except KeyboardInterrupt:
        stop.set()
    finally:
        if server is not None:
            server.shutdown()
    log.info("relay_stopped")


if __name__ == "__main__":
    args = _parse_args()
    try:
        main(args)
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
