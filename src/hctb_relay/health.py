"""Read-only liveness endpoint.

GET / answers {"healthy": <bool>} from the shared HealthState; anything else
is a 404. Served from a daemon thread next to the scheduler.
"""

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from src.hctb_relay.logging import get_logger
from src.hctb_relay.session import HealthState

log = get_logger(__name__)


class HealthHandler(BaseHTTPRequestHandler):
    health: HealthState = HealthState()

    def do_GET(self):
        if self.path != "/":
            self.send_response(404)
            self.end_headers()
            return

        body = json.dumps({"healthy": self.health.healthy}).encode()
        log.info(
            "healthcheck_requested",
            client=self.client_address[0],
            healthy=self.health.healthy,
        )
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        log.debug("health_http", message=format % args)


def handler_for(health: HealthState) -> type[HealthHandler]:
    return type("BoundHealthHandler", (HealthHandler,), {"health": health})


def start_health_server(health: HealthState, host: str, port: int) -> ThreadingHTTPServer:
    """Serve the health endpoint in a background thread and return the server."""
    server = ThreadingHTTPServer((host, port), handler_for(health))
    thread = threading.Thread(target=server.serve_forever, name="health", daemon=True)
    thread.start()
    log.info("health_server_started", host=host, port=server.server_address[1])
    return server
