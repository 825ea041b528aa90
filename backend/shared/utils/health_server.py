"""
Minimal health endpoint for the collector worker.
Serves GET /health so container healthchecks succeed. Runs in a daemon thread;
no-op when no port is configured (e.g. local dev).
"""
from __future__ import annotations

import json
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Optional

from shared.utils.logging import get_logger

logger = get_logger(__name__)

StatusProvider = Callable[[], dict[str, Any]]


def _render(service_name: str, status_fn: Optional[StatusProvider]) -> tuple[int, bytes]:
    payload: dict[str, Any] = {"status": "ok", "service": service_name}
    if status_fn is not None:
        payload.update(status_fn())
    code = 200 if payload.get("status") == "ok" else 503
    return code, json.dumps(payload, default=str).encode("utf-8")


def start_health_server(
    service_name: str,
    port: Optional[int],
    status_fn: Optional[StatusProvider] = None,
) -> Optional[ThreadingHTTPServer]:
    """
    Start a daemon thread answering GET /health on ``port``.

    ``status_fn`` contributes extra fields; any ``status`` other than "ok"
    turns the response into a 503.
    """
    if not port:
        return None

    class Handler(BaseHTTPRequestHandler):
        def do_GET(self) -> None:
            if self.path.rstrip("/") != "/health":
                self.send_response(404)
                self.end_headers()
                return
            code, body = _render(service_name, status_fn)
            self.send_response(code)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format: str, *args: object) -> None:
            pass  # Healthchecks would flood the log

    try:
        httpd = ThreadingHTTPServer(("0.0.0.0", port), Handler)
    except OSError as exc:
        logger.warning("health_server_failed", port=port, error=str(exc))
        return None

    threading.Thread(target=httpd.serve_forever, name="health-server", daemon=True).start()
    logger.info("health_server_started", port=port)
    return httpd
