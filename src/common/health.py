"""
Health check HTTP server for liveness, readiness, and status endpoints.
Runs in a separate thread so it never competes with the scrape tick.

Endpoints:
    GET /health  - Liveness: process is alive (always 200 if server running)
    GET /ready   - Readiness: all critical checks pass (e.g. first tick done)
    GET /status  - Scraper state and snapshot values
"""
import json
import threading
import time
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from typing import Dict, Any, Callable, Optional, List
from datetime import datetime, timezone

from src.common.logging_config import get_logger

logger = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class HealthCheck:
    """
    A single named health check.

    Usage:
        check = HealthCheck("scraper", lambda: store.has_run, critical=True)
        result = check.run()
    """

    def __init__(
        self,
        name: str,
        check_fn: Callable[[], bool],
        critical: bool = True
    ):
        """
        Args:
            name: Check name (e.g., "scraper", "redis")
            check_fn: Returns True if healthy; may raise
            critical: If True, failure makes the service unready
        """
        self.name = name
        self.check_fn = check_fn
        self.critical = critical
        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    def run(self) -> Dict[str, Any]:
        start = time.time()
        try:
            healthy = bool(self.check_fn())
            self.last_error = None if healthy else "Check returned False"
        except Exception as e:
            healthy = False
            self.last_error = str(e)

        self.consecutive_failures = 0 if healthy else self.consecutive_failures + 1

        return {
            "name": self.name,
            "status": "healthy" if healthy else "unhealthy",
            "critical": self.critical,
            "response_time_ms": round((time.time() - start) * 1000, 2),
            "error": self.last_error,
            "consecutive_failures": self.consecutive_failures
        }


class HealthRegistry:
    """Registry of health checks and status providers."""

    def __init__(self, component: str = "exporter"):
        self.component = component
        self.checks: List[HealthCheck] = []
        self.stats_providers: Dict[str, Callable[[], Dict[str, Any]]] = {}
        self.start_time = time.time()

    def register_check(self, check: HealthCheck) -> None:
        self.checks.append(check)
        logger.debug(f"Registered health check: {check.name}")

    def register_stats_provider(
        self,
        name: str,
        provider: Callable[[], Dict[str, Any]]
    ) -> None:
        self.stats_providers[name] = provider
        logger.debug(f"Registered stats provider: {name}")

    def run_checks(self) -> Dict[str, Any]:
        results = [check.run() for check in self.checks]
        all_healthy = all(
            r["status"] == "healthy" for r in results if r["critical"]
        )
        return {
            "status": "healthy" if all_healthy else "unhealthy",
            "checks": results
        }

    def get_liveness(self) -> Dict[str, Any]:
        return {
            "status": "alive",
            "component": self.component,
            "uptime_seconds": round(time.time() - self.start_time, 1),
            "timestamp": _utc_now()
        }

    def get_readiness(self) -> Dict[str, Any]:
        check_results = self.run_checks()
        return {
            "status": "ready" if check_results["status"] == "healthy" else "not_ready",
            "component": self.component,
            "checks": check_results["checks"],
            "timestamp": _utc_now()
        }

    def get_status(self) -> Dict[str, Any]:
        check_results = self.run_checks()

        stats = {}
        for name, provider in self.stats_providers.items():
            try:
                stats[name] = provider()
            except Exception as e:
                stats[name] = {"error": str(e)}

        return {
            "component": self.component,
            "status": check_results["status"],
            "uptime_seconds": round(time.time() - self.start_time, 1),
            "timestamp": _utc_now(),
            "health_checks": check_results["checks"],
            "statistics": stats
        }


class HealthHTTPHandler(BaseHTTPRequestHandler):
    """HTTP request handler for health endpoints."""

    # Set per server by HealthServer
    registry: Optional[HealthRegistry] = None

    def do_GET(self):
        if self.path == "/health":
            data = self.registry.get_liveness() if self.registry else {"status": "alive"}
            self._send_json(200, data)

        elif self.path == "/ready":
            if self.registry:
                data = self.registry.get_readiness()
                status_code = 200 if data["status"] == "ready" else 503
            else:
                data = {"status": "not_ready", "error": "No registry configured"}
                status_code = 503
            self._send_json(status_code, data)

        elif self.path == "/status":
            data = self.registry.get_status() if self.registry else {"error": "No registry"}
            self._send_json(200, data)

        else:
            self._send_json(404, {"error": "Not found"})

    def _send_json(self, status_code: int, data: Dict[str, Any]):
        body = json.dumps(data, indent=2).encode("utf-8")
        self.send_response(status_code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        """Suppress default access logging."""
        pass


class HealthServer:
    """
    Threaded HTTP server for health endpoints, run in a daemon thread.

    Usage:
        registry = HealthRegistry("exporter")
        registry.register_check(HealthCheck("scraper", lambda: store.has_run))

        server = HealthServer(registry, port=8080)
        server.start()
        # ...
        server.stop()
    """

    def __init__(self, registry: HealthRegistry, port: int = 8080, host: str = "0.0.0.0"):
        self.registry = registry
        self.port = port
        self.host = host
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        handler = type(
            'HealthHandler',
            (HealthHTTPHandler,),
            {'registry': self.registry}
        )

        try:
            self._server = ThreadingHTTPServer((self.host, self.port), handler)
            self._thread = threading.Thread(
                target=self._server.serve_forever,
                name="health-server",
                daemon=True
            )
            self._thread.start()
            logger.info(
                f"Health server started on port {self.server_port} "
                f"(/health, /ready, /status)"
            )
        except OSError as e:
            logger.error(f"Failed to start health server on port {self.port}: {e}")

    @property
    def server_port(self) -> int:
        """Bound port (differs from ``port`` when 0 was requested)."""
        if self._server is not None:
            return self._server.server_address[1]
        return self.port

    def stop(self) -> None:
        if self._server:
            self._server.shutdown()
            self._server.server_close()
            logger.info("Health server stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
