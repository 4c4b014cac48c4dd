"""HTTP server for exposing Prometheus metrics.

Runs the prometheus_client HTTP server in a daemon thread so it never blocks
the operator event loop or its shutdown.
"""

import logging
from threading import Thread
from prometheus_client import start_http_server
from cmdoperator.types.settings import METRICS_PORT

logger = logging.getLogger(__name__)


def start_metrics_server(port: int = METRICS_PORT) -> None:
    """Start the Prometheus metrics HTTP server on `port`."""
    try:
        start_http_server(port)
        logger.info(f"Prometheus metrics server started on port {port}")
        logger.info(f"Metrics available at http://0.0.0.0:{port}/metrics")
    except OSError as e:
        logger.error(f"Failed to start metrics server on port {port}: {e}")
        raise


def init_metrics_server(port: int = METRICS_PORT) -> None:
    """Start the metrics server in a background thread."""
    thread = Thread(target=start_metrics_server, args=(port,), daemon=True)
    thread.start()

    logger.info(f"Metrics server initialization complete (port: {port})")
