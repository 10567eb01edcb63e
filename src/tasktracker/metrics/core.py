"""Core metrics helpers for tasktracker.

Provides a thin wrapper to start the Prometheus HTTP exporter while tolerating
bind failures (useful for demos and tests running side by side).
"""

import logging
import os
from typing import Optional

from prometheus_client import start_http_server

log = logging.getLogger("tasktracker.metrics")


def start_server_safe(port: Optional[int]) -> Optional[int]:
    """Start the Prometheus exporter; return the port or None if not started."""
    if port is None:
        return None
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        log.info("DISABLE_PROMETHEUS=1: metrics exporter not started")
        return None
    try:
        start_http_server(port)
        log.info(f"Prometheus metrics server started on :{port}")
        return port
    except OSError as e:
        log.warning(f"Failed to start Prometheus server on :{port}: {e}")
        return None
