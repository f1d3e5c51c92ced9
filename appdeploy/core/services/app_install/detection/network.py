"""
L3 Detection — Outbound connectivity.

TCP handshake probes against the hosts the install path downloads
from. A failed probe is a result, not an exception.
"""

from __future__ import annotations

import logging
import socket
import time

from appdeploy.core.models.config import EndpointHosts
from appdeploy.core.models.status import ConnectivityStatus, Endpoint

logger = logging.getLogger(__name__)


def check_endpoint_reachable(
    host: str,
    port: int = 443,
    timeout: float = 3.0,
) -> dict:
    """Attempt one TCP handshake.

    Returns::

        {"reachable": True, "host": "github.com", "latency_ms": 42}
        or
        {"reachable": False, "host": "github.com", "error": "timed out"}
    """
    start = time.monotonic()
    try:
        with socket.create_connection((host, port), timeout=timeout):
            elapsed = int((time.monotonic() - start) * 1000)
            return {"reachable": True, "host": host, "latency_ms": elapsed}
    except OSError as exc:
        elapsed = int((time.monotonic() - start) * 1000)
        return {
            "reachable": False,
            "host": host,
            "error": str(exc)[:200] or type(exc).__name__,
            "latency_ms": elapsed,
        }


def check_connectivity(
    hosts: EndpointHosts,
    timeout: float = 3.0,
) -> ConnectivityStatus:
    """Probe every configured endpoint; tag each unreachable one."""
    missing: set[Endpoint] = set()
    for endpoint in Endpoint:
        host = hosts.host_for(endpoint)
        result = check_endpoint_reachable(host, hosts.port, timeout=timeout)
        if result["reachable"]:
            logger.info("%s reachable (%dms)", host, result["latency_ms"])
        else:
            logger.warning("%s unreachable: %s", host, result["error"])
            missing.add(endpoint)
    return ConnectivityStatus(frozenset(missing))
