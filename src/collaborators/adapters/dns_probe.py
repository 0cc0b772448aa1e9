# src/collaborators/adapters/dns_probe.py — v1
"""Network reachability via DNS resolution of a well-known host."""

from __future__ import annotations

import asyncio
import logging
import socket

from scanflow.collaborators.base import BaseReachabilityProbe

logger = logging.getLogger(__name__)


class DnsReachabilityProbe(BaseReachabilityProbe):
    """Online when `host` resolves within `timeout_s`."""

    def __init__(self, host: str = "google.com", timeout_s: float = 5.0) -> None:
        self._host = host
        self._timeout_s = timeout_s

    async def is_online(self) -> bool:
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.getaddrinfo(self._host, None, type=socket.SOCK_STREAM),
                timeout=self._timeout_s,
            )
        except (OSError, asyncio.TimeoutError) as e:
            logger.debug("Reachability probe for %s failed: %s", self._host, e)
            return False
        return True
