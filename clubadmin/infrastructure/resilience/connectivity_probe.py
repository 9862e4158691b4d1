"""Connectivity probe.

Feeds the connectivity monitor from a terminal process, where there is no
platform online/offline signal: the API health endpoint is pinged on an
interval, a transport failure means offline and a slow round trip means poor
quality.
"""

import asyncio
import logging
from typing import Optional

from clubadmin.domain.interfaces.admin_api import AdminApi
from clubadmin.infrastructure.resilience.connectivity import ConnectivityMonitor
from clubadmin.infrastructure.resilience.error_classifier import NETWORK_ERROR_TYPES
from clubadmin.infrastructure.resilience.retry_executor import Sleep

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 5.0
DEFAULT_POOR_LATENCY = 2.0


class ConnectivityProbe:
    """Polls AdminApi.ping() and reports the result to a ConnectivityMonitor."""

    def __init__(
        self,
        api: AdminApi,
        monitor: ConnectivityMonitor,
        interval: float = DEFAULT_INTERVAL,
        poor_latency: float = DEFAULT_POOR_LATENCY,
        sleep: Sleep = asyncio.sleep,
    ):
        self.api = api
        self.monitor = monitor
        self.interval = interval
        self.poor_latency = poor_latency
        self._sleep = sleep

    async def check(self) -> bool:
        """Pings once and updates the monitor.

        Only transport failures (connection refused, timeouts) mean offline.
        An HTTP error status proves the API is reachable, so the monitor stays
        online and the real error surfaces when the command runs.

        Returns:
            True if the API answered, even with an error status.
        """
        try:
            latency = await self.api.ping()
        except NETWORK_ERROR_TYPES as e:
            logger.info(f"Connectivity probe failed: {type(e).__name__}: {e}")
            self.monitor.go_offline()
            return False
        except Exception as e:
            logger.warning(f"Health check answered with an error, API is reachable: {e}")
            if not self.monitor.is_online:
                self.monitor.go_online()
            return True
        logger.debug(f"Connectivity probe answered in {latency:.3f}s")
        self.monitor.report_latency(latency, self.poor_latency)
        return True

    async def run(self, iterations: Optional[int] = None) -> None:
        """Probes forever (or for a number of iterations) until cancelled."""
        count = 0
        while iterations is None or count < iterations:
            await self.check()
            count += 1
            if iterations is None or count < iterations:
                await self._sleep(self.interval)

    async def wait_until_online(self, timeout: float) -> bool:
        """Probes until the API answers or timeout seconds have been spent waiting.

        Returns:
            True if connectivity was observed before the timeout.
        """
        waited = 0.0
        while True:
            if await self.check():
                return True
            if waited >= timeout:
                logger.warning(f"Still offline after waiting {timeout:.1f}s")
                return False
            delay = min(self.interval, timeout - waited)
            await self._sleep(delay)
            waited += delay
