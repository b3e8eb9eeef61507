"""
============================================================================
UPTIME MONITOR - PROBER
============================================================================
Single-endpoint liveness check over HTTP(S) using an httpx async client.

Classification
--------------
• any response with a status code in [200, 400)  → UP,   "Status code: N"
• any other response                             → DOWN, "Status code: N"
• no response within the timeout                 → DOWN, "Request timed out after N seconds."
• transport failure (DNS, refused, TLS, …)       → DOWN, the error message

``probe()`` never raises for a failed check: every failure comes back as
a DOWN ProbeOutcome.
============================================================================
"""

import asyncio
import time
from typing import Optional

import httpx

from database.models import ProbeOutcome
from utils.helpers import TimeHelper
from utils.logger import get_logger


logger = get_logger("Prober")


DEFAULT_TIMEOUT = 15.0
DEFAULT_USER_AGENT = "UptimeMonitor/1.0"


class Prober:
    """
    Performs GET liveness checks with a bounded timeout.

    One pooled ``httpx.AsyncClient`` is shared across probes; call
    ``close()`` on shutdown. Redirects are not followed, so a 3xx answer
    is itself the response that gets classified.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_connections: int = 100,
    ):
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=False,
            verify=True,
            headers={"User-Agent": user_agent},
            limits=httpx.Limits(max_connections=max_connections),
            transport=transport,
        )

    async def probe(self, address: str, timeout: Optional[float] = None) -> ProbeOutcome:
        """
        Check *address* once.

        Parameters
        ----------
        address : str
            An http(s) URL, already validated by the registry.
        timeout : float | None
            Overrides the default timeout (seconds) for this call.
        """
        timeout = self.timeout if timeout is None else timeout

        try:
            outcome = await self._exchange(address, timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            outcome = ProbeOutcome.down(
                f"Request timed out after {TimeHelper.format_seconds(timeout)} seconds."
            )
        except httpx.TransportError as e:
            outcome = ProbeOutcome.down(self._describe(e))
        except Exception as e:
            # Anything else is still a failed check, not a caller problem
            logger.warning(f"[Prober] Unexpected error probing {address}: {e!r}")
            outcome = ProbeOutcome.down(self._describe(e))

        logger.debug(
            f"[Prober] {address} → {outcome.status.value} "
            f"({outcome.detail}, latency={outcome.latency_ms})"
        )
        return outcome

    async def _exchange(self, address: str, timeout: float) -> ProbeOutcome:
        """
        Send the request, time it to the response headers, then discard
        the body within whatever is left of the timeout.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        request = self._client.build_request("GET", address, timeout=timeout)
        started = time.perf_counter()
        response = await asyncio.wait_for(
            self._client.send(request, stream=True),
            timeout=timeout,
        )
        latency_ms = max(int(round((time.perf_counter() - started) * 1000)), 0)

        # The status is already known; nothing below may change the outcome
        try:
            if not response.is_stream_consumed:
                await asyncio.wait_for(
                    self._drain(response),
                    timeout=max(deadline - loop.time(), 0),
                )
        except Exception as e:
            logger.debug(f"[Prober] Body of {address} not fully drained: {e!r}")
        finally:
            await response.aclose()

        detail = f"Status code: {response.status_code}"
        if 200 <= response.status_code < 400:
            return ProbeOutcome.up(latency_ms, detail)
        return ProbeOutcome.down(detail)

    @staticmethod
    async def _drain(response: httpx.Response) -> None:
        async for _ in response.aiter_raw():
            pass

    @staticmethod
    def _describe(exc: BaseException) -> str:
        return str(exc) or exc.__class__.__name__

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug("[Prober] HTTP client closed")


# ============================================================================
# END OF PROBER MODULE
# ============================================================================
