"""
Gateway liveness probing.

A probe is a HEAD request against a candidate gateway URL. Every failure mode
(timeout, DNS, refused connection, non-2xx status) collapses to False.

Requests run on the prober's own thread pool. The deadline covers the
request itself, not time spent waiting for a free worker.
"""

import asyncio
import structlog
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ipfs_resolver import config

logger = structlog.get_logger()


class LivenessProber:
    """Checks whether a gateway URL currently serves content."""

    def __init__(self, session: Optional[requests.Session] = None,
                 default_timeout_ms: Optional[int] = None,
                 max_workers: Optional[int] = None):
        self.default_timeout_ms = (
            config.DEFAULT_PROBE_TIMEOUT_MS if default_timeout_ms is None else default_timeout_ms
        )
        self.max_workers = config.PROBE_MAX_WORKERS if max_workers is None else max_workers
        self.session = session if session is not None else self._initialize_session()
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                            thread_name_prefix="gateway-probe")

    def _initialize_session(self) -> requests.Session:
        """Initialize a pooled HTTP session for probing."""
        session = requests.Session()

        # No retries: the next gateway in the list is the retry
        retry_strategy = Retry(total=0)

        adapter = HTTPAdapter(max_retries=retry_strategy, pool_maxsize=self.max_workers)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        logger.debug("Probe HTTP session initialized", max_workers=self.max_workers)
        return session

    def _head(self, url: str, timeout_s: float) -> int:
        with self.session.head(url, timeout=timeout_s, allow_redirects=True) as response:
            return response.status_code

    async def _run_head(self, url: str, timeout_s: float) -> int:
        """Run the HEAD on the probe pool; the deadline starts once a worker picks it up."""
        loop = asyncio.get_running_loop()
        started = asyncio.Event()

        def run():
            loop.call_soon_threadsafe(started.set)
            return self._head(url, timeout_s)

        future = loop.run_in_executor(self._executor, run)
        waiter = asyncio.ensure_future(started.wait())
        try:
            # Queued work is dropped when the pool shuts down, so never wait on start alone
            await asyncio.wait({waiter, future}, return_when=asyncio.FIRST_COMPLETED)
            if future.cancelled():
                raise RuntimeError("Probe pool was shut down")
            return await asyncio.wait_for(future, timeout=timeout_s)
        finally:
            waiter.cancel()
            if not future.done():
                future.cancel()

    async def probe(self, url: str, timeout_ms: Optional[int] = None) -> bool:
        """
        Issue a HEAD request and report whether the URL answered with 2xx.

        Args:
            url: Candidate gateway URL
            timeout_ms: Hard deadline in milliseconds, defaults to
                DEFAULT_PROBE_TIMEOUT_MS

        Returns:
            True only for a successful response before the deadline
        """
        if timeout_ms is None:
            timeout_ms = self.default_timeout_ms
        if timeout_ms <= 0:
            logger.warning("Probe skipped, non-positive timeout", url=url, timeout_ms=timeout_ms)
            return False

        timeout_s = timeout_ms / 1000
        try:
            status_code = await self._run_head(url, timeout_s)
        except asyncio.TimeoutError:
            logger.info("Gateway probe timed out", url=url, timeout_ms=timeout_ms)
            return False
        except requests.exceptions.RequestException as e:
            logger.info("Gateway probe failed", url=url, reason=type(e).__name__, error=str(e))
            return False
        except Exception as e:
            logger.warning("Unexpected error during gateway probe", url=url, error=str(e))
            return False

        available = 200 <= status_code < 300
        if not available:
            logger.info("Gateway probe returned non-success status", url=url, status_code=status_code)
        return available

    def close(self):
        """Release pooled connections and probe workers."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.session.close()
