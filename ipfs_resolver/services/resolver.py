import asyncio
import structlog
from typing import List, Optional

from ipfs_resolver import config
from ipfs_resolver.core.gateways import GatewayUrlBuilder
from ipfs_resolver.services.probe import LivenessProber

logger = structlog.get_logger()


class ContentResolver:
    """
    Resolves a content reference to the first reachable gateway URL.

    Gateways are tried in priority order. Sequential resolution has a
    worst case of timeout_per_gateway_ms * len(gateways); the concurrent
    variant bounds it to a single timeout while keeping the same
    priority-ordered answer.
    """

    def __init__(self, builder: Optional[GatewayUrlBuilder] = None,
                 prober: Optional[LivenessProber] = None,
                 default_timeout_ms: Optional[int] = None):
        self.builder = builder if builder is not None else GatewayUrlBuilder()
        self.prober = prober if prober is not None else LivenessProber()
        self.default_timeout_ms = (
            config.DEFAULT_RESOLVE_TIMEOUT_MS if default_timeout_ms is None else default_timeout_ms
        )

    def build_all_urls(self, reference: Optional[str]) -> List[str]:
        return self.builder.build_all_urls(reference)

    def build_primary_url(self, reference: Optional[str]) -> Optional[str]:
        return self.builder.build_primary_url(reference)

    def normalize_reference(self, reference: str) -> str:
        return self.builder.normalize_reference(reference)

    async def probe(self, url: str, timeout_ms: Optional[int] = None) -> bool:
        return await self.prober.probe(url, timeout_ms)

    async def resolve_working_url(self, reference: Optional[str],
                                  timeout_per_gateway_ms: Optional[int] = None,
                                  cancel_event: Optional[asyncio.Event] = None) -> Optional[str]:
        """
        Probe gateways one at a time and return the first that answers.

        Args:
            reference: Content reference in any accepted shape
            timeout_per_gateway_ms: Deadline for each probe, defaults to
                DEFAULT_RESOLVE_TIMEOUT_MS
            cancel_event: When set, stop probing and return None

        Returns:
            First reachable gateway URL, or None if the reference has no CID,
            every gateway failed, or resolution was cancelled
        """
        if timeout_per_gateway_ms is None:
            timeout_per_gateway_ms = self.default_timeout_ms

        gateway_urls = self.build_all_urls(reference)
        if not gateway_urls:
            logger.warning("No IPFS CID found in reference", reference=reference)
            return None

        logger.info("Testing IPFS gateways", reference=reference, gateway_count=len(gateway_urls))

        for index, url in enumerate(gateway_urls):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Gateway resolution cancelled", reference=reference, attempted=index)
                return None

            logger.debug("Testing gateway", url=url, priority=index)
            if cancel_event is None:
                available = await self.prober.probe(url, timeout_per_gateway_ms)
            else:
                available = await self._probe_unless_cancelled(url, timeout_per_gateway_ms, cancel_event)
                if available is None:
                    logger.info("Gateway resolution cancelled", reference=reference, attempted=index + 1)
                    return None

            if available:
                logger.info("Working gateway found", url=url, priority=index)
                return url
            logger.info("Gateway failed", url=url, priority=index)

        logger.error("No working IPFS gateway found", reference=reference,
                     gateway_count=len(gateway_urls))
        return None

    async def _probe_unless_cancelled(self, url: str, timeout_ms: int,
                                      cancel_event: asyncio.Event) -> Optional[bool]:
        """Run a probe, returning None instead if cancel_event fires first."""
        probe_task = asyncio.ensure_future(self.prober.probe(url, timeout_ms))
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            await asyncio.wait({probe_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (probe_task, cancel_task):
                if not task.done():
                    task.cancel()

        if cancel_event.is_set():
            return None
        return probe_task.result()

    async def resolve_working_url_concurrent(self, reference: Optional[str],
                                             timeout_per_gateway_ms: Optional[int] = None) -> Optional[str]:
        """
        Probe every gateway at once and return the highest-priority success.

        A lower-index gateway always wins over a higher-index one, even if
        the latter answers first. Probes still running once the winner is
        known are cancelled.
        """
        if timeout_per_gateway_ms is None:
            timeout_per_gateway_ms = self.default_timeout_ms

        gateway_urls = self.build_all_urls(reference)
        if not gateway_urls:
            logger.warning("No IPFS CID found in reference", reference=reference)
            return None

        logger.info("Testing IPFS gateways concurrently", reference=reference,
                    gateway_count=len(gateway_urls))

        tasks = [
            asyncio.ensure_future(self.prober.probe(url, timeout_per_gateway_ms))
            for url in gateway_urls
        ]
        try:
            for index, (url, task) in enumerate(zip(gateway_urls, tasks)):
                if await task:
                    logger.info("Working gateway found", url=url, priority=index)
                    return url
                logger.info("Gateway failed", url=url, priority=index)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        logger.error("No working IPFS gateway found", reference=reference,
                     gateway_count=len(gateway_urls))
        return None

    def close(self):
        self.prober.close()
