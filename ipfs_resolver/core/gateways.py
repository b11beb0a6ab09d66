import structlog
from typing import List, Optional, Sequence

from ipfs_resolver import config
from ipfs_resolver.core.cid import extract_identifier, is_valid_identifier
from ipfs_resolver.core.errors import ConfigurationError

logger = structlog.get_logger()

HTTP_SCHEMES = ("http://", "https://")


def validate_gateway_prefixes(gateways: Sequence[str]) -> tuple:
    """
    Check a gateway list and return it as a tuple.

    Each prefix must be an http(s) URL ending in "/" so that appending a CID
    yields the retrieval URL.
    """
    gateways = tuple(gateways)
    if not gateways:
        raise ConfigurationError("At least one IPFS gateway must be configured")
    for gateway in gateways:
        if not isinstance(gateway, str) or not gateway.startswith(HTTP_SCHEMES):
            raise ConfigurationError(f"IPFS gateway must be an http(s) URL: {gateway!r}")
        if not gateway.endswith("/"):
            raise ConfigurationError(f"IPFS gateway must end with '/': {gateway!r}")
    return gateways


class GatewayUrlBuilder:
    """Builds candidate retrieval URLs for a CID from an ordered gateway list."""

    def __init__(self, gateways: Optional[Sequence[str]] = None):
        self._gateways = validate_gateway_prefixes(config.IPFS_GATEWAYS if gateways is None else gateways)

    @property
    def gateways(self) -> tuple:
        return self._gateways

    def __len__(self) -> int:
        return len(self._gateways)

    def build_url(self, identifier: Optional[str], gateway_index: int = 0) -> Optional[str]:
        """
        Build the URL for a CID on a single gateway.

        Returns None if the identifier is not a valid CID or the index is
        outside the gateway list (negative indices included).
        """
        if not is_valid_identifier(identifier):
            return None
        if not 0 <= gateway_index < len(self._gateways):
            return None
        return f"{self._gateways[gateway_index]}{identifier}"

    def build_all_urls(self, reference: Optional[str]) -> List[str]:
        """Return one URL per gateway in priority order, or [] if no CID is found."""
        identifier = extract_identifier(reference)
        if identifier is None:
            return []
        return [f"{gateway}{identifier}" for gateway in self._gateways]

    def build_primary_url(self, reference: Optional[str]) -> Optional[str]:
        """Return the most preferred gateway URL without probing."""
        urls = self.build_all_urls(reference)
        return urls[0] if urls else None

    def normalize_reference(self, reference: str) -> str:
        """
        Turn a stored reference into something a browser can load.

        HTTP(S) URLs pass through unchanged. Anything with a CID is mapped to
        the primary gateway. Anything else is returned as-is so the caller can
        decide how to render a broken reference.
        """
        if not isinstance(reference, str) or not reference.strip():
            return reference

        if reference.startswith(HTTP_SCHEMES):
            return reference

        url = self.build_primary_url(reference)
        if url is None:
            logger.debug("Reference left unresolved", reference=reference)
            return reference
        return url
