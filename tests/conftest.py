import pytest

from ipfs_resolver import config
from ipfs_resolver.core.gateways import GatewayUrlBuilder
from ipfs_resolver.services.resolver import ContentResolver

from tests.helpers import ScriptedProber


@pytest.fixture
def builder():
    return GatewayUrlBuilder(config.DEFAULT_IPFS_GATEWAYS)


@pytest.fixture
def make_resolver(builder):
    def _make(results, delays=None, default_timeout_ms=3000):
        prober = ScriptedProber(builder.gateways, results, delays)
        resolver = ContentResolver(builder=builder, prober=prober, default_timeout_ms=default_timeout_ms)
        return resolver, prober
    return _make
