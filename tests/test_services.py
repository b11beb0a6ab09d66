import asyncio
import time

import pytest
import requests

from ipfs_resolver.services.probe import LivenessProber
from tests.helpers import CID_V0, CID_V1


class FakeResponse:
    def __init__(self, status_code):
        self.status_code = status_code

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


class FakeSession:
    def __init__(self, status_code=200, exc=None, delay=0.0):
        self.status_code = status_code
        self.exc = exc
        self.delay = delay
        self.calls = []
        self.closed = False

    def head(self, url, timeout=None, allow_redirects=False):
        self.calls.append({"url": url, "timeout": timeout, "allow_redirects": allow_redirects})
        if self.delay:
            time.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.status_code)

    def close(self):
        self.closed = True


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [200, 204])
async def test_probe_success(status_code):
    session = FakeSession(status_code=status_code)
    prober = LivenessProber(session=session)

    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0, 2000) is True
    assert session.calls == [{
        "url": "https://ipfs.io/ipfs/" + CID_V0,
        "timeout": 2.0,
        "allow_redirects": True,
    }]


@pytest.mark.asyncio
@pytest.mark.parametrize("status_code", [301, 404, 429, 500, 504])
async def test_probe_non_success_status(status_code):
    prober = LivenessProber(session=FakeSession(status_code=status_code))
    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0) is False


@pytest.mark.asyncio
@pytest.mark.parametrize("exc", [
    requests.exceptions.ConnectionError("connection refused"),
    requests.exceptions.Timeout("read timed out"),
    requests.exceptions.InvalidURL("bad url"),
    RuntimeError("boom"),
])
async def test_probe_collapses_errors_to_false(exc):
    prober = LivenessProber(session=FakeSession(exc=exc))
    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0) is False


@pytest.mark.asyncio
async def test_probe_enforces_hard_timeout():
    prober = LivenessProber(session=FakeSession(delay=0.5))

    start = time.monotonic()
    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0, 50) is False
    assert time.monotonic() - start < 0.4


@pytest.mark.asyncio
async def test_probe_uses_default_timeout():
    session = FakeSession()
    prober = LivenessProber(session=session, default_timeout_ms=1500)

    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0) is True
    assert session.calls[0]["timeout"] == 1.5


@pytest.mark.asyncio
async def test_many_concurrent_probes_all_succeed():
    session = FakeSession(delay=0.3)
    prober = LivenessProber(session=session)

    results = await asyncio.gather(*[
        prober.probe("https://ipfs.io/ipfs/" + CID_V0, 1000) for _ in range(40)
    ])

    assert results == [True] * 40
    assert len(session.calls) == 40
    prober.close()


@pytest.mark.asyncio
async def test_deadline_starts_when_request_begins():
    session = FakeSession(delay=0.2)
    prober = LivenessProber(session=session, max_workers=2)

    # 8 requests on 2 workers take about 0.8s, well past each 300ms deadline
    results = await asyncio.gather(*[
        prober.probe("https://ipfs.io/ipfs/" + CID_V0, 300) for _ in range(8)
    ])

    assert results == [True] * 8
    prober.close()


@pytest.mark.asyncio
async def test_probe_rejects_non_positive_timeout():
    session = FakeSession()
    prober = LivenessProber(session=session)

    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0, 0) is False
    assert session.calls == []


def test_prober_close_releases_session():
    session = FakeSession()
    LivenessProber(session=session).close()
    assert session.closed


@pytest.mark.asyncio
async def test_probe_after_close_returns_false():
    prober = LivenessProber(session=FakeSession())
    prober.close()

    assert await prober.probe("https://ipfs.io/ipfs/" + CID_V0) is False


@pytest.mark.asyncio
async def test_close_releases_queued_requests():
    prober = LivenessProber(session=FakeSession(delay=0.3), max_workers=1)

    async def close_soon():
        await asyncio.sleep(0.05)
        prober.close()

    closer = asyncio.ensure_future(close_soon())
    results = await asyncio.wait_for(asyncio.gather(*[
        prober.probe("https://ipfs.io/ipfs/" + CID_V0, 1000) for _ in range(3)
    ]), timeout=2)
    await closer

    assert results == [True, False, False]


@pytest.mark.asyncio
async def test_resolve_returns_first_working_gateway(make_resolver, builder):
    resolver, prober = make_resolver([False, False, True, True, True])

    url = await resolver.resolve_working_url(CID_V0, 1000)

    assert url == builder.gateways[2] + CID_V0
    assert prober.attempts == [(0, 1000), (1, 1000), (2, 1000)]


@pytest.mark.asyncio
async def test_resolve_returns_none_when_all_gateways_fail(make_resolver):
    resolver, prober = make_resolver([False] * 5)

    assert await resolver.resolve_working_url("ipfs://" + CID_V1) is None
    assert prober.attempts == [(index, 3000) for index in range(5)]


@pytest.mark.asyncio
async def test_resolve_skips_probing_without_cid(make_resolver):
    resolver, prober = make_resolver([True] * 5)

    assert await resolver.resolve_working_url("not-a-cid") is None
    assert await resolver.resolve_working_url("") is None
    assert prober.attempts == []


@pytest.mark.asyncio
async def test_resolve_stops_when_cancelled_before_start(make_resolver):
    resolver, prober = make_resolver([True] * 5)
    cancel_event = asyncio.Event()
    cancel_event.set()

    assert await resolver.resolve_working_url(CID_V0, cancel_event=cancel_event) is None
    assert prober.attempts == []


@pytest.mark.asyncio
async def test_resolve_stops_when_cancelled_during_probe(make_resolver):
    resolver, prober = make_resolver([False, True, True, True, True], delays=[5, 0, 0, 0, 0])
    cancel_event = asyncio.Event()

    async def cancel_soon():
        await asyncio.sleep(0.05)
        cancel_event.set()

    canceller = asyncio.ensure_future(cancel_soon())
    url = await asyncio.wait_for(
        resolver.resolve_working_url(CID_V0, cancel_event=cancel_event), timeout=1
    )
    await canceller

    assert url is None
    assert [index for index, _ in prober.attempts] == [0]


@pytest.mark.asyncio
async def test_resolve_with_unset_cancel_event_behaves_normally(make_resolver, builder):
    resolver, prober = make_resolver([False, True, True, True, True])

    url = await resolver.resolve_working_url(CID_V0, cancel_event=asyncio.Event())

    assert url == builder.gateways[1] + CID_V0
    assert [index for index, _ in prober.attempts] == [0, 1]


@pytest.mark.asyncio
async def test_concurrent_resolve_prefers_priority_over_speed(make_resolver, builder):
    resolver, prober = make_resolver(
        [False, True, True, False, False],
        delays=[0.05, 0.2, 0, 0, 0],
    )

    url = await resolver.resolve_working_url_concurrent(CID_V0, 1000)

    assert url == builder.gateways[1] + CID_V0
    assert sorted(index for index, _ in prober.attempts) == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_concurrent_resolve_returns_none_when_all_fail(make_resolver):
    resolver, prober = make_resolver([False] * 5)

    assert await resolver.resolve_working_url_concurrent(CID_V1) is None
    assert len(prober.attempts) == 5


@pytest.mark.asyncio
async def test_concurrent_resolve_skips_probing_without_cid(make_resolver):
    resolver, prober = make_resolver([True] * 5)

    assert await resolver.resolve_working_url_concurrent("QmInvalid") is None
    assert prober.attempts == []


def test_resolver_delegates_pure_operations(make_resolver, builder):
    resolver, prober = make_resolver([True] * 5)

    assert resolver.build_all_urls(CID_V0) == builder.build_all_urls(CID_V0)
    assert resolver.build_primary_url(CID_V0) == "https://ipfs.io/ipfs/" + CID_V0
    assert resolver.normalize_reference("https://example.com/x") == "https://example.com/x"

    resolver.close()
    assert prober.closed
