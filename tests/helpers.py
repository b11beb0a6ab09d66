import asyncio

CID_V0 = "Qm" + "a" * 44
CID_V1 = "bafy" + "b" * 55
REAL_CID_V0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
REAL_CID_V1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


class ScriptedProber:
    """Prober stand-in answering per gateway index and recording attempts."""

    def __init__(self, gateways, results, delays=None):
        self.gateways = list(gateways)
        self.results = list(results)
        self.delays = list(delays) if delays else [0] * len(self.results)
        self.attempts = []
        self.default_timeout_ms = 5000
        self.closed = False

    def _index(self, url):
        for index, gateway in enumerate(self.gateways):
            if url.startswith(gateway):
                return index
        raise AssertionError(f"Unexpected URL probed: {url}")

    async def probe(self, url, timeout_ms=None):
        index = self._index(url)
        self.attempts.append((index, timeout_ms))
        if self.delays[index]:
            await asyncio.sleep(self.delays[index])
        return self.results[index]

    def close(self):
        self.closed = True
