import os as _os
import sys

import httpx
import pytest

# Ensure project root is importable (so `import main` works reliably across environments)
_project_root = _os.path.dirname(_os.path.dirname(__file__))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from rsr.breaker import BreakerRegistry  # noqa: E402
from rsr.cluster import StaticClusterInfo  # noqa: E402
from rsr.db import StatusStore  # noqa: E402
from rsr.probe import ProbeClient  # noqa: E402


class FakeContainers:
    """Stands in for the runtime containers' HTTP endpoints.

    routes maps (method, path) to (status_code, json_body) or to an exception
    instance that is raised for that request.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def route(self, method, path, status=200, body=None):
        self.routes[(method, path)] = (status, {} if body is None else body)

    def fail(self, method, path, exc):
        self.routes[(method, path)] = exc

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        r = self.routes.get((request.method, request.url.path), (404, {"error": "not found"}))
        if isinstance(r, Exception):
            raise r
        status, body = r
        return httpx.Response(status, json=body)

    def hosts(self):
        return [r.url.host for r in self.requests]

    def calls(self):
        return [(r.method, r.url.path) for r in self.requests]


@pytest.fixture
def store(tmp_path):
    s = StatusStore(str(tmp_path / "rsr.db"))
    s.start()
    return s


@pytest.fixture
def containers():
    return FakeContainers()


@pytest.fixture
def probe(containers):
    # Large volume threshold: the 404s for unrouted status names must not open the breaker.
    p = ProbeClient(
        StaticClusterInfo(),
        BreakerRegistry(volume_threshold=1000),
        transport=httpx.MockTransport(containers.handler),
    )
    p.start()
    yield p
    p.close()
