from __future__ import annotations

import json
import logging
from threading import Lock

import httpx

from .breaker import BreakerRegistry, CircuitOpenError
from .models import CamelStatusName
from .ports import ClusterInfo

logger = logging.getLogger(__name__)

STATUS_BREAKER = "status"
UPLOAD_BREAKER = "upload"
RELOAD_BREAKER = "reload"


class ProbeError(Exception):
    """Non-200 answer from a runtime container."""


class ProbeClient:
    """HTTP calls to a runtime container's `/q/dev` and `/q/upload` endpoints.

    A single httpx.Client is shared by every caller. It is created by
    `start()` and released by `close()`; calling before `start()` is an error.
    None of the public calls raise: failures come back as None / False.
    """

    def __init__(
        self,
        cluster: ClusterInfo,
        breakers: BreakerRegistry,
        port: int = 8080,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.cluster = cluster
        self.breakers = breakers
        self.port = port
        self._transport = transport
        self._lock = Lock()
        self._client: httpx.Client | None = None

    def start(self) -> None:
        with self._lock:
            if self._client is None:
                self._client = httpx.Client(transport=self._transport, follow_redirects=False)

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None

    @property
    def client(self) -> httpx.Client:
        c = self._client
        if c is None:
            raise RuntimeError("ProbeClient.start() has not been called")
        return c

    def container_address(self, container_name: str) -> str:
        if self.cluster.in_cluster:
            return f"http://{container_name}.{self.cluster.namespace}.svc.cluster.local"
        return f"http://{container_name}:{int(self.port)}"

    def probe_status(self, container_name: str, status_name: CamelStatusName | str, timeout_ms: int = 500) -> str | None:
        name = status_name.value if isinstance(status_name, CamelStatusName) else status_name
        url = f"{self.container_address(container_name)}/q/dev/{name}"
        return self._json_call(STATUS_BREAKER, url, timeout_ms)

    def trigger_reload(self, container_name: str, timeout_ms: int = 1000) -> str | None:
        url = f"{self.container_address(container_name)}/q/dev/reload?reload=true"
        return self._json_call(RELOAD_BREAKER, url, timeout_ms)

    def upload_file(self, container_name: str, file_name: str, body: str, timeout_ms: int = 1000) -> bool:
        url = f"{self.container_address(container_name)}/q/upload/{file_name}"
        try:
            self.breakers.get(UPLOAD_BREAKER).call(self._put, url, body, timeout_ms)
            return True
        except CircuitOpenError as e:
            logger.debug("upload %s skipped: %s", url, e)
        except (ProbeError, httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.info("upload %s failed: %s", url, _describe(e))
        return False

    def _json_call(self, breaker: str, url: str, timeout_ms: int) -> str | None:
        try:
            data = self.breakers.get(breaker).call(self._get_json, url, timeout_ms)
        except CircuitOpenError as e:
            logger.debug("GET %s skipped: %s", url, e)
            return None
        except (ProbeError, httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            logger.info("GET %s failed: %s", url, _describe(e))
            return None
        return json.dumps(data, indent=2)

    def _get_json(self, url: str, timeout_ms: int):
        resp = self.client.get(url, headers={"Accept": "application/json"}, timeout=timeout_ms / 1000.0)
        if resp.status_code != 200:
            raise ProbeError(f"HTTP {resp.status_code}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProbeError("Invalid JSON") from e

    def _put(self, url: str, body: str, timeout_ms: int) -> None:
        resp = self.client.put(url, content=body.encode("utf-8"), timeout=timeout_ms / 1000.0)
        if resp.status_code != 200:
            raise ProbeError(f"HTTP {resp.status_code}")


def _describe(e: Exception) -> str:
    if isinstance(e, httpx.TimeoutException):
        return "No response"
    return f"{type(e).__name__}: {e}"
