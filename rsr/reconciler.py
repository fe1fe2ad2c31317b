from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .dispatch import EventBus
from .models import DEVMODE_SUFFIX, CamelStatus, CamelStatusName, CamelStatusRequest, DevModeStatus
from .ports import StatusStorePort
from .probe import ProbeClient
from .ticker import Ticker

logger = logging.getLogger(__name__)

COLLECT_CAMEL_STATUS = "collect-camel-status"
DELETE_CAMEL_STATUS = "delete-camel-status"

# (container_name, previous context payload or None, new context payload)
ContextListener = Callable[[str, Optional[str], str], Any]


class Reconciler:
    """Keeps CamelStatus rows in line with what the runtime containers report.

    Three periodic loops feed two ordered queues:
      devmode collection   -> collect-camel-status
      production collection -> collect-camel-status
      devmode cleanup      -> delete-camel-status
    """

    def __init__(
        self,
        store: StatusStorePort,
        probe: ProbeClient,
        bus: EventBus,
        environment: str,
        status_timeout_ms: int = 500,
        context_listener: ContextListener | None = None,
    ) -> None:
        self.store = store
        self.probe = probe
        self.bus = bus
        self.environment = environment
        self.status_timeout_ms = status_timeout_ms
        self.context_listener = context_listener

    def register(self) -> None:
        self.bus.consumer(COLLECT_CAMEL_STATUS, self.collect_camel_statuses, ordered=True)
        self.bus.consumer(DELETE_CAMEL_STATUS, self.cleanup_devmode_status, ordered=True)

    def schedule(self, ticker: Ticker, devmode_interval_s: float, camel_interval_s: float) -> None:
        ticker.every("collect-devmode-statuses", devmode_interval_s, self.collect_devmode_statuses)
        ticker.every("collect-pod-statuses", camel_interval_s, self.collect_pod_statuses)
        ticker.every("cleanup-devmode-statuses", devmode_interval_s, self.cleanup_devmode_statuses)

    # -- loops ---------------------------------------------------------------

    def collect_devmode_statuses(self) -> None:
        if not self.store.is_ready():
            return
        for dms in self.store.get_devmode_statuses():
            req = CamelStatusRequest(dms.project_id, dms.container_name)
            self.bus.publish(COLLECT_CAMEL_STATUS, req.to_dict())

    def collect_pod_statuses(self) -> None:
        if not self.store.is_ready():
            return
        for pod in self.store.get_pod_statuses(self.environment):
            req = CamelStatusRequest(pod.project_id, pod.name)
            self.bus.publish(COLLECT_CAMEL_STATUS, req.to_dict())

    def cleanup_devmode_statuses(self) -> None:
        # TODO: a devmode pod the watcher has not listed yet looks the same as a
        # vanished one; needs a grace period keyed on registration time.
        if not self.store.is_ready():
            return
        for dms in self.store.get_devmode_statuses():
            pod = self.store.get_devmode_pod_status(dms.project_id, self.environment)
            if pod is None:
                self.bus.publish(DELETE_CAMEL_STATUS, dms.to_dict())

    # -- queue handlers ------------------------------------------------------

    def collect_camel_statuses(self, data: dict[str, Any]) -> None:
        req = CamelStatusRequest.from_dict(data)
        logger.debug("collecting statuses of %s", req.container_name)
        for status_name in CamelStatusName:
            status = self.probe.probe_status(req.container_name, status_name, self.status_timeout_ms)
            if status is None:
                continue
            watch = status_name == CamelStatusName.context and self._watches_context(req.container_name)
            previous = None
            if watch:
                old = self.store.get_camel_status(req.project_id, status_name.value, self.environment)
                previous = old.status if old else None
            self.store.save_camel_status(
                CamelStatus(
                    project_id=req.project_id,
                    container_name=req.container_name,
                    name=status_name.value,
                    status=status,
                    environment=self.environment,
                )
            )
            if watch:
                self.context_listener(req.container_name, previous, status)

    def cleanup_devmode_status(self, data: dict[str, Any]) -> None:
        dms = DevModeStatus.from_dict(data)
        for name in CamelStatusName:
            self.store.delete_camel_status(dms.project_id, name.value, self.environment)
        self.store.delete_devmode_status(dms.project_id)
        self.store.log_event("INFO", f"Removed devmode status for {dms.container_name}: no pod", project_id=dms.project_id)

    def _watches_context(self, container_name: str) -> bool:
        return self.context_listener is not None and container_name.endswith(f"-{DEVMODE_SUFFIX}")
