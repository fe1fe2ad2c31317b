from __future__ import annotations

import json
import logging

from .models import devmode_container_name, project_id_from_container
from .ports import StatusStorePort
from .probe import ProbeClient

logger = logging.getLogger(__name__)

STARTED = "Started"


def context_state(context: str | None) -> str | None:
    """Return `context.state` from a raw context payload, or None."""
    if context is None:
        return None
    try:
        data = json.loads(context)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    ctx = data.get("context")
    if not isinstance(ctx, dict):
        return None
    state = ctx.get("state")
    return state if isinstance(state, str) else None


def should_reload(old_context: str | None, new_context: str | None) -> bool:
    """Reload only on a transition into Started."""
    if new_context is None:
        return False
    new_state = context_state(new_context)
    return new_state != context_state(old_context) and new_state == STARTED


class ReloadOrchestrator:
    """Pushes a project's files into its devmode container and reloads it."""

    def __init__(
        self,
        store: StatusStorePort,
        probe: ProbeClient,
        upload_timeout_ms: int = 1000,
        reload_timeout_ms: int = 1000,
    ) -> None:
        self.store = store
        self.probe = probe
        self.upload_timeout_ms = upload_timeout_ms
        self.reload_timeout_ms = reload_timeout_ms

    def reload_project_code(self, project_id: str) -> str | None:
        """Upload every project file, then trigger one reload.

        The devmode status row is removed afterwards whatever happened; the
        owner of the container lifecycle registers it again.
        """
        container_name = devmode_container_name(project_id)
        self.store.log_event("INFO", f"Reload project code in {container_name}", project_id=project_id)
        result = None
        try:
            failed = 0
            for f in self.store.get_project_files(project_id):
                if not self.probe.upload_file(container_name, f.name, f.code, self.upload_timeout_ms):
                    failed += 1
                    logger.warning("upload of %s to %s failed", f.name, container_name)
            if failed:
                self.store.log_event("WARN", f"{failed} file upload(s) failed for {container_name}", project_id=project_id)
            result = self.probe.trigger_reload(container_name, self.reload_timeout_ms)
            if result is None:
                self.store.log_event("WARN", f"Reload request to {container_name} failed", project_id=project_id)
        except Exception:
            logger.exception("reload of %s failed", container_name)
        finally:
            self.store.delete_devmode_status(project_id)
        return result

    def on_context_change(self, container_name: str, old_context: str | None, new_context: str | None) -> bool:
        if not should_reload(old_context, new_context):
            return False
        self.reload_project_code(project_id_from_container(container_name))
        return True
