"""Narrow interfaces the core depends on.

`rsr.db.StatusStore` and `rsr.cluster.KubernetesInfo` are the production
implementations; tests pass their own.
"""
from __future__ import annotations

from typing import Protocol

from .models import CamelStatus, DevModeStatus, Environment, Project, ProjectFile, PodStatus


class ClusterInfo(Protocol):
    @property
    def cluster_name(self) -> str: ...

    @property
    def namespace(self) -> str: ...

    @property
    def in_cluster(self) -> bool: ...


class StatusStorePort(Protocol):
    def is_ready(self) -> bool: ...

    def log_event(self, level: str, message: str, project_id: str | None = None) -> None: ...

    def save_environment(self, env: Environment) -> None: ...

    def get_projects(self) -> list[Project]: ...

    def get_project_files(self, project_id: str) -> list[ProjectFile]: ...

    def get_devmode_statuses(self) -> list[DevModeStatus]: ...

    def delete_devmode_status(self, project_id: str) -> None: ...

    def get_pod_statuses(self, environment: str) -> list[PodStatus]: ...

    def save_pod_status(self, pod: PodStatus) -> None: ...

    def delete_pod_status(self, name: str, environment: str) -> None: ...

    def get_devmode_pod_status(self, project_id: str, environment: str) -> PodStatus | None: ...

    def get_camel_status(self, project_id: str, name: str, environment: str) -> CamelStatus | None: ...

    def save_camel_status(self, status: CamelStatus) -> None: ...

    def delete_camel_status(self, project_id: str, name: str, environment: str) -> None: ...
