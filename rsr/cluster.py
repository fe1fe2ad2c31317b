from __future__ import annotations

import os
from dataclasses import dataclass

import docker
from docker.errors import DockerException

from .models import DEVMODE_SUFFIX, PodStatus, validate_project_id
from .ports import StatusStorePort
from .settings import Settings

SA_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

PROJECT_LABEL = "rsr.project"
TYPE_LABEL = "rsr.type"


@dataclass(frozen=True)
class StaticClusterInfo:
    cluster_name: str = "localhost"
    namespace: str = "karavan"
    in_cluster: bool = False


class KubernetesInfo:
    """Cluster facts read from the pod environment.

    Inside a pod the service account mount provides the namespace and
    KUBERNETES_SERVICE_HOST names the API server.
    """

    def __init__(self, settings: Settings, sa_namespace_file: str = SA_NAMESPACE_FILE) -> None:
        self._settings = settings
        self._sa_namespace_file = sa_namespace_file

    @property
    def in_cluster(self) -> bool:
        return bool(os.getenv("KUBERNETES_SERVICE_HOST")) and os.path.exists(self._sa_namespace_file)

    @property
    def namespace(self) -> str:
        if self.in_cluster:
            with open(self._sa_namespace_file, encoding="utf-8") as f:
                ns = f.read().strip()
            if ns:
                return ns
        return self._settings.namespace

    @property
    def cluster_name(self) -> str:
        if self._settings.cluster:
            return self._settings.cluster
        return os.getenv("KUBERNETES_SERVICE_HOST") or "localhost"


class DockerRuntime:
    """Images and running project containers as seen by the local docker daemon."""

    def _client(self) -> docker.DockerClient:
        return docker.from_env()

    def available(self) -> bool:
        try:
            c = self._client()
            c.ping()
            return True
        except DockerException:
            return False

    def list_images(self) -> list[str]:
        if not self.available():
            return []
        tags: list[str] = []
        for image in self._client().images.list():
            tags.extend(image.tags)
        return sorted(tags)

    def images_for_project(self, registry: str, group: str, project_id: str) -> list[str]:
        validate_project_id(project_id)
        pattern = f"{registry}/{group}/{project_id}"
        return [t for t in self.list_images() if t.startswith(pattern)]

    def list_pods(self, environment: str) -> list[PodStatus]:
        if not self.available():
            return []
        containers = self._client().containers.list(filters={"label": [PROJECT_LABEL], "status": "running"})
        pods: list[PodStatus] = []
        for c in containers:
            labels = c.labels or {}
            in_devmode = labels.get(TYPE_LABEL) == DEVMODE_SUFFIX or c.name.endswith(f"-{DEVMODE_SUFFIX}")
            pods.append(
                PodStatus(project_id=labels[PROJECT_LABEL], name=c.name, environment=environment, in_devmode=in_devmode)
            )
        return pods


class PodWatcher:
    """Mirrors running project containers into PodStatus rows for one environment."""

    def __init__(self, store: StatusStorePort, runtime: DockerRuntime, environment: str) -> None:
        self.store = store
        self.runtime = runtime
        self.environment = environment

    def sync(self) -> None:
        # An unreachable daemon would otherwise look like "no pods" and wipe the table.
        if not self.store.is_ready() or not self.runtime.available():
            return
        pods = self.runtime.list_pods(self.environment)
        seen = {p.name for p in pods}
        for pod in pods:
            self.store.save_pod_status(pod)
        for pod in self.store.get_pod_statuses(self.environment):
            if pod.name not in seen:
                self.store.delete_pod_status(pod.name, self.environment)
