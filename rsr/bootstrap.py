from __future__ import annotations

from .db import StatusStore
from .dispatch import EventBus
from .models import Environment
from .ports import ClusterInfo
from .settings import Settings

IMPORT_PROJECTS = "import-projects"
IMPORT_KAMELETS = "import-kamelets"
START_WATCHERS = "start-watchers"


class Bootstrap:
    """One-shot startup sequence. The published signals are not retried."""

    def __init__(self, store: StatusStore, cluster: ClusterInfo, bus: EventBus, settings: Settings) -> None:
        self.store = store
        self.cluster = cluster
        self.bus = bus
        self.settings = settings

    def on_start(self) -> Environment:
        self.store.start()
        env = self.save_environment()
        self.initial_import()
        self.bus.publish(START_WATCHERS, {})
        return env

    def save_environment(self) -> Environment:
        env = Environment(
            name=self.settings.environment,
            cluster=self.cluster.cluster_name,
            namespace=self.cluster.namespace,
            pipeline=self.settings.pipeline,
        )
        self.store.save_environment(env)
        self.store.log_event("INFO", f"Environment {env.name} on {env.cluster}/{env.namespace}")
        return env

    def initial_import(self) -> None:
        if not self.store.get_projects():
            self.store.log_event("INFO", "No projects found in the store")
            self.bus.publish(IMPORT_PROJECTS, {})
        self.bus.publish(IMPORT_KAMELETS, {})
