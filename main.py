from __future__ import annotations

import logging
from dataclasses import asdict

import httpx
from fastapi import FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool

from rsr.api_models import (
    CamelStatusOut,
    DevModeStatusOut,
    EnvironmentOut,
    RegisterDevModeRequest,
    ReloadResponse,
)
from rsr.bootstrap import START_WATCHERS, Bootstrap
from rsr.breaker import BreakerRegistry
from rsr.cluster import DockerRuntime, KubernetesInfo, PodWatcher
from rsr.db import StatusStore
from rsr.dispatch import EventBus
from rsr.models import (
    DevModeStatus,
    Project,
    ProjectFile,
    devmode_container_name,
    validate_container_name,
    validate_file_name,
    validate_project_id,
)
from rsr.ports import ClusterInfo
from rsr.probe import ProbeClient
from rsr.reconciler import Reconciler
from rsr.reload import ReloadOrchestrator
from rsr.settings import Settings, settings
from rsr.ticker import Ticker


def _check_project_id(project_id: str) -> None:
    try:
        validate_project_id(project_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def create_app(
    cfg: Settings = settings,
    cluster: ClusterInfo | None = None,
    runtime: DockerRuntime | None = None,
    transport: httpx.BaseTransport | None = None,
) -> FastAPI:
    """Build every component explicitly and expose them on `app.state`."""
    cluster = cluster or KubernetesInfo(cfg)
    runtime = runtime or DockerRuntime()

    store = StatusStore(cfg.db_path)
    breakers = BreakerRegistry(
        volume_threshold=cfg.cb_volume_threshold,
        failure_ratio=cfg.cb_failure_ratio,
        delay_s=cfg.cb_delay_ms / 1000.0,
    )
    probe = ProbeClient(cluster, breakers, port=cfg.devmode_port, transport=transport)
    bus = EventBus(max_workers=cfg.dispatch_workers, max_pending=cfg.dispatch_max_pending)
    ticker = Ticker()
    reloader = ReloadOrchestrator(
        store, probe, upload_timeout_ms=cfg.upload_timeout_ms, reload_timeout_ms=cfg.reload_timeout_ms
    )
    reconciler = Reconciler(
        store,
        probe,
        bus,
        cfg.environment,
        status_timeout_ms=cfg.status_timeout_ms,
        context_listener=reloader.on_context_change,
    )
    bootstrap = Bootstrap(store, cluster, bus, cfg)
    watcher = PodWatcher(store, runtime, cfg.environment)

    app = FastAPI(title="Runtime Status Reconciler")
    app.state.settings = cfg
    app.state.store = store
    app.state.probe = probe
    app.state.bus = bus
    app.state.ticker = ticker
    app.state.reconciler = reconciler
    app.state.reloader = reloader

    def start_watchers(_payload) -> None:
        if not cfg.watch_pods:
            return
        if ticker.get("pod-watcher") is None:
            ticker.every("pod-watcher", cfg.camel_status_interval_s, watcher.sync)
            store.log_event("INFO", "Pod watcher started")

    @app.on_event("startup")
    def startup() -> None:
        logging.basicConfig(
            level=getattr(logging, cfg.log_level.upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        probe.start()
        reconciler.register()
        bus.consumer(START_WATCHERS, start_watchers, ordered=False)
        env = bootstrap.on_start()
        reconciler.schedule(ticker, cfg.devmode_status_interval_s, cfg.camel_status_interval_s)
        ticker.start()
        store.log_event("INFO", f"Reconciler started for environment {env.name}")

    @app.on_event("shutdown")
    def shutdown() -> None:
        ticker.stop()
        bus.shutdown(wait=True)
        probe.close()
        store.log_event("INFO", "Reconciler stopped")

    @app.get("/health")
    def health():
        return {"status": "healthy", "store_ready": store.is_ready(), "breakers": probe.breakers.states()}

    @app.get("/events")
    def events(limit: int = 100):
        return store.latest_events(max(1, min(1000, limit)))

    @app.get("/api/environment", response_model=EnvironmentOut)
    def environment():
        env = store.get_environment(cfg.environment)
        if env is None:
            raise HTTPException(status_code=404, detail="environment not saved yet")
        return asdict(env)

    @app.get("/api/image/{project_id}", response_model=list[str])
    def images(project_id: str):
        _check_project_id(project_id)
        return runtime.images_for_project(cfg.registry, cfg.group, project_id)

    @app.get("/api/status/camel/{project_id}", response_model=list[CamelStatusOut])
    def camel_statuses(project_id: str):
        _check_project_id(project_id)
        return [asdict(s) for s in store.get_camel_statuses(project_id, cfg.environment)]

    @app.get("/api/status/devmode", response_model=list[DevModeStatusOut])
    def devmode_statuses():
        return [asdict(s) for s in store.get_devmode_statuses()]

    @app.post("/api/devmode/{project_id}", response_model=DevModeStatusOut)
    def register_devmode(project_id: str, req: RegisterDevModeRequest | None = None):
        _check_project_id(project_id)
        container = (req.container_name if req else None) or devmode_container_name(project_id)
        try:
            validate_container_name(container)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        dms = DevModeStatus(project_id=project_id, container_name=container)
        store.save_devmode_status(dms)
        store.log_event("INFO", f"Registered devmode container {container}", project_id=project_id)
        return asdict(dms)

    @app.delete("/api/devmode/{project_id}")
    def delete_devmode(project_id: str):
        _check_project_id(project_id)
        if store.get_devmode_status(project_id) is None:
            raise HTTPException(status_code=404, detail="unknown devmode project")
        store.delete_devmode_status(project_id)
        return {"deleted": project_id}

    @app.post("/api/devmode/{project_id}/reload", response_model=ReloadResponse)
    def reload_devmode(project_id: str):
        _check_project_id(project_id)
        if store.get_project(project_id) is None:
            raise HTTPException(status_code=404, detail="unknown project")
        result = reloader.reload_project_code(project_id)
        return ReloadResponse(
            project_id=project_id,
            container_name=devmode_container_name(project_id),
            reloaded=result is not None,
            result=result,
        )

    def save_file(project_id: str, file_name: str, code: str) -> None:
        if store.get_project(project_id) is None:
            store.save_project(Project(project_id=project_id, name=project_id))
        store.save_project_file(ProjectFile(project_id=project_id, name=file_name, code=code))

    @app.put("/api/project/{project_id}/file/{file_name}")
    async def put_project_file(project_id: str, file_name: str, request: Request):
        _check_project_id(project_id)
        try:
            validate_file_name(file_name)
            code = (await request.body()).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise HTTPException(status_code=400, detail=str(e))
        await run_in_threadpool(save_file, project_id, file_name, code)
        return {"project_id": project_id, "file": file_name, "size": len(code)}

    return app


app = create_app()
