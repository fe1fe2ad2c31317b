import json

import pytest

from rsr.models import DevModeStatus, Project, ProjectFile
from rsr.reload import ReloadOrchestrator, context_state, should_reload


def _ctx(state):
    return json.dumps({"context": {"name": "camel-1", "state": state}})


@pytest.fixture
def orderproj(store):
    store.save_project(Project("orderproj", "Order project"))
    for name in ("application.properties", "orders.camel.yaml", "Pricing.java"):
        store.save_project_file(ProjectFile("orderproj", name, f"# {name}"))
    store.save_devmode_status(DevModeStatus("orderproj", "orderproj-devmode"))
    return "orderproj"


def test_reload_uploads_every_file_then_reloads_once(store, probe, containers, orderproj):
    for name in ("application.properties", "orders.camel.yaml", "Pricing.java"):
        containers.route("PUT", f"/q/upload/{name}")
    containers.route("GET", "/q/dev/reload", body={"reloaded": True})

    result = ReloadOrchestrator(store, probe).reload_project_code("orderproj")

    calls = containers.calls()
    assert [m for m, _ in calls] == ["PUT", "PUT", "PUT", "GET"]
    assert calls[-1] == ("GET", "/q/dev/reload")
    assert set(containers.hosts()) == {"orderproj-devmode"}
    assert json.loads(result) == {"reloaded": True}
    assert store.get_devmode_status("orderproj") is None


def test_failed_uploads_do_not_stop_reload(store, probe, containers, orderproj):
    # no PUT routes: every upload gets a 404
    containers.route("GET", "/q/dev/reload", body={"reloaded": True})

    ReloadOrchestrator(store, probe).reload_project_code("orderproj")

    assert len([c for c in containers.calls() if c[0] == "PUT"]) == 3
    assert containers.calls()[-1] == ("GET", "/q/dev/reload")
    assert store.get_devmode_status("orderproj") is None
    assert any("upload" in e["message"] for e in store.latest_events())


def test_failed_reload_still_clears_devmode(store, probe, containers, orderproj):
    containers.route("GET", "/q/dev/reload", status=500)

    assert ReloadOrchestrator(store, probe).reload_project_code("orderproj") is None
    assert store.get_devmode_status("orderproj") is None


def test_context_state():
    assert context_state(_ctx("Started")) == "Started"
    assert context_state(None) is None
    assert context_state("not json") is None
    assert context_state(json.dumps({"state": "Started"})) is None


@pytest.mark.parametrize(
    "old,new,expected",
    [
        (_ctx("Starting"), _ctx("Started"), True),
        (None, _ctx("Started"), True),
        (_ctx("Started"), _ctx("Started"), False),
        (_ctx("Started"), _ctx("Stopping"), False),
        (_ctx("Started"), None, False),
    ],
)
def test_should_reload(old, new, expected):
    assert should_reload(old, new) is expected


def test_context_change_reloads_exactly_once(store, probe, containers, orderproj):
    containers.route("GET", "/q/dev/reload", body={})
    reloader = ReloadOrchestrator(store, probe)

    assert reloader.on_context_change("orderproj-devmode", _ctx("Starting"), _ctx("Started")) is True
    assert reloader.on_context_change("orderproj-devmode", _ctx("Started"), _ctx("Started")) is False

    assert containers.calls().count(("GET", "/q/dev/reload")) == 1


def test_store_error_during_reload_still_clears_devmode(store, probe, containers, orderproj, monkeypatch):
    def boom(project_id):
        raise RuntimeError("disk I/O error")

    monkeypatch.setattr(store, "get_project_files", boom)

    assert ReloadOrchestrator(store, probe).reload_project_code("orderproj") is None
    assert store.get_devmode_status("orderproj") is None
    assert containers.calls() == []
