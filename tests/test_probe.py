import json

import httpx
import pytest

from rsr.breaker import BreakerRegistry
from rsr.cluster import StaticClusterInfo
from rsr.models import CamelStatusName
from rsr.probe import ProbeClient


def test_container_address_inside_and_outside_cluster():
    outside = ProbeClient(StaticClusterInfo(in_cluster=False), BreakerRegistry())
    assert outside.container_address("p1-devmode") == "http://p1-devmode:8080"

    inside = ProbeClient(StaticClusterInfo(namespace="team-a", in_cluster=True), BreakerRegistry())
    assert inside.container_address("p1-devmode") == "http://p1-devmode.team-a.svc.cluster.local"


def test_probe_status_returns_pretty_json(probe, containers):
    containers.route("GET", "/q/dev/context", body={"context": {"state": "Started"}})

    text = probe.probe_status("p1-devmode", CamelStatusName.context)

    assert json.loads(text) == {"context": {"state": "Started"}}
    assert "\n" in text
    req = containers.requests[0]
    assert str(req.url) == "http://p1-devmode:8080/q/dev/context"
    assert req.headers["accept"] == "application/json"


def test_probe_status_non_200_is_absent(probe, containers):
    containers.route("GET", "/q/dev/health", status=503, body={"status": "DOWN"})
    assert probe.probe_status("p1-devmode", "health") is None


def test_probe_status_transport_error_is_absent(probe, containers):
    containers.fail("GET", "/q/dev/health", httpx.ConnectError("connection refused"))
    assert probe.probe_status("p1-devmode", "health") is None


def test_probe_status_timeout_is_absent(probe, containers):
    containers.fail("GET", "/q/dev/memory", httpx.ReadTimeout("timed out"))
    assert probe.probe_status("p1-devmode", CamelStatusName.memory, timeout_ms=10) is None


def test_upload_file_puts_raw_body(probe, containers):
    containers.route("PUT", "/q/upload/route.yaml")

    assert probe.upload_file("p1-devmode", "route.yaml", "- from: timer:x") is True
    req = containers.requests[0]
    assert req.method == "PUT"
    assert req.content == b"- from: timer:x"


def test_upload_file_fails_on_non_200(probe, containers):
    containers.route("PUT", "/q/upload/route.yaml", status=500)
    assert probe.upload_file("p1-devmode", "route.yaml", "x") is False


def test_trigger_reload_hits_reload_endpoint(probe, containers):
    containers.route("GET", "/q/dev/reload", body={"reloaded": True})

    assert json.loads(probe.trigger_reload("p1-devmode")) == {"reloaded": True}
    assert containers.requests[0].url.params["reload"] == "true"


def test_open_circuit_skips_network(containers):
    containers.route("GET", "/q/dev/health", status=503)
    p = ProbeClient(
        StaticClusterInfo(),
        BreakerRegistry(volume_threshold=2, failure_ratio=0.5, delay_s=60),
        transport=httpx.MockTransport(containers.handler),
    )
    p.start()
    try:
        assert p.probe_status("c", "health") is None
        assert p.probe_status("c", "health") is None
        assert len(containers.requests) == 2

        assert p.probe_status("c", "health") is None
        assert len(containers.requests) == 2
        assert p.breakers.states() == {"status": "open"}
    finally:
        p.close()


def test_calls_before_start_are_rejected():
    p = ProbeClient(StaticClusterInfo(), BreakerRegistry())
    with pytest.raises(RuntimeError):
        p.probe_status("c", "health")


@pytest.mark.parametrize("container_name", ["a:b:c", ""])
def test_malformed_container_name_is_absent_not_an_error(probe, container_name):
    assert probe.probe_status(container_name, "health") is None
    assert probe.trigger_reload(container_name) is None
    assert probe.upload_file(container_name, "route.yaml", "x") is False
