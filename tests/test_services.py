from fastapi.testclient import TestClient

from examples.devmode_runtime.app import APP_STATE, app


def test_runtime_stand_in_serves_probe_endpoints():
    client = TestClient(app)
    client.post("/simulate/state/Starting")

    r = client.get("/q/dev/context")
    assert r.status_code == 200
    assert r.json()["context"]["state"] == "Starting"

    assert client.get("/q/dev/health").json()["status"] == "UP"
    assert client.get("/q/dev/unknown").status_code == 404

    client.post("/simulate/state/Started")


def test_runtime_stand_in_upload_and_reload():
    client = TestClient(app)
    before = APP_STATE["reloads"]

    assert client.put("/q/upload/orders.camel.yaml", content=b"- from: timer:x").status_code == 200
    r = client.get("/q/dev/reload", params={"reload": "true"})

    assert r.status_code == 200
    assert "orders.camel.yaml" in r.json()["files"]
    assert APP_STATE["reloads"] == before + 1
