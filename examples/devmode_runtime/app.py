"""Stand-in for a devmode runtime container.

Serves the `/q/dev/*` and `/q/upload/*` endpoints the reconciler talks to,
so the whole loop can be run locally:

    uvicorn examples.devmode_runtime.app:app --port 8080
"""
from __future__ import annotations

import os
import random
import time

from fastapi import FastAPI, HTTPException, Request


FAIL_RATE = float(os.getenv("FAIL_RATE", "0"))  # 0..1

app = FastAPI(title="Devmode runtime stand-in")

APP_STATE: dict = {"state": "Started", "files": {}, "reloads": 0}

KNOWN_STATUSES = {"context", "health", "endpoints", "inflight", "memory", "properties", "route", "trace", "jvm"}


def _maybe_fail() -> None:
    # Optional fault injection to exercise the circuit breaker.
    if FAIL_RATE > 0 and random.random() < FAIL_RATE:
        time.sleep(3)


@app.get("/q/dev/reload")
def reload(reload: bool = False) -> dict:
    _maybe_fail()
    if reload:
        APP_STATE["reloads"] += 1
    return {"reloaded": reload, "files": sorted(APP_STATE["files"]), "reloads": APP_STATE["reloads"]}


@app.get("/q/dev/{name}")
def status(name: str) -> dict:
    _maybe_fail()
    if name not in KNOWN_STATUSES:
        raise HTTPException(status_code=404, detail="unknown status")
    if name == "context":
        return {"context": {"name": "camel-1", "state": APP_STATE["state"]}}
    if name == "health":
        return {"status": "UP", "checks": []}
    return {name: {}}


@app.put("/q/upload/{file_name}")
async def upload(file_name: str, request: Request) -> dict:
    _maybe_fail()
    APP_STATE["files"][file_name] = (await request.body()).decode("utf-8")
    return {"uploaded": file_name}


@app.post("/simulate/state/{state}")
def set_state(state: str) -> dict:
    APP_STATE["state"] = state
    return {"state": state}
