from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterDevModeRequest(BaseModel):
    container_name: str | None = Field(None, description="Defaults to <project_id>-devmode")


class CamelStatusOut(BaseModel):
    project_id: str
    container_name: str
    name: str
    status: str = Field(..., description="Raw JSON text returned by the container")
    environment: str
    updated_at: str


class DevModeStatusOut(BaseModel):
    project_id: str
    container_name: str


class EnvironmentOut(BaseModel):
    name: str
    cluster: str
    namespace: str
    pipeline: str


class ReloadResponse(BaseModel):
    project_id: str
    container_name: str
    reloaded: bool
    result: str | None = None
