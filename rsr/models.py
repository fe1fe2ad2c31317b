from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEVMODE_SUFFIX = "devmode"

PROJECT_ID_RE = re.compile(r"^[a-z][a-z0-9\-]{0,62}$")
FILE_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_\-\.]{0,254}$")
CONTAINER_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9\-]{0,61}[a-z0-9])?$")


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def validate_project_id(project_id: str) -> None:
    if not PROJECT_ID_RE.match(project_id):
        raise ValueError(
            "Invalid project id. Use lowercase letters/numbers and hyphen, starting with a letter (max 63 chars)."
        )


def validate_file_name(name: str) -> None:
    # Goes into a URL path on the container; keep it a single plain segment.
    if not FILE_NAME_RE.match(name) or ".." in name:
        raise ValueError("Invalid file name. Use letters/numbers and -._ (no path separators).")


def validate_container_name(name: str) -> None:
    # Becomes the host part of the probe URL; a single DNS label only.
    if not CONTAINER_NAME_RE.match(name):
        raise ValueError("Invalid container name. Use a DNS label: lowercase letters/numbers and hyphen (max 63 chars).")


def devmode_container_name(project_id: str) -> str:
    return f"{project_id}-{DEVMODE_SUFFIX}"


def project_id_from_container(container_name: str) -> str:
    suffix = f"-{DEVMODE_SUFFIX}"
    if container_name.endswith(suffix):
        return container_name[: -len(suffix)]
    return container_name


class CamelStatusName(str, Enum):
    """Status categories; each one maps to a `/q/dev/<name>` probe endpoint."""

    context = "context"
    health = "health"
    endpoints = "endpoints"
    inflight = "inflight"
    memory = "memory"
    properties = "properties"
    route = "route"
    trace = "trace"
    jvm = "jvm"


@dataclass(frozen=True)
class Environment:
    name: str
    cluster: str
    namespace: str
    pipeline: str


@dataclass(frozen=True)
class Project:
    project_id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class ProjectFile:
    project_id: str
    name: str
    code: str


@dataclass(frozen=True)
class DevModeStatus:
    project_id: str
    container_name: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DevModeStatus":
        return cls(project_id=data["project_id"], container_name=data["container_name"])


@dataclass(frozen=True)
class PodStatus:
    project_id: str
    name: str
    environment: str
    in_devmode: bool = False


@dataclass(frozen=True)
class CamelStatus:
    project_id: str
    container_name: str
    name: str  # CamelStatusName value
    status: str  # raw JSON text as returned by the container
    environment: str
    updated_at: str = field(default_factory=utc_now)


@dataclass(frozen=True)
class CamelStatusRequest:
    """Work item for the collect queue. Never persisted."""

    project_id: str
    container_name: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CamelStatusRequest":
        return cls(project_id=data["project_id"], container_name=data["container_name"])
