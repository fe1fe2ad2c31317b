from __future__ import annotations

import os
import sqlite3
from contextlib import closing, contextmanager
from typing import Any, Iterable, Iterator

from .models import CamelStatus, DevModeStatus, Environment, PodStatus, Project, ProjectFile, utc_now


class StoreNotReady(RuntimeError):
    pass


def _resolve_db_path(db_path: str) -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory inside the container; in that case the DB file goes inside it.
    """

    p = os.path.abspath(db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "rsr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def _rows_to_dataclass(rows: Iterable[sqlite3.Row], cls: Any) -> list[Any]:
    out: list[Any] = []
    for r in rows:
        out.append(cls(**dict(r)))
    return out


def _pod_from_row(row: sqlite3.Row) -> PodStatus:
    d = dict(row)
    d["in_devmode"] = bool(d["in_devmode"])
    return PodStatus(**d)


class StatusStore:
    """sqlite-backed shared store for environment, project and status records.

    Every call opens its own connection, so one instance is safe to share
    between the ticker jobs and the dispatch workers.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._ready = False

    def start(self) -> None:
        self.init_db()
        self._ready = True

    def is_ready(self) -> bool:
        return self._ready

    def connect(self) -> sqlite3.Connection:
        if not self._ready:
            raise StoreNotReady("status store has not been started")
        return self._open()

    @contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Connection that commits on success and is closed on exit."""
        with closing(self.connect()) as conn, conn:
            yield conn

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(_resolve_db_path(self.db_path), check_same_thread=False, timeout=10)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist."""
        with closing(self._open()) as conn, conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS environments (
                  name TEXT PRIMARY KEY,
                  cluster TEXT NOT NULL,
                  namespace TEXT NOT NULL,
                  pipeline TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS projects (
                  project_id TEXT PRIMARY KEY,
                  name TEXT NOT NULL,
                  description TEXT NOT NULL DEFAULT ''
                );

                CREATE TABLE IF NOT EXISTS project_files (
                  project_id TEXT NOT NULL,
                  name TEXT NOT NULL,
                  code TEXT NOT NULL,
                  PRIMARY KEY(project_id, name),
                  FOREIGN KEY(project_id) REFERENCES projects(project_id) ON DELETE CASCADE
                );

                CREATE TABLE IF NOT EXISTS devmode_statuses (
                  project_id TEXT PRIMARY KEY,
                  container_name TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS pod_statuses (
                  project_id TEXT NOT NULL,
                  name TEXT NOT NULL,
                  environment TEXT NOT NULL,
                  in_devmode INTEGER NOT NULL DEFAULT 0,
                  PRIMARY KEY(name, environment)
                );

                CREATE TABLE IF NOT EXISTS camel_statuses (
                  project_id TEXT NOT NULL,
                  container_name TEXT NOT NULL,
                  name TEXT NOT NULL,
                  status TEXT NOT NULL,
                  environment TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  PRIMARY KEY(project_id, name, environment)
                );

                CREATE TABLE IF NOT EXISTS events (
                  id INTEGER PRIMARY KEY AUTOINCREMENT,
                  ts TEXT NOT NULL,
                  level TEXT NOT NULL,
                  project_id TEXT,
                  message TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
                CREATE INDEX IF NOT EXISTS idx_pod_statuses_project ON pod_statuses(project_id, environment);
                """
            )

    # -- events --------------------------------------------------------------

    def log_event(self, level: str, message: str, project_id: str | None = None) -> None:
        with self.session() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, project_id, message) VALUES (?, ?, ?, ?)",
                (utc_now(), level.upper(), project_id, message),
            )

    def latest_events(self, limit: int = 100) -> list[dict[str, Any]]:
        with self.session() as conn:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
            return [dict(r) for r in rows]

    # -- environment ---------------------------------------------------------

    def save_environment(self, env: Environment) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO environments (name, cluster, namespace, pipeline) VALUES (?, ?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                  cluster=excluded.cluster,
                  namespace=excluded.namespace,
                  pipeline=excluded.pipeline
                """,
                (env.name, env.cluster, env.namespace, env.pipeline),
            )

    def get_environment(self, name: str) -> Environment | None:
        with self.session() as conn:
            row = conn.execute("SELECT * FROM environments WHERE name=?", (name,)).fetchone()
            return Environment(**dict(row)) if row else None

    # -- projects ------------------------------------------------------------

    def save_project(self, project: Project) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO projects (project_id, name, description) VALUES (?, ?, ?)
                ON CONFLICT(project_id) DO UPDATE SET
                  name=excluded.name,
                  description=excluded.description
                """,
                (project.project_id, project.name, project.description),
            )

    def get_projects(self) -> list[Project]:
        with self.session() as conn:
            rows = conn.execute("SELECT * FROM projects ORDER BY project_id").fetchall()
            return _rows_to_dataclass(rows, Project)

    def get_project(self, project_id: str) -> Project | None:
        with self.session() as conn:
            row = conn.execute("SELECT * FROM projects WHERE project_id=?", (project_id,)).fetchone()
            return Project(**dict(row)) if row else None

    def save_project_file(self, file: ProjectFile) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO project_files (project_id, name, code) VALUES (?, ?, ?)
                ON CONFLICT(project_id, name) DO UPDATE SET code=excluded.code
                """,
                (file.project_id, file.name, file.code),
            )

    def get_project_files(self, project_id: str) -> list[ProjectFile]:
        with self.session() as conn:
            rows = conn.execute(
                "SELECT * FROM project_files WHERE project_id=? ORDER BY name", (project_id,)
            ).fetchall()
            return _rows_to_dataclass(rows, ProjectFile)

    # -- devmode statuses ----------------------------------------------------

    def save_devmode_status(self, status: DevModeStatus) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO devmode_statuses (project_id, container_name) VALUES (?, ?)
                ON CONFLICT(project_id) DO UPDATE SET container_name=excluded.container_name
                """,
                (status.project_id, status.container_name),
            )

    def get_devmode_statuses(self) -> list[DevModeStatus]:
        with self.session() as conn:
            rows = conn.execute("SELECT * FROM devmode_statuses ORDER BY project_id").fetchall()
            return _rows_to_dataclass(rows, DevModeStatus)

    def get_devmode_status(self, project_id: str) -> DevModeStatus | None:
        with self.session() as conn:
            row = conn.execute("SELECT * FROM devmode_statuses WHERE project_id=?", (project_id,)).fetchone()
            return DevModeStatus(**dict(row)) if row else None

    def delete_devmode_status(self, project_id: str) -> None:
        with self.session() as conn:
            conn.execute("DELETE FROM devmode_statuses WHERE project_id=?", (project_id,))

    # -- pod statuses --------------------------------------------------------

    def save_pod_status(self, pod: PodStatus) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO pod_statuses (project_id, name, environment, in_devmode) VALUES (?, ?, ?, ?)
                ON CONFLICT(name, environment) DO UPDATE SET
                  project_id=excluded.project_id,
                  in_devmode=excluded.in_devmode
                """,
                (pod.project_id, pod.name, pod.environment, int(pod.in_devmode)),
            )

    def get_pod_statuses(self, environment: str) -> list[PodStatus]:
        with self.session() as conn:
            rows = conn.execute(
                "SELECT * FROM pod_statuses WHERE environment=? ORDER BY project_id, name", (environment,)
            ).fetchall()
            return [_pod_from_row(r) for r in rows]

    def get_devmode_pod_status(self, project_id: str, environment: str) -> PodStatus | None:
        with self.session() as conn:
            row = conn.execute(
                """
                SELECT * FROM pod_statuses
                WHERE project_id=? AND environment=? AND in_devmode=1
                ORDER BY name LIMIT 1
                """,
                (project_id, environment),
            ).fetchone()
            return _pod_from_row(row) if row else None

    def delete_pod_status(self, name: str, environment: str) -> None:
        with self.session() as conn:
            conn.execute("DELETE FROM pod_statuses WHERE name=? AND environment=?", (name, environment))

    # -- camel statuses ------------------------------------------------------

    def save_camel_status(self, status: CamelStatus) -> None:
        with self.session() as conn:
            conn.execute(
                """
                INSERT INTO camel_statuses (project_id, container_name, name, status, environment, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(project_id, name, environment) DO UPDATE SET
                  container_name=excluded.container_name,
                  status=excluded.status,
                  updated_at=excluded.updated_at
                """,
                (
                    status.project_id,
                    status.container_name,
                    status.name,
                    status.status,
                    status.environment,
                    status.updated_at,
                ),
            )

    def get_camel_status(self, project_id: str, name: str, environment: str) -> CamelStatus | None:
        with self.session() as conn:
            row = conn.execute(
                "SELECT * FROM camel_statuses WHERE project_id=? AND name=? AND environment=?",
                (project_id, name, environment),
            ).fetchone()
            return CamelStatus(**dict(row)) if row else None

    def get_camel_statuses(self, project_id: str, environment: str) -> list[CamelStatus]:
        with self.session() as conn:
            rows = conn.execute(
                "SELECT * FROM camel_statuses WHERE project_id=? AND environment=? ORDER BY name",
                (project_id, environment),
            ).fetchall()
            return _rows_to_dataclass(rows, CamelStatus)

    def delete_camel_status(self, project_id: str, name: str, environment: str) -> None:
        with self.session() as conn:
            conn.execute(
                "DELETE FROM camel_statuses WHERE project_id=? AND name=? AND environment=?",
                (project_id, name, environment),
            )
