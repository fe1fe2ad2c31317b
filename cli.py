from __future__ import annotations

import argparse
import json
import sys

import requests


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Runtime Status Reconciler CLI")
    p.add_argument("--api", default="http://localhost:8000", help="API base URL")
    sub = p.add_subparsers(dest="cmd", required=True)

    s_img = sub.add_parser("images", help="List container images built for a project")
    s_img.add_argument("project_id")

    s_st = sub.add_parser("statuses", help="Show collected runtime statuses of a project")
    s_st.add_argument("project_id")
    s_st.add_argument("--name", help="Only this status name (context, health, ...)")

    sub.add_parser("devmode", help="List registered devmode containers")

    s_reg = sub.add_parser("register", help="Register a devmode container for a project")
    s_reg.add_argument("project_id")
    s_reg.add_argument("--container-name", help="Defaults to <project_id>-devmode")

    s_rel = sub.add_parser("reload", help="Upload project files to its devmode container and reload it")
    s_rel.add_argument("project_id")

    s_ev = sub.add_parser("events", help="Show events")
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    base = args.api.rstrip("/")

    if args.cmd == "images":
        r = requests.get(f"{base}/api/image/{args.project_id}", timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "statuses":
        r = requests.get(f"{base}/api/status/camel/{args.project_id}", timeout=10)
        if not r.ok:
            _print(r.json())
            return 1
        rows = r.json()
        if args.name:
            rows = [row for row in rows if row["name"] == args.name]
        for row in rows:
            # status is JSON text; show it as a nested object
            try:
                row["status"] = json.loads(row["status"])
            except ValueError:
                pass
        _print(rows)
        return 0

    if args.cmd == "devmode":
        _print(requests.get(f"{base}/api/status/devmode", timeout=10).json())
        return 0

    if args.cmd == "register":
        payload = {"container_name": args.container_name}
        r = requests.post(f"{base}/api/devmode/{args.project_id}", json=payload, timeout=10)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "reload":
        r = requests.post(f"{base}/api/devmode/{args.project_id}/reload", timeout=30)
        _print(r.json())
        return 0 if r.ok else 1

    if args.cmd == "events":
        _print(requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10).json())
        return 0

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
