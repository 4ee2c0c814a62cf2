"""
cadence.cli
===========

Command line entry point.  The ``sweep`` command is what a cron job or
any other periodic scheduler should call; it runs the same pure sweep
the API runs on every list load.

Examples
--------
$ python -m cadence.cli init-db
$ python -m cadence.cli list --family term
$ python -m cadence.cli sweep --family batch --today 2025-01-21 --dry-run
$ python -m cadence.cli serve --port 8001
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from typing import List, Optional

from cadence.clock import as_day
from cadence.models import Family
from cadence.settings import API_DEBUG, API_HOST, API_PORT, settings


def _service():
    from cadence.registry_db import DBEntityRegistry
    from cadence.service import LifecycleService, configured_prefixes

    return LifecycleService(DBEntityRegistry(prefixes=configured_prefixes()))


def _cmd_init_db(args: argparse.Namespace) -> int:
    from cadence.db import create_all

    create_all()
    print("cadence.db schema initialised")
    return 0


def _cmd_list(args: argparse.Namespace) -> int:
    for ent in _service().list_entities(args.family):
        paused = " (paused)" if ent.is_paused else ""
        print(f"{ent.id:<8} {ent.status.value:<10} {ent.start_date} .. {ent.end_date}  {ent.name}{paused}")
    return 0


def _cmd_sweep(args: argparse.Namespace) -> int:
    svc = _service()
    today = as_day(args.today) if args.today else None
    if args.dry_run:
        for p in svc.preview_sweep(args.family, today):
            print(f"{p.entity_id}: {p.from_status} -> {p.to_status}  {p.reason}")
        return 0
    result = svc.refresh(args.family, today)
    for o in result.applied:
        print(f"applied  {o.proposal.entity_id}: {o.proposal.from_status} -> {o.proposal.to_status}")
    for o in result.failed:
        print(f"rejected {o.proposal.entity_id}: {o.error.kind}: {o.error.message}")
    return 1 if result.failed else 0


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cadence",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Cadence lifecycle utilities
            ---------------------------
            init-db  Create all SQLModel tables (safe if they already exist)
            list     Print one family's records with their current status
            sweep    Apply (or with --dry-run, preview) automatic transitions
            serve    Run the HTTP API under uvicorn
            """
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_init = sub.add_parser("init-db", help="create tables")
    p_init.set_defaults(func=_cmd_init_db)

    family_choices = [f.value for f in Family]
    p_list = sub.add_parser("list", help="list a family")
    p_list.add_argument("--family", choices=family_choices, required=True)
    p_list.set_defaults(func=_cmd_list)

    p_sweep = sub.add_parser("sweep", help="run the automatic sweep")
    p_sweep.add_argument("--family", choices=family_choices, required=True)
    p_sweep.add_argument("--today", help="evaluate as of this ISO date instead of today")
    p_sweep.add_argument("--dry-run", action="store_true", help="only print proposals")
    p_sweep.set_defaults(func=_cmd_sweep)

    p_serve = sub.add_parser("serve", help="run the HTTP API")
    p_serve.add_argument("--host", default=API_HOST)
    p_serve.add_argument("--port", type=int, default=API_PORT)
    p_serve.add_argument("--reload", action="store_true", default=API_DEBUG,
                         help="auto-reload on code changes")
    p_serve.set_defaults(func=_cmd_serve)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
