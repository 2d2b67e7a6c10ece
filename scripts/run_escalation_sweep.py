#!/usr/bin/env python3
"""
Run the revision-deadline escalation sweep.

Usage:
    python scripts/run_escalation_sweep.py --database-url postgresql://...
    python scripts/run_escalation_sweep.py --loop            # background scheduler
    python scripts/run_escalation_sweep.py --create-tables   # sqlite/dev only

Without ``--database-url`` the ``DATABASE_URL`` environment variable is
used.  Settings (sweep interval, initial delay) come from
``txflow_config.get_active_settings()``; ``--config`` overrides the file.
"""

import argparse
import json
import os
import sys
import time
from pathlib import Path

# Add project root to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from txflow_config import get_active_settings
from txflow_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from txflow_kernel.db.immutability import register_immutability_listeners
from txflow_services.scheduler import EscalationScheduler


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Escalate returned transactions past deadline")
    parser.add_argument("--database-url", default=os.environ.get("DATABASE_URL"))
    parser.add_argument("--config", default=None, help="settings YAML overriding the defaults")
    parser.add_argument("--loop", action="store_true", help="keep sweeping at the configured interval")
    parser.add_argument("--create-tables", action="store_true")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    if not args.database_url:
        print("Error: --database-url or DATABASE_URL is required", file=sys.stderr)
        return 2

    settings = get_active_settings(args.config)
    init_engine_from_url(args.database_url)
    register_immutability_listeners()
    if args.create_tables:
        create_tables()

    scheduler = EscalationScheduler(
        get_session_factory(),
        interval_seconds=settings.lifecycle.sweep_interval_seconds,
        initial_delay_seconds=settings.lifecycle.sweep_initial_delay_seconds,
    )

    if not args.loop:
        result = scheduler.run_once()
        if result is None:
            print(json.dumps(scheduler.status()), file=sys.stderr)
            return 1
        print(json.dumps({
            "selected": result.selected,
            "escalated": result.escalated,
            "skipped": result.skipped,
            "failed": result.failed,
        }))
        return 0

    scheduler.start()
    try:
        while scheduler.is_running:
            time.sleep(1)
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.stop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
