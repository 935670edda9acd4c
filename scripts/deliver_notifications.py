"""Retry report notifications still waiting in the outbox.

Run from cron (e.g. every 10 minutes); each run delivers at most `--limit` rows.
"""
from __future__ import annotations

import argparse
import importlib
import logging
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.daycare_system.daycare_system.container import build_container
from src.daycare_system.daycare_system.main import _container_settings


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--limit", type=int, default=100)
    args = parser.parse_args()

    load_dotenv(override=False)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=dict(settings.DB_CONFIG), **_container_settings(settings))
    report = container.dispatcher.deliver_pending(limit=args.limit)

    print(f"delivered={report.delivered} failed={report.failed}")
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
