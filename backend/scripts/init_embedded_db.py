#!/usr/bin/env python3
"""Create (or verify) the embedded SQLite database used by desktop installs.

Safe to run repeatedly: every table is created only if it does not exist.

Usage:
  python backend/scripts/init_embedded_db.py
  python backend/scripts/init_embedded_db.py --path /tmp/pos-system.db --pretty
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Any

from sqlalchemy import inspect

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import Settings, get_settings, resolve_storage_config
from core.errors import ConfigurationError, StorageError
from db.storage import init_storage


async def _init(args: argparse.Namespace) -> dict[str, Any]:
    base = get_settings()
    settings = Settings(
        **base.model_dump(exclude={"use_embedded_db", "database_path", "app_data_dir"}),
        use_embedded_db=True,
        database_path=args.path or base.database_path,
        app_data_dir=args.app_data_dir or base.app_data_dir,
    )
    config = resolve_storage_config(settings)
    storage = await init_storage(config)
    try:
        async with storage.engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    finally:
        await storage.dispose()
    return {"backend": config.backend, "database_path": str(config.database_path), "tables": sorted(tables)}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Initialize the embedded POS monitor database")
    parser.add_argument("--path", default="", help="Database file (default: <app data dir>/pos-system.db)")
    parser.add_argument("--app-data-dir", default="", help="Override the per-user application data directory")
    parser.add_argument("--pretty", action="store_true", help="Pretty-print JSON output")
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    try:
        result = asyncio.run(_init(args))
    except (ConfigurationError, StorageError) as exc:
        print(json.dumps({"error": str(exc)}), file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2 if args.pretty else None, sort_keys=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
