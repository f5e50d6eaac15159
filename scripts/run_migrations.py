#!/usr/bin/env python3
"""
Run Alembic migrations for the Curio PostgreSQL databases (prod + staging).

Reads the prod and staging env files to pick up DATABASE_URL_PROD and
DATABASE_URL_STAGING, then upgrades each configured database to head.

Usage:
    python3 scripts/run_migrations.py            # both DBs
    python3 scripts/run_migrations.py --prod     # prod only
    python3 scripts/run_migrations.py --staging  # staging only

Env-file paths can be overridden:
    CURIO_ENV_PROD=/path/.env.prod CURIO_ENV_STAGING=/path/.env.staging \\
        python3 scripts/run_migrations.py
"""

import argparse
import os
import sys
import traceback
from pathlib import Path

from alembic import command
from alembic.config import Config
from dotenv import load_dotenv
from sqlalchemy import create_engine, inspect, text

project_root = Path(__file__).parent.parent
alembic_ini = project_root / "curio" / "db" / "alembic.ini"


def _load_both_env_files() -> None:
    """Load prod and staging env files without overriding variables already set."""
    prod_file = Path(os.getenv("CURIO_ENV_PROD", "/opt/curio-config/.env.prod"))
    staging_file = Path(os.getenv("CURIO_ENV_STAGING", "/opt/curio-config/.env.staging"))
    for path in (prod_file, staging_file):
        if path.exists():
            print(f"  Loading env file: {path}")
            load_dotenv(path, override=False)
        else:
            print(f"  (env file not found, skipping: {path})")


def _print_segment_counts(database_url: str) -> None:
    """Print row counts for the tables segment processing reads and writes."""
    try:
        engine = create_engine(database_url)
        with engine.connect() as conn:
            tables = set(inspect(conn).get_table_names())
            print("\n  Table row counts:")
            for name in ("courses", "course_segments", "questions", "question_plans", "video_transcripts"):
                if name not in tables:
                    print(f"    {name:<18}  (missing)")
                    continue
                count = conn.execute(text(f"SELECT COUNT(*) FROM {name}")).scalar()
                print(f"    {name:<18}  {count:>10,} rows")
        engine.dispose()
    except Exception as e:
        print(f"  (Could not list table counts: {e})")


def _run_migrations_for(label: str, database_url: str) -> bool:
    """Upgrade a single database to head. Returns True on success."""
    if not alembic_ini.exists():
        print(f"  ERROR: alembic.ini not found at {alembic_ini}")
        return False

    safe_url = database_url.split("@")[1] if "@" in database_url else "***"
    print(f"\n{'=' * 60}")
    print(f"  [{label}] -> {safe_url}")
    print(f"{'=' * 60}")

    try:
        alembic_cfg = Config(str(alembic_ini))
        alembic_cfg.set_main_option("sqlalchemy.url", database_url)
        print("  Running Alembic upgrade head ...")
        command.upgrade(alembic_cfg, "head")
        print(f"  Migrations completed for [{label}]")
        _print_segment_counts(database_url)
        return True
    except Exception as e:
        print(f"  Migration failed for [{label}]: {e}")
        traceback.print_exc()
        return False


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run Alembic migrations against prod and/or staging databases."
    )
    parser.add_argument("--prod", action="store_true", help="Run only against the production DB")
    parser.add_argument("--staging", action="store_true", help="Run only against the staging DB")
    args = parser.parse_args()

    run_prod = args.prod or not args.staging
    run_staging = args.staging or not args.prod

    print("=== Curio DB Migrations ===")
    print("Loading env files ...")
    _load_both_env_files()

    results = []
    targets = []
    if run_prod:
        targets.append(("PRODUCTION", "DATABASE_URL_PROD"))
    if run_staging:
        targets.append(("STAGING", "DATABASE_URL_STAGING"))

    for label, env_name in targets:
        url = os.getenv(env_name)
        if url:
            results.append((label, _run_migrations_for(label, url)))
        else:
            print(f"\n  [{label}] skipped: {env_name} not set")
            results.append((label, False))

    print(f"\n{'=' * 60}")
    print("  Summary:")
    for label, ok in results:
        print(f"    {'OK ' if ok else 'ERR'} {label}")
    print(f"{'=' * 60}\n")

    return 0 if all(ok for _, ok in results) else 1


if __name__ == "__main__":
    sys.exit(main())
