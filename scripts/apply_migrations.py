"""Apply outreach schema migrations and seed the configured event type.

Usage: python scripts/apply_migrations.py [--dry-run]

Connection settings come from the service settings (POSTGRES_URL / DATABASE_URL,
POSTGRES_SSL), so the script and the API always agree on the database.
"""

from __future__ import annotations

import argparse
import pathlib
import sys
import time

import psycopg2

ROOT = pathlib.Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "backend"))

from outreach.settings import settings  # noqa: E402

MIGRATIONS_DIR = ROOT / "infra" / "migrations"


def _dsn() -> str:
    dsn = settings.postgres_url
    if settings.postgres_ssl and "sslmode=" not in dsn:
        dsn = f"{dsn}{'&' if '?' in dsn else '?'}sslmode=require"
    return dsn


def connect(retries: int = 30, delay: float = 2.0):
    for attempt in range(1, retries + 1):
        try:
            return psycopg2.connect(_dsn())
        except psycopg2.OperationalError as exc:
            if attempt == retries or "starting up" not in str(exc) and "Connection refused" not in str(exc):
                raise
            print(f"Waiting for Postgres ({attempt}/{retries})")
            time.sleep(delay)
    raise SystemExit("Could not connect to Postgres")


def migration_version(path: pathlib.Path) -> str:
    return path.name.split("_", 1)[0]


def pending_migrations(applied: set[str]) -> list[pathlib.Path]:
    paths = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not paths:
        raise SystemExit(f"no migration files found in {MIGRATIONS_DIR}")
    return [path for path in paths if migration_version(path) not in applied]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="list pending migrations and exit")
    args = parser.parse_args(argv)

    conn = connect()
    try:
        with conn, conn.cursor() as cur:
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_migrations (
                    version TEXT PRIMARY KEY,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
                """
            )
            cur.execute("SELECT version FROM schema_migrations")
            pending = pending_migrations({row[0] for row in cur.fetchall()})
            if args.dry_run:
                for path in pending:
                    print(f"pending {path.name}")
                return

            # One transaction: a failing file leaves the schema untouched.
            for path in pending:
                cur.execute(path.read_text())
                cur.execute("INSERT INTO schema_migrations (version) VALUES (%s)", (migration_version(path),))
                print(f"applied {path.name}")

            cur.execute(
                "INSERT INTO outreach_event_type (type) VALUES (%s) ON CONFLICT (type) DO NOTHING",
                (settings.event_type,),
            )
            if cur.rowcount:
                print(f"seeded event type {settings.event_type!r}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
