"""
Plain-SQL migration runner.

    python -m authcore.infrastructure.db.migrate up
    python -m authcore.infrastructure.db.migrate status
    python -m authcore.infrastructure.db.migrate new <name>

Files in MIGRATIONS_DIR are applied in filename order; the file stem is the
version recorded in schema_migrations. The API container and the sweeper may
both run `up` at boot, so the whole run holds an advisory lock.
"""
from __future__ import annotations

import os
import sys
from datetime import datetime, timezone
from pathlib import Path

import psycopg

from authcore.settings import get_settings

MIGRATIONS_DIR = Path(os.environ.get("MIGRATIONS_DIR", "migrations"))
MIGRATE_LOCK_ID = 7_310_042

SCHEMA_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS schema_migrations (
  version    text PRIMARY KEY,
  applied_at timestamptz NOT NULL DEFAULT now()
);
"""
USAGE = "usage: python -m authcore.infrastructure.db.migrate [up|status|new <name>]"


class MigrationError(RuntimeError):
    pass


def log(msg: str) -> None:
    print(msg, flush=True)


def list_migrations(directory: Path = MIGRATIONS_DIR) -> list[Path]:
    if not directory.is_dir():
        raise MigrationError(f"migrations dir not found: {directory}")
    return sorted(directory.glob("*.sql"))


def pending(all_paths: list[Path], applied: set[str]) -> list[Path]:
    return [p for p in all_paths if p.stem not in applied]


def _connect() -> psycopg.Connection:
    url = os.environ.get("DATABASE_URL") or get_settings().database_url
    if not url:
        raise MigrationError("DATABASE_URL is not set")
    return psycopg.connect(url, autocommit=True)


def _applied(conn: psycopg.Connection) -> dict[str, datetime]:
    conn.execute(SCHEMA_TABLE_SQL)
    rows = conn.execute(
        "SELECT version, applied_at FROM schema_migrations ORDER BY version"
    ).fetchall()
    return {version: applied_at for version, applied_at in rows}


def cmd_up(directory: Path = MIGRATIONS_DIR) -> int:
    paths = list_migrations(directory)
    with _connect() as conn:
        conn.execute("SELECT pg_advisory_lock(%s)", (MIGRATE_LOCK_ID,))
        try:
            to_run = pending(paths, set(_applied(conn)))
            if not to_run:
                log("no pending migrations")
                return 0
            for path in to_run:
                log(f"==> applying {path.stem}")
                try:
                    with conn.transaction():
                        conn.execute(path.read_text(encoding="utf-8"))
                        conn.execute(
                            "INSERT INTO schema_migrations (version) VALUES (%s)",
                            (path.stem,),
                        )
                except psycopg.Error as e:
                    print(f"failed {path.stem}: {e}", file=sys.stderr)
                    return 1
            log(f"applied {len(to_run)} migration(s)")
            return 0
        finally:
            conn.execute("SELECT pg_advisory_unlock(%s)", (MIGRATE_LOCK_ID,))


def cmd_status(directory: Path = MIGRATIONS_DIR) -> int:
    with _connect() as conn:
        applied = _applied(conn)
    print("=== Applied ===")
    for version, at in applied.items():
        print(f"{version} @ {at.isoformat()}")
    print("=== Pending ===")
    for path in pending(list_migrations(directory), set(applied)):
        print(path.stem)
    return 0


def cmd_new(name: str, directory: Path = MIGRATIONS_DIR) -> Path:
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M")
    path = directory / f"{ts}_{name}.sql"
    directory.mkdir(parents=True, exist_ok=True)
    path.write_text("-- write your SQL here\n", encoding="utf-8")
    return path


def main(argv: list[str]) -> int:
    cmd, args = (argv[1], argv[2:]) if len(argv) > 1 else (None, [])
    try:
        if cmd == "up":
            return cmd_up()
        if cmd == "status":
            return cmd_status()
        if cmd == "new" and args:
            print(cmd_new(args[0]))
            return 0
    except MigrationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    print(USAGE, file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
