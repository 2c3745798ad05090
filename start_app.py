# start_app.py
"""Run database migrations and launch the API server."""

from __future__ import annotations

import argparse
import asyncio
import os
import subprocess
import sys

import uvicorn
from dotenv import load_dotenv

import config


def _write_output(exc: subprocess.CalledProcessError) -> None:
    if exc.stdout:
        sys.stdout.write(exc.stdout)
    if exc.stderr:
        sys.stderr.write(exc.stderr)


async def _create_tables(url: str) -> None:
    from dineflow.app import db

    db.init_engine(url)
    await db.init_models()
    await db.engine.dispose()


def main(argv: list[str] | None = None) -> None:
    """Load settings, optionally apply migrations, then start the API."""

    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--skip-db-migrations",
        action="store_true",
        help="Start without Alembic; tables are created from the models instead",
    )
    args = parser.parse_args(argv)

    load_dotenv()  # load environment variables from a .env file

    env_flag = os.getenv("SKIP_DB_MIGRATIONS")
    skip = args.skip_db_migrations or (
        env_flag and env_flag.lower() not in {"0", "false"}
    )

    if not skip:
        try:
            subprocess.run(
                [sys.executable, "-m", "alembic", "-c", "alembic.ini", "upgrade", "head"],
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as exc:
            _write_output(exc)
            print(
                f"database migration failed (exit code {exc.returncode})",
                file=sys.stderr,
            )
            raise SystemExit(exc.returncode)
        except FileNotFoundError:
            print("Install dependencies first: pip install -e .")
            return

    config.get_settings.cache_clear()
    settings = config.get_settings()

    if skip:
        asyncio.run(_create_tables(settings.database_url))

    uvicorn.run(
        "dineflow.app.main:app",
        host="0.0.0.0",  # nosec B104: bind for local development
        port=int(os.getenv("PORT", "8000")),
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
