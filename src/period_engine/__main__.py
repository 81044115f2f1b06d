"""Command-line entry point: serve the API, or create the schema and exit."""

from __future__ import annotations

import argparse
import asyncio

import uvicorn

from period_engine.config import configure_logging, settings
from period_engine.database import create_schema, dispose_db


async def _create_schema() -> None:
    try:
        await create_schema()
    finally:
        await dispose_db()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="period-engine")
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables and exit instead of serving",
    )
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    args = parser.parse_args(argv)

    configure_logging()
    if args.create_schema:
        asyncio.run(_create_schema())
        return

    uvicorn.run(
        "period_engine.api.app:app",
        host=args.host,
        port=args.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
