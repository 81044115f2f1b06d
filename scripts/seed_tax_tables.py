"""Seed script for the 2025 PAYE band tables.

Run with:
    python scripts/seed_tax_tables.py [--create-schema] [--table monthly_usd ...]

Replaces the chosen band tables, all four by default. ZIMRA publishes each
table with a "deduct" column for the shortcut ``income * rate - deduct``; the
band walk taxes each slice at its own rate, which yields the same result with
a zero fixed amount, so the fixed amounts seeded here are all zero.
"""

from __future__ import annotations

import argparse
import asyncio
from decimal import Decimal

from period_engine.calculators.types import BandSpec
from period_engine.database import create_schema, dispose_db, session_scope
from period_engine.models.enums import BandTable
from period_engine.services.tax_band_service import TaxBandService


def _bands(*rows: tuple[str, str | None, str]) -> list[BandSpec]:
    return [
        BandSpec(
            min_salary=Decimal(low),
            max_salary=Decimal(high) if high is not None else None,
            tax_rate=Decimal(rate),
        )
        for low, high, rate in rows
    ]


TABLES_2025: dict[BandTable, list[BandSpec]] = {
    BandTable.ANNUAL_USD: _bands(
        ("0", "1200", "0.00"),
        ("1200", "3600", "0.20"),
        ("3600", "12000", "0.25"),
        ("12000", "24000", "0.30"),
        ("24000", "36000", "0.35"),
        ("36000", None, "0.40"),
    ),
    BandTable.ANNUAL_ZWL: _bands(
        ("0", "33600", "0.00"),
        ("33600", "100800", "0.20"),
        ("100800", "336000", "0.25"),
        ("336000", "672000", "0.30"),
        ("672000", "1008000", "0.35"),
        ("1008000", None, "0.40"),
    ),
    BandTable.MONTHLY_USD: _bands(
        ("0", "100", "0.00"),
        ("100", "300", "0.20"),
        ("300", "1000", "0.25"),
        ("1000", "2000", "0.30"),
        ("2000", "3000", "0.35"),
        ("3000", None, "0.40"),
    ),
    BandTable.MONTHLY_ZWL: _bands(
        ("0", "2800", "0.00"),
        ("2800", "8400", "0.20"),
        ("8400", "28000", "0.25"),
        ("28000", "56000", "0.30"),
        ("56000", "84000", "0.35"),
        ("84000", None, "0.40"),
    ),
}


async def seed_band_tables(tables: list[BandTable]) -> None:
    """Replace each band table with its 2025 bands, one transaction per table."""
    for table in tables:
        async with session_scope() as session:
            created = await TaxBandService(session).replace_table(table, TABLES_2025[table])
        print(f"Seeded {len(created)} bands into {table.label}")


async def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the 2025 PAYE band tables")
    parser.add_argument(
        "--table",
        action="append",
        choices=[t.slug for t in BandTable],
        help="Seed only this table (repeatable); default is all four",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before seeding",
    )
    args = parser.parse_args(argv)

    tables = [BandTable.from_slug(s) for s in args.table] if args.table else list(BandTable)
    print("Seeding 2025 tax tables...")
    try:
        if args.create_schema:
            await create_schema()
        await seed_band_tables(tables)
    finally:
        await dispose_db()

    print("\nDone! Tax tables seeded successfully.")


if __name__ == "__main__":
    asyncio.run(main())
