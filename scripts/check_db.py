#!/usr/bin/env python
"""Check database connectivity and the APCMS tables.

Usage:
    python scripts/check_db.py            # report only
    python scripts/check_db.py --create   # also create missing tables
"""

import argparse
import asyncio
import sys

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

import app.features.masters.models  # noqa: F401  (register tables on Base.metadata)
import app.features.transactions.models  # noqa: F401
from app.core.config import get_settings
from app.core.database import Base


async def check_database(create: bool = False) -> int:
    """Verify database connection and report which APCMS tables exist."""
    settings = get_settings()

    print("APCMS API - Database Connectivity Check")
    print("=" * 45)
    print(f"Database URL: {settings.database_url.split('@')[-1]}")  # Hide credentials
    print()

    engine = create_async_engine(settings.database_url)
    expected = sorted(Base.metadata.tables)

    try:
        async with engine.connect() as conn:
            # Test basic connectivity
            result = await conn.execute(text("SELECT 1"))
            if result.scalar() != 1:
                print("[FAIL] SELECT 1 returned an unexpected value")
                return 1
            print("[OK] Basic connectivity")

            result = await conn.execute(text("SELECT version()"))
            version = result.scalar() or ""
            print(f"[OK] Server version: {version[:50]}...")

            existing = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))

        missing = [name for name in expected if name not in existing]
        for name in expected:
            print(f"[{'OK' if name in existing else 'MISSING'}] {name}")

        if missing and create:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print()
            print(f"[OK] Created {len(missing)} table(s)")
            missing = []

        print()
        if missing:
            print("Some tables are missing. Re-run with --create to create them.")
            return 1
        print("Database check completed successfully!")
        return 0

    except (SQLAlchemyError, OSError) as e:
        print(f"[FAIL] Connection failed: {e}")
        print()
        print("Troubleshooting:")
        print("  1. Ensure PostgreSQL is running and reachable")
        print("  2. Check DATABASE_URL in .env file")
        print("  3. Verify the database user can connect and create tables")
        return 1

    finally:
        await engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Check the APCMS database")
    parser.add_argument("--create", action="store_true", help="create missing tables")
    args = parser.parse_args()
    sys.exit(asyncio.run(check_database(create=args.create)))


if __name__ == "__main__":
    main()
