#!/usr/bin/env python3
"""
Database Migration Verification Script.

Verifies that migrations have been applied and that the objects the claim
ledger relies on exist (tables, the one-claim-per-day constraint, indexes).

Usage:
    DATABASE_URL=postgresql://... python scripts/verify_migrations.py
"""

import asyncio
import os
import sys
from typing import NamedTuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

REQUIRED_TABLES = ["users", "meow_daily_claims", "meow_claims"]

REQUIRED_CONSTRAINTS = [
    ("ux_meow_claims_user_day", "meow_claims"),
    ("ck_users_meow_taps_non_negative", "users"),
    ("ck_meow_daily_claims_taken_non_negative", "meow_daily_claims"),
]

REQUIRED_INDEXES = [
    ("idx_meow_claims_day", "meow_claims"),
]

REQUIRED_USER_COLUMNS = [
    "meow_taps",
    "meow_taps_date",
    "meow_claim_used_today",
    "daily_streak",
    "last_login_date",
    "streak_claimed_today",
]


class VerificationResult(NamedTuple):
    """Result of a verification check."""
    name: str
    passed: bool
    message: str


async def verify_migrations(database_url: str) -> list[VerificationResult]:
    """Run all schema checks against ``database_url``."""
    results = []
    engine = create_async_engine(database_url)

    async with engine.connect() as conn:
        result = await conn.execute(text("SELECT version_num FROM alembic_version"))
        version = result.scalar()
        results.append(VerificationResult(
            name="Migration version",
            passed=version is not None,
            message=f"Current version: {version}" if version else "No migration version found",
        ))

        for table in REQUIRED_TABLES:
            result = await conn.execute(
                text(
                    "SELECT EXISTS (SELECT FROM information_schema.tables "
                    "WHERE table_name = :table)"
                ),
                {"table": table},
            )
            exists = result.scalar()
            results.append(VerificationResult(
                name=f"Table: {table}",
                passed=exists,
                message=f"Table '{table}' exists" if exists else f"Table '{table}' MISSING",
            ))

        for constraint, table in REQUIRED_CONSTRAINTS:
            result = await conn.execute(
                text(
                    "SELECT EXISTS (SELECT FROM information_schema.table_constraints "
                    "WHERE constraint_name = :name AND table_name = :table)"
                ),
                {"name": constraint, "table": table},
            )
            exists = result.scalar()
            results.append(VerificationResult(
                name=f"Constraint: {constraint}",
                passed=exists,
                message=f"Constraint '{constraint}' on '{table}' exists" if exists else f"Constraint '{constraint}' MISSING",
            ))

        for index_name, table in REQUIRED_INDEXES:
            result = await conn.execute(
                text("SELECT EXISTS (SELECT FROM pg_indexes WHERE indexname = :name)"),
                {"name": index_name},
            )
            exists = result.scalar()
            results.append(VerificationResult(
                name=f"Index: {index_name}",
                passed=exists,
                message=f"Index '{index_name}' on '{table}' exists" if exists else f"Index '{index_name}' MISSING",
            ))

        result = await conn.execute(text("""
            SELECT column_name FROM information_schema.columns
            WHERE table_name = 'users'
        """))
        columns = {row[0] for row in result.fetchall()}
        for col in REQUIRED_USER_COLUMNS:
            exists = col in columns
            results.append(VerificationResult(
                name=f"Column: users.{col}",
                passed=exists,
                message=f"Column 'users.{col}' exists" if exists else f"Column 'users.{col}' MISSING",
            ))

    await engine.dispose()
    return results


def print_results(results: list[VerificationResult]) -> bool:
    """Print verification results. Returns True if all checks passed."""
    print("\n" + "=" * 60)
    print("DATABASE MIGRATION VERIFICATION REPORT")
    print("=" * 60 + "\n")

    failed = 0
    for result in results:
        print(f"{'PASS' if result.passed else 'FAIL'} | {result.name}")
        print(f"       {result.message}\n")
        if not result.passed:
            failed += 1

    print("=" * 60)
    print(f"SUMMARY: {len(results) - failed} passed, {failed} failed")
    print("=" * 60 + "\n")
    return failed == 0


async def main():
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable not set")
        sys.exit(1)

    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    try:
        results = await verify_migrations(database_url)
    except Exception as e:
        print(f"ERROR: Failed to verify migrations: {e}")
        sys.exit(1)

    sys.exit(0 if print_results(results) else 1)


if __name__ == "__main__":
    asyncio.run(main())
