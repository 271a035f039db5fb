#!/usr/bin/env python3
# scripts/check_db.py - Check database connection and schema status
import sys
import os

# Add the project root to Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from schoolhub.core.config import settings
from schoolhub.core.db import db_manager
from schoolhub.models import Base


def check_database_connection() -> bool:
    """Check if database connection is working and all tables exist"""
    print("Database Connection Check")
    print("=" * 40)
    print(f"Environment: {settings.ENV}")
    print(f"Database: {settings.DATABASE_URL.split('@')[-1]}")
    print("-" * 40)

    status = db_manager.health_check()
    if status.get("status") != "healthy":
        print(f"Connection failed: {status.get('error')}")
        return False

    print(f"Connection successful ({status['dialect']}, {status['response_time_ms']} ms)")

    existing = set(inspect(db_manager.engine).get_table_names())
    expected = set(Base.metadata.tables)
    missing = sorted(expected - existing)

    print(f"Tables in database: {len(existing)}")
    if missing:
        print("Missing tables (run `alembic upgrade head`):")
        for name in missing:
            print(f"  - {name}")
        return False

    print("All application tables are present")
    return True


if __name__ == "__main__":
    sys.exit(0 if check_database_connection() else 1)
