#!/usr/bin/env python3
"""
Startup checks for the reminder service:
  cd backend && poetry run python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

backend_dir = Path(__file__).resolve().parent.parent
os.chdir(backend_dir)
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))


def main():
    errors = []

    env_file = backend_dir / ".env"
    if not env_file.exists():
        print("WARN backend/.env missing; using environment variables and defaults")
    else:
        print("OK  .env exists")

    try:
        from bakery_reminders.config import settings
        print(f"OK  Settings (timezone {settings.business_timezone}, push endpoint {settings.push_endpoint})")
    except Exception as e:
        print("FAIL Settings:", e)
        return 1

    try:
        from sqlalchemy import inspect, text
        from bakery_reminders.db.session import engine
        from bakery_reminders.db.tables import ALL_TABLE_NAMES, EXTERNAL_TABLE_NAMES
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("OK  Database connection (DATABASE_URL)")
        present = set(inspect(engine).get_table_names())
        missing = [t for t in ALL_TABLE_NAMES if t not in present]
        if missing:
            errors.append(f"Tables missing: {', '.join(missing)}. Run: poetry run alembic upgrade head")
            print("FAIL Reminder tables:", ", ".join(missing))
        else:
            print("OK  Reminder tables present")
        missing_ext = [t for t in EXTERNAL_TABLE_NAMES if t not in present]
        if missing_ext:
            errors.append(f"Order service tables missing: {', '.join(missing_ext)}")
            print("FAIL Order service tables:", ", ".join(missing_ext))
        else:
            print("OK  Order service tables present")
    except Exception as e:
        errors.append(f"Database: {e}")
        print("FAIL Database:", e)

    try:
        from bakery_reminders.main import app  # noqa: F401
        print("OK  App import (bakery_reminders.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: poetry run uvicorn bakery_reminders.main:app --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
