#!/usr/bin/env python3
"""
Quick checks so the backend can start. Run from the repo root:
  python scripts/check_backend.py
"""
import os
import sys
from pathlib import Path

root_dir = Path(__file__).resolve().parent.parent
os.chdir(root_dir)
if str(root_dir) not in sys.path:
    sys.path.insert(0, str(root_dir))


def main():
    errors = []

    # 1) .env
    env_file = root_dir / ".env"
    if not env_file.exists():
        print("WARN .env missing (defaults in use). Copy .env.example to set SMTP / APNs / DATABASE_URL.")
    else:
        print("OK  .env exists")

    from payday_notify.config import settings

    # 2) DB connection, only when the database backend is selected
    if settings.storage_backend == "database":
        try:
            from sqlalchemy import text

            from payday_notify.db.session import get_engine

            with get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            print("OK  Database connection (DATABASE_URL)")
        except Exception as e:
            errors.append(f"Database: {e}")
            print("FAIL Database:", e)
    else:
        print("OK  Storage backend is in-memory (no database needed)")

    # 3) Delivery channels (not fatal: unconfigured channels are skipped at delivery time)
    from payday_notify.services.push import apns_configured

    print("OK  APNs configured" if apns_configured() else "WARN APNs not configured; push is never granted")
    if settings.smtp_user and settings.smtp_password:
        print("OK  SMTP credentials set")
    else:
        print("WARN SMTP_USER / SMTP_PASSWORD not set; e-mail delivery is skipped")

    # 4) App import (catches missing deps, bad imports)
    try:
        from payday_notify.main import app  # noqa: F401

        print("OK  App import (payday_notify.main)")
    except Exception as e:
        errors.append(f"App import: {e}")
        print("FAIL App import:", e)

    # 5) Port 8000
    try:
        import socket

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind(("127.0.0.1", 8000))
        print("OK  Port 8000 is free")
    except OSError:
        errors.append("Port 8000 is in use. Stop the other process or use another port (e.g. --port 8001).")
        print("FAIL Port 8000 is in use")

    if errors:
        print("\n---")
        for e in errors:
            print("•", e)
        return 1

    print("\nAll checks passed. Start with: uvicorn payday_notify.main:app --reload --port 8000")
    return 0


if __name__ == "__main__":
    sys.exit(main())
