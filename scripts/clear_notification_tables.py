#!/usr/bin/env python3
"""
Clear the notification ledger and scheduled reminders (TRUNCATE). Preferences, push tokens
and profiles are kept. Run with the backend stopped: python scripts/clear_notification_tables.py
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import text

from payday_notify.db.session import get_engine
from payday_notify.db.tables import NOTIFICATION_TABLE_NAMES


def main():
    tables = ", ".join(NOTIFICATION_TABLE_NAMES)
    print(f"Connecting to DB and truncating {tables} ...")
    with get_engine().connect() as conn:
        conn.execute(text(f"TRUNCATE TABLE {tables} RESTART IDENTITY CASCADE"))
        conn.commit()
    print("Done. Users will need to schedule payday reminders again (POST /reminders or /profile).")


if __name__ == "__main__":
    main()
