#!/usr/bin/env python3
"""
Print upcoming paydays for a payday option, e.g.:
  python scripts/preview_paydays.py last-working-day --count 6
  python scripts/preview_paydays.py custom --custom-date 25-12 --from 2025-01-01
"""
import argparse
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from payday_notify.services.payday import (
    describe_next_payday,
    parse_payday_spec,
    payday_explanation,
    spec_label,
    upcoming_occurrences,
    validate_payday_option,
)


def main():
    parser = argparse.ArgumentParser(description="Preview upcoming payday dates")
    parser.add_argument("payday", help="'1'..'31', 'last-friday', 'last-working-day', 'custom' or 'DD-MM'")
    parser.add_argument("--custom-date", default=None, help="'DD' or 'DD-MM' when payday is 'custom'")
    parser.add_argument("--count", type=int, default=3)
    parser.add_argument("--from", dest="ref", type=date.fromisoformat, default=None, help="Reference date (YYYY-MM-DD)")
    args = parser.parse_args()

    ok, error = validate_payday_option(args.payday)
    if not ok:
        print(f"Invalid payday {args.payday!r}: {error}")
        return 1
    spec = parse_payday_spec(args.payday, args.custom_date)
    ref = args.ref or date.today()
    print(f"{spec_label(spec)}: {payday_explanation(args.payday)}")
    print(f"Next payday: {describe_next_payday(spec, ref)}")
    for d in upcoming_occurrences(spec, args.count, ref):
        print(f"  {d.isoformat()}  {d.strftime('%A')}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
