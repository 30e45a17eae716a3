"""Recalculate check-in/check-out for stored attendance records.

Usage:
  python scripts/repair_attendance.py --employee E001 --confirm YES_I_WANT_TO_FIX_ALL_RECORDS
  python scripts/repair_attendance.py --confirm YES_I_WANT_TO_FIX_ALL_RECORDS   # all employees
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from attendance_service.config import settings
from attendance_service.database import SessionLocal
from attendance_service.services import repair_service


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--employee", help="Only repair records of this employee code")
    parser.add_argument("--confirm", required=True, help="Confirmation token")
    args = parser.parse_args()

    if args.confirm != settings.REPAIR_CONFIRM_TOKEN:
        print("Confirmation token mismatch; nothing was changed.")
        sys.exit(2)

    db = SessionLocal()
    try:
        summary = repair_service.repair_records(db, args.employee)
    finally:
        db.close()

    print("Attendance repair result")
    print(f"  employee: {args.employee or '(all)'}")
    print(f"  employees_processed: {summary.employees_processed}")
    print(f"  records_examined: {summary.records_examined}")
    print(f"  records_changed: {summary.records_changed}")
    if summary.failures:
        print("  failures:")
        for failure in summary.failures:
            print(f"    - {failure['employee_code']} {failure['date']}: {failure['error']}")


if __name__ == "__main__":
    main()
