"""
Ledger Verification Script

Integrity report over the order ledger workbook written by the Celery
export task.
Run from project root: python scripts/verify.py
"""

import os
import sys
from datetime import datetime
from decimal import Decimal

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pandas as pd

from app.services.ledger import LEDGER_COLUMNS, OrderLedger


def verify_ledger(ledger: OrderLedger) -> bool:
    """Print the report; False when the ledger is missing or inconsistent."""

    print("=" * 60)
    print("ORDER LEDGER VERIFICATION")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"File: {ledger.path}")
    print("=" * 60)

    if not ledger.path.exists():
        print("\nLedger file not found.")
        print("   Enable LEDGER_EXPORT_ENABLED, start a worker and place some orders.")
        return False

    df = pd.DataFrame(ledger.read_all(), columns=LEDGER_COLUMNS)
    ok = True

    print(f"\nRows: {len(df)}")
    print(f"Orders: {df['order_id'].nunique()}")
    print("Events:")
    for event, count in df["event"].value_counts().items():
        print(f"   {event}: {count}")

    # An order reaches each status at most once, so a repeated
    # (order_number, status) pair means a duplicated export
    repeated = df[df.duplicated(subset=["order_number", "status"], keep=False)]
    if len(repeated):
        ok = False
        print(f"\n{len(repeated)} rows repeat an order number within the same status:")
        print(repeated[["order_number", "status", "exported_at"]].to_string(index=False))
    else:
        print("\nNo duplicate order numbers per status")

    latest = df.drop_duplicates(subset="order_id", keep="last")
    completed = latest[latest["status"] == "COMPLETED"]
    revenue = sum((Decimal(value) for value in completed["total_amount"]), Decimal("0.00"))
    print("\nREVENUE (completed orders):")
    print(f"   Orders: {len(completed)}")
    print(f"   Total: ${revenue}")

    print("\nRECENT ROWS:")
    print("-" * 60)
    print(df[["order_number", "event", "status", "total_amount"]].tail(5).to_string(index=False))

    print("\n" + "=" * 60)
    print("VERIFICATION " + ("PASSED" if ok else "FAILED"))
    print("=" * 60)
    return ok


if __name__ == "__main__":
    sys.exit(0 if verify_ledger(OrderLedger()) else 1)
