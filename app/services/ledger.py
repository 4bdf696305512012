"""
Order Ledger (Excel) with Concurrency Control

Append-only spreadsheet of order events for back-office reporting. Rows are
written by the Celery export task; several workers may append at once, so
every read-modify-write of the workbook happens under a file lock.

The ledger is a copy. The database stays the source of truth and a failed
export never affects the order itself.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock

from app.core.config import get_settings

logger = logging.getLogger(__name__)


LEDGER_COLUMNS = [
    "order_id",
    "order_number",
    "event",
    "restaurant_id",
    "customer_id",
    "customer_name",
    "customer_email",
    "status",
    "total_amount",
    "line_count",
    "items",
    "notes",
    "created_at",
    "updated_at",
    "exported_at",
]


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def ledger_entry(order: Any, event: str) -> dict[str, Any]:
    """
    Flatten an order into a JSON-safe ledger row.

    Money goes out as a string so the Decimal survives the broker's JSON
    serializer unchanged.
    """
    lines = list(order.items)
    return {
        "order_id": order.id,
        "order_number": order.order_number,
        "event": event,
        "restaurant_id": order.restaurant_id,
        "customer_id": order.customer_id,
        "customer_name": order.customer_name,
        "customer_email": order.customer_email,
        "status": order.status.value,
        "total_amount": str(order.total_amount),
        "line_count": len(lines),
        "items": "; ".join(f"{line.quantity}x {line.item_name}" for line in lines),
        "notes": order.notes,
        "created_at": _isoformat(order.created_at),
        "updated_at": _isoformat(order.updated_at),
    }


class OrderLedger:
    """Locked append/read access to the ledger workbook."""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        filename: Optional[str] = None,
        lock_timeout: Optional[float] = None,
    ):
        settings = get_settings()
        self.data_dir = Path(data_dir or settings.data_directory)
        self.path = self.data_dir / (filename or settings.ledger_filename)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout if lock_timeout is not None else settings.ledger_lock_timeout

    def _ensure_data_dir(self) -> None:
        if not self.data_dir.exists():
            self.data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_dir}")

    def _load(self) -> pd.DataFrame:
        if self.path.exists():
            return pd.read_excel(self.path, engine="openpyxl", dtype={"total_amount": str})
        return pd.DataFrame(columns=LEDGER_COLUMNS)

    def append(self, entry: dict[str, Any]) -> dict[str, Any]:
        """
        Append one row. Raises filelock.Timeout if the lock is not acquired
        within lock_timeout seconds.
        """
        self._ensure_data_dir()
        order_number = entry.get("order_number", "unknown")

        with FileLock(str(self.lock_path), timeout=self.lock_timeout):
            logger.debug(f"Ledger lock acquired for {order_number}")

            exported_at = datetime.now(timezone.utc).isoformat()
            row = {column: entry.get(column) for column in LEDGER_COLUMNS}
            row["exported_at"] = exported_at

            df = self._load()
            df = pd.concat([df, pd.DataFrame([row], columns=LEDGER_COLUMNS)], ignore_index=True)
            df.to_excel(str(self.path), index=False, engine="openpyxl")

            rows = len(df)

        logger.info(f"Order {order_number} ({entry.get('event')}) written to ledger")
        return {
            "success": True,
            "order_number": order_number,
            "exported_at": exported_at,
            "rows": rows,
        }

    def read_all(self) -> list[dict[str, Any]]:
        if not self.path.exists():
            return []

        with FileLock(str(self.lock_path), timeout=self.lock_timeout):
            df = self._load()

        return df.astype(object).where(pd.notna(df), None).to_dict("records")

    def clear(self) -> None:
        """Delete the workbook and its lock file."""
        for path in (self.path, self.lock_path):
            if path.exists():
                path.unlink()
        logger.info(f"Ledger cleared: {self.path}")
