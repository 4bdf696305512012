"""
Celery Tasks
Background export of order events to the Excel ledger.
"""

import logging
import time

from filelock import Timeout
from kombu.exceptions import OperationalError

from app.celery_worker import celery_app
from app.core.config import get_settings
from app.models import Order
from app.services.ledger import OrderLedger, ledger_entry

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(Timeout, OSError),
    retry_backoff=True
)
def export_order_to_ledger(self, entry: dict) -> dict:
    """
    Append one order event to the ledger workbook.

    Args:
        entry: Row built by ledger_entry()

    Returns:
        dict: Result of the append plus task id and timing
    """
    task_id = self.request.id
    order_number = entry.get('order_number', 'unknown')

    logger.info(f"Task {task_id}: exporting order {order_number}")
    start_time = time.time()

    result = OrderLedger().append(entry)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    logger.info(f"Task {task_id}: order {order_number} exported in {elapsed}s")
    return result


def queue_order_export(order: Order, event: str) -> bool:
    """
    Queue a ledger export for an order event.

    Best effort: returns False (and logs) when exports are disabled or the
    broker cannot be reached. The order itself is already committed.
    """
    if not get_settings().ledger_export_enabled:
        return False

    try:
        export_order_to_ledger.delay(ledger_entry(order, event))
    except OperationalError as e:
        logger.warning(f"Ledger export for order {order.order_number} not queued: {e}")
        return False

    logger.debug(f"Ledger export queued for order {order.order_number} ({event})")
    return True
