"""
Celery Tasks
Background work triggered by the API.
"""

import logging
import time
from datetime import datetime, timezone

from app.celery_worker import celery_app
from app.services.excel_manager import ExcelManager

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    max_retries=3,
    default_retry_delay=5,
    autoretry_for=(OSError,),
    retry_backoff=True
)
def export_day_report(self, session_data: dict, orders: list[dict]) -> dict:
    """
    Write a closed day's totals and orders to the spreadsheet archive.

    Args:
        session_data: Day session as produced by ``session_to_dict``
        orders: One flat dict per order of the day

    Returns:
        dict: Result of the export operation

    Raises:
        OSError: Lock timeout or write failure, retried with backoff
    """
    task_id = self.request.id
    day = session_data.get('date', 'unknown')

    logger.info(f"Task {task_id}: Exporting day {day} ({len(orders)} orders)")
    start_time = time.time()

    result = ExcelManager.export_day_report(session_data, orders)

    elapsed = round(time.time() - start_time, 3)
    result['task_id'] = task_id
    result['processing_time_seconds'] = elapsed

    logger.info(f"Task {task_id}: Day {day} exported in {elapsed}s")

    return result


@celery_app.task
def health_check() -> dict:
    """
    Simple health check task to verify Celery is working.
    """
    return {
        'status': 'healthy',
        'worker': 'celery',
        'timestamp': datetime.now(timezone.utc).isoformat()
    }
