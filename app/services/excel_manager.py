"""
Excel File Manager with Concurrency Control

Thread/process-safe spreadsheet archive written when a business day is
closed:
- ``day_sessions.xlsx``: one row per closed day with its totals
- ``orders_<YYYY-MM-DD>.xlsx``: every order of that day
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


class ExcelManager:
    """Spreadsheet archive guarded by file locks."""

    LOCK_TIMEOUT = settings.excel_lock_timeout

    DAY_COLUMNS = [
        "date",
        "opened_at",
        "closed_at",
        "closed_by_id",
        "total_orders",
        "total_revenue",
        "total_cash",
        "total_card",
        "total_momo",
        "total_paystack",
        "notes",
        "exported_at",
    ]

    ORDER_COLUMNS = [
        "order_number",
        "created_at",
        "order_type",
        "status",
        "payment_status",
        "payment_method",
        "table_number",
        "items",
        "subtotal",
        "discount",
        "tax",
        "total",
    ]

    @staticmethod
    def data_dir() -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def day_sessions_file(cls) -> Path:
        return cls.data_dir() / "day_sessions.xlsx"

    @classmethod
    def orders_file(cls, day: str) -> Path:
        return cls.data_dir() / f"orders_{day}.xlsx"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        """Create data directory if needed."""
        directory = cls.data_dir()
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {directory}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path, columns: list) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            try:
                return pd.read_excel(file_path, engine="openpyxl")
            except (ValueError, OSError) as e:
                logger.warning(f"Error reading {file_path}: {e}")
        return pd.DataFrame(columns=columns)

    @classmethod
    def export_day_report(
        cls,
        session_data: dict[str, Any],
        orders: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        Append the day's totals and write its orders sheet.

        Re-exporting a day (closed, reopened, closed again) replaces the
        previous row for that date. Lock timeouts and write errors are
        raised as ``OSError`` so the Celery task can retry them.
        """
        cls._ensure_data_dir()

        day = session_data.get("date", "unknown")
        sessions_file = cls.day_sessions_file()
        orders_file = cls.orders_file(day)

        lock = FileLock(f"{sessions_file}.lock", timeout=cls.LOCK_TIMEOUT)

        try:
            with lock:
                logger.debug(f"Lock acquired for day {day}")

                export_time = datetime.now(timezone.utc).isoformat()

                df = cls._load_or_create_df(sessions_file, cls.DAY_COLUMNS)
                if "date" in df.columns:
                    df = df[df["date"].astype(str) != day]

                new_row = {col: session_data.get(col) for col in cls.DAY_COLUMNS}
                new_row["exported_at"] = export_time

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(sessions_file), index=False, engine="openpyxl")

                orders_df = pd.DataFrame(
                    [{col: order.get(col) for col in cls.ORDER_COLUMNS} for order in orders],
                    columns=cls.ORDER_COLUMNS,
                )
                orders_df.to_excel(str(orders_file), index=False, engine="openpyxl")

            logger.debug(f"Lock released for day {day}")

        except Timeout:
            logger.error(f"Lock timeout ({cls.LOCK_TIMEOUT}s) for day {day}")
            raise

        except OSError:
            logger.exception(f"Error exporting day {day}")
            raise

        logger.info(f"Day {day} exported to Excel ({len(orders)} orders)")

        return {
            "success": True,
            "message": f"Day {day} exported",
            "date": day,
            "orders_exported": len(orders),
            "exported_at": export_time,
        }
