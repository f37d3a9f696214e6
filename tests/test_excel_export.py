"""Spreadsheet archive written when a day is closed."""

import pandas as pd
import pytest

from app.services.excel_manager import ExcelManager
from app.tasks import export_day_report, health_check


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(ExcelManager, "data_dir", staticmethod(lambda: tmp_path))
    return tmp_path


def _session(day="2025-01-14", revenue=21.0):
    return {
        "date": day,
        "opened_at": f"{day}T08:00:00",
        "closed_at": f"{day}T22:00:00",
        "closed_by_id": "cashier-1",
        "total_orders": 2,
        "total_revenue": revenue,
        "total_cash": revenue,
        "total_card": 0.0,
        "total_momo": 0.0,
        "total_paystack": 0.0,
        "notes": None,
    }


ORDERS = [
    {
        "order_number": "DF-20250114-00001",
        "created_at": "2025-01-14T12:00:00",
        "order_type": "DINE_IN",
        "status": "COMPLETED",
        "payment_status": "PAID",
        "payment_method": "CASH",
        "table_number": "T1",
        "items": "2x Coke",
        "subtotal": 10.0,
        "discount": 0.0,
        "tax": 0.5,
        "total": 10.5,
    },
]


def test_export_writes_both_workbooks(data_dir):
    result = ExcelManager.export_day_report(_session(), ORDERS)

    assert result["success"] is True
    assert result["orders_exported"] == 1
    assert (data_dir / "day_sessions.xlsx").exists()

    orders = pd.read_excel(data_dir / "orders_2025-01-14.xlsx", engine="openpyxl")
    assert list(orders.columns) == ExcelManager.ORDER_COLUMNS
    assert orders.loc[0, "order_number"] == "DF-20250114-00001"


def test_re_export_replaces_the_day_row(data_dir):
    ExcelManager.export_day_report(_session(revenue=21.0), ORDERS)
    ExcelManager.export_day_report(_session("2025-01-15", revenue=5.0), [])
    ExcelManager.export_day_report(_session(revenue=42.0), ORDERS)

    sessions = pd.read_excel(data_dir / "day_sessions.xlsx", engine="openpyxl")

    assert len(sessions) == 2
    by_date = {str(row["date"]): row for row in sessions.to_dict("records")}
    assert by_date["2025-01-14"]["total_revenue"] == 42.0


def test_write_errors_are_raised(data_dir, monkeypatch):
    def disk_full(*args, **kwargs):
        raise OSError("No space left on device")

    monkeypatch.setattr(pd.DataFrame, "to_excel", disk_full)

    with pytest.raises(OSError):
        ExcelManager.export_day_report(_session(), ORDERS)


def test_export_task_runs_inline(data_dir):
    result = export_day_report(_session(), ORDERS)

    assert result["success"] is True
    assert "processing_time_seconds" in result
    assert (data_dir / "orders_2025-01-14.xlsx").exists()


def test_export_task_retries_on_os_errors(data_dir, monkeypatch):
    """Write failures surface from the task so Celery can retry them."""
    def locked(*args, **kwargs):
        raise OSError("Resource busy")

    monkeypatch.setattr(ExcelManager, "export_day_report", locked)

    assert OSError in export_day_report.autoretry_for
    with pytest.raises(OSError):
        export_day_report(_session(), ORDERS)


def test_health_check_task():
    assert health_check()["status"] == "healthy"
