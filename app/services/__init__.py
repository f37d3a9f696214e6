"""
                        Services Module

Business logic shared by the route handlers and the Celery worker.

Services:
    - orders: pricing, totals, order numbers and status side effects
    - day_session: business-day lookup, summary and export rows
    - settings: the singleton system settings row
    - payment: Paystack / test-mode payment gateway
    - audit: audit trail writer
    - users: account lookups
    - excel_manager: thread-safe spreadsheet exports
"""

from app.services.excel_manager import ExcelManager

__all__ = ["ExcelManager"]
