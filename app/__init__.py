"""
                Restaurant Platform Backend

REST + realtime backend shared by the admin dashboard, the POS app,
the kitchen display and the customer ordering app.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
