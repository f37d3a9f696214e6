"""
                        API Routers

One module per resource, each exposing ``router``:
    - auth, menu, orders, payments, webhooks, settings
    - day_session, kitchen, staff, admin, chat, upload
"""

from app.api.routes import (
    admin,
    auth,
    chat,
    day_session,
    kitchen,
    menu,
    orders,
    payments,
    settings,
    staff,
    upload,
    webhooks,
)

ALL_ROUTERS = [
    auth.router,
    menu.router,
    orders.router,
    payments.router,
    webhooks.router,
    settings.router,
    day_session.router,
    kitchen.router,
    staff.router,
    admin.router,
    chat.router,
    upload.router,
]

__all__ = ["ALL_ROUTERS"]
