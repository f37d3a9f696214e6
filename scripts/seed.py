"""
Demo Data Seeder

Creates the demo staff/customer accounts, the settings row and a small
Ghanaian menu. Safe to run repeatedly: existing accounts and categories
are left untouched.

Run from project root: python scripts/seed.py
"""

import asyncio
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import select

from app.core.config import setup_logging
from app.core.security import hash_password
from app.database import async_session_maker, engine, init_db
from app.models import Addon, Category, MenuItem, PriceVariant, Role, User
from app.services.settings import get_or_create_settings

logger = logging.getLogger("seed")

DEMO_PASSWORD = "admin123"

DEMO_USERS = [
    {"email": "admin@defusionflame.com", "phone": "0551796725",
     "first_name": "Admin", "last_name": "User", "role": Role.ADMIN},
    {"email": "receptionist@defusionflame.com", "phone": "0545010103",
     "first_name": "Receptionist", "last_name": "Staff", "role": Role.RECEPTIONIST},
    {"email": "cashier@defusionflame.com", "phone": "0545010104",
     "first_name": "Cashier", "last_name": "Staff", "role": Role.CASHIER},
    {"email": "kitchen@defusionflame.com", "phone": "0551796726",
     "first_name": "Kitchen", "last_name": "Staff", "role": Role.KITCHEN_STAFF},
    {"email": "customer@defusionflame.com", "phone": "0551796727",
     "first_name": "Test", "last_name": "Customer", "role": Role.CUSTOMER},
]

DEMO_MENU = [
    {
        "name": "Starters",
        "description": "Appetizers and starters",
        "items": [
            {"name": "Spicy Chicken Wings", "description": "Crispy chicken wings with spicy sauce",
             "base_price": 18.00},
            {"name": "Kelewele", "description": "Spiced fried plantain", "base_price": 10.00,
             "addons": [("Roasted Peanuts", 3.00)]},
        ],
    },
    {
        "name": "Main Courses",
        "description": "Main dishes",
        "items": [
            {"name": "Jollof Rice", "description": "Ghanaian jollof rice with chicken",
             "base_price": 25.00,
             "variants": [("Small", 20.00), ("Medium", 25.00), ("Large", 30.00)],
             "addons": [("Extra Chicken", 10.00), ("Fried Plantain", 5.00)]},
            {"name": "Banku with Tilapia", "description": "Banku served with grilled tilapia",
             "base_price": 35.00},
            {"name": "Waakye", "description": "Rice and beans with shito and gari",
             "base_price": 22.00, "addons": [("Boiled Egg", 2.00), ("Wele", 4.00)]},
        ],
    },
    {
        "name": "Drinks",
        "description": "Beverages",
        "items": [
            {"name": "Coca Cola", "description": "Chilled Coca Cola", "base_price": 5.00,
             "variants": [("Small", 3.00), ("Medium", 5.00), ("Large", 7.00)]},
            {"name": "Sobolo", "description": "Hibiscus drink", "base_price": 6.00},
        ],
    },
    {
        "name": "Desserts",
        "description": "Sweet treats",
        "items": [
            {"name": "Vanilla Ice Cream", "description": "Creamy vanilla ice cream",
             "base_price": 12.00},
        ],
    },
]


async def seed_users(db) -> int:
    created = 0
    password = hash_password(DEMO_PASSWORD)
    for data in DEMO_USERS:
        result = await db.execute(select(User.id).where(User.email == data["email"]))
        if result.scalar_one_or_none() is not None:
            continue
        db.add(User(password=password, **data))
        created += 1
    await db.commit()
    return created


async def seed_menu(db) -> int:
    created = 0
    for position, data in enumerate(DEMO_MENU, start=1):
        result = await db.execute(select(Category.id).where(Category.name == data["name"]))
        if result.scalar_one_or_none() is not None:
            continue

        category = Category(name=data["name"], description=data["description"], display_order=position)
        db.add(category)
        await db.flush()

        for item_position, item in enumerate(data["items"], start=1):
            db.add(
                MenuItem(
                    category_id=category.id,
                    name=item["name"],
                    description=item["description"],
                    base_price=item["base_price"],
                    display_order=item_position,
                    variants=[PriceVariant(name=n, price=p) for n, p in item.get("variants", [])],
                    addons=[Addon(name=n, price=p) for n, p in item.get("addons", [])],
                )
            )
            created += 1
    await db.commit()
    return created


async def main() -> None:
    setup_logging()
    logger.info("🌱 Seeding database...")

    await init_db()
    async with async_session_maker() as db:
        await get_or_create_settings(db)
        users = await seed_users(db)
        items = await seed_menu(db)
    await engine.dispose()

    logger.info(f"✅ {users} user(s) and {items} menu item(s) created")
    logger.info("📝 Demo credentials (password: %s):", DEMO_PASSWORD)
    for data in DEMO_USERS:
        logger.info(f"   {data['role'].value:<14} {data['email']}")


if __name__ == "__main__":
    asyncio.run(main())
