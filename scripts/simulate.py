"""
Rush-Hour Simulation Script

Fires concurrent POS orders at a running API, pays for them at the
counter and pushes some through the kitchen, to exercise order
numbering, payments and the realtime relay under load.

Requires seeded demo accounts (python scripts/seed.py).
Run from project root: python scripts/simulate.py --orders 50
"""

import argparse
import asyncio
import random
import sys
import time
from datetime import datetime
from typing import Any, Optional

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:5000"
TOTAL_ORDERS = 50

CASHIER = {"email": "receptionist@defusionflame.com", "password": "admin123"}
KITCHEN = {"email": "kitchen@defusionflame.com", "password": "admin123"}

TABLES = [f"T{n}" for n in range(1, 21)]
PAYMENT_METHODS = ["CASH", "CARD", "MOMO"]
ORDER_NOTES = [None, None, "No pepper", "Extra shito", "Takeaway bags please"]


async def login(client: httpx.AsyncClient, credentials: dict[str, str]) -> str:
    response = await client.post(f"{API_BASE_URL}/api/auth/login", json=credentials)
    response.raise_for_status()
    return response.json()["token"]


async def fetch_menu(client: httpx.AsyncClient) -> list[dict]:
    response = await client.get(f"{API_BASE_URL}/api/menu/items")
    response.raise_for_status()
    return [item for item in response.json() if item.get("is_available")]


def generate_order_payload(menu: list[dict]) -> dict[str, Any]:
    """Random dine-in or takeaway order drawn from the live menu."""
    items = []
    for menu_item in random.sample(menu, k=min(len(menu), random.randint(1, 4))):
        line: dict[str, Any] = {
            "menu_item_id": menu_item["id"],
            "quantity": random.randint(1, 3),
        }
        if menu_item.get("variants"):
            line["variant_id"] = random.choice(menu_item["variants"])["id"]
        if menu_item.get("addons") and random.random() < 0.4:
            line["addon_ids"] = [random.choice(menu_item["addons"])["id"]]
        items.append(line)

    order_type = random.choice(["DINE_IN", "TAKEAWAY"])
    return {
        "order_type": order_type,
        "table_number": random.choice(TABLES) if order_type == "DINE_IN" else None,
        "notes": random.choice(ORDER_NOTES),
        "items": items,
    }


async def place_and_pay(
    client: httpx.AsyncClient,
    token: str,
    menu: list[dict],
    order_num: int,
) -> dict[str, Any]:
    """Create one order and settle it at the counter."""
    headers = {"Authorization": f"Bearer {token}"}
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(menu),
            headers=headers,
        )
        if response.status_code != 201:
            return {"order_num": order_num, "success": False,
                    "error": response.text[:100], "time": round(time.time() - start_time, 3)}
        order = response.json()["order"]

        response = await client.post(
            f"{API_BASE_URL}/api/payments/pos",
            json={
                "order_id": order["id"],
                "payment_method": random.choice(PAYMENT_METHODS),
                "amount": order["total"],
            },
            headers=headers,
        )
        elapsed = round(time.time() - start_time, 3)
        if response.status_code != 200:
            return {"order_num": order_num, "success": False,
                    "error": f"payment: {response.text[:80]}", "time": elapsed}

        return {
            "order_num": order_num,
            "success": True,
            "order_id": order["id"],
            "order_number": order["order_number"],
            "total": order["total"],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {"order_num": order_num, "success": False,
                "error": str(e)[:100], "time": round(time.time() - start_time, 3)}


async def advance_order(client: httpx.AsyncClient, token: str, order_id: str) -> Optional[str]:
    """Walk an order through the kitchen; returns the final status."""
    headers = {"Authorization": f"Bearer {token}"}
    status = None
    for status in ("PREPARING", "READY", "COMPLETED"):
        response = await client.put(
            f"{API_BASE_URL}/api/orders/{order_id}/status",
            json={"status": status},
            headers=headers,
        )
        if response.status_code != 200:
            return None
    return status


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, kitchen_share: float = 0.5) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 RUSH-HOUR SIMULATION - CONCURRENT POS ORDERS")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient(timeout=30.0) as client:
        cashier_token = await login(client, CASHIER)
        kitchen_token = await login(client, KITCHEN)
        menu = await fetch_menu(client)
        if not menu:
            print("❌ No available menu items. Run scripts/seed.py first.")
            return {"total": num_orders, "successful": 0, "failed": num_orders}

        print("\n🚀 Firing orders...\n")
        results = await asyncio.gather(
            *[place_and_pay(client, cashier_token, menu, i + 1) for i in range(num_orders)]
        )

        successful = [r for r in results if r["success"]]
        to_cook = successful[: int(len(successful) * kitchen_share)]
        print(f"👨‍🍳 Kitchen working through {len(to_cook)} orders...\n")
        cooked = await asyncio.gather(
            *[advance_order(client, kitchen_token, r["order_id"]) for r in to_cook]
        )

    total_time = round(time.time() - start_time, 2)
    failed = [r for r in results if not r["success"]]
    numbers = [r["order_number"] for r in successful]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"🍳 Completed by kitchen: {sum(1 for s in cooked if s == 'COMPLETED')}/{len(to_cook)}")
    print(f"🔢 Duplicate order numbers: {len(numbers) - len(set(numbers))}")
    print(f"⏱️  Total Time: {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {round(sum(times) / len(times), 3)}s")
        print(f"   Fastest: {min(times)}s")
        print(f"   Slowest: {max(times)}s")
        print(f"   💰 Total Revenue: ₵{sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


def main() -> None:
    global API_BASE_URL

    parser = argparse.ArgumentParser(description="Concurrent POS order simulation")
    parser.add_argument("--orders", "-n", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--url", default=API_BASE_URL, help="API base URL")
    parser.add_argument("--kitchen-share", type=float, default=0.5,
                        help="Fraction of paid orders the kitchen completes")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    asyncio.run(run_simulation(args.orders, args.kitchen_share))


if __name__ == "__main__":
    main()
