"""
Checkout Load Simulation Script

Fires concurrent checkouts at a running instance to exercise pricing
verification, rate limiting and the kitchen relay under load.
Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50
TAX_RATE = Decimal("0.05")
DELIVERY_FEE = Decimal("50")

STREETS = ["MG Road", "Brigade Road", "Residency Road", "Church Street", "Indiranagar 100 Ft Road"]
NOTES = [None, "Less spicy", "Extra butter", "No onions", "Pack separately"]


def random_phone() -> str:
    return f"+9198{random.randint(10_000_000, 99_999_999)}"


def build_checkout(menu: list[dict], tamper: bool = False) -> dict[str, Any]:
    """
    Build a checkout the way the web client does: catalog prices, 5% tax
    rounded to whole rupees, flat delivery fee.

    ``tamper`` lowers one unit price while keeping the totals consistent,
    which the server must reject.
    """
    delivery_type = random.choice(["dine_in", "takeaway", "delivery"])
    items = []
    for entry in random.sample(menu, k=min(len(menu), random.randint(1, 4))):
        items.append({
            "name": entry["name"],
            "price": float(entry["price"]),
            "quantity": random.randint(1, 3),
            "specialInstructions": random.choice(NOTES),
        })

    if tamper:
        items[0]["price"] = round(items[0]["price"] * 0.5, 2)

    subtotal = sum(Decimal(str(item["price"])) * item["quantity"] for item in items)
    tax = (subtotal * TAX_RATE).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    delivery_fee = DELIVERY_FEE if delivery_type == "delivery" else Decimal("0")

    payload = {
        "phone": random_phone(),
        "deliveryType": delivery_type,
        "items": items,
        "subtotal": float(subtotal),
        "tax": float(tax),
        "deliveryFee": float(delivery_fee),
        "total": float(subtotal + tax + delivery_fee),
        "specialRequests": random.choice(NOTES),
    }
    if delivery_type == "dine_in":
        payload["tableNumber"] = str(random.randint(1, 10))
    if delivery_type == "delivery":
        payload["address"] = f"{random.randint(1, 999)}, {random.choice(STREETS)}, Bengaluru"
    return payload


async def notify_kitchen(client: httpx.AsyncClient, payload: dict, order: dict) -> bool:
    """Relay the created order to the kitchen, as the client does after checkout."""
    response = await client.post(
        f"{API_BASE_URL}/api/notifications/kitchen",
        json={
            "orderId": order["id"],
            "orderNumber": order["orderNumber"],
            "items": [
                {"name": item["name"], "quantity": item["quantity"],
                 "specialInstructions": item["specialInstructions"]}
                for item in payload["items"]
            ],
            "tableNumber": int(payload["tableNumber"]) if "tableNumber" in payload else None,
            "deliveryType": payload["deliveryType"],
            "total": order["total"],
            "phoneNumber": payload["phone"],
        },
        timeout=30.0,
    )
    return response.status_code == 200


async def send_order(
    client: httpx.AsyncClient,
    menu: list[dict],
    order_num: int,
    tamper: bool,
) -> dict[str, Any]:
    """Send one checkout and, when accepted, its kitchen notification."""
    payload = build_checkout(menu, tamper=tamper)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/api/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 200:
            order = response.json()["order"]
            notified = await notify_kitchen(client, payload, order)
            return {
                "order_num": order_num,
                "success": True,
                "tampered": tamper,
                "order_number": order["orderNumber"],
                "total": order["total"],
                "notified": notified,
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "tampered": tamper,
            "status": response.status_code,
            "error": response.json().get("error", response.text[:100]),
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "tampered": tamper,
            "status": None,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, tamper_ratio: float = 0.2) -> dict[str, Any]:
    """
    Run the load simulation.

    Args:
        num_orders: Number of checkouts to send
        tamper_ratio: Share of checkouts sent with a lowered unit price
    """
    print("=" * 70)
    print("🔥 CHECKOUT SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🧪 Tampered share: {tamper_ratio:.0%}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        menu_response = await client.get(f"{API_BASE_URL}/api/menu")
        menu_response.raise_for_status()
        menu = menu_response.json()
        if not menu:
            print("\n❌ Menu is empty. Seed menu_items before running the simulation.")
            return {"total": num_orders, "successful": 0, "failed": num_orders, "results": []}

        print(f"\n🚀 Firing {num_orders} checkouts against {len(menu)} menu items...\n")
        tasks = [
            send_order(client, menu, i + 1, tamper=random.random() < tamper_ratio)
            for i in range(num_orders)
        ]
        results = await asyncio.gather(*tasks)

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    leaked = [r for r in successful if r["tampered"]]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Accepted Orders: {len(successful)}/{num_orders}")
    print(f"❌ Rejected Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if leaked:
        print(f"\n🚨 {len(leaked)} tampered checkout(s) were ACCEPTED")
    else:
        print("\n🛡️  No tampered checkout was accepted")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        notified = len([r for r in successful if r["notified"]])
        total_revenue = sum(r.get("total", 0) for r in successful)

        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   🔔 Kitchen notified: {notified}/{len(successful)}")
        print(f"   💰 Total Revenue: ₹{total_revenue:.2f}")

    if failed:
        print("\n⚠️  Rejection Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']} [{f.get('status')}]: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results,
    }


async def preflight_checks() -> bool:
    """Check the instance is up before the load run."""
    async with httpx.AsyncClient() as client:
        try:
            response = await client.get(f"{API_BASE_URL}/health")
        except httpx.HTTPError as e:
            print(f"   ❌ Cannot reach {API_BASE_URL}: {e}")
            return False

        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False

        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Rate limiter: {data.get('rate_limiter')}")
        print(f"   Notifications: {data.get('notification_service')}")
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Checkout Load Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--tamper", type=float, default=0.2, help="Share of tampered checkouts (0-1)")
    parser.add_argument("--url", default=API_BASE_URL, help="Base URL of the running API")
    args = parser.parse_args()

    API_BASE_URL = args.url

    print("\n1️⃣ Health Check...")
    if not asyncio.run(preflight_checks()):
        print("\n❌ Pre-flight checks failed. Fix issues before running simulation.")
        sys.exit(1)

    asyncio.run(run_simulation(num_orders=args.orders, tamper_ratio=args.tamper))
