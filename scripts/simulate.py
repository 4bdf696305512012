"""
Order Load Simulation

Fires concurrent orders at a running server for one restaurant and reports
how many landed, which error codes came back, and whether any order number
was handed out twice.

Run from project root:
    python scripts/simulate.py --slug cafe1 --token <session token> --orders 50
"""

import argparse
import asyncio
import random
import sys
import time
from collections import Counter
from decimal import Decimal
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

NOTES = [None, "Extra napkins", "Ring doorbell", "Leave at door", "No onions"]


def available_items(restaurant: dict[str, Any]) -> list[dict[str, Any]]:
    """Flatten the storefront payload into its orderable items."""
    return [item for category in restaurant["categories"] for item in category["items"]]


def random_cart(items: list[dict[str, Any]]) -> list[dict[str, Any]]:
    picks = random.sample(items, k=random.randint(1, min(4, len(items))))
    return [{"menu_item_id": item["id"], "quantity": random.randint(1, 3)} for item in picks]


async def send_order(
    client: httpx.AsyncClient,
    restaurant_id: str,
    items: list[dict[str, Any]],
    order_num: int,
) -> dict[str, Any]:
    payload = {
        "restaurant_id": restaurant_id,
        "items": random_cart(items),
        "notes": random.choice(NOTES),
    }
    start_time = time.time()

    try:
        response = await client.post("/api/order", json=payload, timeout=30.0)
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": type(e).__name__,
            "time": round(time.time() - start_time, 3),
        }

    elapsed = round(time.time() - start_time, 3)
    body = response.json()

    if response.status_code == 201:
        return {
            "order_num": order_num,
            "success": True,
            "order_number": body["order_number"],
            "total": Decimal(body["total_amount"]),
            "time": elapsed,
        }
    return {
        "order_num": order_num,
        "success": False,
        "error": body.get("error", str(response.status_code)),
        "detail": body.get("detail"),
        "time": elapsed,
    }


async def run_simulation(base_url: str, token: str, slug: str, num_orders: int) -> dict[str, Any]:
    headers = {"Authorization": f"Bearer {token}"}

    async with httpx.AsyncClient(base_url=base_url, headers=headers) as client:
        storefront = await client.get(f"/api/restaurant/by-slug/{slug}")
        storefront.raise_for_status()
        restaurant = storefront.json()
        items = available_items(restaurant)
        if not items:
            raise SystemExit(f"{restaurant['name']} has no available items to order")

        print("=" * 70)
        print("ORDER LOAD SIMULATION")
        print("=" * 70)
        print(f"Target:     {base_url}")
        print(f"Restaurant: {restaurant['name']} ({len(items)} available items)")
        print(f"Orders:     {num_orders}")
        print("=" * 70)

        start_time = time.time()
        results = await asyncio.gather(
            *(send_order(client, restaurant["id"], items, i + 1) for i in range(num_orders))
        )
        total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    numbers = Counter(r["order_number"] for r in successful)
    duplicates = {number: count for number, count in numbers.items() if count > 1}

    print(f"\nSuccessful: {len(successful)}/{num_orders}")
    print(f"Failed:     {len(failed)}/{num_orders}")
    print(f"Wall time:  {total_time}s")

    if successful:
        times = [r["time"] for r in successful]
        revenue = sum((r["total"] for r in successful), Decimal("0.00"))
        print(f"\nAverage response: {round(sum(times) / len(times), 3)}s")
        print(f"Fastest: {min(times)}s  Slowest: {max(times)}s")
        print(f"Order value placed: ${revenue}")

    if duplicates:
        print(f"\nDUPLICATE ORDER NUMBERS: {duplicates}")
    else:
        print("\nNo duplicate order numbers")

    if failed:
        print("\nFailures by error code:")
        for code, count in Counter(r["error"] for r in failed).most_common():
            print(f"   {code}: {count}")
        for r in failed[:5]:
            print(f"   Order #{r['order_num']}: {r.get('detail') or r['error']}")

    print("\nNext: python scripts/verify.py (with LEDGER_EXPORT_ENABLED and a Celery worker running)")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "duplicates": duplicates,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent order placement against a running server")
    parser.add_argument("--base-url", default=API_BASE_URL)
    parser.add_argument("--token", required=True, help="Session token of a logged-in customer")
    parser.add_argument("--slug", required=True, help="Restaurant slug to order from")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    args = parser.parse_args()

    summary = asyncio.run(run_simulation(args.base_url, args.token, args.slug, args.orders))
    sys.exit(1 if summary["duplicates"] else 0)
