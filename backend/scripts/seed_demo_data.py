#!/usr/bin/env python3
"""
Seed Demo Data — branches, staff, merchants, terminals, transactions and alerts
around Tabriz for local development and desktop demos.

Writes through the same storage adapter as the API, so it works against
either the embedded or the remote backend.

Run: python backend/scripts/seed_demo_data.py [--reset] [--seed 42]

Branch and device codes are unique, so seeding a non-empty database
again needs --reset.
"""

import argparse
import asyncio
import json
import os
import random
import sys
from datetime import timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import delete

# Add backend/ to import path when run as a script.
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import get_settings, resolve_storage_config
from core.security import hash_password
from db.session import Base
from db.storage import Storage, init_storage
from db.types import utcnow

# Seed data constants
BRANCHES = [
    ("Tabriz Central", "TBR-001", "38.08000000", "46.29190000", 10, 500, 85),
    ("Tabriz Bazaar", "TBR-002", "38.07420000", "46.29440000", 8, 350, 78),
    ("Industrial Park", "TBR-003", "38.09000000", "46.31000000", 12, 280, 92),
]
POSITIONS = ["Sales Manager", "Support Technician", "Field Engineer"]
BUSINESS_TYPES = ["Supermarket", "Pharmacy", "Bakery", "Restaurant", "Clothing", "Electronics"]
CUSTOMER_STATUSES = ["active", "active", "active", "normal", "marketing", "collected", "loss"]
OWNER_NAMES = ["Ali Ahmadi", "Maryam Karimi", "Reza Hosseini", "Sara Rahimi", "Hassan Nouri", "Leila Moradi"]


async def _reset(storage: Storage) -> None:
    async with storage.engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(delete(table))


async def seed_data(storage: Storage, rng: random.Random, customers_per_branch: int = 4) -> dict[str, int]:
    """Create demo data. Returns row counts per entity."""
    counts = {"users": 0, "branches": 0, "employees": 0, "customers": 0, "pos_devices": 0, "transactions": 0, "alerts": 0}
    now = utcnow()

    # ── Users ────────────────────────────────────────────
    for username, name, role in [("admin", "System Administrator", "admin"), ("manager", "Branch Manager", "manager")]:
        if await storage.users.get_by_username(username) is None:
            await storage.users.insert(
                {"username": username, "password": hash_password(f"{username}123"), "name": name, "role": role}
            )
            counts["users"] += 1

    # ── Branches + staff ─────────────────────────────────
    emp_seq = 0
    for name, code, lat, lon, radius, target, performance in BRANCHES:
        branch = await storage.branches.insert(
            {
                "name": name,
                "code": code,
                "type": "branch",
                "manager": rng.choice(OWNER_NAMES),
                "latitude": Decimal(lat),
                "longitude": Decimal(lon),
                "coverage_radius": radius,
                "monthly_target": target,
                "performance": performance,
            }
        )
        counts["branches"] += 1

        employees = []
        for position in POSITIONS:
            emp_seq += 1
            employees.append(
                await storage.employees.insert(
                    {
                        "employee_code": f"EMP{emp_seq:03d}",
                        "name": rng.choice(OWNER_NAMES),
                        "position": position,
                        "phone": f"0914{rng.randint(1000000, 9999999)}",
                        "branch_id": branch.id,
                        "salary": rng.randint(18, 25) * 1_000_000,
                        "hire_date": now - timedelta(days=rng.randint(90, 900)),
                    }
                )
            )
            counts["employees"] += 1

        # ── Customers, terminals, transactions ──────────
        for i in range(customers_per_branch):
            business_type = rng.choice(BUSINESS_TYPES)
            customer = await storage.customers.insert(
                {
                    "shop_name": f"{business_type} {code}-{i + 1}",
                    "owner_name": rng.choice(OWNER_NAMES),
                    "phone": f"0914{rng.randint(1000000, 9999999)}",
                    "business_type": business_type,
                    "latitude": Decimal(lat) + Decimal(rng.randint(-2000, 2000)) / Decimal(100000),
                    "longitude": Decimal(lon) + Decimal(rng.randint(-2000, 2000)) / Decimal(100000),
                    "monthly_profit": rng.randint(5, 60) * 1_000_000,
                    "status": rng.choice(CUSTOMER_STATUSES),
                    "branch_id": branch.id,
                    "support_employee_id": rng.choice(employees).id,
                    "install_date": now - timedelta(days=rng.randint(30, 600)),
                }
            )
            counts["customers"] += 1

            status = rng.choice(["active", "active", "active", "offline", "maintenance"])
            device = await storage.pos_devices.insert(
                {
                    "customer_id": customer.id,
                    "device_code": f"POS-{code}-{i + 1:03d}",
                    "status": status,
                    "last_connection": now - timedelta(minutes=rng.randint(0, 600)),
                }
            )
            counts["pos_devices"] += 1

            for _ in range(rng.randint(3, 8)):
                await storage.transactions.insert(
                    {
                        "pos_device_id": device.id,
                        "amount": rng.randint(50, 5000) * 1000,
                        "transaction_date": now - timedelta(hours=rng.randint(1, 24 * 30)),
                    }
                )
                counts["transactions"] += 1

            if status == "offline":
                await storage.alerts.insert(
                    {
                        "title": f"Device {device.device_code} went offline",
                        "message": f"POS terminal of {customer.shop_name} is not reporting",
                        "type": "error",
                        "priority": "high",
                        "customer_id": customer.id,
                    }
                )
                counts["alerts"] += 1

    await storage.alerts.insert(
        {
            "title": "Demo data loaded",
            "message": "Sample branches, customers and terminals are ready",
            "type": "info",
            "priority": "low",
        }
    )
    counts["alerts"] += 1
    return counts


async def _main(args: argparse.Namespace) -> dict[str, Any]:
    config = resolve_storage_config(get_settings())
    storage = await init_storage(config)
    try:
        if args.reset:
            await _reset(storage)
        counts = await seed_data(storage, random.Random(args.seed), args.customers_per_branch)
    finally:
        await storage.dispose()
    return {"backend": config.backend, "created": counts}


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed demo data for the POS monitor")
    parser.add_argument("--reset", action="store_true", help="Delete all existing rows first")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--customers-per-branch", type=int, default=4)
    args = parser.parse_args()
    print(json.dumps(asyncio.run(_main(args)), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
