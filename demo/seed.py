#!/usr/bin/env python3
"""
Demo seed script — populates a running server with sample users and cards.

!! NOT FOR PRODUCTION !!
This script creates users with known passwords and well-known test card
numbers. It is intended ONLY for local demos and frontend development.

The server must have a bootstrap admin configured, e.g. in .env:

    BOOTSTRAP_ADMIN_USERNAME=admin
    BOOTSTRAP_ADMIN_PASSWORD=AdminDemo123!
    BOOTSTRAP_ADMIN_EMAIL=admin@bankdemo.com

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Custom server URL / admin credentials:
    python demo/seed.py --base-url http://localhost:9000 \
        --admin-username admin --admin-password AdminDemo123!

    # Reset the local SQLite database (restart the server afterwards):
    python demo/seed.py --reset

Login credentials after seeding:
    ┌────────────┬───────────────────┬────────────┐
    │ Username   │ Password          │ Role       │
    ├────────────┼───────────────────┼────────────┤
    │ alice      │ AliceDemo123!     │ ROLE_USER  │
    │ bob        │ BobDemo123!       │ ROLE_USER  │
    │ carol      │ CarolDemo123!     │ ROLE_USER  │
    └────────────┴───────────────────┴────────────┘
"""

import argparse
import asyncio
import os
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users and cards (all numbers are public Luhn-valid test numbers)
# ---------------------------------------------------------------------------

USERS = [
    {
        "username": "alice",
        "password": "AliceDemo123!",
        "email": "alice.chen@example.com",
        "firstName": "Alice",
        "lastName": "Chen",
        "cards": [
            {"number": "4111111111111111", "balance": "1500.00"},
            {"number": "5555555555554444", "balance": "250.50"},
        ],
    },
    {
        "username": "bob",
        "password": "BobDemo123!",
        "email": "bob.martinez@example.com",
        "firstName": "Bob",
        "lastName": "Martinez",
        "cards": [
            {"number": "4012888888881881", "balance": "980.00"},
            {"number": "5105105105105100", "balance": "0.00"},
        ],
    },
    {
        "username": "carol",
        "password": "CarolDemo123!",
        "email": "carol.nguyen@example.com",
        "firstName": "Carol",
        "lastName": "Nguyen",
        "cards": [
            {"number": "4242424242424242", "balance": "3200.00"},
        ],
    },
]

# Owner-internal transfers made after the cards exist
TRANSFERS = [
    ("alice", "4111111111111111", "5555555555554444", "200.00", "Monthly savings"),
    ("alice", "5555555555554444", "4111111111111111", "25.50", "Top-up"),
    ("bob", "4012888888881881", "5105105105105100", "100.00", None),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def login(client: httpx.AsyncClient, username: str, password: str) -> str:
    resp = await client.post(
        f"{BASE_URL}/api/auth/login",
        json={"username": username, "password": password},
    )
    resp.raise_for_status()
    return resp.json()["token"]


async def create_user(client: httpx.AsyncClient, admin_token: str, user: dict) -> int:
    body = {key: value for key, value in user.items() if key != "cards"}
    body["role"] = "USER"
    resp = await client.post(
        f"{BASE_URL}/api/admin/users",
        json=body,
        headers=auth_header(admin_token),
    )
    if resp.status_code == 409:
        # Already seeded: look the user up instead
        users = await client.get(f"{BASE_URL}/api/admin/users", headers=auth_header(admin_token))
        users.raise_for_status()
        return next(u["id"] for u in users.json() if u["username"] == user["username"])
    resp.raise_for_status()
    return resp.json()["id"]


async def issue_card(
    client: httpx.AsyncClient, admin_token: str, user_id: int, holder: str, card: dict
) -> None:
    resp = await client.post(
        f"{BASE_URL}/api/cards",
        json={
            "cardNumber": card["number"],
            "cardHolderName": holder,
            "expirationDate": (date.today() + timedelta(days=3 * 365)).isoformat(),
            "userId": user_id,
            "initialBalance": card["balance"],
        },
        headers=auth_header(admin_token),
    )
    if resp.status_code == 409:
        log(f"card ending {card['number'][-4:]} already exists, skipping")
        return
    resp.raise_for_status()
    log(f"issued {resp.json()['maskedCardNumber']} with balance {card['balance']}")


async def transfer(
    client: httpx.AsyncClient, token: str, src: str, dst: str, amount: str, description: str | None
) -> None:
    resp = await client.post(
        f"{BASE_URL}/api/transfers/own",
        json={
            "fromCardNumber": src,
            "toCardNumber": dst,
            "amount": amount,
            "description": description,
        },
        headers=auth_header(token),
    )
    if resp.status_code != 200:
        log(f"transfer of {amount} failed: {resp.status_code} {resp.text}")
        return
    body = resp.json()
    log(f"{body['fromCardMasked']} -> {body['toCardMasked']}: {body['amount']} ({body['status']})")


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------

async def seed(admin_username: str, admin_password: str) -> None:
    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn bankcards.main:app --reload\n")
            sys.exit(1)

        try:
            admin_token = await login(client, admin_username, admin_password)
        except httpx.HTTPStatusError:
            print(f"  ERROR: Cannot log in as '{admin_username}'.")
            print("  Configure BOOTSTRAP_ADMIN_* in .env and restart the server.\n")
            sys.exit(1)

        tokens: dict[str, str] = {}
        for user in USERS:
            name = f"{user['firstName']} {user['lastName']}"
            print(f"Creating {name}...")
            user_id = await create_user(client, admin_token, user)
            for card in user["cards"]:
                await issue_card(client, admin_token, user_id, name.upper(), card)
            tokens[user["username"]] = await login(client, user["username"], user["password"])

        print("\nCreating transfers...")
        for username, src, dst, amount, description in TRANSFERS:
            await transfer(client, tokens[username], src, dst, amount, description)

    print("\n========================================")
    print("  SEED COMPLETE — Login Credentials")
    print("========================================")
    print(f"\n  {'Username':<12s} {'Password':<20s} {'Role'}")
    print(f"  {'─' * 12} {'─' * 20} {'─' * 10}")
    for user in USERS:
        print(f"  {user['username']:<12s} {user['password']:<20s} ROLE_USER")
    print()


def reset_database() -> None:
    """Delete the local SQLite database file."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "bankcards.db")
    db_path = os.path.abspath(db_path)
    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


async def main() -> None:
    global BASE_URL

    parser = argparse.ArgumentParser(
        description="Seed the bank card API with demo data (NOT FOR PRODUCTION)",
    )
    parser.add_argument(
        "--base-url", default=BASE_URL,
        help=f"API base URL (default: {BASE_URL})",
    )
    parser.add_argument("--admin-username", default="admin")
    parser.add_argument("--admin-password", default="AdminDemo123!")
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the local SQLite database and exit",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    BASE_URL = args.base_url.rstrip("/")
    await seed(args.admin_username, args.admin_password)


if __name__ == "__main__":
    asyncio.run(main())
