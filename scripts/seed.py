"""Seed script: creates demo users, a shared diagram and one version conflict.

Usage:
    python scripts/seed.py              # uses http://localhost:8000
    python scripts/seed.py http://host  # custom base URL
"""

import sys

import httpx

BASE_URL = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

USERS = [
    {"username": "alice", "email": "alice@example.com", "password": "password123"},
    {"username": "bob", "email": "bob@example.com", "password": "password123"},
]

SCHEMA = {
    "name": "Bookshop",
    "tables": [
        {"name": "authors", "columns": ["id", "name"]},
        {"name": "books", "columns": ["id", "title", "author_id"]},
    ],
    "relations": [{"from": "books.author_id", "to": "authors.id"}],
}


def register(client: httpx.Client, user: dict) -> None:
    resp = client.post(f"{BASE_URL}/api/auth/register", json=user)
    if resp.status_code == 201:
        print(f"  Registered {user['username']}")
    elif resp.status_code == 409:
        print(f"  {user['username']} already exists, skipping")
    else:
        resp.raise_for_status()


def login(client: httpx.Client, email: str, password: str) -> dict:
    resp = client.post(
        f"{BASE_URL}/api/auth/login",
        json={"email": email, "password": password},
    )
    resp.raise_for_status()
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def whoami(client: httpx.Client, headers: dict) -> str:
    resp = client.get(f"{BASE_URL}/api/auth/me", headers=headers)
    resp.raise_for_status()
    return resp.json()["id"]


def main() -> None:
    print(f"Seeding against {BASE_URL}\n")

    with httpx.Client(timeout=10) as client:
        print("Users:")
        for user in USERS:
            register(client, user)
        alice = login(client, "alice@example.com", "password123")
        bob = login(client, "bob@example.com", "password123")

        print("\nDiagram:")
        resp = client.post(f"{BASE_URL}/api/diagrams/", json={"payload": SCHEMA}, headers=alice)
        resp.raise_for_status()
        diagram = resp.json()
        url = f"{BASE_URL}/api/diagrams/{diagram['id']}"
        print(f"  Created '{SCHEMA['name']}' ({diagram['id']}) at v{diagram['version']}")

        resp = client.post(
            f"{url}/shares",
            json={"grantee_id": whoami(client, bob), "level": "editor"},
            headers=alice,
        )
        resp.raise_for_status()
        print("  Shared with bob as editor")

        print("\nConflict:")
        edited = {**SCHEMA, "tables": [*SCHEMA["tables"], {"name": "reviews", "columns": ["id"]}]}
        resp = client.put(url, json={"expected_version": 1, "payload": edited}, headers=bob)
        resp.raise_for_status()
        print(f"  bob saved v{resp.json()['version']}")

        resp = client.put(url, json={"expected_version": 1, "payload": SCHEMA}, headers=alice)
        if resp.status_code == 409:
            current = resp.json()["current"]
            print(f"  alice's stale save rejected, server is at v{current['version']}")
        else:
            resp.raise_for_status()

    print("\nDone!")


if __name__ == "__main__":
    main()
