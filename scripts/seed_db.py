"""
Seed script for the user directory (mock DB or Firestore).

Usage:
  - Dry run (default): python scripts/seed_db.py
  - Apply to configured DB: python scripts/seed_db.py --apply
  - Force mock DB even if FIREBASE configured: python scripts/seed_db.py --apply --force-mock

Behavior:
  - Loads `db_seed.json` from repo root: {"users": [{email, first_name, ..., role, location?}, ...]}
  - Adds each user through the configured UserStore; existing emails are skipped.

NOTE: When applying to real Firestore, ensure `FIREBASE_CREDENTIALS_PATH` and `USE_MOCK_DB=false` are set in `.env`.
"""

import argparse
import json
import os

from app.core.exceptions import DuplicateUserError
from app.core.settings import settings
from app.models.user import UserRole


def load_seed(path: str = "./db_seed.json") -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_to_store(store, seed: dict, apply: bool = False) -> int:
    written = 0
    for user in seed.get("users", []):
        UserRole(user["role"])  # reject unknown roles before touching the store
        print(f"Preparing: users/{user['email']} ({user['role']})")
        if not apply:
            continue
        try:
            store.add(user)
            written += 1
            print(f"Wrote: users/{user['email']}")
        except DuplicateUserError:
            print(f"Skipped existing: users/{user['email']}")
    return written


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--apply", action="store_true", help="Write seed to the DB instead of dry-run")
    parser.add_argument("--force-mock", action="store_true", help="Force use of mock DB even if FIREBASE configured")
    args = parser.parse_args()

    seed_path = os.path.join(os.getcwd(), "db_seed.json")
    if not os.path.exists(seed_path):
        print(f"Seed file not found: {seed_path}")
        return

    seed = load_seed(seed_path)

    if args.force_mock:
        print("Forcing mock DB usage for this run.")
        settings.USE_MOCK_DB = True

    from app.config.firebase import get_user_store
    written = write_to_store(get_user_store(), seed, apply=args.apply)

    if args.apply:
        print(f"Seeding completed ({written} users written).")
    else:
        print("Dry run complete. Re-run with --apply to write to DB.")


if __name__ == "__main__":
    main()
