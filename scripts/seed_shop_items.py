#!/usr/bin/env python3
"""
Seed the rewards shop with the default catalog.
Safe to run more than once: items already present (by name) are skipped.

Usage:
    python scripts/seed_shop_items.py
"""

import sys

from calorie_rewards.database import Base, SessionLocal, engine
from calorie_rewards import models  # Import all models to register them with Base
from calorie_rewards.catalog import seed_reward_items


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed_reward_items(db)
    finally:
        db.close()

    print(f"Created {created} reward items")
    return 0


if __name__ == "__main__":
    sys.exit(main())
