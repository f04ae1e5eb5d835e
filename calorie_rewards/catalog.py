"""
Default rewards shop catalog.
"""
import json
import logging
from typing import List

from sqlalchemy.orm import Session

from calorie_rewards.database import atomic
from calorie_rewards.models import RewardItem

logger = logging.getLogger("calorie_rewards.catalog")

DEFAULT_REWARD_ITEMS = [
    {"name": "Dark Theme", "description": "Easy on the eyes at night", "category": "theme",
     "cost_points": 500, "purchase_limit": 1, "display_order": 1},
    {"name": "Ocean Theme", "description": "Calm blues for your dashboard", "category": "theme",
     "cost_points": 1000, "purchase_limit": 1, "required_level": 2, "display_order": 2},
    {"name": "Chef Avatar", "description": "Show off your cooking side", "category": "avatar",
     "cost_points": 750, "purchase_limit": 1, "display_order": 3},
    {"name": "Runner Avatar", "description": "For the cardio lovers", "category": "avatar",
     "cost_points": 750, "purchase_limit": 1, "required_level": 3, "display_order": 4},
    {"name": "Golden Apple Badge", "description": "A shiny badge for your profile", "category": "badge",
     "cost_points": 2500, "purchase_limit": 1, "required_level": 4, "display_order": 5},
    {"name": "Founders Badge", "description": "Limited edition badge", "category": "badge",
     "cost_points": 5000, "is_limited_edition": True, "stock_quantity": 100, "purchase_limit": 1,
     "required_level": 5, "display_order": 6},
    {"name": "Double Points (24h)", "description": "Celebrate a good day", "category": "boost",
     "cost_points": 1500, "item_data": {"duration_hours": 24}, "display_order": 7},
]


def seed_reward_items(db: Session, items: List[dict] = DEFAULT_REWARD_ITEMS) -> int:
    """
    Insert catalog items that are not in the shop yet (matched by name).

    Returns:
        Number of items created
    """
    existing = {name for (name,) in db.query(RewardItem.name).all()}
    created = 0

    with atomic(db, "seed_reward_items"):
        for data in items:
            if data["name"] in existing:
                continue
            values = dict(data)
            if isinstance(values.get("item_data"), dict):
                values["item_data"] = json.dumps(values["item_data"])
            db.add(RewardItem(**values))
            created += 1

    logger.info(f"Seeded {created} reward items")
    return created
