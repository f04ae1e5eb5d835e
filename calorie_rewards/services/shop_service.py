"""
Rewards shop service.
Gates purchases on level, stock and purchase limits, then spends points
through the points engine. The spend, the purchase row and the stock
change commit together.
"""
import json
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from calorie_rewards.constants import EXCLUSIVE_ITEM_CATEGORIES, REASON_PURCHASE
from calorie_rewards.database import atomic
from calorie_rewards.exceptions import (
    PurchaseNotAllowedException,
    PurchaseNotFoundException,
    RewardItemNotFoundException,
)
from calorie_rewards.models import RewardItem, UserPurchase
from calorie_rewards.repositories.reward_repository import (
    RewardItemRepository, UserPurchaseRepository
)
from calorie_rewards.services.points_service import PointsService

logger = logging.getLogger("calorie_rewards.shop")


def _parse_item_data(raw: Optional[str]) -> Optional[dict]:
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


class ShopService:
    """Service for the rewards shop"""

    def __init__(self, db: Session, points_service: Optional[PointsService] = None):
        self.db = db
        self.item_repo = RewardItemRepository()
        self.purchase_repo = UserPurchaseRepository()
        self.points_service = points_service or PointsService(db)

    def list_items(self, user_id: int, category: Optional[str] = None) -> dict:
        """
        Get active shop items with per-user purchase state.

        Returns:
            Dictionary with items (each with can_purchase / already_owned)
            and the user's level
        """
        items = self.item_repo.get_active(self.db, category)
        counts = self.purchase_repo.counts_by_item(self.db, user_id)
        user_level = self.points_service.get_account(user_id).level

        enriched = []
        for item in items:
            purchase_count = counts.get(item.id, 0)
            enriched.append({
                "id": item.id,
                "name": item.name,
                "description": item.description,
                "category": item.category,
                "cost_points": item.cost_points,
                "item_data": _parse_item_data(item.item_data),
                "is_limited_edition": item.is_limited_edition,
                "stock_quantity": item.stock_quantity,
                "purchase_limit": item.purchase_limit,
                "required_level": item.required_level,
                "user_purchase_count": purchase_count,
                "can_purchase": self._blocking_reason(item, purchase_count, user_level) is None,
                "already_owned": purchase_count > 0,
            })

        return {"items": enriched, "user_level": user_level}

    def purchase_item(self, user_id: int, item_id: int) -> dict:
        """
        Buy a reward item with points.

        Raises:
            RewardItemNotFoundException: if the item does not exist or is inactive
            PurchaseNotAllowedException: on purchase limit, stock or level
            InsufficientPointsException: if the balance is too low (no purchase is recorded)
        """
        with atomic(self.db, "purchase_item"):
            item = self.item_repo.get_active_by_id(self.db, item_id)
            if not item:
                raise RewardItemNotFoundException(item_id)

            # Account row is written then locked before counting: purchases by
            # the same user run one at a time until this unit commits
            self.points_service.get_account(user_id)
            account = self.points_service.account_repo.get_for_update(self.db, user_id)
            purchase_count = self.purchase_repo.count_for_item(self.db, user_id, item_id)
            reason =self._blocking_reason(item, purchase_count, account.level)
            if reason:
                raise PurchaseNotAllowedException(reason)

            spend = self.points_service.spend_points(
                user_id,
                item.cost_points,
                REASON_PURCHASE,
                f"Purchased: {item.name}",
                "reward_item",
                item.id
            )

            if item.stock_quantity is not None and not self.item_repo.decrement_stock(self.db, item.id):
                raise PurchaseNotAllowedException("Item out of stock")

            purchase = self.purchase_repo.create(self.db, UserPurchase(
                user_id=user_id,
                item_id=item.id,
                points_paid=item.cost_points,
                expires_at=self._expires_at(item)
            ))
            result = {
                "purchase_id": purchase.id,
                "item": {"id": item.id, "name": item.name, "category": item.category},
                "points_spent": spend["points_spent"],
                "remaining_points": spend["remaining_points"],
            }

        logger.info(f"User {user_id} purchased item {item_id} for {result['points_spent']} points")
        return result

    def list_purchases(self, user_id: int) -> List[dict]:
        """Get a user's purchases with item info, newest first"""
        now = datetime.utcnow()
        return [
            {
                "id": purchase.id,
                "item_id": item.id,
                "name": item.name,
                "description": item.description,
                "category": item.category,
                "item_data": _parse_item_data(item.item_data),
                "points_paid": purchase.points_paid,
                "purchased_at": purchase.purchased_at,
                "is_active": purchase.is_active,
                "is_equipped": purchase.is_equipped,
                "expires_at": purchase.expires_at,
                "is_expired": purchase.expires_at is not None and purchase.expires_at < now,
            }
            for purchase, item in self.purchase_repo.get_for_user(self.db, user_id)
        ]

    def equip_item(self, user_id: int, purchase_id: int) -> UserPurchase:
        """
        Equip a purchased item.

        Themes and avatars are exclusive: equipping one unequips the
        others of the same category.
        """
        with atomic(self.db, "equip_item"):
            row = self.purchase_repo.get_with_item(self.db, user_id, purchase_id)
            if not row:
                raise PurchaseNotFoundException(purchase_id)
            purchase, item = row

            if item.category in EXCLUSIVE_ITEM_CATEGORIES:
                self.purchase_repo.unequip_category(self.db, user_id, item.category)
            self.purchase_repo.equip(self.db, purchase.id)

        self.db.refresh(purchase)
        return purchase

    @staticmethod
    def _blocking_reason(item: RewardItem, purchase_count: int, user_level: int) -> Optional[str]:
        """Why the item cannot be bought right now (None if it can)"""
        if item.purchase_limit is not None and purchase_count >= item.purchase_limit:
            return "Purchase limit reached for this item"
        if item.stock_quantity is not None and item.stock_quantity <= 0:
            return "Item out of stock"
        if user_level < item.required_level:
            return f"Requires level {item.required_level}"
        return None

    @staticmethod
    def _expires_at(item: RewardItem) -> Optional[datetime]:
        data = _parse_item_data(item.item_data)
        if data and data.get("duration_hours"):
            return datetime.utcnow() + timedelta(hours=float(data["duration_hours"]))
        return None
