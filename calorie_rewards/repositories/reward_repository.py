"""
Reward repository - Data access layer for the rewards shop.
Handles reward items and user purchases.
"""
from typing import Dict, List, Optional
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from calorie_rewards.models import RewardItem, UserPurchase


class RewardItemRepository:
    """Repository for RewardItem data access"""

    @staticmethod
    def get_active(db: Session, category: Optional[str] = None) -> List[RewardItem]:
        """Active items in display order"""
        query = db.query(RewardItem).filter(RewardItem.is_active == True)
        if category:
            query = query.filter(RewardItem.category == category)
        return query.order_by(RewardItem.display_order, RewardItem.cost_points).all()

    @staticmethod
    def get_active_by_id(db: Session, item_id: int) -> Optional[RewardItem]:
        return db.query(RewardItem).populate_existing().filter(
            RewardItem.id == item_id,
            RewardItem.is_active == True
        ).first()

    @staticmethod
    def decrement_stock(db: Session, item_id: int) -> int:
        """Take one unit from stock, only while stock remains"""
        return db.query(RewardItem).filter(
            RewardItem.id == item_id,
            RewardItem.stock_quantity > 0
        ).update({
            RewardItem.stock_quantity: RewardItem.stock_quantity - 1,
        }, synchronize_session=False)

    @staticmethod
    def create(db: Session, item: RewardItem) -> RewardItem:
        db.add(item)
        db.flush()
        return item


class UserPurchaseRepository:
    """Repository for UserPurchase data access"""

    @staticmethod
    def create(db: Session, purchase: UserPurchase) -> UserPurchase:
        db.add(purchase)
        db.flush()
        return purchase

    @staticmethod
    def count_for_item(db: Session, user_id: int, item_id: int) -> int:
        return db.query(UserPurchase).filter(
            UserPurchase.user_id == user_id,
            UserPurchase.item_id == item_id
        ).count()

    @staticmethod
    def counts_by_item(db: Session, user_id: int) -> Dict[int, int]:
        """Number of purchases per item for a user"""
        rows = db.query(
            UserPurchase.item_id,
            func.count(UserPurchase.id)
        ).filter(UserPurchase.user_id == user_id).group_by(UserPurchase.item_id).all()
        return {item_id: count for item_id, count in rows}

    @staticmethod
    def count_for_user(db: Session, user_id: int) -> int:
        return db.query(UserPurchase).filter(UserPurchase.user_id == user_id).count()

    @staticmethod
    def get_for_user(db: Session, user_id: int) -> List[tuple]:
        """(purchase, item) pairs for a user, newest first"""
        return db.query(UserPurchase, RewardItem).join(
            RewardItem, UserPurchase.item_id == RewardItem.id
        ).filter(
            UserPurchase.user_id == user_id
        ).order_by(
            UserPurchase.purchased_at.desc(),
            UserPurchase.id.desc()
        ).all()

    @staticmethod
    def get_with_item(db: Session, user_id: int, purchase_id: int) -> Optional[tuple]:
        return db.query(UserPurchase, RewardItem).join(
            RewardItem, UserPurchase.item_id == RewardItem.id
        ).filter(
            UserPurchase.id == purchase_id,
            UserPurchase.user_id == user_id
        ).first()

    @staticmethod
    def unequip_category(db: Session, user_id: int, category: str) -> int:
        """Unequip every purchase of a user in one item category"""
        item_ids = select(RewardItem.id).where(RewardItem.category == category)
        return db.query(UserPurchase).filter(
            UserPurchase.user_id == user_id,
            UserPurchase.item_id.in_(item_ids)
        ).update({UserPurchase.is_equipped: False}, synchronize_session=False)

    @staticmethod
    def equip(db: Session, purchase_id: int) -> int:
        return db.query(UserPurchase).filter(
            UserPurchase.id == purchase_id
        ).update({UserPurchase.is_equipped: True}, synchronize_session=False)
