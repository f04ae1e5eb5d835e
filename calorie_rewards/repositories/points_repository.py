"""
Points repository - Data access layer for point balances and the ledger.
Balance changes are issued as single UPDATE statements so that concurrent
requests for the same user cannot lose updates.
"""
from datetime import date
from typing import Dict, List, Optional
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from calorie_rewards.database import insert_ignore
from calorie_rewards.models import PointTransaction, UserPoints


class UserPointsRepository:
    """Repository for UserPoints data access"""

    @staticmethod
    def ensure(db: Session, user_id: int) -> bool:
        """Create a zero balance row unless one exists. Returns True if created."""
        created = insert_ignore(db, UserPoints, {
            "user_id": user_id,
            "current_points": 0,
            "lifetime_points": 0,
            "points_spent": 0,
            "level": 1,
        })
        return created > 0

    @staticmethod
    def get(db: Session, user_id: int) -> Optional[UserPoints]:
        """Get the balance row, refreshed from the database"""
        return db.query(UserPoints).populate_existing().filter(
            UserPoints.user_id == user_id
        ).first()

    @staticmethod
    def get_for_update(db: Session, user_id: int) -> Optional[UserPoints]:
        """Get the balance row and lock it until the end of the transaction"""
        return db.query(UserPoints).populate_existing().filter(
            UserPoints.user_id == user_id
        ).with_for_update().first()

    @staticmethod
    def credit(db: Session, user_id: int, points: int) -> int:
        """Add points to current and lifetime totals"""
        return db.query(UserPoints).filter(UserPoints.user_id == user_id).update({
            UserPoints.current_points: UserPoints.current_points + points,
            UserPoints.lifetime_points: UserPoints.lifetime_points + points,
        }, synchronize_session=False)

    @staticmethod
    def debit_if_affordable(db: Session, user_id: int, points: int) -> int:
        """
        Move points from current to spent if the balance covers them.

        Returns:
            1 if the debit was applied, 0 if the balance was too low
        """
        return db.query(UserPoints).filter(
            UserPoints.user_id == user_id,
            UserPoints.current_points >= points
        ).update({
            UserPoints.current_points: UserPoints.current_points - points,
            UserPoints.points_spent: UserPoints.points_spent + points,
        }, synchronize_session=False)

    @staticmethod
    def raise_level(db: Session, user_id: int, new_level: int, bonus: int) -> int:
        """Set a higher level and credit the bonus, only if the stored level is lower"""
        return db.query(UserPoints).filter(
            UserPoints.user_id == user_id,
            UserPoints.level < new_level
        ).update({
            UserPoints.level: new_level,
            UserPoints.current_points: UserPoints.current_points + bonus,
            UserPoints.lifetime_points: UserPoints.lifetime_points + bonus,
        }, synchronize_session=False)

    @staticmethod
    def claim_daily_reward(db: Session, user_id: int, today: date) -> int:
        """Mark today's daily reward as claimed unless it already is"""
        return db.query(UserPoints).filter(
            UserPoints.user_id == user_id,
            or_(
                UserPoints.last_daily_reward_date.is_(None),
                UserPoints.last_daily_reward_date != today
            )
        ).update({
            UserPoints.last_activity_date: today,
            UserPoints.last_daily_reward_date: today,
        }, synchronize_session=False)

    @staticmethod
    def get_leaderboard(db: Session, limit: int) -> List[UserPoints]:
        """Top accounts by lifetime points"""
        return db.query(UserPoints).order_by(
            UserPoints.lifetime_points.desc(),
            UserPoints.level.desc(),
            UserPoints.id
        ).limit(limit).all()

    @staticmethod
    def get_all(db: Session) -> List[UserPoints]:
        return db.query(UserPoints).order_by(UserPoints.user_id).all()


class PointTransactionRepository:
    """Repository for PointTransaction data access (append-only)"""

    @staticmethod
    def create(db: Session, transaction: PointTransaction) -> PointTransaction:
        """Append a ledger entry; flushed so the id is available"""
        db.add(transaction)
        db.flush()
        return transaction

    @staticmethod
    def get_for_user(db: Session, user_id: int, limit: int, offset: int) -> List[PointTransaction]:
        """Ledger entries for a user, newest first"""
        return db.query(PointTransaction).filter(
            PointTransaction.user_id == user_id
        ).order_by(
            PointTransaction.created_at.desc(),
            PointTransaction.id.desc()
        ).offset(offset).limit(limit).all()

    @staticmethod
    def count_for_user(db: Session, user_id: int) -> int:
        return db.query(PointTransaction).filter(
            PointTransaction.user_id == user_id
        ).count()

    @staticmethod
    def sum_for_user(db: Session, user_id: int) -> int:
        total = db.query(func.coalesce(func.sum(PointTransaction.points), 0)).filter(
            PointTransaction.user_id == user_id
        ).scalar()
        return int(total)

    @staticmethod
    def sums_by_user(db: Session) -> Dict[int, int]:
        """Ledger totals for every user that has transactions"""
        rows = db.query(
            PointTransaction.user_id,
            func.sum(PointTransaction.points)
        ).group_by(PointTransaction.user_id).all()
        return {user_id: int(total) for user_id, total in rows}
