"""
Milestone repository - Data access layer for food and weight milestones.
The milestone model (FoodMilestone or WeightMilestone) is passed in by the caller.
"""
from typing import Optional
from sqlalchemy.orm import Session

from calorie_rewards.database import insert_ignore


class MilestoneRepository:
    """Repository for per-activity milestone rows"""

    @staticmethod
    def ensure(db: Session, model, user_id: int) -> bool:
        """Create the milestone row at zero logs unless one exists"""
        created = insert_ignore(db, model, {
            "user_id": user_id,
            "total_logs": 0,
            "milestone_level": 1,
            "points_multiplier": 1.0,
        })
        return created > 0

    @staticmethod
    def get(db: Session, model, user_id: int) -> Optional[object]:
        return db.query(model).populate_existing().filter(
            model.user_id == user_id
        ).first()

    @staticmethod
    def increment(db: Session, model, user_id: int) -> int:
        """Count one more log"""
        return db.query(model).filter(model.user_id == user_id).update({
            model.total_logs: model.total_logs + 1,
        }, synchronize_session=False)

    @staticmethod
    def raise_level(db: Session, model, user_id: int, level: int, multiplier: float) -> int:
        """Store a higher milestone level, only if the stored level is lower"""
        return db.query(model).filter(
            model.user_id == user_id,
            model.milestone_level < level
        ).update({
            model.milestone_level: level,
            model.points_multiplier: multiplier,
        }, synchronize_session=False)
