"""
Achievement repository - Data access layer for unlocked achievements.
"""
from typing import List, Optional
from sqlalchemy.orm import Session

from calorie_rewards.database import insert_ignore
from calorie_rewards.models import UserAchievement


class AchievementRepository:
    """Repository for UserAchievement data access"""

    @staticmethod
    def insert_if_absent(
        db: Session,
        user_id: int,
        code: str,
        name: str,
        description: Optional[str],
        icon: Optional[str],
        points_awarded: int
    ) -> bool:
        """
        Insert an achievement unless the user already has it.

        Returns:
            True if a new row was inserted
        """
        inserted = insert_ignore(db, UserAchievement, {
            "user_id": user_id,
            "achievement_code": code,
            "achievement_name": name,
            "achievement_description": description,
            "achievement_icon": icon,
            "points_awarded": points_awarded,
        })
        return inserted > 0

    @staticmethod
    def get_by_code(db: Session, user_id: int, code: str) -> Optional[UserAchievement]:
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_code == code
        ).first()

    @staticmethod
    def get_all_for_user(db: Session, user_id: int) -> List[UserAchievement]:
        """Achievements for a user, newest first"""
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id
        ).order_by(
            UserAchievement.unlocked_at.desc(),
            UserAchievement.id.desc()
        ).all()

    @staticmethod
    def count_for_user(db: Session, user_id: int) -> int:
        return db.query(UserAchievement).filter(
            UserAchievement.user_id == user_id
        ).count()
