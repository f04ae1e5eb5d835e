"""
Achievement service.
Unlocks one-time achievements and credits their points exactly once.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from calorie_rewards.constants import REASON_ACHIEVEMENT
from calorie_rewards.database import atomic
from calorie_rewards.exceptions import ValidationException
from calorie_rewards.models import UserAchievement
from calorie_rewards.repositories.achievement_repository import AchievementRepository
from calorie_rewards.services.points_service import PointsService

logger = logging.getLogger("calorie_rewards.achievements")

DEFAULT_ICON = "🏆"


class AchievementService:
    """Service for user achievements"""

    def __init__(self, db: Session, points_service: Optional[PointsService] = None):
        self.db = db
        self.repo = AchievementRepository()
        self.points_service = points_service or PointsService(db)

    def award_achievement(
        self,
        user_id: int,
        code: str,
        name: str,
        description: Optional[str] = None,
        icon: str = DEFAULT_ICON,
        points_awarded: int = 0
    ) -> dict:
        """
        Unlock an achievement for a user.

        The insert is skipped when the user already holds the code, so
        repeated or concurrent calls credit the points at most once.

        Returns:
            {"already_awarded": True} or {"success": True, "achievement": {...}}
        """
        if not code:
            raise ValidationException("code", "must not be empty")

        with atomic(self.db, "award_achievement"):
            inserted = self.repo.insert_if_absent(
                self.db, user_id, code, name, description, icon, points_awarded
            )
            if not inserted:
                return {"already_awarded": True}

            if points_awarded > 0:
                self.points_service.award_points(
                    user_id,
                    points_awarded,
                    REASON_ACHIEVEMENT,
                    f"Achievement unlocked: {name}",
                    REASON_ACHIEVEMENT,
                    None,
                    {"code": code}
                )

        logger.info(f"User {user_id} unlocked achievement {code}")
        return {
            "success": True,
            "already_awarded": False,
            "achievement": {
                "code": code,
                "name": name,
                "description": description,
                "icon": icon,
                "points_awarded": points_awarded,
            },
        }

    def list_achievements(self, user_id: int) -> List[UserAchievement]:
        """Get a user's achievements, newest first"""
        return self.repo.get_all_for_user(self.db, user_id)
