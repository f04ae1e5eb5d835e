"""
Activity reward service.
Entry points called by the food and weight logging handlers after a log
row has been committed. Points never fail the log itself: errors are
logged and an empty result is returned.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from calorie_rewards.constants import (
    ACTIVITY_FOOD,
    ACTIVITY_WEIGHT,
    REASON_FOOD_LOG,
    REASON_WEIGHT_LOG,
)
from calorie_rewards.database import atomic
from calorie_rewards.exceptions import RewardsException
from calorie_rewards.rules import DEFAULT_RULES, PointsRules, apply_multiplier
from calorie_rewards.services.achievement_service import AchievementService
from calorie_rewards.services.milestone_service import MilestoneService
from calorie_rewards.services.points_service import PointsService

logger = logging.getLogger("calorie_rewards.activity")

FIRST_LOG_ACHIEVEMENTS = {
    ACTIVITY_FOOD: ("FIRST_FOOD_LOG", "First Bite", "Logged your first food", "🍎"),
    ACTIVITY_WEIGHT: ("FIRST_WEIGHT_LOG", "Weight Tracker", "Logged your first weight", "⚖️"),
}

ACTIVITY_REASONS = {
    ACTIVITY_FOOD: REASON_FOOD_LOG,
    ACTIVITY_WEIGHT: REASON_WEIGHT_LOG,
}


class ActivityRewardService:
    """Service turning food and weight logs into points"""

    def __init__(self, db: Session, rules: PointsRules = DEFAULT_RULES):
        self.db = db
        self.rules = rules
        self.points_service = PointsService(db, rules)
        self.milestone_service = MilestoneService(db, rules, self.points_service)
        self.achievement_service = AchievementService(db, self.points_service)

    def reward_food_log(self, user_id: int, food_log_id: Optional[int] = None) -> dict:
        """Award points for a committed food log"""
        return self._reward(user_id, ACTIVITY_FOOD, food_log_id)

    def reward_weight_log(
        self,
        user_id: int,
        weight_log_id: Optional[int] = None,
        same_day: bool = True
    ) -> dict:
        """
        Award points for a committed weight log.

        Weight entries backdated to another day earn nothing.
        """
        if not same_day:
            return {"points_awarded": 0, "details": []}
        return self._reward(user_id, ACTIVITY_WEIGHT, weight_log_id)

    def _reward(self, user_id: int, activity_type: str, log_id: Optional[int]) -> dict:
        """
        Count the log, award multiplied base points and the first-log
        achievement, all in one unit of work.

        Returns:
            Dictionary with the total points_awarded and a details list
        """
        details = []
        try:
            with atomic(self.db, f"reward_{activity_type}_log"):
                milestone = self.milestone_service.record_activity(user_id, activity_type)
                if milestone["leveled_up"]:
                    details.append({
                        "reason": "milestone_level_up",
                        "points": milestone["bonus"],
                        "new_level": milestone["milestone_level"],
                        "new_multiplier": milestone["multiplier"],
                    })

                base_points = self.rules.base_points(activity_type)
                multiplier = milestone["multiplier"]
                points = apply_multiplier(base_points, multiplier)
                reason = ACTIVITY_REASONS[activity_type]
                award = self.points_service.award_points(
                    user_id,
                    points,
                    reason,
                    f"Logged {activity_type} ({multiplier}x multiplier)",
                    reason,
                    log_id,
                    {"multiplier": multiplier, "base_points": base_points}
                )
                details.append({
                    "reason": reason,
                    "points": points,
                    "base_points": base_points,
                    "multiplier": multiplier,
                })
                if award["leveled_up"]:
                    details.append({
                        "reason": "level_up",
                        "points": award["bonus"],
                        "new_level": award["new_level"],
                    })

                if milestone["new_total_logs"] == 1:
                    code, name, description, icon = FIRST_LOG_ACHIEVEMENTS[activity_type]
                    bonus = self.rules.first_log_bonus(activity_type)
                    awarded = self.achievement_service.award_achievement(
                        user_id, code, name, description, icon, bonus
                    )
                    if not awarded.get("already_awarded"):
                        details.append({"reason": code.lower(), "points": bonus})
        except RewardsException as e:
            logger.error(f"Failed to award points for {activity_type} log of user {user_id}: {e}")
            return {"points_awarded": 0, "details": []}

        return {
            "points_awarded": sum(item["points"] for item in details),
            "details": details,
        }
