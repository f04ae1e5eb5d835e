"""
Milestone tracking service.
Counts food and weight logs per user and derives the points multiplier
from the milestone tables. A new milestone level earns a bonus through
the points engine.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from calorie_rewards.database import atomic
from calorie_rewards.models import MILESTONE_MODELS
from calorie_rewards.repositories.milestone_repository import MilestoneRepository
from calorie_rewards.rules import (
    DEFAULT_RULES, PointsRules, find_milestone_tier, next_milestone_tier
)
from calorie_rewards.services.points_service import PointsService

logger = logging.getLogger("calorie_rewards.milestones")


class MilestoneService:
    """Service for activity milestones and multipliers"""

    def __init__(
        self,
        db: Session,
        rules: PointsRules = DEFAULT_RULES,
        points_service: Optional[PointsService] = None
    ):
        self.db = db
        self.rules = rules
        self.repo = MilestoneRepository()
        self.points_service = points_service or PointsService(db, rules)

    def record_activity(self, user_id: int, activity_type: str) -> dict:
        """
        Count one qualifying log and update the milestone level.

        When the new total reaches a higher tier, the level and multiplier
        are stored and the MILESTONE_LEVEL_UP bonus is awarded in the same
        unit of work.

        Args:
            user_id: User who logged
            activity_type: "food" or "weight"

        Returns:
            Dictionary with new_total_logs, milestone_level, multiplier,
            leveled_up and (on level-up) bonus

        Raises:
            ValidationException: for an unknown activity type
        """
        table = self.rules.milestone_table(activity_type)
        model = MILESTONE_MODELS[activity_type]

        with atomic(self.db, "record_activity"):
            self.repo.ensure(self.db, model, user_id)
            self.repo.increment(self.db, model, user_id)
            record = self.repo.get(self.db, model, user_id)

            tier = find_milestone_tier(table, record.total_logs)
            result = {
                "new_total_logs": record.total_logs,
                "milestone_level": max(tier.level, record.milestone_level),
                "multiplier": max(tier.multiplier, record.points_multiplier),
                "leveled_up": False,
            }

            if tier.level > record.milestone_level and self.repo.raise_level(
                self.db, model, user_id, tier.level, tier.multiplier
            ):
                bonus = self.rules.milestone_level_up
                self.points_service.award_points(
                    user_id,
                    bonus,
                    f"{activity_type}_milestone_level_up",
                    f"Reached {activity_type} logging Level {tier.level}! Multiplier now {tier.multiplier}x",
                    "milestone",
                    None,
                    {"type": activity_type, "level": tier.level, "multiplier": tier.multiplier}
                )
                result.update(
                    milestone_level=tier.level,
                    multiplier=tier.multiplier,
                    leveled_up=True,
                    bonus=bonus
                )
                logger.info(
                    f"User {user_id} reached {activity_type} milestone level {tier.level} "
                    f"({record.total_logs} logs)"
                )

        return result

    def get_multiplier(self, user_id: int, activity_type: str) -> dict:
        """Get total logs, level and multiplier, creating the record if needed"""
        self.rules.milestone_table(activity_type)
        model = MILESTONE_MODELS[activity_type]

        with atomic(self.db, "get_multiplier"):
            self.repo.ensure(self.db, model, user_id)
        record = self.repo.get(self.db, model, user_id)

        return {
            "total_logs": record.total_logs,
            "level": record.milestone_level,
            "multiplier": record.points_multiplier,
        }

    def get_progress(self, user_id: int, activity_type: str) -> dict:
        """Get the current milestone and how far the next tier is"""
        table = self.rules.milestone_table(activity_type)
        current = self.get_multiplier(user_id, activity_type)
        next_tier = next_milestone_tier(table, current["total_logs"])

        return {
            "activity_type": activity_type,
            "total_logs": current["total_logs"],
            "current_level": current["level"],
            "current_multiplier": current["multiplier"],
            "next_level": next_tier.level if next_tier else None,
            "next_multiplier": next_tier.multiplier if next_tier else None,
            "logs_until_next_level": next_tier.logs - current["total_logs"] if next_tier else 0,
        }
