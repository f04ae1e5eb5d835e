"""
Reward rules - immutable configuration for the points engine.
Holds reward amounts, level thresholds and milestone tables, plus the
pure calculations over them.
"""
import math
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from calorie_rewards.constants import (
    ACTIVITY_FOOD,
    ACTIVITY_TYPES,
    ACTIVITY_WEIGHT,
    FOOD_MILESTONE_THRESHOLDS,
    LEVEL_THRESHOLDS,
    POINT_REWARDS,
    WEIGHT_MILESTONE_THRESHOLDS,
)
from calorie_rewards.exceptions import ValidationException


class MilestoneTier(BaseModel):
    """One row of a milestone table"""
    logs: int = Field(..., ge=0)
    level: int = Field(..., ge=1)
    multiplier: float = Field(..., ge=1.0)

    class Config:
        frozen = True


class PointsRules(BaseModel):
    """Reward amounts and threshold tables used by the services"""
    daily_login: int = Field(default=POINT_REWARDS["DAILY_LOGIN"], ge=0)
    food_log: int = Field(default=POINT_REWARDS["FOOD_LOG"], ge=0)
    weight_log: int = Field(default=POINT_REWARDS["WEIGHT_LOG"], ge=0)
    first_food_log: int = Field(default=POINT_REWARDS["FIRST_FOOD_LOG"], ge=0)
    first_weight_log: int = Field(default=POINT_REWARDS["FIRST_WEIGHT_LOG"], ge=0)
    milestone_level_up: int = Field(default=POINT_REWARDS["MILESTONE_LEVEL_UP"], ge=0)

    level_thresholds: Tuple[int, ...] = tuple(LEVEL_THRESHOLDS)
    food_milestones: Tuple[MilestoneTier, ...] = tuple(
        MilestoneTier(logs=logs, level=level, multiplier=mult)
        for logs, level, mult in FOOD_MILESTONE_THRESHOLDS
    )
    weight_milestones: Tuple[MilestoneTier, ...] = tuple(
        MilestoneTier(logs=logs, level=level, multiplier=mult)
        for logs, level, mult in WEIGHT_MILESTONE_THRESHOLDS
    )

    class Config:
        frozen = True

    @property
    def max_level(self) -> int:
        return len(self.level_thresholds)

    def milestone_table(self, activity_type: str) -> Tuple[MilestoneTier, ...]:
        """Milestone table for an activity type"""
        if activity_type == ACTIVITY_FOOD:
            return self.food_milestones
        if activity_type == ACTIVITY_WEIGHT:
            return self.weight_milestones
        raise ValidationException(
            "activity_type", f"must be one of {', '.join(ACTIVITY_TYPES)}, got {activity_type!r}"
        )

    def base_points(self, activity_type: str) -> int:
        self.milestone_table(activity_type)
        return self.food_log if activity_type == ACTIVITY_FOOD else self.weight_log

    def first_log_bonus(self, activity_type: str) -> int:
        self.milestone_table(activity_type)
        return self.first_food_log if activity_type == ACTIVITY_FOOD else self.first_weight_log

    def calculate_level(self, lifetime_points: int) -> int:
        """
        Calculate level from lifetime points.

        Scans the thresholds from the top and returns the highest level
        whose threshold is reached. Never returns less than 1.
        """
        for level in range(len(self.level_thresholds), 0, -1):
            if lifetime_points >= self.level_thresholds[level - 1]:
                return level
        return 1

    def next_level_threshold(self, level: int) -> Optional[int]:
        """Lifetime points needed for the level after `level` (None at the top)"""
        if level >= self.max_level:
            return None
        return self.level_thresholds[level]

    def level_progress(self, lifetime_points: int) -> float:
        """Percentage progress from the current level threshold to the next one"""
        level = self.calculate_level(lifetime_points)
        next_threshold = self.next_level_threshold(level)
        if next_threshold is None:
            return 100.0
        current_threshold = self.level_thresholds[level - 1]
        span = next_threshold - current_threshold
        return round((lifetime_points - current_threshold) / span * 100, 1)


def find_milestone_tier(table: Tuple[MilestoneTier, ...], total_logs: int) -> MilestoneTier:
    """Highest tier whose log threshold is reached, scanning from the top"""
    for tier in reversed(table):
        if total_logs >= tier.logs:
            return tier
    return table[0]


def next_milestone_tier(table: Tuple[MilestoneTier, ...], total_logs: int) -> Optional[MilestoneTier]:
    """First tier not reached yet (None at the top tier)"""
    for tier in table:
        if tier.logs > total_logs:
            return tier
    return None


def apply_multiplier(base_points: int, multiplier: float) -> int:
    """Scale base points by a milestone multiplier, rounding half up"""
    return int(math.floor(base_points * multiplier + 0.5))


def validate_rules(rules: PointsRules) -> PointsRules:
    """
    Check threshold tables for consistency.

    Raises:
        ValidationException: if a table is empty, does not start at zero,
            is not ascending, or its levels/multipliers decrease
    """
    thresholds: List[int] = list(rules.level_thresholds)
    if not thresholds or thresholds[0] != 0:
        raise ValidationException("level_thresholds", "must start at 0")
    if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
        raise ValidationException("level_thresholds", "must be strictly ascending")

    tables: Dict[str, Tuple[MilestoneTier, ...]] = {
        activity: rules.milestone_table(activity) for activity in ACTIVITY_TYPES
    }
    for activity, table in tables.items():
        field = f"{activity}_milestones"
        if not table or table[0].logs != 0:
            raise ValidationException(field, "must start at 0 logs")
        for prev, tier in zip(table, table[1:]):
            if tier.logs <= prev.logs:
                raise ValidationException(field, "log thresholds must be strictly ascending")
            if tier.level < prev.level or tier.multiplier < prev.multiplier:
                raise ValidationException(field, "levels and multipliers must not decrease")
    return rules


DEFAULT_RULES = validate_rules(PointsRules())
