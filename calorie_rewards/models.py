from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Float, Date, Index, UniqueConstraint
)
from datetime import datetime
from calorie_rewards.database import Base


class UserPoints(Base):
    __tablename__ = "user_points"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)

    # Balance (current_points = lifetime_points - points_spent)
    current_points = Column(Integer, nullable=False, default=0)
    lifetime_points = Column(Integer, nullable=False, default=0)  # Basis for level
    points_spent = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)

    # Daily reward idempotency
    last_activity_date = Column(Date, nullable=True)
    last_daily_reward_date = Column(Date, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class PointTransaction(Base):
    __tablename__ = "point_transactions"
    __table_args__ = (
        Index("ix_point_transactions_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False)  # Negative for spend
    transaction_type = Column(String(10), nullable=False)  # earn, spend
    reason = Column(String(50), nullable=False)
    description = Column(String(255), nullable=True)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(Integer, nullable=True)
    details = Column("metadata", String, nullable=True)  # JSON

    created_at = Column(DateTime, default=datetime.utcnow)


class MilestoneMixin:
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, unique=True, index=True)
    total_logs = Column(Integer, nullable=False, default=0)
    milestone_level = Column(Integer, nullable=False, default=1)
    points_multiplier = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class FoodMilestone(MilestoneMixin, Base):
    __tablename__ = "user_food_milestones"


class WeightMilestone(MilestoneMixin, Base):
    __tablename__ = "user_weight_milestones"


class UserAchievement(Base):
    __tablename__ = "user_achievements"
    __table_args__ = (
        UniqueConstraint("user_id", "achievement_code", name="uq_user_achievement"),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    achievement_code = Column(String(50), nullable=False)
    achievement_name = Column(String(100), nullable=False)
    achievement_description = Column(String(255), nullable=True)
    achievement_icon = Column(String(20), nullable=True)
    points_awarded = Column(Integer, default=0)
    unlocked_at = Column(DateTime, default=datetime.utcnow)


class RewardItem(Base):
    __tablename__ = "reward_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    category = Column(String(30), nullable=False)  # theme, avatar, badge, boost
    cost_points = Column(Integer, nullable=False)
    item_data = Column(String, nullable=True)  # JSON, e.g. {"duration_hours": 24}
    is_limited_edition = Column(Boolean, default=False)
    stock_quantity = Column(Integer, nullable=True)  # None = unlimited
    purchase_limit = Column(Integer, nullable=True)  # None = unlimited
    required_level = Column(Integer, default=1)
    is_active = Column(Boolean, default=True)
    display_order = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow)


class UserPurchase(Base):
    __tablename__ = "user_purchases"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    item_id = Column(Integer, nullable=False, index=True)
    points_paid = Column(Integer, nullable=False)
    purchased_at = Column(DateTime, default=datetime.utcnow)
    is_active = Column(Boolean, default=True)
    is_equipped = Column(Boolean, default=False)
    expires_at = Column(DateTime, nullable=True)


MILESTONE_MODELS = {
    "food": FoodMilestone,
    "weight": WeightMilestone,
}
