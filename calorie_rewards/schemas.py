from pydantic import BaseModel
from datetime import datetime, date
from typing import Any, Dict, List, Optional


# Points schemas
class PointsSummaryResponse(BaseModel):
    user_id: int
    current_points: int
    lifetime_points: int
    points_spent: int
    level: int
    next_level_points: Optional[int] = None  # None at the top level
    level_progress: float
    last_activity_date: Optional[date] = None
    last_daily_reward_date: Optional[date] = None
    achievements_count: int = 0
    items_owned: int = 0
    food_milestone: Optional["MilestoneProgressResponse"] = None
    weight_milestone: Optional["MilestoneProgressResponse"] = None


class TransactionResponse(BaseModel):
    id: int
    points: int
    transaction_type: str
    reason: str
    description: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class PaginationResponse(BaseModel):
    limit: int
    offset: int
    total: int
    has_more: bool


class TransactionHistoryResponse(BaseModel):
    transactions: List[TransactionResponse]
    pagination: PaginationResponse


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: int
    level: int
    lifetime_points: int
    current_points: int


class LeaderboardResponse(BaseModel):
    leaderboard: List[LeaderboardEntry]
    my_rank: Optional[LeaderboardEntry] = None


class DailyRewardResponse(BaseModel):
    already_claimed: bool
    points_awarded: int = 0
    reward_date: date
    leveled_up: bool = False
    new_level: Optional[int] = None


# Milestone schemas
class MilestoneProgressResponse(BaseModel):
    activity_type: str
    total_logs: int
    current_level: int
    current_multiplier: float
    next_level: Optional[int] = None
    next_multiplier: Optional[float] = None
    logs_until_next_level: int = 0


# Achievement schemas
class AchievementResponse(BaseModel):
    achievement_code: str
    achievement_name: str
    achievement_description: Optional[str] = None
    achievement_icon: Optional[str] = None
    points_awarded: int = 0
    unlocked_at: datetime

    class Config:
        from_attributes = True


# Shop schemas
class ShopItemResponse(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    category: str
    cost_points: int
    item_data: Optional[Dict[str, Any]] = None
    is_limited_edition: bool = False
    stock_quantity: Optional[int] = None
    purchase_limit: Optional[int] = None
    required_level: int = 1
    user_purchase_count: int = 0
    can_purchase: bool
    already_owned: bool


class ShopResponse(BaseModel):
    items: List[ShopItemResponse]
    user_level: int


class PurchaseResultResponse(BaseModel):
    purchase_id: int
    item: Dict[str, Any]
    points_spent: int
    remaining_points: int


class PurchaseResponse(BaseModel):
    id: int
    item_id: int
    name: str
    description: Optional[str] = None
    category: str
    item_data: Optional[Dict[str, Any]] = None
    points_paid: int
    purchased_at: datetime
    is_active: bool
    is_equipped: bool
    expires_at: Optional[datetime] = None
    is_expired: bool


class LedgerReportResponse(BaseModel):
    user_id: int
    ledger_total: int
    expected_total: int
    current_points: int
    consistent: bool


PointsSummaryResponse.model_rebuild()
