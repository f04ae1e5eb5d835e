"""
Rewards HTTP routes.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from calorie_rewards.auth import get_current_user_id, verify_api_key
from calorie_rewards.constants import (
    ACTIVITY_FOOD,
    ACTIVITY_WEIGHT,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LEADERBOARD_LIMIT,
)
from calorie_rewards.database import get_db
from calorie_rewards.exceptions import (
    InsufficientPointsException,
    PurchaseNotAllowedException,
    PurchaseNotFoundException,
    RewardItemNotFoundException,
    ValidationException,
)
from calorie_rewards.schemas import (
    AchievementResponse,
    DailyRewardResponse,
    LeaderboardResponse,
    LedgerReportResponse,
    MilestoneProgressResponse,
    PointsSummaryResponse,
    PurchaseResponse,
    PurchaseResultResponse,
    ShopResponse,
    TransactionHistoryResponse,
)
from calorie_rewards.services.achievement_service import AchievementService
from calorie_rewards.services.ledger_service import LedgerService
from calorie_rewards.services.milestone_service import MilestoneService
from calorie_rewards.services.points_service import PointsService
from calorie_rewards.services.shop_service import ShopService

router = APIRouter(
    prefix="/api/rewards",
    tags=["rewards"],
    dependencies=[Depends(verify_api_key)]
)


@router.get("/points", response_model=PointsSummaryResponse)
def get_my_points(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get current points, level and milestones."""
    points_service = PointsService(db)
    milestone_service = MilestoneService(db, points_service=points_service)
    summary = points_service.get_user_points(user_id)
    summary["food_milestone"] = milestone_service.get_progress(user_id, ACTIVITY_FOOD)
    summary["weight_milestone"] = milestone_service.get_progress(user_id, ACTIVITY_WEIGHT)
    return summary


@router.get("/transactions", response_model=TransactionHistoryResponse)
def get_transaction_history(
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=200),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get points transaction history, newest first."""
    return PointsService(db).get_transaction_history(user_id, limit, offset)


@router.post("/daily-reward", response_model=DailyRewardResponse)
def claim_daily_reward(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Claim the daily login reward. A second claim on the same day is not an error."""
    return PointsService(db).award_daily_login(user_id)


@router.get("/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    limit: int = Query(DEFAULT_LEADERBOARD_LIMIT, ge=1, le=500),
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get the points leaderboard and the caller's rank if listed."""
    leaderboard = PointsService(db).get_leaderboard(limit)
    my_rank = next((entry for entry in leaderboard if entry["user_id"] == user_id), None)
    return {"leaderboard": leaderboard, "my_rank": my_rank}


@router.get("/milestones/{activity_type}", response_model=MilestoneProgressResponse)
def get_milestone(
    activity_type: str,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get food or weight logging milestone progress."""
    try:
        return MilestoneService(db).get_progress(user_id, activity_type)
    except ValidationException as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.get("/achievements", response_model=List[AchievementResponse])
def get_my_achievements(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get unlocked achievements, newest first."""
    return AchievementService(db).list_achievements(user_id)


@router.get("/shop", response_model=ShopResponse)
def get_shop_items(
    category: Optional[str] = None,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get active shop items with purchase eligibility."""
    return ShopService(db).list_items(user_id, category)


@router.post("/shop/{item_id}/purchase", response_model=PurchaseResultResponse)
def purchase_item(
    item_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Buy a shop item with points."""
    try:
        return ShopService(db).purchase_item(user_id, item_id)
    except RewardItemNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PurchaseNotAllowedException as e:
        raise HTTPException(status_code=400, detail=e.reason)
    except InsufficientPointsException as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Insufficient points", "required": e.required, "current": e.available}
        )


@router.get("/purchases", response_model=List[PurchaseResponse])
def get_my_purchases(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Get purchased items, newest first."""
    return ShopService(db).list_purchases(user_id)


@router.post("/purchases/{purchase_id}/equip")
def equip_item(
    purchase_id: int,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Equip a purchased item."""
    try:
        purchase = ShopService(db).equip_item(user_id, purchase_id)
    except PurchaseNotFoundException as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"id": purchase.id, "is_equipped": purchase.is_equipped}


@router.get("/ledger/verify", response_model=LedgerReportResponse)
def verify_my_ledger(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db)
):
    """Check that the balance matches the transaction ledger."""
    return LedgerService(db).verify_user(user_id)
