"""
Points engine.
The single writer of point balances and the transaction ledger: awards,
spends, level-ups and the daily login reward all go through this service.
"""
import json
import logging
from datetime import date
from typing import Optional, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from calorie_rewards.constants import (
    DAY_START_TIME,
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_LEADERBOARD_LIMIT,
    REASON_DAILY_LOGIN,
    REASON_LEVEL_UP,
    TRANSACTION_TYPE_EARN,
    TRANSACTION_TYPE_SPEND,
)
from calorie_rewards.database import atomic
from calorie_rewards.exceptions import InsufficientPointsException, ValidationException
from calorie_rewards.models import PointTransaction, UserPoints
from calorie_rewards.repositories.achievement_repository import AchievementRepository
from calorie_rewards.repositories.points_repository import (
    PointTransactionRepository, UserPointsRepository
)
from calorie_rewards.repositories.reward_repository import UserPurchaseRepository
from calorie_rewards.rules import DEFAULT_RULES, PointsRules
from calorie_rewards.services.date_service import DateService

logger = logging.getLogger("calorie_rewards.points")


class PointsService:
    """Service for point balances and the transaction ledger"""

    def __init__(self, db: Session, rules: PointsRules = DEFAULT_RULES):
        self.db = db
        self.rules = rules
        self.account_repo = UserPointsRepository()
        self.transaction_repo = PointTransactionRepository()
        self.achievement_repo = AchievementRepository()
        self.purchase_repo = UserPurchaseRepository()
        self.date_service = DateService()

    # ===== MUTATIONS =====

    def award_points(
        self,
        user_id: int,
        points: int,
        reason: str,
        description: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        metadata: Optional[dict] = None
    ) -> dict:
        """
        Credit points to a user and record an earn transaction.

        The account is created on first use. If the new lifetime total
        reaches a higher level, the level-up bonus is applied in the same
        unit of work. Zero points still append a zero-value transaction.

        Returns:
            Dictionary with transaction_id, points_awarded and level-up info

        Raises:
            ValidationException: if points is not a non-negative integer
            StorageUnavailableException: if the unit of work fails
        """
        if isinstance(points, bool) or not isinstance(points, int) or points < 0:
            raise ValidationException("points", f"must be a non-negative integer, got {points!r}")

        with atomic(self.db, "award_points"):
            self.account_repo.ensure(self.db, user_id)
            self.account_repo.credit(self.db, user_id, points)
            transaction = self._record(
                user_id, points, TRANSACTION_TYPE_EARN, reason,
                description, reference_type, reference_id, metadata
            )
            result = {
                "transaction_id": transaction.id,
                "points_awarded": points,
                "leveled_up": False,
            }
            level_up = self._check_level_up(user_id)
            if level_up:
                result.update(leveled_up=True, **level_up)

        logger.info(f"Awarded {points} points to user {user_id} ({reason})")
        return result

    def spend_points(
        self,
        user_id: int,
        points: int,
        reason: str,
        description: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None
    ) -> dict:
        """
        Debit points from a user's balance.

        The balance check and the debit are one conditional UPDATE, so two
        concurrent spends cannot both pass a balance that covers only one.

        Returns:
            Dictionary with transaction_id, points_spent and remaining_points

        Raises:
            ValidationException: if points is not a positive integer
            InsufficientPointsException: if the balance does not cover points
            StorageUnavailableException: if the unit of work fails
        """
        if isinstance(points, bool) or not isinstance(points, int) or points <= 0:
            raise ValidationException("points", f"must be a positive integer, got {points!r}")

        with atomic(self.db, "spend_points"):
            if not self.account_repo.debit_if_affordable(self.db, user_id, points):
                account = self.account_repo.get(self.db, user_id)
                available = account.current_points if account else 0
                raise InsufficientPointsException(user_id, points, available)

            transaction = self._record(
                user_id, -points, TRANSACTION_TYPE_SPEND, reason,
                description, reference_type, reference_id
            )
            account = self.account_repo.get(self.db, user_id)
            result = {
                "transaction_id": transaction.id,
                "points_spent": points,
                "remaining_points": account.current_points,
            }

        logger.info(f"User {user_id} spent {points} points ({reason})")
        return result

    def award_daily_login(self, user_id: int, today: Optional[date] = None) -> dict:
        """
        Award the daily login bonus once per effective day.

        The claim marker and the award share one unit of work; a second
        call on the same day matches no row and changes nothing.

        Args:
            user_id: User logging in
            today: Caller's local date (defaults to the effective date)

        Returns:
            {"already_claimed": True, ...} or the award result with already_claimed False
        """
        today = today or self.date_service.get_effective_date(DAY_START_TIME)

        with atomic(self.db, "award_daily_login"):
            self.account_repo.ensure(self.db, user_id)
            if not self.account_repo.claim_daily_reward(self.db, user_id, today):
                return {"already_claimed": True, "points_awarded": 0, "reward_date": today}

            result = self.award_points(
                user_id,
                self.rules.daily_login,
                REASON_DAILY_LOGIN,
                "Daily login reward",
                REASON_DAILY_LOGIN,
                None,
                {"date": today.isoformat()}
            )

        result.update(already_claimed=False, reward_date=today)
        return result

    def _check_level_up(self, user_id: int) -> Optional[dict]:
        """
        Apply the level-up bonus if lifetime points reached a higher level.

        The bonus itself is not checked for a further level-up, so a single
        award moves the user at most one transition.
        """
        account = self.account_repo.get_for_update(self.db, user_id)
        if not account:
            return None

        new_level = self.rules.calculate_level(account.lifetime_points)
        if new_level <= account.level:
            return None

        bonus = self.rules.milestone_level_up
        if not self.account_repo.raise_level(self.db, user_id, new_level, bonus):
            # Another request already recorded this level
            return None

        self._record(
            user_id, bonus, TRANSACTION_TYPE_EARN, REASON_LEVEL_UP,
            f"Leveled up to Level {new_level}!",
            metadata={"previous_level": account.level, "level": new_level}
        )
        logger.info(f"User {user_id} leveled up {account.level} -> {new_level}, bonus {bonus}")
        return {"new_level": new_level, "bonus": bonus}

    def _record(
        self,
        user_id: int,
        points: int,
        transaction_type: str,
        reason: str,
        description: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[int] = None,
        metadata: Optional[dict] = None
    ) -> PointTransaction:
        transaction = PointTransaction(
            user_id=user_id,
            points=points,
            transaction_type=transaction_type,
            reason=reason,
            description=description,
            reference_type=reference_type,
            reference_id=reference_id,
            details=json.dumps(metadata) if metadata is not None else None
        )
        return self.transaction_repo.create(self.db, transaction)

    # ===== QUERIES =====

    def get_account(self, user_id: int) -> UserPoints:
        """Get the balance row, creating it with zero values if absent"""
        with atomic(self.db, "get_account"):
            self.account_repo.ensure(self.db, user_id)
        return self.account_repo.get(self.db, user_id)

    def get_user_points(self, user_id: int) -> dict:
        """Get the user's balance, level and related counts"""
        account = self.get_account(user_id)
        return {
            "user_id": account.user_id,
            "current_points": account.current_points,
            "lifetime_points": account.lifetime_points,
            "points_spent": account.points_spent,
            "level": account.level,
            "next_level_points": self.rules.next_level_threshold(account.level),
            "level_progress": self.rules.level_progress(account.lifetime_points),
            "last_activity_date": account.last_activity_date,
            "last_daily_reward_date": account.last_daily_reward_date,
            "achievements_count": self.achievement_repo.count_for_user(self.db, user_id),
            "items_owned": self.purchase_repo.count_for_user(self.db, user_id),
        }

    def get_transaction_history(
        self,
        user_id: int,
        limit: int = DEFAULT_HISTORY_LIMIT,
        offset: int = 0
    ) -> dict:
        """
        Get the user's ledger, newest first, with pagination info.

        Storage failures are logged and an empty page is returned.
        """
        try:
            transactions = self.transaction_repo.get_for_user(self.db, user_id, limit, offset)
            total = self.transaction_repo.count_for_user(self.db, user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load transaction history for user {user_id}: {e}")
            transactions, total = [], 0

        return {
            "transactions": [self._serialize_transaction(t) for t in transactions],
            "pagination": {
                "limit": limit,
                "offset": offset,
                "total": total,
                "has_more": offset + limit < total,
            },
        }

    def get_leaderboard(self, limit: int = DEFAULT_LEADERBOARD_LIMIT) -> List[dict]:
        """
        Get accounts ranked by lifetime points.

        Storage failures are logged and an empty leaderboard is returned.
        """
        try:
            accounts = self.account_repo.get_leaderboard(self.db, limit)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load leaderboard: {e}")
            return []

        return [
            {
                "rank": rank,
                "user_id": account.user_id,
                "level": account.level,
                "lifetime_points": account.lifetime_points,
                "current_points": account.current_points,
            }
            for rank, account in enumerate(accounts, start=1)
        ]

    @staticmethod
    def _serialize_transaction(transaction: PointTransaction) -> dict:
        metadata = None
        if transaction.details:
            try:
                metadata = json.loads(transaction.details)
            except json.JSONDecodeError:
                metadata = None

        return {
            "id": transaction.id,
            "points": transaction.points,
            "transaction_type": transaction.transaction_type,
            "reason": transaction.reason,
            "description": transaction.description,
            "reference_type": transaction.reference_type,
            "reference_id": transaction.reference_id,
            "metadata": metadata,
            "created_at": transaction.created_at,
        }
