"""
Ledger audit service.
Checks that every balance row can be rebuilt from its transactions.
Read-only: inconsistencies are reported, never corrected.
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from calorie_rewards.models import UserPoints
from calorie_rewards.repositories.points_repository import (
    PointTransactionRepository, UserPointsRepository
)

logger = logging.getLogger("calorie_rewards.ledger")


class LedgerService:
    """Service for ledger consistency checks"""

    def __init__(self, db: Session):
        self.db = db
        self.account_repo = UserPointsRepository()
        self.transaction_repo = PointTransactionRepository()

    def verify_user(self, user_id: int) -> dict:
        """
        Compare a user's ledger total with the balance row.

        Returns:
            Dictionary with ledger_total, expected_total, current_points
            and a consistent flag
        """
        account = self.account_repo.get(self.db, user_id)
        ledger_total = self.transaction_repo.sum_for_user(self.db, user_id)
        return self._check(user_id, account, ledger_total)

    def audit_all(self) -> List[dict]:
        """
        Verify every account.

        Returns:
            Reports for the inconsistent accounts only
        """
        sums = self.transaction_repo.sums_by_user(self.db)
        accounts = {account.user_id: account for account in self.account_repo.get_all(self.db)}

        problems = []
        for user_id in sorted(set(accounts) | set(sums)):
            report = self._check(user_id, accounts.get(user_id), sums.get(user_id, 0))
            if not report["consistent"]:
                logger.warning(
                    f"Ledger mismatch for user {user_id}: ledger={report['ledger_total']} "
                    f"expected={report['expected_total']} current={report['current_points']}"
                )
                problems.append(report)

        logger.info(f"Ledger audit checked {len(accounts)} accounts, {len(problems)} inconsistent")
        return problems

    @staticmethod
    def _check(user_id: int, account: UserPoints, ledger_total: int) -> dict:
        if account is None:
            expected_total = 0
            current_points = 0
        else:
            expected_total = account.lifetime_points - account.points_spent
            current_points = account.current_points

        return {
            "user_id": user_id,
            "ledger_total": ledger_total,
            "expected_total": expected_total,
            "current_points": current_points,
            "consistent": ledger_total == expected_total == current_points,
        }
