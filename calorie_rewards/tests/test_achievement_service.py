"""
Tests for AchievementService.
"""
import pytest
from sqlalchemy.exc import OperationalError

from calorie_rewards.exceptions import StorageUnavailableException, ValidationException
from calorie_rewards.models import PointTransaction, UserAchievement
from calorie_rewards.repositories.points_repository import PointTransactionRepository
from calorie_rewards.services.achievement_service import AchievementService
from calorie_rewards.services.points_service import PointsService


class TestAwardAchievement:
    """Tests for award_achievement"""

    def test_unlock_credits_points(self, db_session):
        """First unlock stores the achievement and awards its points"""
        service = AchievementService(db_session)
        result = service.award_achievement(
            1, "FIRST_FOOD_LOG", "First Bite", "Logged your first food", "🍎", 500
        )

        assert result["success"] is True
        assert result["already_awarded"] is False
        assert result["achievement"]["code"] == "FIRST_FOOD_LOG"
        assert result["achievement"]["points_awarded"] == 500
        assert PointsService(db_session).get_account(1).current_points == 500

        transaction = db_session.query(PointTransaction).one()
        assert transaction.reason == "achievement"
        assert transaction.description == "Achievement unlocked: First Bite"

    def test_second_unlock_is_ignored(self, db_session):
        """Awarding the same code twice credits the points once"""
        service = AchievementService(db_session)
        service.award_achievement(1, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)

        result = service.award_achievement(1, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)

        assert result == {"already_awarded": True}
        assert PointsService(db_session).get_account(1).current_points == 500
        assert db_session.query(UserAchievement).count() == 1
        assert db_session.query(PointTransaction).count() == 1

    def test_same_code_for_different_users(self, db_session):
        service = AchievementService(db_session)
        service.award_achievement(1, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)

        result = service.award_achievement(2, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)

        assert result["success"] is True
        assert PointsService(db_session).get_account(2).current_points == 500

    def test_zero_point_achievement(self, db_session):
        """Achievements without points do not touch the ledger"""
        service = AchievementService(db_session)
        result = service.award_achievement(1, "EARLY_BIRD", "Early Bird")

        assert result["success"] is True
        assert result["achievement"]["icon"] == "🏆"
        assert db_session.query(PointTransaction).count() == 0

    def test_failed_credit_rolls_back_unlock(self, db_session, monkeypatch):
        """The achievement row is kept only if its points are recorded"""
        def fail(*args, **kwargs):
            raise OperationalError("INSERT INTO point_transactions", {}, Exception("disk I/O error"))

        service = AchievementService(db_session)
        monkeypatch.setattr(PointTransactionRepository, "create", staticmethod(fail))

        with pytest.raises(StorageUnavailableException):
            service.award_achievement(1, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)

        monkeypatch.undo()
        assert db_session.query(UserAchievement).count() == 0
        assert PointsService(db_session).get_account(1).current_points == 0

        result = service.award_achievement(1, "FIRST_FOOD_LOG", "First Bite", points_awarded=500)
        assert result["success"] is True
        assert PointsService(db_session).get_account(1).current_points == 500

    def test_empty_code_rejected(self, db_session):
        service = AchievementService(db_session)

        with pytest.raises(ValidationException):
            service.award_achievement(1, "", "Nameless")


class TestListAchievements:
    """Tests for list_achievements"""

    def test_lists_only_own_achievements(self, db_session):
        service = AchievementService(db_session)
        service.award_achievement(1, "A", "First")
        service.award_achievement(1, "B", "Second")
        service.award_achievement(2, "C", "Other")

        achievements = service.list_achievements(1)

        assert sorted(a.achievement_code for a in achievements) == ["A", "B"]
        assert PointsService(db_session).get_user_points(1)["achievements_count"] == 2
