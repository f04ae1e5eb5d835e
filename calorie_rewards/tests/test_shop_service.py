"""
Tests for ShopService and the default catalog.

Tests cover:
1. Item listing with purchase eligibility
2. Purchases (points, stock, limits, level requirement)
3. Equipping items
4. Catalog seeding
"""
from datetime import datetime, timedelta

import pytest

from calorie_rewards.catalog import DEFAULT_REWARD_ITEMS, seed_reward_items
from calorie_rewards.exceptions import (
    InsufficientPointsException,
    PurchaseNotAllowedException,
    PurchaseNotFoundException,
    RewardItemNotFoundException,
)
from calorie_rewards.models import PointTransaction, RewardItem, UserPurchase
from calorie_rewards.services.ledger_service import LedgerService
from calorie_rewards.services.points_service import PointsService
from calorie_rewards.services.shop_service import ShopService
from calorie_rewards.tests.factories import create_account, create_item


class TestListItems:
    """Tests for list_items"""

    def test_lists_active_items_with_eligibility(self, db_session):
        create_account(db_session, 1, current=200)
        cheap = create_item(db_session, name="Dark Theme", display_order=1)
        gated = create_item(db_session, name="Ocean Theme", required_level=3, display_order=2)
        create_item(db_session, name="Retired Theme", is_active=False)
        service = ShopService(db_session)

        shop = service.list_items(1)

        assert shop["user_level"] == 1
        assert [item["id"] for item in shop["items"]] == [cheap.id, gated.id]
        assert shop["items"][0]["can_purchase"] is True
        assert shop["items"][1]["can_purchase"] is False
        assert shop["items"][0]["already_owned"] is False

    def test_category_filter(self, db_session):
        create_item(db_session, name="Dark Theme")
        create_item(db_session, name="Chef Avatar", category="avatar")
        service = ShopService(db_session)

        shop = service.list_items(1, category="avatar")

        assert [item["name"] for item in shop["items"]] == ["Chef Avatar"]

    def test_owned_item_at_limit(self, db_session):
        """An item bought up to its limit is owned and no longer purchasable"""
        create_account(db_session, 1, current=500)
        item = create_item(db_session, purchase_limit=1)
        service = ShopService(db_session)
        service.purchase_item(1, item.id)

        entry = service.list_items(1)["items"][0]

        assert entry["already_owned"] is True
        assert entry["user_purchase_count"] == 1
        assert entry["can_purchase"] is False

    def test_item_data_is_parsed(self, db_session):
        create_item(db_session, name="Double Points", category="boost", item_data={"duration_hours": 24})
        service = ShopService(db_session)

        entry = service.list_items(1)["items"][0]

        assert entry["item_data"] == {"duration_hours": 24}


class TestPurchaseItem:
    """Tests for purchase_item"""

    def test_successful_purchase(self, db_session):
        """Purchase spends points and records the purchase"""
        PointsService(db_session).award_points(1, 400, "test")
        item = create_item(db_session, cost_points=150)
        service = ShopService(db_session)

        result = service.purchase_item(1, item.id)

        assert result["points_spent"] == 150
        assert result["remaining_points"] == 250
        assert result["item"]["name"] == "Test Theme"

        purchase = db_session.query(UserPurchase).one()
        assert purchase.id == result["purchase_id"]
        assert purchase.points_paid == 150
        assert purchase.expires_at is None

        spend = db_session.query(PointTransaction).filter(PointTransaction.reason == "purchase").one()
        assert spend.points == -150
        assert spend.reference_type == "reward_item"
        assert spend.reference_id == item.id
        assert LedgerService(db_session).verify_user(1)["consistent"] is True

    def test_insufficient_points_records_nothing(self, db_session):
        create_account(db_session, 1, current=100)
        item = create_item(db_session, cost_points=150)
        service = ShopService(db_session)

        with pytest.raises(InsufficientPointsException):
            service.purchase_item(1, item.id)

        assert db_session.query(UserPurchase).count() == 0
        assert PointsService(db_session).get_account(1).current_points == 100

    def test_unknown_item(self, db_session):
        service = ShopService(db_session)

        with pytest.raises(RewardItemNotFoundException):
            service.purchase_item(1, 999)

    def test_inactive_item(self, db_session):
        create_account(db_session, 1, current=500)
        item = create_item(db_session, is_active=False)
        service = ShopService(db_session)

        with pytest.raises(RewardItemNotFoundException):
            service.purchase_item(1, item.id)

    def test_level_requirement(self, db_session):
        create_account(db_session, 1, current=5000)
        item = create_item(db_session, required_level=3)
        service = ShopService(db_session)

        with pytest.raises(PurchaseNotAllowedException) as exc_info:
            service.purchase_item(1, item.id)

        assert exc_info.value.reason == "Requires level 3"
        assert PointsService(db_session).get_account(1).current_points == 5000

    def test_purchase_limit(self, db_session):
        create_account(db_session, 1, current=500)
        item = create_item(db_session, purchase_limit=1)
        service = ShopService(db_session)
        service.purchase_item(1, item.id)

        with pytest.raises(PurchaseNotAllowedException) as exc_info:
            service.purchase_item(1, item.id)

        assert exc_info.value.reason == "Purchase limit reached for this item"
        assert PointsService(db_session).get_account(1).current_points == 400

    def test_limited_stock(self, db_session):
        """Stock decreases per purchase and blocks at zero"""
        create_account(db_session, 1, current=500)
        create_account(db_session, 2, current=500)
        item = create_item(db_session, is_limited_edition=True, stock_quantity=1)
        service = ShopService(db_session)

        service.purchase_item(1, item.id)

        db_session.refresh(item)
        assert item.stock_quantity == 0
        with pytest.raises(PurchaseNotAllowedException) as exc_info:
            service.purchase_item(2, item.id)
        assert exc_info.value.reason == "Item out of stock"
        assert PointsService(db_session).get_account(2).current_points == 500

    def test_timed_item_expires(self, db_session):
        """Items with duration_hours get an expiry"""
        create_account(db_session, 1, current=2000)
        item = create_item(db_session, category="boost", cost_points=1500, item_data={"duration_hours": 24})
        service = ShopService(db_session)

        service.purchase_item(1, item.id)

        purchase = db_session.query(UserPurchase).one()
        expected = datetime.utcnow() + timedelta(hours=24)
        assert abs((purchase.expires_at - expected).total_seconds()) < 60
        assert service.list_purchases(1)[0]["is_expired"] is False


class TestEquipItem:
    """Tests for equip_item"""

    def test_theme_is_exclusive(self, db_session):
        """Equipping a theme unequips the other themes"""
        create_account(db_session, 1, current=1000)
        dark = create_item(db_session, name="Dark Theme")
        ocean = create_item(db_session, name="Ocean Theme")
        service = ShopService(db_session)
        first = service.purchase_item(1, dark.id)["purchase_id"]
        second = service.purchase_item(1, ocean.id)["purchase_id"]

        service.equip_item(1, first)
        equipped = service.equip_item(1, second)

        assert equipped.is_equipped is True
        assert db_session.get(UserPurchase, first).is_equipped is False

    def test_badges_can_stack(self, db_session):
        create_account(db_session, 1, current=1000)
        gold = create_item(db_session, name="Golden Apple Badge", category="badge")
        founders = create_item(db_session, name="Founders Badge", category="badge")
        service = ShopService(db_session)
        first = service.purchase_item(1, gold.id)["purchase_id"]
        second = service.purchase_item(1, founders.id)["purchase_id"]

        service.equip_item(1, first)
        service.equip_item(1, second)

        assert db_session.get(UserPurchase, first).is_equipped is True
        assert db_session.get(UserPurchase, second).is_equipped is True

    def test_cannot_equip_other_users_purchase(self, db_session):
        create_account(db_session, 1, current=1000)
        item = create_item(db_session)
        service = ShopService(db_session)
        purchase_id = service.purchase_item(1, item.id)["purchase_id"]

        with pytest.raises(PurchaseNotFoundException):
            service.equip_item(2, purchase_id)


class TestCatalogSeeding:
    """Tests for seed_reward_items"""

    def test_seeds_once(self, db_session):
        """Running the seed twice does not duplicate items"""
        created = seed_reward_items(db_session)
        again = seed_reward_items(db_session)

        assert created == len(DEFAULT_REWARD_ITEMS)
        assert again == 0
        assert db_session.query(RewardItem).count() == len(DEFAULT_REWARD_ITEMS)

    def test_seeded_items_are_listed_in_order(self, db_session):
        seed_reward_items(db_session)
        service = ShopService(db_session)

        names = [item["name"] for item in service.list_items(1)["items"]]

        assert names == [item["name"] for item in DEFAULT_REWARD_ITEMS]
