"""
Unit tests for FundingService checkout and history.

Run: pytest tests/unit/test_funding_service.py -v
"""

import pytest

from services.funding_service import FundingService
from exceptions import (
    EmptyBasketError,
    NeedNotFoundError,
    NeedFullyFundedError,
    InsufficientQuantityError,
    CheckoutConflictError,
    DatabaseError,
)
from tests.factories import NeedFactory


@pytest.fixture
def two_needs(mock_db, manager):
    return mock_db.seed("needs", [
        NeedFactory.create(manager_id=manager["id"], title="Rice", cost=3.35, quantity=10),
        NeedFactory.create(manager_id=manager["id"], title="Soap", cost=1.10, quantity=4, quantity_fulfilled=1),
    ])


@pytest.fixture
def basket(mock_db, helper, two_needs):
    """Helper has 3 x Rice and 2 x Soap in the basket."""
    rice, soap = two_needs
    return mock_db.seed("baskets", [
        {"user_id": helper["id"], "need_id": rice["id"], "quantity": 3},
        {"user_id": helper["id"], "need_id": soap["id"], "quantity": 2},
    ])


class TestCheckoutSuccess:
    """Tests for FundingService.checkout() happy path"""

    def test_creates_records_and_advances_fulfilled(self, mock_db, helper, two_needs, basket):
        rice, soap = two_needs
        service = FundingService()

        result = service.checkout(helper["id"])

        assert result.items_processed == 2
        assert [r.title for r in result.records] == ["Rice", "Soap"]
        assert [r.amount for r in result.records] == [10.05, 2.2]
        assert result.total_amount == 12.25
        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 3
        assert mock_db.get("needs", soap["id"])["quantity_fulfilled"] == 3

    def test_records_carry_usernames(self, mock_db, helper, basket):
        result = FundingService().checkout(helper["id"])

        assert result.records[0].helper_username == "helper1"
        assert result.records[0].manager_username == "admin"

    def test_basket_emptied(self, mock_db, helper, basket):
        FundingService().checkout(helper["id"])

        assert mock_db.rows("baskets") == []
        assert len(mock_db.rows("funding")) == 2

    def test_other_users_basket_untouched(self, mock_db, helper, manager, two_needs, basket):
        mock_db.seed("baskets", [{"user_id": manager["id"], "need_id": two_needs[0]["id"], "quantity": 1}])

        FundingService().checkout(helper["id"])

        assert [b["user_id"] for b in mock_db.rows("baskets")] == [manager["id"]]

    def test_succeeds_without_reading_funding_back(self, mock_db, helper, two_needs, basket):
        mock_db.fail_on("funding", "select")

        result = FundingService().checkout(helper["id"])

        assert result.items_processed == 2
        assert [r.funding_id for r in result.records] == [f["id"] for f in mock_db.rows("funding")]
        assert [r.quantity for r in result.records] == [3, 2]
        assert mock_db.rows("baskets") == []

    def test_username_lookup_failure_after_commit_still_succeeds(self, mock_db, helper, basket):
        mock_db.fail_on("users", "select")

        result = FundingService().checkout(helper["id"])

        assert result.items_processed == 2
        assert result.records[0].title == "Rice"
        assert result.records[0].helper_username is None
        assert len(mock_db.rows("funding")) == 2


class TestCheckoutValidation:
    """Validation failures write nothing."""

    def test_empty_basket(self, mock_db, helper):
        with pytest.raises(EmptyBasketError) as exc:
            FundingService().checkout(helper["id"])

        assert exc.value.status_code == 400

    def test_insufficient_quantity_on_any_line_aborts_all(self, mock_db, helper, two_needs, basket):
        rice, soap = two_needs
        mock_db.tables["needs"][1]["quantity_fulfilled"] = 3  # only 1 Soap left
        service = FundingService()

        with pytest.raises(InsufficientQuantityError):
            service.checkout(helper["id"])

        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 0
        assert mock_db.rows("funding") == []
        assert len(mock_db.rows("baskets")) == 2

    def test_fully_funded_need(self, mock_db, helper, two_needs, basket):
        mock_db.tables["needs"][1]["quantity_fulfilled"] = 4

        with pytest.raises(NeedFullyFundedError):
            FundingService().checkout(helper["id"])

        assert mock_db.rows("funding") == []

    def test_missing_need(self, mock_db, helper, two_needs, basket):
        mock_db.tables["needs"] = mock_db.tables["needs"][:1]

        with pytest.raises(NeedNotFoundError) as exc:
            FundingService().checkout(helper["id"])

        assert exc.value.status_code == 404
        assert mock_db.rows("funding") == []


class TestCheckoutCommitFailures:
    """Failures after validation are compensated."""

    def test_lost_compare_and_swap_rolls_back(self, mock_db, helper, two_needs, basket, monkeypatch):
        rice, soap = two_needs
        service = FundingService()
        validate = service.validate_basket

        def validate_then_race(user_id):
            lines = validate(user_id)
            # Someone else funds a Soap between validation and commit
            mock_db.tables["needs"][1]["quantity_fulfilled"] += 1
            return lines

        monkeypatch.setattr(service, "validate_basket", validate_then_race)

        with pytest.raises(CheckoutConflictError) as exc:
            service.checkout(helper["id"])

        assert exc.value.status_code == 409
        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 0
        assert mock_db.get("needs", soap["id"])["quantity_fulfilled"] == 2
        assert mock_db.rows("funding") == []
        assert len(mock_db.rows("baskets")) == 2

    def test_failed_funding_insert_rolls_back(self, mock_db, helper, two_needs, basket):
        rice, soap = two_needs
        mock_db.fail_on("funding", "insert", after=1)

        with pytest.raises(DatabaseError):
            FundingService().checkout(helper["id"])

        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 0
        assert mock_db.get("needs", soap["id"])["quantity_fulfilled"] == 1
        assert mock_db.rows("funding") == []
        assert len(mock_db.rows("baskets")) == 2

    def test_failed_basket_delete_rolls_back(self, mock_db, helper, two_needs, basket):
        rice, _ = two_needs
        mock_db.fail_on("baskets", "delete")

        with pytest.raises(DatabaseError):
            FundingService().checkout(helper["id"])

        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 0
        assert mock_db.rows("funding") == []

    def test_rollback_keeps_concurrent_funding(self, mock_db, helper, two_needs, basket, monkeypatch):
        rice, soap = two_needs
        service = FundingService()
        advance = service._advance_fulfilled

        def advance_then_race(line):
            entry = advance(line)
            if line.need_id == rice["id"]:
                # Another helper funds 4 Rice right after this line commits
                mock_db.tables["needs"][0]["quantity_fulfilled"] += 4
            return entry

        monkeypatch.setattr(service, "_advance_fulfilled", advance_then_race)
        mock_db.fail_on("funding", "insert", after=1)

        with pytest.raises(DatabaseError):
            service.checkout(helper["id"])

        assert mock_db.get("needs", rice["id"])["quantity_fulfilled"] == 4
        assert mock_db.get("needs", soap["id"])["quantity_fulfilled"] == 1
        assert mock_db.rows("funding") == []


class TestFundingHistory:
    """Tests for get_for_user() / get_all() / get_for_need()"""

    @pytest.fixture
    def history(self, mock_db, helper, manager, two_needs):
        rice, soap = two_needs
        return mock_db.seed("funding", [
            {"user_id": helper["id"], "need_id": rice["id"], "quantity": 2, "amount": 6.70,
             "funded_at": "2026-02-01T10:00:00+00:00"},
            {"user_id": helper["id"], "need_id": soap["id"], "quantity": 1, "amount": 1.10,
             "funded_at": "2026-02-03T10:00:00+00:00"},
            {"user_id": manager["id"], "need_id": rice["id"], "quantity": 1, "amount": 3.35,
             "funded_at": "2026-02-02T10:00:00+00:00"},
        ])

    def test_user_history_newest_first(self, history, helper):
        records, total = FundingService().get_for_user(helper["id"])

        assert [r.title for r in records] == ["Soap", "Rice"]
        assert total == 7.8

    def test_all_history(self, history):
        records, total = FundingService().get_all()

        assert len(records) == 3
        assert [r.helper_username for r in records] == ["helper1", "admin", "helper1"]
        assert total == 11.15

    def test_need_history(self, history, two_needs):
        rice = two_needs[0]

        need, records, total, quantity = FundingService().get_for_need(rice["id"])

        assert need["title"] == "Rice"
        assert len(records) == 2
        assert total == 10.05
        assert quantity == 3

    def test_need_history_missing_need(self, mock_db):
        with pytest.raises(NeedNotFoundError):
            FundingService().get_for_need(404)

    def test_user_without_history(self, mock_db, helper):
        records, total = FundingService().get_for_user(helper["id"])

        assert records == []
        assert total == 0.0
