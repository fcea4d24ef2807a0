"""Unit tests for stock checks inside transactions."""

from decimal import Decimal

import pytest

from bizdocs.errors import InsufficientStockError, ItemNotFoundError
from bizdocs.inventory.stock import (
    StockAdjustment,
    apply_stock_adjustments,
    plan_stock_deduction,
    plan_stock_rebalance,
)
from bizdocs.models.line_item import LineItem
from bizdocs.storage.database import DocumentDatabase


@pytest.fixture
def db(tmp_path):
    """Database with one stock-managed item, one unmanaged item."""
    db = DocumentDatabase(tmp_path / "test.db")
    db.set_document("items", "widget", {"itemName": "Widget", "manageStock": True, "currentQuantity": 5})
    db.set_document("items", "service", {"itemName": "Installation", "manageStock": False, "currentQuantity": 0})
    return db


def _line(item_id, qty, name=None):
    return LineItem(item_id=item_id, quantity=Decimal(qty), unit_price=Decimal("10"), item_name=name)


class TestPlanStockDeduction:
    """Test plan_stock_deduction()."""

    def test_plans_deduction(self, db):
        adjustments = db.run_transaction(lambda txn: plan_stock_deduction(txn, [_line("widget", 2)]))

        assert adjustments == [StockAdjustment("widget", "Widget", Decimal("5"), Decimal("-2"))]
        assert adjustments[0].new_quantity == Decimal("3")

    def test_exact_stock_is_enough(self, db):
        adjustments = db.run_transaction(lambda txn: plan_stock_deduction(txn, [_line("widget", 5)]))
        assert adjustments[0].new_quantity == 0

    def test_quantities_summed_per_item(self, db):
        lines = [_line("widget", 3), _line("widget", 4)]

        with pytest.raises(InsufficientStockError) as exc_info:
            db.run_transaction(lambda txn: plan_stock_deduction(txn, lines))

        assert str(exc_info.value) == 'Insufficient stock for item "Widget". Only 5 available.'
        assert exc_info.value.requested == 7

    def test_unmanaged_item_and_free_text_lines_skipped(self, db):
        lines = [_line("service", 3), _line("", 100)]
        assert db.run_transaction(lambda txn: plan_stock_deduction(txn, lines)) == []

    def test_missing_item(self, db):
        with pytest.raises(ItemNotFoundError, match='Item "Gizmo" not found. Sale cannot be completed.'):
            db.run_transaction(lambda txn: plan_stock_deduction(txn, [_line("gone", 1, name="Gizmo")]))


class TestPlanStockRebalance:
    """Test plan_stock_rebalance()."""

    def test_increase_takes_stock(self, db):
        adjustments = db.run_transaction(
            lambda txn: plan_stock_rebalance(txn, [_line("widget", 2)], [_line("widget", 6)])
        )
        assert adjustments[0].delta == Decimal("-4")
        assert adjustments[0].new_quantity == Decimal("1")

    def test_decrease_returns_stock(self, db):
        adjustments = db.run_transaction(
            lambda txn: plan_stock_rebalance(txn, [_line("widget", 4)], [_line("widget", 1)])
        )
        assert adjustments[0].delta == Decimal("3")
        assert adjustments[0].new_quantity == Decimal("8")

    def test_removed_line_returns_stock(self, db):
        adjustments = db.run_transaction(lambda txn: plan_stock_rebalance(txn, [_line("widget", 2)], []))
        assert adjustments[0].new_quantity == Decimal("7")

    def test_unchanged_quantity_not_read(self, db):
        assert db.run_transaction(
            lambda txn: plan_stock_rebalance(txn, [_line("gone", 2)], [_line("gone", 2)])
        ) == []

    def test_increase_beyond_stock(self, db):
        with pytest.raises(InsufficientStockError, match="Only 5 available"):
            db.run_transaction(
                lambda txn: plan_stock_rebalance(txn, [_line("widget", 1)], [_line("widget", 7)])
            )

    def test_missing_item_on_increase(self, db):
        with pytest.raises(ItemNotFoundError):
            db.run_transaction(lambda txn: plan_stock_rebalance(txn, [], [_line("gone", 1, name="Gizmo")]))

    def test_missing_item_on_decrease_is_skipped(self, db):
        assert db.run_transaction(lambda txn: plan_stock_rebalance(txn, [_line("gone", 3)], [])) == []


def test_apply_stock_adjustments(db):
    def body(txn):
        adjustments = plan_stock_deduction(txn, [_line("widget", 2)])
        apply_stock_adjustments(txn, adjustments)

    db.run_transaction(body)
    data = db.get_document("items", "widget").data

    assert data["currentQuantity"] == 3
    assert data["itemName"] == "Widget"
    assert isinstance(data["updatedAt"], str)
