"""Stock checks and stock adjustments performed inside document transactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from ..errors import InsufficientStockError, ItemNotFoundError
from ..models.inventory_item import InventoryItem
from ..models.line_item import LineItem
from ..pricing.numbers import ZERO, to_json_number
from ..storage.database import SERVER_TIMESTAMP, Transaction

logger = logging.getLogger(__name__)

ITEMS_COLLECTION = "items"


@dataclass(frozen=True)
class StockAdjustment:
    """Planned change of one item's quantity on hand."""
    item_id: str
    item_name: str
    current_quantity: Decimal
    delta: Decimal

    @property
    def new_quantity(self) -> Decimal:
        return self.current_quantity + self.delta


def _quantities_by_item(line_items: Iterable[LineItem]) -> Dict[str, Decimal]:
    totals: Dict[str, Decimal] = {}
    for line in line_items:
        if line.item_id:
            totals[line.item_id] = totals.get(line.item_id, ZERO) + line.quantity
    return totals


def _line_names(line_items: Iterable[LineItem]) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for line in line_items:
        if line.item_id:
            names.setdefault(line.item_id, line.item_name or line.description or line.item_id)
    return names


def _read_item(txn: Transaction, item_id: str) -> Optional[InventoryItem]:
    snapshot = txn.get(ITEMS_COLLECTION, item_id)
    if not snapshot.exists:
        return None
    return InventoryItem.from_dict(item_id, snapshot.data)


def plan_stock_deduction(txn: Transaction, line_items: Iterable[LineItem]) -> List[StockAdjustment]:
    """Check stock for a new sale and plan the deductions.

    Quantities are summed per item before comparing with stock, so two lines
    of the same item cannot together take more than is on hand. Lines without
    an item reference and items that do not manage stock are skipped.

    Raises:
        ItemNotFoundError: If a referenced item no longer exists
        InsufficientStockError: If an item has less stock than requested
    """
    line_items = list(line_items)
    names = _line_names(line_items)
    adjustments: List[StockAdjustment] = []

    for item_id, requested in _quantities_by_item(line_items).items():
        item = _read_item(txn, item_id)
        if item is None:
            raise ItemNotFoundError(f'Item "{names[item_id]}" not found. Sale cannot be completed.')
        if not item.manage_stock:
            continue
        if item.current_quantity < requested:
            raise InsufficientStockError(
                item.item_name or names[item_id],
                to_json_number(item.current_quantity),
                to_json_number(requested),
            )
        adjustments.append(StockAdjustment(item_id, item.item_name, item.current_quantity, -requested))

    return adjustments


def plan_stock_rebalance(
    txn: Transaction,
    old_line_items: Iterable[LineItem],
    new_line_items: Iterable[LineItem]
) -> List[StockAdjustment]:
    """Plan stock changes for an edited sale.

    Each item's stock moves by (old quantity - new quantity): lines removed
    or reduced return stock, lines added or increased take it.

    Raises:
        ItemNotFoundError: If an item whose quantity increased no longer exists
        InsufficientStockError: If an increase would take stock below zero
    """
    old_line_items = list(old_line_items)
    new_line_items = list(new_line_items)
    old_qty = _quantities_by_item(old_line_items)
    new_qty = _quantities_by_item(new_line_items)
    names = {**_line_names(old_line_items), **_line_names(new_line_items)}

    adjustments: List[StockAdjustment] = []
    for item_id in sorted(set(old_qty) | set(new_qty)):
        difference = new_qty.get(item_id, ZERO) - old_qty.get(item_id, ZERO)
        if difference == 0:
            continue

        item = _read_item(txn, item_id)
        if item is None:
            if difference > 0:
                raise ItemNotFoundError(f'Item "{names[item_id]}" not found.')
            logger.warning(f"Item {item_id} no longer exists; returned stock of {-difference} dropped")
            continue
        if not item.manage_stock:
            continue

        if item.current_quantity - difference < 0:
            raise InsufficientStockError(
                item.item_name or names[item_id],
                to_json_number(item.current_quantity),
                to_json_number(difference),
            )
        adjustments.append(StockAdjustment(item_id, item.item_name, item.current_quantity, -difference))

    return adjustments


def apply_stock_adjustments(txn: Transaction, adjustments: Iterable[StockAdjustment]) -> None:
    """Stage the planned quantity updates in the transaction."""
    for adjustment in adjustments:
        txn.update(ITEMS_COLLECTION, adjustment.item_id, {
            "currentQuantity": to_json_number(adjustment.new_quantity),
            "updatedAt": SERVER_TIMESTAMP,
        })
        logger.debug(
            f"Stock of {adjustment.item_id}: {adjustment.current_quantity} -> {adjustment.new_quantity}"
        )
