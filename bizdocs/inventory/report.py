"""Inventory report: current stock or low-stock alerts, with optional filters."""

import logging
from typing import Any, Dict, List, Optional

from ..models.inventory_item import InventoryItem
from ..pricing.numbers import to_json_number
from ..storage.database import DocumentDatabase
from .stock import ITEMS_COLLECTION

logger = logging.getLogger(__name__)

REPORT_TYPES = ("current_stock", "low_stock")

REPORT_COLUMNS = [
    "Item Name",
    "Item Code",
    "Brand",
    "Category",
    "Section",
    "Current Quantity",
    "Unit",
    "Sales Price",
    "Purchase Price",
    "Location",
    "Warehouse",
]


def build_inventory_report(
    db: DocumentDatabase,
    report_type: str = "current_stock",
    category: Optional[str] = None,
    section: Optional[str] = None,
    brand: Optional[str] = None,
) -> List[InventoryItem]:
    """Select the items of an inventory report, ordered by item name.

    Args:
        db: Document database holding the items collection
        report_type: "current_stock" (all items) or "low_stock"
            (current quantity at or below the warning quantity)
        category: Exact category to keep
        section: Exact item section to keep
        brand: Case-insensitive substring of the brand name

    Raises:
        ValueError: If report_type is unknown
    """
    if report_type not in REPORT_TYPES:
        raise ValueError(f"Unknown report type: {report_type} (expected one of {', '.join(REPORT_TYPES)})")

    items = [
        InventoryItem.from_dict(snapshot.id, snapshot.data)
        for snapshot in db.list_collection(ITEMS_COLLECTION, order_by="itemName")
    ]

    selected = []
    brand_needle = brand.lower() if brand else None
    for item in items:
        if report_type == "low_stock" and not item.is_low_stock:
            continue
        if category and item.category != category:
            continue
        if section and item.item_section != section:
            continue
        if brand_needle and brand_needle not in (item.brand_name or "").lower():
            continue
        selected.append(item)

    logger.info(f"Inventory report '{report_type}': {len(selected)} of {len(items)} items")
    return selected


def report_rows(items: List[InventoryItem]) -> List[Dict[str, Any]]:
    """Rows of the report keyed by REPORT_COLUMNS."""
    rows = []
    for item in items:
        rows.append({
            "Item Name": item.item_name,
            "Item Code": item.item_code or "",
            "Brand": item.brand_name or "",
            "Category": item.category or "",
            "Section": item.item_section or "",
            "Current Quantity": to_json_number(item.current_quantity),
            "Unit": item.unit or "",
            "Sales Price": to_json_number(item.sales_price) if item.sales_price is not None else 0,
            "Purchase Price": to_json_number(item.purchase_price) if item.purchase_price is not None else 0,
            "Location": item.location or "",
            "Warehouse": item.warehouse or "",
        })
    return rows
