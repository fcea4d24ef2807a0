"""InventoryItem data model for the items collection."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Mapping, Optional

from ..pricing.numbers import ZERO, to_amount


@dataclass
class InventoryItem:
    """A sellable item and its stock level.

    Attributes:
        item_id: Document id in the items collection
        item_name: Display name
        item_code: Optional code shown next to the name
        description: Default line description when the item is picked
        sales_price: Default unit price when the item is picked
        purchase_price: Cost price (reports only)
        manage_stock: Whether sales deduct from current_quantity
        current_quantity: Units on hand
        warning_quantity: Low-stock threshold
    """

    item_id: str
    item_name: str = ""
    item_code: Optional[str] = None
    description: Optional[str] = None
    sales_price: Optional[Decimal] = None
    purchase_price: Optional[Decimal] = None
    manage_stock: bool = False
    current_quantity: Decimal = ZERO
    warning_quantity: Decimal = ZERO
    unit: Optional[str] = None
    brand_name: Optional[str] = None
    category: Optional[str] = None
    item_section: Optional[str] = None
    location: Optional[str] = None
    warehouse: Optional[str] = None

    @classmethod
    def from_dict(cls, item_id: str, data: Mapping[str, Any]) -> 'InventoryItem':
        """Create InventoryItem from a stored item document."""
        sales_price = data.get("salesPrice")
        purchase_price = data.get("purchasePrice")
        return cls(
            item_id=item_id,
            item_name=data.get("itemName") or "",
            item_code=data.get("itemCode"),
            description=data.get("description"),
            sales_price=to_amount(sales_price) if sales_price is not None else None,
            purchase_price=to_amount(purchase_price) if purchase_price is not None else None,
            manage_stock=bool(data.get("manageStock", False)),
            current_quantity=to_amount(data.get("currentQuantity")),
            warning_quantity=to_amount(data.get("warningQuantity")),
            unit=data.get("unit"),
            brand_name=data.get("brandName"),
            category=data.get("category"),
            item_section=data.get("itemSection"),
            location=data.get("location"),
            warehouse=data.get("warehouse"),
        )

    @property
    def label(self) -> str:
        """Dropdown label: "name (code)" or just the name."""
        name = self.item_name or "Unnamed Item"
        return f"{name} ({self.item_code})" if self.item_code else name

    @property
    def is_low_stock(self) -> bool:
        return self.current_quantity <= self.warning_quantity
