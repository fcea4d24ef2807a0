"""LineItem data model representing one row of a quote, order or invoice."""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional

from ..pricing.numbers import ZERO, to_amount, to_json_number

# camelCase keys used in stored documents and API payloads -> attribute names
_INPUT_KEYS = {
    "itemId": "item_id",
    "itemName": "item_name",
    "itemCode": "item_code",
    "qty": "quantity",
    "unitPrice": "unit_price",
    "discountPercentage": "discount_percent",
    "taxPercentage": "tax_percent",
    "total": "line_total",
}


@dataclass
class LineItem:
    """A product row being edited on a business document.

    Numeric fields are coerced leniently on construction: blanks and garbage
    become 0 so totals can be recomputed on every keystroke. Range checks
    (quantity > 0, unit price >= 0, percentages 0-100) belong to the form
    schemas, not to this model.

    Attributes:
        item_id: Reference to the inventory item document (may be empty)
        item_code: Item code shown in the optional code column
        description: Free text description
        quantity: Ordered quantity
        unit_price: Price per unit
        discount_percent: Line discount in percent (0-100)
        tax_percent: Line tax in percent (0-100)
        item_name: Display name of the referenced item
        line_total: Derived quantity * unit_price (pre-discount)
    """

    item_id: str = ""
    item_code: str = ""
    description: str = ""
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    discount_percent: Decimal = ZERO
    tax_percent: Decimal = ZERO
    item_name: Optional[str] = None
    line_total: Decimal = ZERO

    def __post_init__(self):
        self.item_id = str(self.item_id or "")
        self.item_code = str(self.item_code or "")
        self.description = str(self.description or "")
        self.quantity = to_amount(self.quantity)
        self.unit_price = to_amount(self.unit_price)
        self.discount_percent = to_amount(self.discount_percent)
        self.tax_percent = to_amount(self.tax_percent)
        self.line_total = to_amount(self.line_total)

    @classmethod
    def from_input(cls, data: Mapping[str, Any]) -> 'LineItem':
        """Create LineItem from a form row or stored line (camelCase or snake_case keys)."""
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _INPUT_KEYS.get(key, key)
            if name in cls.__dataclass_fields__:
                kwargs[name] = value
        return cls(**kwargs)

    def with_line_total(self, line_total: Decimal) -> 'LineItem':
        """Return a copy carrying the given derived total."""
        return replace(self, line_total=line_total)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored line-item shape; blank text fields are dropped."""
        data: Dict[str, Any] = {
            "itemId": self.item_id,
            "itemName": self.item_name,
            "itemCode": self.item_code,
            "description": self.description,
            "qty": to_json_number(self.quantity),
            "unitPrice": to_json_number(self.unit_price),
            "discountPercentage": to_json_number(self.discount_percent),
            "taxPercentage": to_json_number(self.tax_percent),
            "total": to_json_number(self.line_total),
        }
        return {
            k: v for k, v in data.items()
            if v is not None and not (isinstance(v, str) and v.strip() == "")
        }
