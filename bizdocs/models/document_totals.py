"""DocumentTotals data model for the totals panel of a business document."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict

from ..pricing.numbers import ZERO, quantize_money, to_json_number


@dataclass(frozen=True)
class DocumentTotals:
    """Aggregated money figures of a document.

    grand_total = subtotal - total_discount_amount + total_tax_amount + additional_charges

    Attributes:
        subtotal: Sum of quantity * unit_price over all lines
        total_discount_amount: Sum of line discounts
        total_tax_amount: Sum of line taxes (on the discounted amount)
        additional_charges: Sum of flat charges (freight, packing, handling, other)
        grand_total: Amount payable
        line_totals: Per-line quantity * unit_price, in input order
    """

    subtotal: Decimal = ZERO
    total_discount_amount: Decimal = ZERO
    total_tax_amount: Decimal = ZERO
    additional_charges: Decimal = ZERO
    grand_total: Decimal = ZERO
    line_totals: tuple = ()

    def __post_init__(self):
        expected = (
            self.subtotal - self.total_discount_amount
            + self.total_tax_amount + self.additional_charges
        )
        if self.grand_total != expected:
            raise ValueError(
                f"grand_total must equal subtotal - discount + tax + charges "
                f"({expected}), got {self.grand_total}"
            )

    def rounded(self) -> Dict[str, Decimal]:
        """Money figures rounded to cents for display."""
        return {
            "subtotal": quantize_money(self.subtotal),
            "totalDiscountAmount": quantize_money(self.total_discount_amount),
            "totalTaxAmount": quantize_money(self.total_tax_amount),
            "additionalCharges": quantize_money(self.additional_charges),
            "totalAmount": quantize_money(self.grand_total),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored document fields."""
        return {
            "subtotal": to_json_number(self.subtotal),
            "totalDiscountAmount": to_json_number(self.total_discount_amount),
            "totalTaxAmount": to_json_number(self.total_tax_amount),
            "additionalCharges": to_json_number(self.additional_charges),
            "totalAmount": to_json_number(self.grand_total),
        }
