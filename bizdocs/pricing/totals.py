"""Line-item totals for quotes, orders, sales and invoices.

Pure functions recomputed on every edit of a document form. Input is taken as
typed: blanks and non-numeric values count as zero and nothing here raises
for bad numbers. Range validation (quantity > 0, unit price >= 0) happens in
the form schemas before a document is saved.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from ..models.document_totals import DocumentTotals
from ..models.line_item import LineItem
from .numbers import ZERO, to_amount

HUNDRED = Decimal("100")

LineInput = Union[LineItem, Mapping[str, Any]]


@dataclass
class TotalsOptions:
    """Column visibility and flat charges that affect the totals.

    Attributes:
        show_discount_column: When False, line discounts are ignored
        show_tax_column: When False, line taxes are ignored
        extra_charges: Flat charges by name (freight, packing, handling, other);
            values may be blank or absent
    """
    show_discount_column: bool = True
    show_tax_column: bool = True
    extra_charges: Mapping[str, Any] = field(default_factory=dict)

    def charges_total(self) -> Decimal:
        """Sum of the flat charges; negative charges count as 0."""
        return sum((max(to_amount(v), ZERO) for v in self.extra_charges.values()), ZERO)


@dataclass(frozen=True)
class LineBreakdown:
    """Money figures of a single line."""
    line_subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal

    @property
    def after_discount(self) -> Decimal:
        return self.line_subtotal - self.discount_amount


def _as_line_item(line: LineInput) -> LineItem:
    if isinstance(line, LineItem):
        return line
    return LineItem.from_input(line)


def compute_line_total(line: LineInput) -> Decimal:
    """Derived line total: quantity * unit_price before discount and tax.

    Lines without a positive quantity or with a negative price show 0.
    """
    item = _as_line_item(line)
    if item.quantity <= 0 or item.unit_price < 0:
        return ZERO
    return item.quantity * item.unit_price


def compute_line(line: LineInput, options: TotalsOptions) -> LineBreakdown:
    """Break one line down into subtotal, discount and tax."""
    item = _as_line_item(line)
    line_subtotal = compute_line_total(item)
    if line_subtotal == 0:
        return LineBreakdown(ZERO, ZERO, ZERO)

    discount_amount = ZERO
    if options.show_discount_column:
        discount_amount = line_subtotal * (item.discount_percent / HUNDRED)

    tax_amount = ZERO
    if options.show_tax_column:
        tax_amount = (line_subtotal - discount_amount) * (item.tax_percent / HUNDRED)

    return LineBreakdown(line_subtotal, discount_amount, tax_amount)


def compute_totals(
    line_items: Iterable[LineInput],
    options: Optional[TotalsOptions] = None
) -> DocumentTotals:
    """Compute document totals from its line items.

    Args:
        line_items: LineItem objects or raw form rows (camelCase or snake_case keys)
        options: Column flags and extra charges (defaults: both columns shown, no charges)

    Returns:
        DocumentTotals with subtotal, discount, tax, charges, grand total and
        the per-line totals in input order. An empty list gives all zeros.
    """
    if options is None:
        options = TotalsOptions()

    subtotal = ZERO
    total_discount = ZERO
    total_tax = ZERO
    line_totals: List[Decimal] = []

    for line in line_items:
        breakdown = compute_line(line, options)
        subtotal += breakdown.line_subtotal
        total_discount += breakdown.discount_amount
        total_tax += breakdown.tax_amount
        line_totals.append(breakdown.line_subtotal)

    charges = options.charges_total()
    grand_total = subtotal - total_discount + total_tax + charges

    return DocumentTotals(
        subtotal=subtotal,
        total_discount_amount=total_discount,
        total_tax_amount=total_tax,
        additional_charges=charges,
        grand_total=grand_total,
        line_totals=tuple(line_totals),
    )


def recompute_lines(
    line_items: Iterable[LineInput],
    options: Optional[TotalsOptions] = None
) -> Tuple[List[LineItem], DocumentTotals]:
    """Return copies of the lines carrying their derived totals, plus the document totals.

    The input lines are not modified.
    """
    items = [_as_line_item(line) for line in line_items]
    totals = compute_totals(items, options)
    updated = [item.with_line_total(total) for item, total in zip(items, totals.line_totals)]
    return updated, totals
