"""Form schemas for the business document forms.

Field names are snake_case; incoming data may use the camelCase names the
stored documents use (``lineItems``, ``unitPrice``, ``customerId``...).
"""

from datetime import date
from decimal import Decimal
from typing import Any, ClassVar, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..pricing.numbers import normalize_decimal

DEFAULT_STATUS = "Draft"


def _parse_amount(value: Any) -> Any:
    """Parse typed numeric text ("1,200", "$ 5.50"); leave other values to pydantic."""
    if isinstance(value, str):
        if not value.strip():
            return None
        try:
            return normalize_decimal(value)
        except ValueError:
            raise ValueError("must be a number")
    return value


class _FormModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class LineItemForm(_FormModel):
    """One line item row as submitted."""

    item_id: str = ""
    item_code: Optional[str] = None
    description: Optional[str] = None
    qty: Decimal = Field(..., gt=0, description="Quantity, must be positive")
    unit_price: Decimal = Field(..., ge=0, description="Price per unit")
    discount_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)
    tax_percentage: Decimal = Field(Decimal("0"), ge=0, le=100)

    @field_validator("qty", "unit_price", mode="before")
    @classmethod
    def parse_required_amount(cls, value):
        return _parse_amount(value)

    @field_validator("discount_percentage", "tax_percentage", mode="before")
    @classmethod
    def blank_percentage_is_zero(cls, value):
        parsed = _parse_amount(value)
        return Decimal("0") if parsed is None else parsed


class DocumentForm(_FormModel):
    """Fields shared by all line-item documents."""

    line_items: List[LineItemForm] = Field(..., min_length=1)
    billing_address: Optional[str] = None
    shipping_address: Optional[str] = None
    salesperson: Optional[str] = None
    tax_type: str = "Default"
    comments: Optional[str] = None
    private_comments: Optional[str] = None
    status: Optional[str] = None
    show_item_code_column: bool = True
    show_discount_column: bool = True
    show_tax_column: bool = True

    # Stored field names of the flat charges this form carries
    charge_fields: ClassVar[Tuple[str, ...]] = ()

    def extra_charges(self) -> dict:
        """Flat charges keyed by their stored field name."""
        return {
            to_camel(name): getattr(self, name)
            for name in self.charge_fields
            if getattr(self, name) is not None
        }


class QuoteForm(DocumentForm):
    customer_id: str = Field(..., min_length=1)
    quote_date: date
    subject: Optional[str] = None


class SaleForm(DocumentForm):
    customer_id: str = Field(..., min_length=1)
    invoice_date: date
    packing_charge: Optional[Decimal] = Field(None, ge=0)
    handling_charge: Optional[Decimal] = Field(None, ge=0)
    other_charges: Optional[Decimal] = Field(None, ge=0)

    charge_fields: ClassVar[Tuple[str, ...]] = ("packing_charge", "handling_charge", "other_charges")

    @field_validator("packing_charge", "handling_charge", "other_charges", mode="before")
    @classmethod
    def parse_charge(cls, value):
        return _parse_amount(value)


class PurchaseOrderForm(DocumentForm):
    beneficiary_id: str = Field(..., min_length=1)
    order_date: date
    terms: Optional[str] = None
    ship_via: Optional[str] = None
    port_of_loading: Optional[str] = None
    port_of_discharge: Optional[str] = None
    shipment_mode: Optional[str] = None
    freight_charges: Optional[Decimal] = Field(None, ge=0)
    other_charges: Optional[Decimal] = Field(None, ge=0)

    charge_fields: ClassVar[Tuple[str, ...]] = ("freight_charges", "other_charges")

    @field_validator("freight_charges", "other_charges", mode="before")
    @classmethod
    def parse_charge(cls, value):
        return _parse_amount(value)


class InventoryOrderForm(PurchaseOrderForm):
    """Inventory orders carry the same supplier, shipment and charge fields as purchase orders."""


class InvoiceForm(DocumentForm):
    customer_id: str = Field(..., min_length=1)
    invoice_date: date
    due_date: Optional[date] = None
