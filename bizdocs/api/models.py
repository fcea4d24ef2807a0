"""API request and response models."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.document_totals import DocumentTotals
from ..models.line_item import LineItem


class TotalsRequest(BaseModel):
    """Request model for live recalculation."""

    model_config = ConfigDict(populate_by_name=True)

    line_items: List[Dict[str, Any]] = Field(default_factory=list, alias="lineItems")
    show_discount_column: bool = Field(True, alias="showDiscountColumn")
    show_tax_column: bool = Field(True, alias="showTaxColumn")
    extra_charges: Dict[str, Any] = Field(default_factory=dict, alias="extraCharges")


class TotalsResponse(BaseModel):
    """Document totals rounded to cents."""

    subtotal: float
    total_discount_amount: float
    total_tax_amount: float
    additional_charges: float
    grand_total: float
    line_totals: List[float] = Field(default_factory=list, description="quantity * unit price per line")

    @classmethod
    def from_totals(cls, totals: DocumentTotals) -> 'TotalsResponse':
        rounded = totals.rounded()
        return cls(
            subtotal=float(rounded["subtotal"]),
            total_discount_amount=float(rounded["totalDiscountAmount"]),
            total_tax_amount=float(rounded["totalTaxAmount"]),
            additional_charges=float(rounded["additionalCharges"]),
            grand_total=float(rounded["totalAmount"]),
            line_totals=[float(value) for value in totals.line_totals],
        )


class PreviewResponse(BaseModel):
    """Response model for live recalculation: recomputed lines plus totals."""

    line_items: List[Dict[str, Any]]
    totals: TotalsResponse

    @classmethod
    def from_result(cls, lines: List[LineItem], totals: DocumentTotals) -> 'PreviewResponse':
        return cls(
            line_items=[line.to_dict() for line in lines],
            totals=TotalsResponse.from_totals(totals),
        )


class SavedDocumentResponse(BaseModel):
    """Response model for create and update endpoints."""

    document_id: str = Field(..., description="Allocated document id, e.g. ORD2025-008")
    collection: str
    totals: TotalsResponse


class CounterResponse(BaseModel):
    """State of one document number sequence."""

    model_config = ConfigDict(populate_by_name=True)

    sequence: str
    counter_id: str = Field(..., alias="counterId")
    prefix: str
    collection: str
    yearly_counts: Dict[str, int] = Field(default_factory=dict, alias="yearlyCounts")


class ErrorResponse(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    detail: Optional[Any] = Field(None, description="Optional error details")
