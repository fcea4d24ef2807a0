"""Excel and CSV export of business documents and inventory reports."""

import logging
import numbers
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Union

import pandas as pd
from openpyxl.styles.numbers import FORMAT_NUMBER_00

from ..inventory.report import REPORT_COLUMNS, report_rows
from ..models.inventory_item import InventoryItem

logger = logging.getLogger(__name__)

DOCUMENT_COLUMNS = [
    "Document ID",
    "Party",
    "Date",
    "Status",
    "Item Name",
    "Item Code",
    "Description",
    "Quantity",
    "Unit Price",
    "Discount %",
    "Tax %",
    "Line Total",
    "Subtotal",
    "Total Discount",
    "Total Tax",
    "Additional Charges",
    "Total Amount",
]

MONEY_COLUMNS = [
    "Unit Price",
    "Line Total",
    "Subtotal",
    "Total Discount",
    "Total Tax",
    "Additional Charges",
    "Total Amount",
]

_PARTY_KEYS = ("customerName", "beneficiaryName")
_DATE_KEYS = ("quoteDate", "invoiceDate", "orderDate")


def _first(document: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if document.get(key):
            return document[key]
    return ""


def _document_rows(document: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """One row per line item, document fields repeated on each."""
    base = {
        "Document ID": document.get("id", ""),
        "Party": _first(document, _PARTY_KEYS),
        "Date": _first(document, _DATE_KEYS),
        "Status": document.get("status", ""),
        "Subtotal": document.get("subtotal", 0),
        "Total Discount": document.get("totalDiscountAmount", 0),
        "Total Tax": document.get("totalTaxAmount", 0),
        "Additional Charges": document.get("additionalCharges", 0),
        "Total Amount": document.get("totalAmount", 0),
    }
    lines = document.get("lineItems") or []
    if not lines:
        return [base]

    rows = []
    for line in lines:
        row = dict(base)
        row.update({
            "Item Name": line.get("itemName", ""),
            "Item Code": line.get("itemCode", ""),
            "Description": line.get("description", ""),
            "Quantity": line.get("qty", 0),
            "Unit Price": line.get("unitPrice", 0),
            "Discount %": line.get("discountPercentage", 0),
            "Tax %": line.get("taxPercentage", 0),
            "Line Total": line.get("total", 0),
        })
        rows.append(row)
    return rows


def _format_money_columns(worksheet, df: pd.DataFrame, columns: Sequence[str]) -> None:
    indices = [df.columns.get_loc(name) for name in columns if name in df.columns]
    for row in worksheet.iter_rows(min_row=2, max_row=worksheet.max_row):
        for idx in indices:
            value = row[idx].value
            if isinstance(value, numbers.Number) and not isinstance(value, bool):
                row[idx].number_format = FORMAT_NUMBER_00


def _write_excel(df: pd.DataFrame, output_path: Path, sheet_name: str, money_columns: Sequence[str]) -> None:
    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        _format_money_columns(writer.sheets[sheet_name], df, money_columns)


def export_documents_to_excel(
    documents: List[Mapping[str, Any]],
    output_path: Union[str, Path],
    sheet_name: str = "Documents"
) -> str:
    """Export documents to an Excel file, one row per line item.

    Args:
        documents: Stored documents including their "id"
        output_path: Path to output Excel file
        sheet_name: Worksheet name

    Returns:
        Path to created Excel file

    Raises:
        ValueError: If there are no documents
    """
    if not documents:
        raise ValueError("Cannot export empty document list")

    rows = []
    for document in documents:
        rows.extend(_document_rows(document))
    df = pd.DataFrame(rows, columns=DOCUMENT_COLUMNS).fillna("")

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_excel(df, output_path, sheet_name, MONEY_COLUMNS)

    logger.info(f"Exported {len(documents)} documents ({len(rows)} rows) to {output_path}")
    return str(output_path)


def export_inventory_report(items: List[InventoryItem], output_path: Union[str, Path]) -> str:
    """Write an inventory report as CSV (``.csv``) or Excel (anything else).

    Returns:
        Path to created file
    """
    df = pd.DataFrame(report_rows(items), columns=REPORT_COLUMNS)

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    if output_path.suffix.lower() == ".csv":
        df.to_csv(output_path, index=False)
    else:
        _write_excel(df, output_path, "Inventory", ["Sales Price", "Purchase Price"])

    logger.info(f"Exported inventory report ({len(items)} items) to {output_path}")
    return str(output_path)
