"""Document service: validates form data, prices it and writes documents.

Each document kind pairs a form schema with a number sequence. Creating a
document validates the form, recomputes line and document totals, and hands
the finished document to the allocator so the id, the document and any
stock movement are written in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type

from pydantic.alias_generators import to_camel

from ..errors import DocumentNotFoundError
from ..forms.schemas import (
    DEFAULT_STATUS,
    DocumentForm,
    InventoryOrderForm,
    InvoiceForm,
    PurchaseOrderForm,
    QuoteForm,
    SaleForm,
)
from ..forms.validation import validate_form
from ..inventory.stock import (
    ITEMS_COLLECTION,
    apply_stock_adjustments,
    plan_stock_deduction,
    plan_stock_rebalance,
)
from ..models.document_totals import DocumentTotals
from ..models.inventory_item import InventoryItem
from ..models.line_item import LineItem
from ..pricing.numbers import to_json_number
from ..pricing.totals import TotalsOptions, recompute_lines
from ..sequences.allocator import SequenceAllocator
from ..storage.database import SERVER_TIMESTAMP, DocumentDatabase, Transaction

logger = logging.getLogger(__name__)

CUSTOMERS_COLLECTION = "customers"
SUPPLIERS_COLLECTION = "suppliers"
SHIPMENT_FIELDS = ("terms", "ship_via", "port_of_loading", "port_of_discharge", "shipment_mode")


@dataclass(frozen=True)
class DocumentKind:
    """How one kind of business document is validated, named and stored.

    Attributes:
        name: Kind name, also the name of its number sequence
        form: Form schema
        party_field: Form field holding the customer/supplier id
        party_collection: Collection the party is read from
        party_name_key: Stored field receiving the party's display name
        party_label_key: Field of the party document used as its name
        date_field: Form field holding the document date
        default_status: Status when the form gives none
        extra_fields: Further optional form fields copied to the document
    """
    name: str
    form: Type[DocumentForm]
    party_field: str
    party_collection: str
    party_name_key: str
    party_label_key: str
    date_field: str
    default_status: str = DEFAULT_STATUS
    extra_fields: Tuple[str, ...] = ()
    initial_fields: Tuple[Tuple[str, Any], ...] = ()


DOCUMENT_KINDS: Dict[str, DocumentKind] = {
    "quote": DocumentKind(
        name="quote",
        form=QuoteForm,
        party_field="customer_id",
        party_collection=CUSTOMERS_COLLECTION,
        party_name_key="customerName",
        party_label_key="applicantName",
        date_field="quote_date",
        extra_fields=("subject",),
    ),
    "sale": DocumentKind(
        name="sale",
        form=SaleForm,
        party_field="customer_id",
        party_collection=CUSTOMERS_COLLECTION,
        party_name_key="customerName",
        party_label_key="applicantName",
        date_field="invoice_date",
    ),
    "purchase_order": DocumentKind(
        name="purchase_order",
        form=PurchaseOrderForm,
        party_field="beneficiary_id",
        party_collection=SUPPLIERS_COLLECTION,
        party_name_key="beneficiaryName",
        party_label_key="beneficiaryName",
        date_field="order_date",
        default_status="Pending",
        extra_fields=SHIPMENT_FIELDS,
    ),
    "inventory_order": DocumentKind(
        name="inventory_order",
        form=InventoryOrderForm,
        party_field="beneficiary_id",
        party_collection=SUPPLIERS_COLLECTION,
        party_name_key="beneficiaryName",
        party_label_key="beneficiaryName",
        date_field="order_date",
        default_status="Pending",
        extra_fields=SHIPMENT_FIELDS,
    ),
    "invoice": DocumentKind(
        name="invoice",
        form=InvoiceForm,
        party_field="customer_id",
        party_collection=CUSTOMERS_COLLECTION,
        party_name_key="customerName",
        party_label_key="applicantName",
        date_field="invoice_date",
        extra_fields=("due_date",),
        initial_fields=(("amountPaid", 0),),
    ),
}


@dataclass
class SavedDocument:
    """Result of a create or update."""
    document_id: str
    collection: str
    totals: DocumentTotals


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _to_stored(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return to_json_number(value)
    return value


def apply_item_selection(line: Mapping[str, Any], item: Optional[InventoryItem]) -> Dict[str, Any]:
    """Fill a form row from the chosen item, or reset it when the choice is cleared.

    Picking an item sets its id and code, the description (item description,
    else the item label) and the unit price (sales price, else 0). The row's
    total is recomputed.
    """
    row = dict(line)
    if item is None:
        row.update({"itemId": "", "itemCode": "", "description": "", "unitPrice": 0})
    else:
        row.update({
            "itemId": item.item_id,
            "itemCode": item.item_code or "",
            "description": item.description or item.label,
            "unitPrice": to_json_number(item.sales_price) if item.sales_price is not None else 0,
        })
    updated, _ = recompute_lines([row])
    row["total"] = to_json_number(updated[0].line_total)
    return row


def preview_totals(
    line_items: Iterable[Mapping[str, Any]],
    show_discount_column: bool = True,
    show_tax_column: bool = True,
    extra_charges: Optional[Mapping[str, Any]] = None,
) -> Tuple[List[LineItem], DocumentTotals]:
    """Live recalculation for a form that is still being edited."""
    options = TotalsOptions(
        show_discount_column=show_discount_column,
        show_tax_column=show_tax_column,
        extra_charges=dict(extra_charges or {}),
    )
    return recompute_lines(line_items, options)


class DocumentService:
    """Create, update and read business documents."""

    def __init__(self, database: DocumentDatabase, allocator: Optional[SequenceAllocator] = None):
        self.database = database
        self.allocator = allocator or SequenceAllocator(database)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_kind(self, kind_name: str) -> DocumentKind:
        if kind_name not in DOCUMENT_KINDS:
            raise KeyError(f"Unknown document kind: {kind_name} (available: {', '.join(DOCUMENT_KINDS)})")
        return DOCUMENT_KINDS[kind_name]

    def collection_for(self, kind_name: str) -> str:
        self.get_kind(kind_name)
        return self.allocator.get_definition(kind_name).collection

    def _party_options(self, collection: str, label_key: str, address_key: str, fallback: str) -> List[Dict[str, Any]]:
        options = []
        for snapshot in self.database.list_collection(collection):
            options.append({
                "value": snapshot.id,
                "label": snapshot.get(label_key) or fallback,
                "address": snapshot.get(address_key),
            })
        options.sort(key=lambda option: option["label"].lower())
        return options

    def customer_options(self) -> List[Dict[str, Any]]:
        """Customer dropdown: id, name and address, sorted by name."""
        return self._party_options(CUSTOMERS_COLLECTION, "applicantName", "address", "Unnamed Customer")

    def supplier_options(self) -> List[Dict[str, Any]]:
        """Supplier dropdown for purchase and inventory orders."""
        return self._party_options(SUPPLIERS_COLLECTION, "beneficiaryName", "headOfficeAddress", "Unnamed Beneficiary")

    def item_options(self) -> List[Dict[str, Any]]:
        """Item dropdown: "name (code)" label plus the fields a selection fills in."""
        options = []
        for snapshot in self.database.list_collection(ITEMS_COLLECTION):
            item = InventoryItem.from_dict(snapshot.id, snapshot.data)
            options.append({
                "value": item.item_id,
                "label": item.label,
                "itemCode": item.item_code,
                "description": item.description,
                "salesPrice": to_json_number(item.sales_price) if item.sales_price is not None else None,
                "manageStock": item.manage_stock,
                "currentQuantity": to_json_number(item.current_quantity),
            })
        options.sort(key=lambda option: option["label"].lower())
        return options

    def get_item(self, item_id: str) -> Optional[InventoryItem]:
        snapshot = self.database.get_document(ITEMS_COLLECTION, item_id)
        if not snapshot.exists:
            return None
        return InventoryItem.from_dict(item_id, snapshot.data)

    def select_item(self, line: Mapping[str, Any], item_id: Optional[str]) -> Dict[str, Any]:
        """Apply an item choice to a form row; an empty or unknown id clears it."""
        item = self.get_item(item_id) if item_id else None
        return apply_item_selection(line, item)

    def get_document(self, kind_name: str, doc_id: str) -> Dict[str, Any]:
        """Read one document with its id.

        Raises:
            DocumentNotFoundError: If there is no such document
        """
        collection = self.collection_for(kind_name)
        snapshot = self.database.get_document(collection, doc_id)
        if not snapshot.exists:
            raise DocumentNotFoundError(f"{kind_name} {doc_id} does not exist")
        return snapshot.to_dict()

    def list_documents(self, kind_name: str) -> List[Dict[str, Any]]:
        """All documents of a kind, newest first."""
        collection = self.collection_for(kind_name)
        return [s.to_dict() for s in self.database.list_collection(collection, order_by="createdAt", descending=True)]

    def list_counters(self) -> List[Dict[str, Any]]:
        return self.allocator.list_counters()

    # ------------------------------------------------------------------
    # Building documents
    # ------------------------------------------------------------------

    def _party_name(self, kind: DocumentKind, party_id: str) -> str:
        snapshot = self.database.get_document(kind.party_collection, party_id)
        return snapshot.get(kind.party_label_key) or "N/A"

    def _line_items(self, form: DocumentForm) -> List[LineItem]:
        items: Dict[str, Optional[InventoryItem]] = {}
        lines = []
        for row in form.line_items:
            item = None
            if row.item_id:
                if row.item_id not in items:
                    items[row.item_id] = self.get_item(row.item_id)
                item = items[row.item_id]
            lines.append(LineItem(
                item_id=row.item_id,
                item_code=(item.item_code if item and item.item_code else row.item_code) or "",
                description=row.description or "",
                quantity=row.qty,
                unit_price=row.unit_price,
                discount_percent=row.discount_percentage,
                tax_percent=row.tax_percentage,
                item_name=(item.item_name if item else None) or ("N/A" if row.item_id else None),
            ))
        return lines

    def build_document(
        self,
        kind: DocumentKind,
        form: DocumentForm,
        for_update: bool = False
    ) -> Tuple[Dict[str, Any], List[LineItem], DocumentTotals]:
        """Turn a validated form into the stored document fields.

        Blank and unset fields are left out, except that an update writes every
        charge of the form (0 when cleared). Timestamps are server-assigned.
        """
        charges = form.extra_charges()
        if for_update:
            # Cleared charges are written as 0 so the merge overwrites the stored value
            charges = {to_camel(name): charges.get(to_camel(name), 0) for name in form.charge_fields}
        options = TotalsOptions(
            show_discount_column=form.show_discount_column,
            show_tax_column=form.show_tax_column,
            extra_charges=charges,
        )
        lines, totals = recompute_lines(self._line_items(form), options)
        party_id = getattr(form, kind.party_field)

        data: Dict[str, Any] = {
            to_camel(kind.party_field): party_id,
            kind.party_name_key: self._party_name(kind, party_id),
            "billingAddress": form.billing_address,
            "shippingAddress": form.shipping_address,
            to_camel(kind.date_field): getattr(form, kind.date_field),
            "salesperson": form.salesperson,
            "lineItems": [line.to_dict() for line in lines],
            "taxType": form.tax_type,
            "comments": form.comments,
            "privateComments": form.private_comments,
            "status": form.status or (None if for_update else kind.default_status),
            "showItemCodeColumn": form.show_item_code_column,
            "showDiscountColumn": form.show_discount_column,
            "showTaxColumn": form.show_tax_column,
            **totals.to_dict(),
            **charges,
        }
        for name in kind.extra_fields:
            data[to_camel(name)] = getattr(form, name)

        document = {key: _to_stored(value) for key, value in data.items() if not _is_blank(value)}
        return document, lines, totals

    def _validate(self, kind: DocumentKind, data: Mapping[str, Any]) -> DocumentForm:
        return validate_form(kind.form, data).raise_for_errors()

    @staticmethod
    def _stock_deduction(lines: List[LineItem]) -> Callable[[Transaction], Callable[[Transaction], None]]:
        """Pre-write hook checking stock and staging the deductions of a new sale."""
        def prepare(txn: Transaction) -> Callable[[Transaction], None]:
            adjustments = plan_stock_deduction(txn, lines)
            return lambda t: apply_stock_adjustments(t, adjustments)
        return prepare

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_document(self, kind_name: str, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        """Validate, price and store a new document under a freshly allocated id.

        Raises:
            FormValidationError: If the form data is invalid (nothing is written)
            BusinessRuleError: If a sale fails its stock check (nothing is written)
            TransactionAbortedError: If the write could not commit
        """
        kind = self.get_kind(kind_name)
        form = self._validate(kind, data)
        document, lines, totals = self.build_document(kind, form)
        document.update(dict(kind.initial_fields))
        document["createdAt"] = SERVER_TIMESTAMP
        document["updatedAt"] = SERVER_TIMESTAMP

        prepare = self._stock_deduction(lines) if kind.name == "sale" else None

        doc_id = self.allocator.allocate_id(kind.name, document, year=year, prepare=prepare)
        collection = self.collection_for(kind.name)
        logger.info(f"Created {kind.name} {doc_id}: total {totals.rounded()['totalAmount']}")
        return SavedDocument(document_id=doc_id, collection=collection, totals=totals)

    def save_quote(self, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        return self.create_document("quote", data, year)

    def record_sale(self, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        """Create a sale and deduct its stock in the same transaction."""
        return self.create_document("sale", data, year)

    def create_purchase_order(self, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        return self.create_document("purchase_order", data, year)

    def create_inventory_order(self, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        return self.create_document("inventory_order", data, year)

    def create_invoice(self, data: Mapping[str, Any], year: Optional[int] = None) -> SavedDocument:
        return self.create_document("invoice", data, year)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_sale(self, sale_id: str, data: Mapping[str, Any]) -> SavedDocument:
        """Replace a sale's contents and move stock by the quantity differences.

        Raises:
            DocumentNotFoundError: If the sale does not exist
            BusinessRuleError: If the new quantities are not in stock
        """
        kind = self.get_kind("sale")
        form = self._validate(kind, data)
        document, new_lines, totals = self.build_document(kind, form, for_update=True)
        document["updatedAt"] = SERVER_TIMESTAMP
        collection = self.collection_for(kind.name)

        def update(txn: Transaction) -> None:
            snapshot = txn.get(collection, sale_id)
            if not snapshot.exists:
                raise DocumentNotFoundError("Sale does not exist.")
            old_lines = [LineItem.from_input(line) for line in snapshot.get("lineItems", [])]
            adjustments = plan_stock_rebalance(txn, old_lines, new_lines)
            txn.update(collection, sale_id, document)
            apply_stock_adjustments(txn, adjustments)

        self.database.run_transaction(update)
        logger.info(f"Updated sale {sale_id}: total {totals.rounded()['totalAmount']}")
        return SavedDocument(document_id=sale_id, collection=collection, totals=totals)

    def update_document(self, kind_name: str, doc_id: str, data: Mapping[str, Any]) -> SavedDocument:
        """Replace a document's contents with recomputed totals.

        Sales are routed through update_sale so their stock stays consistent.
        """
        if kind_name == "sale":
            return self.update_sale(doc_id, data)

        kind = self.get_kind(kind_name)
        form = self._validate(kind, data)
        document, _, totals = self.build_document(kind, form, for_update=True)
        document["updatedAt"] = SERVER_TIMESTAMP
        collection = self.collection_for(kind.name)

        def update(txn: Transaction) -> None:
            snapshot = txn.get(collection, doc_id)
            if not snapshot.exists:
                raise DocumentNotFoundError(f"{kind.name} {doc_id} does not exist")
            txn.update(collection, doc_id, document)

        self.database.run_transaction(update)
        logger.info(f"Updated {kind.name} {doc_id}")
        return SavedDocument(document_id=doc_id, collection=collection, totals=totals)
