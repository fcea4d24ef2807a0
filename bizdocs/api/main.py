"""FastAPI application for the business document REST API."""

import logging
from functools import lru_cache
from typing import Any, Dict, List

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from ..config import get_app_version
from ..errors import (
    BusinessRuleError,
    DocumentExistsError,
    DocumentNotFoundError,
    FormValidationError,
    TransactionAbortedError,
)
from ..services.documents import DocumentService, SavedDocument, preview_totals
from ..storage.database import DocumentDatabase
from .models import (
    CounterResponse,
    ErrorResponse,
    PreviewResponse,
    SavedDocumentResponse,
    TotalsRequest,
    TotalsResponse,
)

logger = logging.getLogger(__name__)

# URL segment -> document kind
KIND_PATHS: Dict[str, str] = {
    "quotes": "quote",
    "sales": "sale",
    "purchase-orders": "purchase_order",
    "inventory-orders": "inventory_order",
    "invoices": "invoice",
}

app = FastAPI(
    title="BizDocs API",
    description="REST API for quotations, sales, orders and invoices",
    version=get_app_version(),
)


@lru_cache(maxsize=1)
def get_service() -> DocumentService:
    """Document service backed by the configured database."""
    return DocumentService(DocumentDatabase())


def _kind_for(path: str) -> str:
    if path not in KIND_PATHS:
        raise HTTPException(status_code=404, detail=f"Unknown document type: {path}")
    return KIND_PATHS[path]


def _saved_response(saved: SavedDocument) -> SavedDocumentResponse:
    return SavedDocumentResponse(
        document_id=saved.document_id,
        collection=saved.collection,
        totals=TotalsResponse.from_totals(saved.totals),
    )


def _error(status_code: int, error: str, detail: Any = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, detail=detail).model_dump(),
    )


@app.exception_handler(FormValidationError)
async def form_validation_handler(request: Request, exc: FormValidationError):
    return _error(422, str(exc), exc.field_errors)


@app.exception_handler(DocumentNotFoundError)
async def not_found_handler(request: Request, exc: DocumentNotFoundError):
    return _error(404, str(exc))


@app.exception_handler(BusinessRuleError)
async def business_rule_handler(request: Request, exc: BusinessRuleError):
    return _error(409, str(exc))


@app.exception_handler(DocumentExistsError)
async def document_exists_handler(request: Request, exc: DocumentExistsError):
    return _error(409, str(exc))


@app.exception_handler(TransactionAbortedError)
async def transaction_aborted_handler(request: Request, exc: TransactionAbortedError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return _error(503, "Could not save the document, please try again", str(exc))


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "BizDocs API",
        "version": get_app_version(),
        "docs": "/docs",
    }


@app.post("/api/totals", response_model=PreviewResponse)
def totals_endpoint(request: TotalsRequest):
    """Recompute line totals and document totals for a form being edited."""
    lines, totals = preview_totals(
        request.line_items,
        show_discount_column=request.show_discount_column,
        show_tax_column=request.show_tax_column,
        extra_charges=request.extra_charges,
    )
    return PreviewResponse.from_result(lines, totals)


@app.get("/api/options/customers")
def customer_options(service: DocumentService = Depends(get_service)):
    return service.customer_options()


@app.get("/api/options/suppliers")
def supplier_options(service: DocumentService = Depends(get_service)):
    return service.supplier_options()


@app.get("/api/options/items")
def item_options(service: DocumentService = Depends(get_service)):
    return service.item_options()


@app.get("/api/counters", response_model=List[CounterResponse])
def list_counters(service: DocumentService = Depends(get_service)):
    """Current yearly counts of every document number sequence."""
    return service.list_counters()


@app.post("/api/{kind}", response_model=SavedDocumentResponse, status_code=201)
def create_document(
    kind: str,
    data: Dict[str, Any] = Body(...),
    service: DocumentService = Depends(get_service),
):
    """Create a document and allocate its id.

    Sales deduct stock in the same transaction; a failed stock check
    answers 409 and writes nothing.
    """
    saved = service.create_document(_kind_for(kind), data)
    return _saved_response(saved)


@app.get("/api/{kind}")
def list_documents(kind: str, service: DocumentService = Depends(get_service)):
    return service.list_documents(_kind_for(kind))


@app.get("/api/{kind}/{doc_id}")
def get_document(kind: str, doc_id: str, service: DocumentService = Depends(get_service)):
    return service.get_document(_kind_for(kind), doc_id)


@app.put("/api/{kind}/{doc_id}", response_model=SavedDocumentResponse)
def update_document(
    kind: str,
    doc_id: str,
    data: Dict[str, Any] = Body(...),
    service: DocumentService = Depends(get_service),
):
    """Update a document; sales also rebalance stock."""
    saved = service.update_document(_kind_for(kind), doc_id, data)
    return _saved_response(saved)
