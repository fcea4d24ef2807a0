"""CLI interface for business documents: totals, creation, counters, reports and exports."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from ..config import get_app_version, get_default_output_dir, get_log_level
from ..errors import BizDocsError, FormValidationError
from ..export.excel_export import export_documents_to_excel, export_inventory_report
from ..inventory.report import REPORT_TYPES, build_inventory_report
from ..services.documents import DOCUMENT_KINDS, DocumentService, preview_totals
from ..storage.database import DocumentDatabase

logger = logging.getLogger(__name__)


def _read_json(path: str) -> Dict[str, Any]:
    """Read a JSON form file ("-" reads stdin)."""
    if path == "-":
        data = json.load(sys.stdin)
    else:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a JSON object, got {type(data).__name__}")
    return data


def _open_service(args: argparse.Namespace) -> DocumentService:
    db_path: Optional[Path] = Path(args.db) if args.db else None
    return DocumentService(DocumentDatabase(db_path))


def _handle_totals(args: argparse.Namespace) -> None:
    data = _read_json(args.file)
    lines, totals = preview_totals(
        data.get("lineItems", []),
        show_discount_column=data.get("showDiscountColumn", True),
        show_tax_column=data.get("showTaxColumn", True),
        extra_charges=data.get("extraCharges") or {},
    )
    for index, line in enumerate(lines, start=1):
        label = line.description or line.item_code or line.item_id or f"Line {index}"
        print(f"  {index:>3}. {label}: {line.quantity} x {line.unit_price} = {line.line_total:.2f}")
    rounded = totals.rounded()
    print(f"Subtotal:           {rounded['subtotal']}")
    print(f"Total discount:     {rounded['totalDiscountAmount']}")
    print(f"Total tax:          {rounded['totalTaxAmount']}")
    print(f"Additional charges: {rounded['additionalCharges']}")
    print(f"Grand total:        {rounded['totalAmount']}")


def _handle_create(args: argparse.Namespace) -> None:
    service = _open_service(args)
    data = _read_json(args.file)
    saved = service.create_document(args.kind, data, year=args.year)
    print(f"Created {args.kind} {saved.document_id} (total {saved.totals.rounded()['totalAmount']})")


def _handle_counters(args: argparse.Namespace) -> None:
    service = _open_service(args)
    for counter in service.list_counters():
        counts = ", ".join(f"{year}: {count}" for year, count in counter["yearlyCounts"].items()) or "none issued"
        print(f"{counter['sequence']:<18} {counter['prefix']:<5} {counts}")


def _handle_report(args: argparse.Namespace) -> None:
    service = _open_service(args)
    items = build_inventory_report(
        service.database,
        report_type=args.type,
        category=args.category,
        section=args.section,
        brand=args.brand,
    )
    output = args.output or str(get_default_output_dir() / f"inventory_{args.type}.xlsx")
    path = export_inventory_report(items, output)
    print(f"Inventory report: {len(items)} items -> {path}")


def _handle_export(args: argparse.Namespace) -> None:
    service = _open_service(args)
    documents = service.list_documents(args.kind)
    output = args.output or str(get_default_output_dir() / f"{args.kind}s.xlsx")
    path = export_documents_to_excel(documents, output)
    print(f"Exported {len(documents)} documents -> {path}")


def _handle_serve(args: argparse.Namespace) -> None:
    import os

    import uvicorn

    if args.db:
        os.environ["BIZDOCS_DB_PATH"] = args.db
    uvicorn.run("bizdocs.api.main:app", host=args.host, port=args.port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bizdocs",
        description="Quotations, sales, orders and invoices with sequential document ids"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_app_version()}")
    parser.add_argument(
        "--db",
        required=False,
        help="SQLite database file (default: BIZDOCS_DB_PATH or data/bizdocs.db)"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose debug output"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    kinds = list(DOCUMENT_KINDS)

    totals = subparsers.add_parser("totals", help="Compute totals for a JSON form file")
    totals.add_argument("file", help="JSON file with lineItems (and optional column flags, extraCharges)")
    totals.set_defaults(handler=_handle_totals)

    create = subparsers.add_parser("create", help="Create a document from a JSON form file")
    create.add_argument("kind", choices=kinds)
    create.add_argument("file", help="JSON form file ('-' for stdin)")
    create.add_argument("--year", type=int, help="Counter year (default: current year)")
    create.set_defaults(handler=_handle_create)

    counters = subparsers.add_parser("counters", help="Show document number counters")
    counters.set_defaults(handler=_handle_counters)

    report = subparsers.add_parser("report", help="Export an inventory report (.xlsx or .csv)")
    report.add_argument("--type", choices=REPORT_TYPES, default="current_stock")
    report.add_argument("--category")
    report.add_argument("--section")
    report.add_argument("--brand", help="Case-insensitive part of the brand name")
    report.add_argument("--output", help="Output file (default: output dir/inventory_<type>.xlsx)")
    report.set_defaults(handler=_handle_report)

    export = subparsers.add_parser("export", help="Export documents of one kind to Excel")
    export.add_argument("kind", choices=kinds)
    export.add_argument("--output", help="Output Excel file")
    export.set_defaults(handler=_handle_export)

    serve = subparsers.add_parser("serve", help="Run the REST API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(handler=_handle_serve)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else getattr(logging, get_log_level(), logging.WARNING)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        args.handler(args)
    except FormValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        for field_path, messages in sorted(e.field_errors.items()):
            print(f"  {field_path}: {'; '.join(messages)}", file=sys.stderr)
        sys.exit(1)
    except (BizDocsError, KeyError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
