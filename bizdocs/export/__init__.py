"""Export package."""

from .excel_export import export_documents_to_excel, export_inventory_report

__all__ = ['export_documents_to_excel', 'export_inventory_report']
