"""Inventory stock handling and reports."""

from .report import REPORT_COLUMNS, build_inventory_report, report_rows
from .stock import (
    ITEMS_COLLECTION,
    StockAdjustment,
    apply_stock_adjustments,
    plan_stock_deduction,
    plan_stock_rebalance,
)

__all__ = [
    'REPORT_COLUMNS',
    'build_inventory_report',
    'report_rows',
    'ITEMS_COLLECTION',
    'StockAdjustment',
    'apply_stock_adjustments',
    'plan_stock_deduction',
    'plan_stock_rebalance',
]
