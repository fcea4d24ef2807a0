"""Line-item pricing: number parsing and document totals."""

from .numbers import normalize_decimal, quantize_money, to_amount

__all__ = ["normalize_decimal", "quantize_money", "to_amount"]
