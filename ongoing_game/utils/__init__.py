"""Utility helpers."""

from .statistics import kda_ratio, safe_divide, safe_mean, safe_stdev

__all__ = ["kda_ratio", "safe_divide", "safe_mean", "safe_stdev"]
