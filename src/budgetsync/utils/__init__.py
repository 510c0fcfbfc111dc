"""Utility functions for budgetsync."""

from budgetsync.utils.date_parser import get_date_range, parse_date

__all__ = ["get_date_range", "parse_date"]
