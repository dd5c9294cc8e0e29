"""Recurrence calculation, materialization and occurrence lifecycle.

Everything in this package is synchronous and works on in-memory models.
"""

from billcycle.engine.calculator import calculate_month_summary, calculate_section_tally
from billcycle.engine.materializer import generate, sync
from billcycle.engine.recurrence import (
    occurrence_count,
    occurrence_dates,
    prorated_monthly_amount,
)

__all__ = [
    "calculate_month_summary",
    "calculate_section_tally",
    "generate",
    "occurrence_count",
    "occurrence_dates",
    "prorated_monthly_amount",
    "sync",
]
