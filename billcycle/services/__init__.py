"""Async services over the document store."""

from billcycle.services.months import MonthsService
from billcycle.services.templates import TemplateRepository

__all__ = [
    "MonthsService",
    "TemplateRepository",
]
