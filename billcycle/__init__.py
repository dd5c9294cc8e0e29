"""billcycle: recurring bills and incomes, materialized month by month."""

__version__ = "0.1.0"
