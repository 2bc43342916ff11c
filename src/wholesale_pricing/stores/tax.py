"""
Default tax collaborator: flat VAT on the net amount.

The engine already folds the territory's tax multiplier into ``rate``.
"""
from .ports import TaxCalculator, TaxResult
from ..errors import InvalidInput


class RegionalTaxCalculator(TaxCalculator):
    """Applies a single rate, with optional zero-rated item categories."""

    def __init__(self, zero_rated_categories: tuple = ()):
        self.zero_rated_categories = {c.lower() for c in zero_rated_categories}

    def calculate(self, amount: float, rate: float, region: str, category: str) -> TaxResult:
        if amount < 0:
            raise InvalidInput("Amount must be non-negative")
        if rate < 0 or rate > 1:
            raise InvalidInput("Tax rate must be between 0 and 1")

        if (category or '').lower() in self.zero_rated_categories:
            return TaxResult(tax=0.0, total=amount)

        tax = amount * rate
        return TaxResult(tax=tax, total=amount + tax)
