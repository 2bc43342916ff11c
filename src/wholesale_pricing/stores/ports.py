"""
Collaborator ports consumed by the pricing engine.

Every read takes the tenant explicitly; implementations must never fall back
to an ambient tenant.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..engine.models import PricingTier, TerritoryAdjustment, TierSelector


@dataclass(frozen=True)
class TaxResult:
    """Tax breakdown returned by a TaxCalculator."""
    tax: float
    total: float


class TierStore(ABC):
    """Source of configured pricing tiers."""

    @abstractmethod
    def get_tiers(self, tenant_id: str, selector: TierSelector) -> list[PricingTier]:
        """Return active, date-valid tiers for the tenant narrowed by selector.

        Raises:
            CollaboratorUnavailable: the backing store cannot be read
        """


class TerritoryStore(ABC):

    @abstractmethod
    def get_adjustment(self, tenant_id: str, territory: str) -> Optional[TerritoryAdjustment]:
        """Return the active adjustment for the territory, or None."""


class GroupStore(ABC):

    @abstractmethod
    def get_discount_rate(self, tenant_id: str, group_id: str) -> float:
        """Return the group's discount as a fraction; 0 when unknown."""


class TaxCalculator(ABC):

    @abstractmethod
    def calculate(self, amount: float, rate: float, region: str, category: str) -> TaxResult:
        """Compute tax on a net amount. May raise; callers degrade."""


class PriceBook(ABC):
    """Catalog base prices used by the bulk matrix."""

    @abstractmethod
    def get_base_price(self, tenant_id: str, product_id: str) -> Optional[float]:
        """Return the product's base unit price, or None when unknown."""

    def get_product_name(self, tenant_id: str, product_id: str) -> str:
        return f"Product {product_id}"

    def get_category_id(self, tenant_id: str, product_id: str) -> Optional[str]:
        return None
