"""
Data models for the pricing engine.

Uses dataclasses for structured data representation. Tiers, adjustments
and breakdowns are frozen.
"""
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional

from ..errors import InvalidInput


class DiscountKind(str, Enum):
    """How a tier's discount value is interpreted."""
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'
    FIXED_PRICE = 'fixed_price'


class TierStatus(str, Enum):
    """Lifecycle state of a configured tier."""
    ACTIVE = 'active'
    INACTIVE = 'inactive'  # soft-deleted or paused
    REMOVED = 'removed'    # hard-deleted, kept for audit only


class PaymentTerms(str, Enum):
    ADVANCE_PAYMENT = 'advance_payment'
    CASH_ON_DELIVERY = 'cash_on_delivery'
    IMMEDIATE = 'immediate'
    NET_7 = 'net_7'
    NET_15 = 'net_15'
    NET_30 = 'net_30'
    NET_45 = 'net_45'
    NET_60 = 'net_60'
    NET_90 = 'net_90'

    @classmethod
    def parse(cls, value) -> 'PaymentTerms':
        """Coerce a string (or enum) into PaymentTerms."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInput(f"Unknown payment terms '{value}'")


@dataclass(frozen=True)
class Discount:
    """Discount descriptor carried by a tier."""
    kind: DiscountKind
    value: float

    def magnitude(self, quantity: int) -> float:
        """
        Comparable discount size used to rank competing tiers.

        Fixed-price tiers override unit pricing outright, so they dominate
        every percentage or fixed-amount competitor.
        """
        if self.kind is DiscountKind.PERCENTAGE:
            return self.value
        if self.kind is DiscountKind.FIXED_AMOUNT:
            return self.value * quantity
        if self.kind is DiscountKind.FIXED_PRICE:
            return float('inf')
        raise InvalidInput(f"Unhandled discount kind {self.kind!r}")


@dataclass(frozen=True)
class PricingTier:
    """A quantity-scoped discount rule for one tenant."""
    tier_id: str
    tenant_id: str
    min_quantity: int
    discount: Discount
    max_quantity: Optional[int] = None  # exclusive; None = unbounded
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    group_id: Optional[str] = None
    territory: Optional[str] = None
    payment_terms_discount: float = 0.0
    priority: int = 50
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: TierStatus = TierStatus.ACTIVE
    tier_name: str = ''
    currency: str = 'NGN'

    @property
    def is_active(self) -> bool:
        return self.status is TierStatus.ACTIVE

    def contains(self, quantity: int) -> bool:
        """True when quantity falls in [min_quantity, max_quantity)."""
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity < self.max_quantity

    def is_effective(self, as_of: date) -> bool:
        """True when as_of falls inside the effective/expiry window."""
        if self.effective_date and as_of < self.effective_date:
            return False
        if self.expiry_date and as_of > self.expiry_date:
            return False
        return True

    def scope_key(self) -> tuple:
        """Selector values that identify the tier's scope."""
        return (self.product_id, self.category_id, self.group_id, self.territory)


@dataclass(frozen=True)
class TerritoryAdjustment:
    """Regional multipliers applied to price, shipping and tax."""
    territory: str
    price_multiplier: float = 1.0
    shipping_multiplier: float = 1.0
    tax_multiplier: float = 1.0

    def __post_init__(self):
        for name in ('price_multiplier', 'shipping_multiplier', 'tax_multiplier'):
            if getattr(self, name) <= 0:
                raise InvalidInput(f"{name} for territory '{self.territory}' must be greater than zero")


NO_TERRITORY_ADJUSTMENT = TerritoryAdjustment(territory='')


@dataclass(frozen=True)
class TierSelector:
    """Narrows a tier-store read to the scope of one pricing call."""
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    group_id: Optional[str] = None
    territory: Optional[str] = None
    as_of: Optional[date] = None


@dataclass(frozen=True)
class CustomerContext:
    """Who is buying, where, and on which payment terms."""
    quantity: int = 1
    group_id: Optional[str] = None
    territory: Optional[str] = None
    payment_terms: Optional[PaymentTerms] = None
    currency: Optional[str] = None
    as_of: Optional[date] = None


@dataclass(frozen=True)
class PriceRequest:
    """A single-product pricing request."""
    product_id: str
    base_price: float
    context: CustomerContext = field(default_factory=CustomerContext)
    category_id: Optional[str] = None


@dataclass(frozen=True)
class TraceStep:
    """A single step in the pricing resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass(frozen=True)
class PriceBreakdown:
    """
    Complete, immutable result of a pricing calculation.

    Discounts are signed: a negative territory or payment discount is a
    surcharge. ``total = max(0, base_amount - discounts_total) + tax_amount``.
    """
    base_amount: float
    quantity: int
    quantity_discount: float = 0.0
    territory_discount: float = 0.0
    group_discount: float = 0.0
    payment_discount: float = 0.0
    final_amount_pre_tax: float = 0.0
    tax_amount: float = 0.0
    total: float = 0.0
    unit_price: float = 0.0
    total_savings: float = 0.0
    currency: str = 'NGN'
    tax_applied: bool = False
    applied_tier: Optional[PricingTier] = None
    trace: tuple = ()

    @property
    def discounts_total(self) -> float:
        return (self.quantity_discount + self.territory_discount +
                self.group_discount + self.payment_discount)

    def rounded(self) -> 'PriceBreakdown':
        """Round every monetary field to 2 decimal places."""
        return replace(
            self,
            base_amount=round(self.base_amount, 2),
            quantity_discount=round(self.quantity_discount, 2),
            territory_discount=round(self.territory_discount, 2),
            group_discount=round(self.group_discount, 2),
            payment_discount=round(self.payment_discount, 2),
            final_amount_pre_tax=round(self.final_amount_pre_tax, 2),
            tax_amount=round(self.tax_amount, 2),
            total=round(self.total, 2),
            unit_price=round(self.unit_price, 2),
            total_savings=round(self.total_savings, 2),
        )

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass(frozen=True)
class QuantityBreakpoint:
    """One row of a product's bulk pricing table."""
    min_quantity: int
    max_quantity: Optional[int]
    unit_price: float
    discount_percent: float
    savings: float


@dataclass
class ProductPricingRow:
    """Bulk pricing table for a single product."""
    product_id: str
    product_name: str
    base_price: float
    currency: str
    territory: str
    tiers: list[QuantityBreakpoint] = field(default_factory=list)
