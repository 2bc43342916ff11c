"""
Discount Composer - Stacks discounts against a shrinking balance.

Stage order is fixed and not reorderable:
1. Quantity tier discount (against the base amount)
2. Territory adjustment
3. Group discount
4. Payment-terms discount or surcharge

Each stage is a pure function of the running balance. The composer is a
left fold over the stages; the balance is clamped at zero after every stage.
"""
from dataclasses import dataclass
from functools import reduce
from typing import Callable, Optional

from ..errors import InvalidInput
from .models import (
    DiscountKind,
    PaymentTerms,
    PriceBreakdown,
    PricingTier,
    TerritoryAdjustment,
    NO_TERRITORY_ADJUSTMENT,
)


# Positive = discount, negative = surcharge
PAYMENT_TERMS_RATES = {
    PaymentTerms.ADVANCE_PAYMENT: 0.05,
    PaymentTerms.CASH_ON_DELIVERY: 0.02,
    PaymentTerms.NET_15: 0.01,
    PaymentTerms.NET_30: 0.0,
    PaymentTerms.NET_60: -0.01,
    PaymentTerms.NET_90: -0.02,
}


def payment_terms_rate(terms: Optional[PaymentTerms]) -> float:
    """Signed rate for the payment terms; unlisted terms carry no adjustment."""
    if terms is None:
        return 0.0
    return PAYMENT_TERMS_RATES.get(terms, 0.0)


@dataclass(frozen=True)
class Stage:
    """A named composition stage: running balance -> signed delta."""
    name: str
    delta: Callable[[float], float]


@dataclass(frozen=True)
class StageOutcome:
    """Balance after a stage plus the delta actually taken."""
    remaining: float
    deltas: tuple = ()


def quantity_delta(tier: Optional[PricingTier], quantity: int) -> Callable[[float], float]:
    """Tier discount; computed against the balance entering stage one (the base)."""
    def _delta(remaining: float) -> float:
        if tier is None:
            return 0.0
        kind = tier.discount.kind
        value = tier.discount.value
        if kind is DiscountKind.PERCENTAGE:
            return remaining * (value / 100.0)
        if kind is DiscountKind.FIXED_AMOUNT:
            return value * quantity
        if kind is DiscountKind.FIXED_PRICE:
            return remaining - value * quantity
        raise InvalidInput(f"Unhandled discount kind {kind!r}")
    return _delta


def territory_delta(adjustment: TerritoryAdjustment) -> Callable[[float], float]:
    # multiplier < 1 is a discount, > 1 a surcharge
    return lambda remaining: remaining * (1 - adjustment.price_multiplier)


def group_delta(rate: float) -> Callable[[float], float]:
    return lambda remaining: remaining * rate


def payment_delta(terms: Optional[PaymentTerms]) -> Callable[[float], float]:
    rate = payment_terms_rate(terms)

    def _delta(remaining: float) -> float:
        magnitude = remaining * abs(rate)
        return magnitude if rate >= 0 else -magnitude
    return _delta


def apply_stage(outcome: StageOutcome, stage: Stage) -> StageOutcome:
    """Fold step: apply one stage and clamp the balance at zero."""
    delta = stage.delta(outcome.remaining)
    remaining = max(0.0, outcome.remaining - delta)
    applied = outcome.remaining - remaining
    return StageOutcome(remaining=remaining, deltas=outcome.deltas + ((stage.name, applied),))


class DiscountComposer:
    """Composes the four discount stages into a PriceBreakdown."""

    STAGE_ORDER = ('quantity', 'territory', 'group', 'payment')

    def build_stages(
        self,
        quantity: int,
        tier: Optional[PricingTier],
        territory_adjustment: Optional[TerritoryAdjustment],
        group_discount_rate: float,
        payment_terms: Optional[PaymentTerms],
    ) -> tuple:
        return (
            Stage('quantity', quantity_delta(tier, quantity)),
            Stage('territory', territory_delta(territory_adjustment or NO_TERRITORY_ADJUSTMENT)),
            Stage('group', group_delta(group_discount_rate)),
            Stage('payment', payment_delta(payment_terms)),
        )

    def compose(
        self,
        base_amount: float,
        quantity: int,
        tier: Optional[PricingTier] = None,
        territory_adjustment: Optional[TerritoryAdjustment] = None,
        group_discount_rate: float = 0.0,
        payment_terms: Optional[PaymentTerms] = None,
    ) -> PriceBreakdown:
        """
        Stack discounts in fixed order against base_amount.

        Returns an unrounded breakdown without tax; the caller rounds once
        all stages (and tax) are done.
        """
        if base_amount < 0:
            raise InvalidInput("Base amount cannot be negative")
        if quantity <= 0:
            raise InvalidInput("Quantity must be greater than zero")

        stages = self.build_stages(quantity, tier, territory_adjustment,
                                   group_discount_rate, payment_terms)
        outcome = reduce(apply_stage, stages, StageOutcome(remaining=base_amount))
        deltas = dict(outcome.deltas)

        return PriceBreakdown(
            base_amount=base_amount,
            quantity=quantity,
            quantity_discount=deltas['quantity'],
            territory_discount=deltas['territory'],
            group_discount=deltas['group'],
            payment_discount=deltas['payment'],
            final_amount_pre_tax=outcome.remaining,
            total=outcome.remaining,
            unit_price=outcome.remaining / quantity,
            total_savings=base_amount - outcome.remaining,
            applied_tier=tier,
        )


_composer = DiscountComposer()


def compose(
    base_amount: float,
    quantity: int,
    tier: Optional[PricingTier] = None,
    territory_adjustment: Optional[TerritoryAdjustment] = None,
    group_discount_rate: float = 0.0,
    payment_terms: Optional[PaymentTerms] = None,
) -> PriceBreakdown:
    """Module-level shortcut for DiscountComposer().compose."""
    return _composer.compose(base_amount, quantity, tier, territory_adjustment,
                             group_discount_rate, payment_terms)
