"""
Tier Resolver - Picks the single best pricing tier for a quantity.

Used by the pricing engine before discount composition. Pure: no I/O,
tiers are supplied by the caller.
"""
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .models import PricingTier


@dataclass(frozen=True)
class MatchedTier:
    """A tier that matched with its comparable magnitude."""
    tier: PricingTier
    magnitude: float
    match_reason: str


class TierResolver:
    """
    Selects the best applicable tier for a quantity.

    Ranking:
    1. Greatest comparable discount magnitude (fixed_price dominates)
    2. Lowest priority value
    3. Earliest effective date (undated tiers rank first)
    """

    def find_matching_tiers(
        self,
        tiers: list[PricingTier],
        quantity: int,
        as_of: Optional[date] = None
    ) -> list[MatchedTier]:
        """
        Find all tiers applicable to the quantity at the given date.

        Returns matches sorted best-first.
        """
        today = as_of or date.today()
        matched = []

        for tier in tiers:
            if not tier.is_active:
                continue
            if not tier.contains(quantity):
                continue
            if not tier.is_effective(today):
                continue

            upper = f"<{tier.max_quantity}" if tier.max_quantity is not None else "+"
            matched.append(MatchedTier(
                tier=tier,
                magnitude=tier.discount.magnitude(quantity),
                match_reason=f"qty {quantity} in [{tier.min_quantity}{upper}]"
            ))

        matched.sort(key=self._rank)
        return matched

    def select_tier(
        self,
        tiers: list[PricingTier],
        quantity: int,
        as_of: Optional[date] = None
    ) -> Optional[PricingTier]:
        """Return the best tier, or None meaning "no quantity discount"."""
        matched = self.find_matching_tiers(tiers, quantity, as_of)
        return matched[0].tier if matched else None

    @staticmethod
    def _rank(match: MatchedTier) -> tuple:
        tier = match.tier
        return (-match.magnitude, tier.priority, tier.effective_date or date.min)


_resolver = TierResolver()


def select_tier(
    tiers: list[PricingTier],
    quantity: int,
    as_of: Optional[date] = None
) -> Optional[PricingTier]:
    """Module-level shortcut for TierResolver().select_tier."""
    return _resolver.select_tier(tiers, quantity, as_of)
