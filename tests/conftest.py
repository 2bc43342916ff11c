"""
Shared fixtures: in-memory collaborators and an engine factory.
"""
import os
import sys
import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from wholesale_pricing.config.settings import Settings
from wholesale_pricing.engine.models import Discount, DiscountKind, PricingTier, TierStatus
from wholesale_pricing.engine.pricing_engine import PricingEngine
from wholesale_pricing.errors import CollaboratorUnavailable
from wholesale_pricing.stores.ports import GroupStore, PriceBook, TaxCalculator, TerritoryStore, TierStore
from wholesale_pricing.stores.tax import RegionalTaxCalculator

TENANT = "tenant-a"


def make_tier(tier_id="T1", min_quantity=1, max_quantity=None, kind="percentage", value=10.0, **kwargs):
    """Build a product-scoped tier with sensible defaults."""
    kwargs.setdefault("tenant_id", TENANT)
    if "category_id" not in kwargs:
        kwargs.setdefault("product_id", "SKU-1")
    return PricingTier(
        tier_id=tier_id,
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        discount=Discount(kind=DiscountKind(kind), value=value),
        **kwargs,
    )


class FakeTierStore(TierStore):
    def __init__(self, tiers=None, error=None):
        self.tiers = list(tiers or [])
        self.error = error
        self.calls = []

    def get_tiers(self, tenant_id, selector):
        self.calls.append((tenant_id, selector))
        if self.error:
            raise self.error
        return [t for t in self.tiers
                if t.tenant_id == tenant_id and t.status is TierStatus.ACTIVE]


class FakeTerritoryStore(TerritoryStore):
    def __init__(self, adjustments=None):
        self.adjustments = dict(adjustments or {})

    def get_adjustment(self, tenant_id, territory):
        return self.adjustments.get((tenant_id, territory))


class FakeGroupStore(GroupStore):
    def __init__(self, rates=None):
        self.rates = dict(rates or {})

    def get_discount_rate(self, tenant_id, group_id):
        return self.rates.get((tenant_id, group_id), 0.0)


class FailingTaxCalculator(TaxCalculator):
    def calculate(self, amount, rate, region, category):
        raise CollaboratorUnavailable("tax calculator", "connection refused")


class EmptyTaxCalculator(TaxCalculator):
    """Answers without a usable tax figure."""

    def __init__(self, result=None):
        self.result = result

    def calculate(self, amount, rate, region, category):
        return self.result


class FakePriceBook(PriceBook):
    def __init__(self, prices=None):
        self.prices = dict(prices or {})

    def get_base_price(self, tenant_id, product_id):
        return self.prices.get((tenant_id, product_id))


@pytest.fixture
def settings(tmp_path, monkeypatch):
    for var in ("WHOLESALE_PRICING_DATA_DIR", "WHOLESALE_PRICING_VAT_RATE", "WHOLESALE_PRICING_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    return Settings.load(project_root=tmp_path, data_dir=tmp_path / "data")


@pytest.fixture
def build_engine(settings):
    """Factory for an engine over in-memory collaborators."""
    def _build(tiers=None, territories=None, groups=None, tax=None, prices=None, tier_error=None):
        return PricingEngine(
            tier_store=FakeTierStore(tiers, error=tier_error),
            territory_store=FakeTerritoryStore(territories),
            group_store=FakeGroupStore(groups),
            tax_calculator=tax or RegionalTaxCalculator(),
            settings=settings,
            price_book=FakePriceBook(prices),
        )
    return _build
