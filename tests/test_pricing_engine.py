import logging

import pytest

from conftest import TENANT, EmptyTaxCalculator, FailingTaxCalculator, make_tier
from wholesale_pricing.engine.models import CustomerContext, PaymentTerms, PriceRequest, TerritoryAdjustment
from wholesale_pricing.errors import CollaboratorUnavailable, InvalidInput
from wholesale_pricing.stores.ports import TaxResult


def test_reference_example(build_engine):
    """100 × 10 at 20% with 7.5% VAT."""
    engine = build_engine(tiers=[make_tier(min_quantity=10, value=20)])
    b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0)

    assert b.base_amount == 1000.0
    assert b.quantity_discount == 200.0
    assert b.final_amount_pre_tax == 800.0
    assert b.tax_amount == 60.0
    assert b.total == 860.0
    assert b.unit_price == 86.0
    assert b.total_savings == 200.0
    assert b.tax_applied is True
    assert b.currency == "NGN"
    assert b.applied_tier.tier_id == "T1"


def test_no_matching_tier_prices_at_base(build_engine):
    engine = build_engine(tiers=[make_tier(min_quantity=10, value=20)])
    b = engine.calculate_price(TENANT, "SKU-1", 5, 100.0)
    assert b.applied_tier is None
    assert b.quantity_discount == 0.0
    assert b.total == pytest.approx(537.5)


def test_calculation_is_idempotent(build_engine):
    engine = build_engine(
        tiers=[make_tier(min_quantity=10, value=12.5)],
        territories={(TENANT, "Kano"): TerritoryAdjustment("Kano", price_multiplier=0.98)},
        groups={(TENANT, "gold"): 0.05},
    )
    ctx = CustomerContext(group_id="gold", territory="Kano", payment_terms=PaymentTerms.CASH_ON_DELIVERY)
    first = engine.calculate_price(TENANT, "SKU-1", 33, 47.99, context=ctx)
    second = engine.calculate_price(TENANT, "SKU-1", 33, 47.99, context=ctx)
    assert first == second


def test_full_stack_with_territory_tax_multiplier(build_engine):
    engine = build_engine(
        tiers=[make_tier(min_quantity=10, value=20)],
        territories={(TENANT, "Abuja"): TerritoryAdjustment("Abuja", price_multiplier=1.0, tax_multiplier=2.0)},
        groups={(TENANT, "gold"): 0.05},
    )
    ctx = CustomerContext(group_id="gold", territory="Abuja", payment_terms=PaymentTerms.ADVANCE_PAYMENT)
    b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0, context=ctx)

    assert b.group_discount == 40.0        # 5% of 800
    assert b.payment_discount == 38.0      # 5% of 760
    assert b.final_amount_pre_tax == 722.0
    assert b.tax_amount == 108.3           # 722 × 0.075 × 2
    assert b.total == 830.3


def test_tenant_is_passed_to_tier_store(build_engine):
    other = make_tier("OTHER", tenant_id="tenant-b", value=50)
    engine = build_engine(tiers=[other])
    b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0)
    assert b.applied_tier is None

    tenant_id, selector = engine.tier_store.calls[-1]
    assert tenant_id == TENANT
    assert selector.product_id == "SKU-1"
    assert selector.territory == "Lagos"


@pytest.mark.parametrize("tenant_id, product_id, quantity, base_price", [
    ("", "SKU-1", 1, 10.0),
    (TENANT, "", 1, 10.0),
    (TENANT, "SKU-1", 0, 10.0),
    (TENANT, "SKU-1", -3, 10.0),
    (TENANT, "SKU-1", 1, 0.0),
    (TENANT, "SKU-1", 1, -5.0),
])
def test_invalid_input(build_engine, tenant_id, product_id, quantity, base_price):
    engine = build_engine()
    with pytest.raises(InvalidInput):
        engine.calculate_price(tenant_id, product_id, quantity, base_price)


def test_unknown_payment_terms_rejected(build_engine):
    engine = build_engine()
    request = PriceRequest("SKU-1", 10.0, CustomerContext(quantity=1, payment_terms="net_1000"))
    with pytest.raises(InvalidInput):
        engine.calculate(TENANT, request)


def test_tax_failure_degrades_to_zero_tax(build_engine, caplog):
    engine = build_engine(tiers=[make_tier(min_quantity=10, value=20)], tax=FailingTaxCalculator())
    with caplog.at_level(logging.WARNING):
        b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0)

    assert b.tax_amount == 0.0
    assert b.tax_applied is False
    assert b.total == 800.0
    assert b.unit_price == 80.0
    assert any("Tax calculation failed" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("result", [None, object(), TaxResult(tax=None, total=0.0)], ids=["none", "no-tax-attr", "tax-none"])
def test_unusable_tax_result_degrades_to_zero_tax(build_engine, caplog, result):
    engine = build_engine(tiers=[make_tier(min_quantity=10, value=20)], tax=EmptyTaxCalculator(result))
    with caplog.at_level(logging.WARNING):
        b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0)

    assert b.tax_amount == 0.0
    assert b.tax_applied is False
    assert b.total == 800.0
    assert any("Tax calculation failed" in r.getMessage() for r in caplog.records)


def test_tier_store_failure_propagates(build_engine):
    engine = build_engine(tier_error=ConnectionError("db down"))
    with pytest.raises(CollaboratorUnavailable) as exc:
        engine.calculate_price(TENANT, "SKU-1", 10, 100.0)
    assert exc.value.collaborator == "tier store"


def test_trace_records_each_step(build_engine):
    engine = build_engine(tiers=[make_tier(min_quantity=10, value=20, tier_name="Bulk 10+")])
    b = engine.calculate_price(TENANT, "SKU-1", 10, 100.0)
    steps = [t.step for t in b.trace]
    assert steps == ["Request", "Tier", "Territory", "Payment Terms", "Pre-Tax", "Tax"]
    assert "Bulk 10+" in b.get_trace_text()


def test_settings_defaults_apply(build_engine):
    engine = build_engine()
    b = engine.calculate_price(TENANT, "SKU-1", 1, 10.0, context=CustomerContext(currency="USD"))
    assert b.currency == "USD"
    assert engine.settings.default_territory == "Lagos"
    assert engine.settings.default_payment_terms == "net_30"
