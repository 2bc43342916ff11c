import pytest

from conftest import TENANT, make_tier
from wholesale_pricing.engine.matrix import MatrixGenerator, matrix_to_frame
from wholesale_pricing.errors import CollaboratorUnavailable, InvalidInput


@pytest.fixture
def engine(build_engine):
    return build_engine(
        tiers=[make_tier(min_quantity=10, max_quantity=100, value=10),
               make_tier("T2", min_quantity=100, value=20)],
        prices={(TENANT, "SKU-1"): 100.0, (TENANT, "SKU-2"): 50.0},
    )


def test_matrix_uses_fixed_breakpoints(engine):
    matrix = engine.generate_bulk_matrix(TENANT, ["SKU-1"])
    assert len(matrix) == 1
    row = matrix[0]
    assert [t.min_quantity for t in row.tiers] == [1, 5, 10, 25, 50, 100, 250, 500, 1000]
    assert [t.max_quantity for t in row.tiers] == [4, 9, 24, 49, 99, 249, 499, 999, None]
    assert row.currency == "NGN"
    assert row.territory == "Lagos"
    assert row.product_name == "Product SKU-1"


def test_matrix_prices_each_breakpoint(engine):
    tiers = engine.generate_bulk_matrix(TENANT, ["SKU-1"])[0].tiers
    by_qty = {t.min_quantity: t for t in tiers}

    # Unit price includes VAT: 100 × 1.075
    assert by_qty[1].unit_price == 107.5
    assert by_qty[1].discount_percent == -7.5
    # 10% tier: 90 × 1.075
    assert by_qty[10].unit_price == 96.75
    assert by_qty[10].discount_percent == 3.25
    assert by_qty[10].savings == 32.5
    # 20% tier: 80 × 1.075
    assert by_qty[1000].unit_price == 86.0


def test_products_without_price_are_skipped(engine):
    matrix = engine.generate_bulk_matrix(TENANT, ["SKU-1", "MISSING", "SKU-2"])
    assert [r.product_id for r in matrix] == ["SKU-1", "SKU-2"]


def test_per_product_failure_does_not_abort_batch(build_engine):
    engine = build_engine(prices={(TENANT, "SKU-1"): 100.0, (TENANT, "SKU-2"): 50.0})

    class FlakyStore(type(engine.tier_store)):
        def get_tiers(self, tenant_id, selector):
            if selector.product_id == "SKU-1":
                raise CollaboratorUnavailable("tier store", "timeout")
            return []

    engine.tier_store = FlakyStore()
    matrix = engine.generate_bulk_matrix(TENANT, ["SKU-1", "SKU-2"])
    assert [r.product_id for r in matrix] == ["SKU-2"]


def test_empty_product_list_rejected(engine):
    with pytest.raises(InvalidInput):
        engine.generate_bulk_matrix(TENANT, [])
    with pytest.raises(InvalidInput):
        MatrixGenerator(engine, engine.price_book).generate_matrix("", ["SKU-1"])


def test_matrix_to_frame(engine):
    df = matrix_to_frame(engine.generate_bulk_matrix(TENANT, ["SKU-1", "SKU-2"]))
    assert len(df) == 18
    assert list(df.columns[:3]) == ["product_id", "product_name", "base_price"]
    assert str(df["max_quantity"].dtype) == "Int64"
    assert df["max_quantity"].isna().sum() == 2
