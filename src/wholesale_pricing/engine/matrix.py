"""
Matrix Generator - Bulk pricing tables across a fixed quantity ladder.
"""
import logging
from dataclasses import asdict, replace
from typing import Optional, TYPE_CHECKING

import pandas as pd

from ..config.settings import DEFAULT_BREAKPOINTS
from ..errors import InvalidInput, PricingError
from ..stores.ports import PriceBook
from .models import CustomerContext, ProductPricingRow, QuantityBreakpoint

if TYPE_CHECKING:
    from .pricing_engine import PricingEngine

logger = logging.getLogger(__name__)


class MatrixGenerator:
    """Runs the pricing engine at each breakpoint for each product."""

    def __init__(self, engine: 'PricingEngine', price_book: PriceBook, breakpoints: tuple = DEFAULT_BREAKPOINTS):
        self.engine = engine
        self.price_book = price_book
        self.breakpoints = tuple(sorted(breakpoints))

    def generate_matrix(
        self,
        tenant_id: str,
        product_ids: list[str],
        context: Optional[CustomerContext] = None,
    ) -> list[ProductPricingRow]:
        """
        Build a pricing table for each product.

        Products without a resolvable base price, or whose pricing fails,
        are skipped; a partial matrix is a valid result.
        """
        if not tenant_id:
            raise InvalidInput("Tenant ID is required for pricing")
        if not product_ids:
            raise InvalidInput("Product IDs are required")

        context = context or CustomerContext()
        settings = self.engine.settings
        matrix = []

        for product_id in product_ids:
            log_extra = {"tenant_id": tenant_id, "product_id": product_id}
            try:
                row = self._product_row(tenant_id, product_id, context)
            except PricingError as e:
                logger.warning("Skipping product %s in pricing matrix: %s", product_id, e, extra=log_extra)
                continue
            except Exception:
                logger.exception("Unexpected failure pricing %s, skipping", product_id, extra=log_extra)
                continue

            if row is None:
                logger.info("Skipping product %s: no base price", product_id, extra=log_extra)
                continue

            row.currency = context.currency or settings.default_currency
            row.territory = context.territory or settings.default_territory
            matrix.append(row)

        logger.info("Generated pricing matrix for %d of %d products", len(matrix), len(product_ids),
                    extra={"tenant_id": tenant_id})
        return matrix

    def _product_row(
        self,
        tenant_id: str,
        product_id: str,
        context: CustomerContext,
    ) -> Optional[ProductPricingRow]:
        base_price = self.price_book.get_base_price(tenant_id, product_id)
        if not base_price or base_price <= 0:
            return None

        row = ProductPricingRow(
            product_id=product_id,
            product_name=self.price_book.get_product_name(tenant_id, product_id),
            base_price=base_price,
            currency='',
            territory='',
        )
        category_id = self.price_book.get_category_id(tenant_id, product_id)

        for i, qty in enumerate(self.breakpoints):
            breakdown = self.engine.calculate_price(
                tenant_id=tenant_id,
                product_id=product_id,
                quantity=qty,
                base_price=base_price,
                context=replace(context, quantity=qty),
                category_id=category_id,
            )
            next_qty = self.breakpoints[i + 1] if i + 1 < len(self.breakpoints) else None
            unit_price = breakdown.unit_price
            row.tiers.append(QuantityBreakpoint(
                min_quantity=qty,
                max_quantity=next_qty - 1 if next_qty is not None else None,
                unit_price=unit_price,
                discount_percent=round((base_price - unit_price) / base_price * 100, 2),
                savings=round((base_price - unit_price) * qty, 2),
            ))

        return row


def matrix_to_frame(matrix: list[ProductPricingRow]) -> pd.DataFrame:
    """Flatten a pricing matrix into one row per (product, breakpoint)."""
    records = []
    for product in matrix:
        for tier in product.tiers:
            record = {
                'product_id': product.product_id,
                'product_name': product.product_name,
                'base_price': product.base_price,
                'currency': product.currency,
                'territory': product.territory,
            }
            record.update(asdict(tier))
            records.append(record)

    columns = ['product_id', 'product_name', 'base_price', 'currency', 'territory',
               'min_quantity', 'max_quantity', 'unit_price', 'discount_percent', 'savings']
    df = pd.DataFrame(records, columns=columns)
    # Keep open-ended max_quantity as a nullable integer, not float NaN
    df['max_quantity'] = df['max_quantity'].astype('Int64')
    return df
