"""
Pricing Engine - Tenant-scoped wholesale price resolution with traceability.

Orchestrates the tier resolver, the discount composer and the tax
collaborator for a single product and quantity:
- Structured PriceBreakdown output with per-stage deltas
- Execution trace for every resolution step
- Graceful degradation when tax lookup fails
"""
import logging
from dataclasses import replace
from datetime import date
from typing import Optional

from ..config.settings import Settings, get_settings
from ..errors import CollaboratorUnavailable, InvalidInput, PricingError
from ..stores.ports import GroupStore, PriceBook, TaxCalculator, TerritoryStore, TierStore
from .discount_composer import DiscountComposer, payment_terms_rate
from .models import (
    CustomerContext,
    PaymentTerms,
    PriceBreakdown,
    PriceRequest,
    PricingTier,
    ProductPricingRow,
    TerritoryAdjustment,
    TierSelector,
    TraceStep,
)
from .tier_resolver import TierResolver

logger = logging.getLogger(__name__)


class PricingEngine:
    """
    Core pricing engine: Tier → Territory → Group → Payment terms → Tax.

    Resolution order:
    1. Load tenant tiers for the product/category/group/territory scope
    2. Select the best tier for the quantity (no tier = no quantity discount)
    3. Stack territory, group and payment-terms adjustments on the balance
    4. Append tax on the pre-tax amount; a failing tax lookup yields zero tax
    5. Round monetary fields to 2 decimals

    The engine holds no tenant state: every call names its tenant.
    """

    def __init__(
        self,
        tier_store: TierStore,
        territory_store: TerritoryStore,
        group_store: GroupStore,
        tax_calculator: TaxCalculator,
        settings: Optional[Settings] = None,
        price_book: Optional[PriceBook] = None,
    ):
        self.tier_store = tier_store
        self.territory_store = territory_store
        self.group_store = group_store
        self.tax_calculator = tax_calculator
        self.price_book = price_book
        self.settings = settings or get_settings()
        self.resolver = TierResolver()
        self.composer = DiscountComposer()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'PricingEngine':
        """Build an engine over the CSV stores named in settings."""
        from ..stores.csv_stores import CsvGroupStore, CsvPriceBook, CsvTerritoryStore, CsvTierStore
        from ..stores.tax import RegionalTaxCalculator

        settings = settings or get_settings()
        return cls(
            tier_store=CsvTierStore(settings.tiers_csv),
            territory_store=CsvTerritoryStore(settings.territories_csv),
            group_store=CsvGroupStore(settings.groups_csv),
            tax_calculator=RegionalTaxCalculator(),
            settings=settings,
            price_book=CsvPriceBook(settings.products_csv),
        )

    def calculate_price(
        self,
        tenant_id: str,
        product_id: str,
        quantity: int,
        base_price: float,
        context: Optional[CustomerContext] = None,
        category_id: Optional[str] = None,
    ) -> PriceBreakdown:
        """
        Price `quantity` units of a product for a tenant's customer.

        Args:
            tenant_id: Isolation key; required
            product_id: Product being priced; required
            quantity: Units ordered (> 0); overrides context.quantity
            base_price: Catalog unit price (> 0)
            context: Customer group, territory, payment terms, currency
            category_id: Optional category for category-scoped tiers

        Returns:
            Rounded PriceBreakdown with trace
        """
        context = context or CustomerContext()
        request = PriceRequest(
            product_id=product_id,
            base_price=base_price,
            context=replace(context, quantity=quantity),
            category_id=category_id,
        )
        return self.calculate(tenant_id, request)

    def calculate(self, tenant_id: str, request: PriceRequest) -> PriceBreakdown:
        """Price a PriceRequest; quantity comes from request.context."""
        self._validate(tenant_id, request)

        ctx = request.context
        quantity = ctx.quantity
        territory = ctx.territory or self.settings.default_territory
        currency = ctx.currency or self.settings.default_currency
        terms = PaymentTerms.parse(ctx.payment_terms or self.settings.default_payment_terms)
        as_of = ctx.as_of or date.today()
        log_extra = {"tenant_id": tenant_id, "product_id": request.product_id}

        trace = [TraceStep("Request", f"Pricing {quantity} × {request.product_id}",
                           f"{request.base_price:.2f} {currency}")]

        selector = TierSelector(
            product_id=request.product_id,
            category_id=request.category_id,
            group_id=ctx.group_id,
            territory=territory,
            as_of=as_of,
        )
        tiers = self._load_tiers(tenant_id, selector)
        tier = self.resolver.select_tier(tiers, quantity, as_of)
        trace.append(self._tier_trace(tier, len(tiers)))

        adjustment = self._load_territory(tenant_id, territory)
        if adjustment:
            trace.append(TraceStep("Territory", f"{territory} price multiplier",
                                   f"{adjustment.price_multiplier:g}"))
        else:
            trace.append(TraceStep("Territory", f"No adjustment configured for {territory}"))

        group_rate = self._load_group_rate(tenant_id, ctx.group_id)
        if ctx.group_id:
            trace.append(TraceStep("Group", f"Group {ctx.group_id} discount rate", f"{group_rate:.2%}"))

        trace.append(TraceStep("Payment Terms", terms.value, f"{payment_terms_rate(terms):+.0%}"))

        base_amount = request.base_price * quantity
        breakdown = self.composer.compose(
            base_amount=base_amount,
            quantity=quantity,
            tier=tier,
            territory_adjustment=adjustment,
            group_discount_rate=group_rate,
            payment_terms=terms,
        )
        trace.append(TraceStep("Pre-Tax", "Amount after stacked discounts",
                               f"{breakdown.final_amount_pre_tax:.2f}"))

        tax_amount, tax_applied = self._calculate_tax(
            breakdown.final_amount_pre_tax, adjustment, territory,
            request.category_id or 'general', log_extra,
        )
        if tax_applied:
            trace.append(TraceStep("Tax", f"Tax for {territory}", f"{tax_amount:.2f}"))
        else:
            trace.append(TraceStep("Tax", "Tax unavailable, omitted"))

        total = breakdown.final_amount_pre_tax + tax_amount
        result = replace(
            breakdown,
            tax_amount=tax_amount,
            total=total,
            unit_price=total / quantity,
            currency=currency,
            tax_applied=tax_applied,
            trace=tuple(trace),
        ).rounded()

        logger.debug("Priced %s × %s: total %.2f", quantity, request.product_id, result.total,
                     extra=log_extra)
        return result

    def generate_bulk_matrix(
        self,
        tenant_id: str,
        product_ids: list[str],
        context: Optional[CustomerContext] = None,
    ) -> list[ProductPricingRow]:
        """Bulk pricing table per product; see MatrixGenerator."""
        from .matrix import MatrixGenerator

        if self.price_book is None:
            raise InvalidInput("A price book is required to generate a pricing matrix")
        generator = MatrixGenerator(self, self.price_book, self.settings.matrix_breakpoints)
        return generator.generate_matrix(tenant_id, product_ids, context)

    def _validate(self, tenant_id: str, request: PriceRequest):
        if not tenant_id:
            raise InvalidInput("Tenant ID is required for pricing")
        if not request.product_id:
            raise InvalidInput("Product ID is required")
        if request.base_price is None or request.base_price <= 0:
            raise InvalidInput("Base price must be greater than zero")
        if request.context.quantity is None or request.context.quantity <= 0:
            raise InvalidInput("Quantity must be greater than zero")

    def _load_tiers(self, tenant_id: str, selector: TierSelector) -> list[PricingTier]:
        try:
            return self.tier_store.get_tiers(tenant_id, selector)
        except PricingError:
            raise
        except Exception as e:
            raise CollaboratorUnavailable('tier store', str(e)) from e

    def _load_territory(self, tenant_id: str, territory: str) -> Optional[TerritoryAdjustment]:
        try:
            return self.territory_store.get_adjustment(tenant_id, territory)
        except PricingError:
            raise
        except Exception as e:
            raise CollaboratorUnavailable('territory store', str(e)) from e

    def _load_group_rate(self, tenant_id: str, group_id: Optional[str]) -> float:
        if not group_id:
            return 0.0
        try:
            return float(self.group_store.get_discount_rate(tenant_id, group_id) or 0.0)
        except PricingError:
            raise
        except Exception as e:
            raise CollaboratorUnavailable('group store', str(e)) from e

    def _calculate_tax(
        self,
        amount: float,
        adjustment: Optional[TerritoryAdjustment],
        territory: str,
        category: str,
        log_extra: dict,
    ) -> tuple[float, bool]:
        """Return (tax, applied). Any collaborator failure degrades to zero tax."""
        multiplier = adjustment.tax_multiplier if adjustment else 1.0
        rate = self.settings.vat_rate * multiplier
        try:
            result = self.tax_calculator.calculate(amount, rate, territory, category)
            tax = float(result.tax)
        except Exception:
            logger.warning("Tax calculation failed, continuing without tax",
                           exc_info=True, extra=log_extra)
            return 0.0, False
        return tax, True

    @staticmethod
    def _tier_trace(tier: Optional[PricingTier], candidates: int) -> TraceStep:
        if tier is None:
            return TraceStep("Tier", f"No tier matched ({candidates} candidates)")
        label = tier.tier_name or tier.tier_id
        return TraceStep("Tier", f"Selected {label} from {candidates} candidates",
                         f"{tier.discount.kind.value} {tier.discount.value:g}")
