"""
Tier Schema - Validates and converts tier rows between CSV and PricingTier.

Shared by the CSV tier store (read path) and the tiers service (write path).
"""
from datetime import date
from typing import Optional

from ..engine.models import Discount, DiscountKind, PricingTier, TierStatus


CSV_COLUMNS = [
    'tier_id', 'tenant_id', 'tier_name', 'status', 'priority',
    'product_id', 'category_id', 'group_id', 'territory',
    'min_quantity', 'max_quantity', 'discount_type', 'discount_value',
    'payment_terms_discount', 'effective_date', 'expiry_date', 'currency',
]

VALID_DISCOUNT_TYPES = {kind.value for kind in DiscountKind}
VALID_STATUSES = {status.value for status in TierStatus}


def parse_optional_int(value) -> Optional[int]:
    """Parse optional integer."""
    if value is None or str(value).strip() in ('', 'nan', 'None'):
        return None
    return int(float(value))


def parse_optional_float(value) -> Optional[float]:
    """Parse optional float."""
    if value is None or str(value).strip() in ('', 'nan', 'None'):
        return None
    return float(value)


def parse_optional_str(value) -> Optional[str]:
    """Parse optional string (empty = None)."""
    if value is None or str(value).strip() in ('', 'nan', 'None'):
        return None
    return str(value).strip()


def parse_optional_date(value) -> Optional[date]:
    text = parse_optional_str(value)
    if text is None:
        return None
    return date.fromisoformat(text[:10])


def check_tier(tier: PricingTier) -> list[str]:
    """Return invariant violations for a tier (empty when valid)."""
    errors = []

    if not tier.tenant_id:
        errors.append("tenant_id is required")
    if tier.min_quantity < 1:
        errors.append("min_quantity must be at least 1")
    if tier.max_quantity is not None and tier.max_quantity < tier.min_quantity:
        errors.append("max_quantity must not be less than min_quantity")
    if tier.discount.value < 0:
        errors.append("discount_value cannot be negative")
    if not 0 <= tier.payment_terms_discount <= 0.5:
        errors.append("payment_terms_discount must be between 0 and 0.5")
    if bool(tier.product_id) == bool(tier.category_id):
        errors.append("exactly one of product_id or category_id must be provided")
    if tier.effective_date and tier.expiry_date and tier.effective_date > tier.expiry_date:
        errors.append("effective_date must be on or before expiry_date")

    return errors


def row_to_tier(row: dict, line_num: int) -> tuple[Optional[PricingTier], list[str]]:
    """
    Validate and parse a tier from a CSV row.

    Returns (tier, errors) - tier is None if validation failed.
    """
    prefix = f"Line {line_num}"

    tier_id = parse_optional_str(row.get('tier_id'))
    if not tier_id:
        return None, [f"{prefix}: tier_id is required"]

    discount_type = parse_optional_str(row.get('discount_type'))
    if discount_type not in VALID_DISCOUNT_TYPES:
        return None, [f"{prefix}: invalid discount_type '{discount_type}', must be one of: {sorted(VALID_DISCOUNT_TYPES)}"]

    status = parse_optional_str(row.get('status')) or TierStatus.ACTIVE.value
    if status not in VALID_STATUSES:
        return None, [f"{prefix}: invalid status '{status}'"]

    try:
        min_quantity = parse_optional_int(row.get('min_quantity'))
        max_quantity = parse_optional_int(row.get('max_quantity'))
        discount_value = parse_optional_float(row.get('discount_value'))
        payment_terms_discount = parse_optional_float(row.get('payment_terms_discount')) or 0.0
        priority = parse_optional_int(row.get('priority'))
    except ValueError:
        return None, [f"{prefix}: quantities, priority and discount values must be numeric"]

    try:
        effective_date = parse_optional_date(row.get('effective_date'))
        expiry_date = parse_optional_date(row.get('expiry_date'))
    except ValueError:
        return None, [f"{prefix}: dates must be YYYY-MM-DD format"]

    if min_quantity is None:
        return None, [f"{prefix}: min_quantity is required"]
    if discount_value is None:
        return None, [f"{prefix}: discount_value is required"]

    tier = PricingTier(
        tier_id=tier_id,
        tenant_id=parse_optional_str(row.get('tenant_id')) or '',
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        discount=Discount(kind=DiscountKind(discount_type), value=discount_value),
        product_id=parse_optional_str(row.get('product_id')),
        category_id=parse_optional_str(row.get('category_id')),
        group_id=parse_optional_str(row.get('group_id')),
        territory=parse_optional_str(row.get('territory')),
        payment_terms_discount=payment_terms_discount,
        priority=priority if priority is not None else 50,
        effective_date=effective_date,
        expiry_date=expiry_date,
        status=TierStatus(status),
        tier_name=parse_optional_str(row.get('tier_name')) or '',
        currency=parse_optional_str(row.get('currency')) or 'NGN',
    )

    errors = [f"{prefix}: {err}" for err in check_tier(tier)]
    if errors:
        return None, errors
    return tier, []


def tier_to_row(tier: PricingTier) -> dict:
    """Convert to CSV row format."""
    return {
        'tier_id': tier.tier_id,
        'tenant_id': tier.tenant_id,
        'tier_name': tier.tier_name,
        'status': tier.status.value,
        'priority': str(tier.priority),
        'product_id': tier.product_id or '',
        'category_id': tier.category_id or '',
        'group_id': tier.group_id or '',
        'territory': tier.territory or '',
        'min_quantity': str(tier.min_quantity),
        'max_quantity': str(tier.max_quantity) if tier.max_quantity is not None else '',
        'discount_type': tier.discount.kind.value,
        'discount_value': str(tier.discount.value),
        'payment_terms_discount': str(tier.payment_terms_discount),
        'effective_date': tier.effective_date.isoformat() if tier.effective_date else '',
        'expiry_date': tier.expiry_date.isoformat() if tier.expiry_date else '',
        'currency': tier.currency,
    }


def describe_tier(tier: PricingTier) -> str:
    """Default display name, e.g. "20% off 10+ units"."""
    kind = tier.discount.kind
    value = tier.discount.value
    if kind is DiscountKind.PERCENTAGE:
        label = f"{value:g}% off"
    elif kind is DiscountKind.FIXED_AMOUNT:
        label = f"{tier.currency} {value:,.2f} off"
    else:
        label = f"{tier.currency} {value:,.2f} each"
    return f"{label} {tier.min_quantity}+ units"
