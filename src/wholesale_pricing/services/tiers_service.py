"""
Tiers Service - CRUD operations for wholesale pricing tiers.

Handles reading/writing tiers.csv, validation, and overlap detection.
Every operation is scoped to an explicit tenant; rows of other tenants are
carried through writes untouched.
"""
import csv
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import date
from pathlib import Path
from typing import Optional

from ..engine.models import Discount, DiscountKind, PricingTier, TierStatus
from ..errors import ConfigurationConflict, InvalidInput, NotFound
from ..rules.tier_schema import CSV_COLUMNS, check_tier, describe_tier, row_to_tier, tier_to_row

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {f.name for f in fields(PricingTier)} - {'tier_id', 'tenant_id', 'discount'}
# Fields an update may reset by passing None
CLEARABLE_FIELDS = {
    'tier_name', 'product_id', 'category_id', 'group_id', 'territory',
    'max_quantity', 'effective_date', 'expiry_date',
}


@dataclass
class ValidationResult:
    """Result of tier validation."""
    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    overlapping_ids: list[str] = field(default_factory=list)


def ranges_overlap(a: PricingTier, b: PricingTier) -> bool:
    """Half-open [min, max) ranges; None max is unbounded."""
    a_max = a.max_quantity if a.max_quantity is not None else float('inf')
    b_max = b.max_quantity if b.max_quantity is not None else float('inf')
    return a.min_quantity < b_max and b.min_quantity < a_max


def windows_overlap(a: PricingTier, b: PricingTier) -> bool:
    a_start = a.effective_date or date.min
    b_start = b.effective_date or date.min
    a_end = a.expiry_date or date.max
    b_end = b.expiry_date or date.max
    return a_start <= b_end and b_start <= a_end


class TiersService:
    """Service for managing pricing tiers."""

    def __init__(self, tiers_csv_path: Path):
        self.tiers_csv_path = Path(tiers_csv_path)

    # Reads

    def _read_rows(self) -> list[dict]:
        if not self.tiers_csv_path.exists():
            return []
        with open(self.tiers_csv_path, 'r', encoding='utf-8', newline='') as f:
            return [row for row in csv.DictReader(f) if row.get('tier_id')]

    def list_tiers(
        self,
        tenant_id: str,
        include_inactive: bool = True,
        include_removed: bool = False,
    ) -> list[PricingTier]:
        """List a tenant's tiers from CSV."""
        self._require_tenant(tenant_id)
        tiers = []
        for line_num, row in enumerate(self._read_rows(), start=2):
            if row.get('tenant_id') != tenant_id:
                continue
            tier, errors = row_to_tier(row, line_num)
            if errors:
                logger.warning("Ignoring invalid tier row: %s", "; ".join(errors),
                               extra={"tenant_id": tenant_id})
                continue
            if tier.status is TierStatus.REMOVED and not include_removed:
                continue
            if tier.status is TierStatus.INACTIVE and not include_inactive:
                continue
            tiers.append(tier)
        return tiers

    def get_tier(self, tenant_id: str, tier_id: str) -> Optional[PricingTier]:
        """Get a single tier by ID."""
        for tier in self.list_tiers(tenant_id):
            if tier.tier_id == tier_id:
                return tier
        return None

    # Validation

    def find_overlaps(self, tier: PricingTier, existing: list[PricingTier]) -> list[PricingTier]:
        """Active tiers with the same scope whose quantity ranges and date windows intersect."""
        if not tier.is_active:
            return []
        return [
            other for other in existing
            if other.tier_id != tier.tier_id
            and other.is_active
            and other.scope_key() == tier.scope_key()
            and ranges_overlap(tier, other)
            and windows_overlap(tier, other)
        ]

    def validate_tier(self, tier: PricingTier) -> ValidationResult:
        """Validate a tier before saving."""
        result = ValidationResult(valid=True)

        result.errors.extend(check_tier(tier))
        if result.errors:
            result.valid = False
            return result

        if tier.expiry_date and tier.expiry_date < date.today():
            result.warnings.append("Tier has expired (expiry date is in the past)")
        if tier.discount.kind is DiscountKind.PERCENTAGE and tier.discount.value >= 100:
            result.warnings.append("Percentage discount of 100% or more prices the order at zero")

        overlaps = self.find_overlaps(tier, self.list_tiers(tier.tenant_id))
        if overlaps:
            result.valid = False
            result.overlapping_ids = [o.tier_id for o in overlaps]
            for other in overlaps:
                result.errors.append(
                    f"Quantity range overlaps tier '{other.tier_id}' "
                    f"([{other.min_quantity}, {other.max_quantity or '∞'}))"
                )
        return result

    # Writes

    def create_tier(self, tenant_id: str, tier: PricingTier) -> PricingTier:
        """Create a new tier for the tenant."""
        self._require_tenant(tenant_id)
        if tier.tenant_id and tier.tenant_id != tenant_id:
            raise InvalidInput("Tier belongs to a different tenant")

        tier = replace(tier, tenant_id=tenant_id)
        if not tier.tier_id:
            tier = replace(tier, tier_id=self._generate_tier_id(tier))
        if not tier.tier_name:
            tier = replace(tier, tier_name=describe_tier(tier))

        existing_ids = {t.tier_id for t in self.list_tiers(tenant_id, include_removed=True)}
        if tier.tier_id in existing_ids:
            raise InvalidInput(f"Tier with ID '{tier.tier_id}' already exists")

        self._ensure_valid(tier)

        rows = self._read_rows()
        rows.append(tier_to_row(tier))
        self._write_rows(rows)

        logger.info("Created pricing tier %s", tier.tier_id, extra={"tenant_id": tenant_id})
        return tier

    def update_tier(self, tenant_id: str, tier_id: str, updates: dict) -> PricingTier:
        """Update an existing tier; the result is re-validated for overlaps."""
        current = self.get_tier(tenant_id, tier_id)
        if current is None:
            raise NotFound(f"Tier with ID '{tier_id}' not found")

        updated = self._apply_updates(current, updates)
        self._ensure_valid(updated)
        self._replace_row(tenant_id, updated)

        logger.info("Updated pricing tier %s", tier_id, extra={"tenant_id": tenant_id})
        return updated

    def delete_tier(self, tenant_id: str, tier_id: str, hard: bool = False) -> PricingTier:
        """
        Delete a tier.

        Soft delete marks it inactive; hard delete marks it removed. Removed
        rows stay in the file for audit and are never priced or listed.
        """
        current = self.get_tier(tenant_id, tier_id)
        if current is None:
            raise NotFound(f"Tier with ID '{tier_id}' not found")

        status = TierStatus.REMOVED if hard else TierStatus.INACTIVE
        updated = replace(current, status=status)
        self._replace_row(tenant_id, updated)

        action = 'removed' if hard else 'deactivated'
        logger.info("Pricing tier %s %s", tier_id, action, extra={"tenant_id": tenant_id})
        return updated

    def get_stats(self, tenant_id: str) -> dict:
        """Get statistics about a tenant's tiers."""
        tiers = self.list_tiers(tenant_id, include_removed=True)
        today = date.today()

        by_kind = {}
        for t in tiers:
            by_kind[t.discount.kind.value] = by_kind.get(t.discount.kind.value, 0) + 1

        return {
            'total': len(tiers),
            'active': sum(1 for t in tiers if t.status is TierStatus.ACTIVE),
            'inactive': sum(1 for t in tiers if t.status is TierStatus.INACTIVE),
            'removed': sum(1 for t in tiers if t.status is TierStatus.REMOVED),
            'expired': sum(1 for t in tiers if t.expiry_date and t.expiry_date < today),
            'by_kind': by_kind,
        }

    # Helpers

    @staticmethod
    def _require_tenant(tenant_id: str):
        if not tenant_id:
            raise InvalidInput("Tenant ID is required for tier configuration")

    def _ensure_valid(self, tier: PricingTier):
        result = self.validate_tier(tier)
        if result.overlapping_ids:
            raise ConfigurationConflict(
                f"Tier '{tier.tier_id}' overlaps existing tiers: {', '.join(result.overlapping_ids)}",
                conflicting_ids=result.overlapping_ids,
            )
        if not result.valid:
            raise InvalidInput("; ".join(result.errors))

    def _apply_updates(self, tier: PricingTier, updates: dict) -> PricingTier:
        changes = {}
        kind = tier.discount.kind
        value = tier.discount.value

        for key, raw in updates.items():
            if raw is None:
                if key not in CLEARABLE_FIELDS:
                    raise InvalidInput(f"Field '{key}' cannot be cleared")
                changes[key] = '' if key == 'tier_name' else None
                continue
            if key == 'discount_type':
                try:
                    kind = DiscountKind(raw)
                except ValueError:
                    raise InvalidInput(f"Invalid discount type '{raw}'")
            elif key == 'discount_value':
                try:
                    value = float(raw)
                except (TypeError, ValueError):
                    raise InvalidInput(f"Discount value must be numeric, got '{raw}'")
            elif key == 'status':
                try:
                    changes['status'] = TierStatus(raw)
                except ValueError:
                    raise InvalidInput(f"Invalid status '{raw}'")
            elif key in ('effective_date', 'expiry_date'):
                try:
                    changes[key] = raw if isinstance(raw, date) else date.fromisoformat(str(raw))
                except ValueError:
                    raise InvalidInput(f"{key} must be YYYY-MM-DD format")
            elif key in UPDATABLE_FIELDS:
                changes[key] = raw
            else:
                raise InvalidInput(f"Field '{key}' cannot be updated")

        return replace(tier, discount=Discount(kind=kind, value=value), **changes)

    def _replace_row(self, tenant_id: str, tier: PricingTier):
        rows = self._read_rows()
        for i, row in enumerate(rows):
            if row.get('tenant_id') == tenant_id and row.get('tier_id') == tier.tier_id:
                rows[i] = tier_to_row(tier)
                break
        else:
            raise NotFound(f"Tier with ID '{tier.tier_id}' not found")
        self._write_rows(rows)

    def _generate_tier_id(self, tier: PricingTier) -> str:
        """Generate a unique tier ID within the tenant."""
        if tier.product_id:
            base = f"P-{tier.product_id[:8]}"
        else:
            base = f"C-{(tier.category_id or 'ALL')[:8]}"
        if tier.group_id:
            base += f"-{tier.group_id.upper()[:4]}"
        base += f"-Q{tier.min_quantity}"

        existing_ids = {t.tier_id for t in self.list_tiers(tier.tenant_id, include_removed=True)}
        candidate = base
        counter = 1
        while candidate in existing_ids:
            candidate = f"{base}-{counter}"
            counter += 1
        return candidate

    def _write_rows(self, rows: list[dict]):
        """Write tier rows back to CSV."""
        self.tiers_csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.tiers_csv_path, 'w', encoding='utf-8', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction='ignore')
            writer.writeheader()
            for row in rows:
                writer.writerow({col: row.get(col, '') for col in CSV_COLUMNS})
