"""
CSV-backed collaborator stores.

Each store reads a tenant-keyed CSV with pandas and reloads when the file
changes on disk. A missing file means "no rows"; an unreadable file raises
CollaboratorUnavailable.
"""
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import pandas as pd

from ..engine.models import PricingTier, TerritoryAdjustment, TierSelector
from ..errors import CollaboratorUnavailable, InvalidInput
from ..rules.tier_schema import parse_optional_float, parse_optional_str, row_to_tier
from .ports import GroupStore, PriceBook, TerritoryStore, TierStore

logger = logging.getLogger(__name__)


class CsvTable:
    """A CSV file loaded as strings, cached until its mtime changes."""

    def __init__(self, path: Path, name: str, required: tuple = ()):
        self.path = Path(path)
        self.name = name
        self.required = ('tenant_id',) + tuple(required)
        self._df: Optional[pd.DataFrame] = None
        self._mtime: Optional[float] = None

    def load(self) -> pd.DataFrame:
        if not self.path.exists():
            return pd.DataFrame()

        try:
            mtime = self.path.stat().st_mtime
            if self._df is None or mtime != self._mtime:
                try:
                    df = pd.read_csv(self.path, dtype=str).fillna('')
                except pd.errors.EmptyDataError:
                    df = pd.DataFrame()
                df.columns = [c.strip() for c in df.columns]
                for col in df.columns:
                    df[col] = df[col].astype(str).str.strip()
                missing = [c for c in self.required if not df.empty and c not in df.columns]
                if missing:
                    raise CollaboratorUnavailable(self.name, f"missing columns: {', '.join(missing)}")
                self._df, self._mtime = df, mtime
        except (OSError, pd.errors.ParserError, UnicodeDecodeError) as e:
            raise CollaboratorUnavailable(self.name, str(e)) from e

        return self._df

    def for_tenant(self, tenant_id: str) -> pd.DataFrame:
        if not tenant_id:
            raise InvalidInput(f"Tenant ID is required to read {self.name}")
        df = self.load()
        if df.empty:
            return df
        return df[df['tenant_id'] == tenant_id]


def _is_active_row(row: pd.Series) -> bool:
    status = str(row.get('status', '') or 'active').lower()
    return status == 'active'


def _scope_matches(tier: PricingTier, selector: TierSelector) -> bool:
    """Unset tier scope keys act as wildcards."""
    if tier.product_id and tier.product_id != selector.product_id:
        return False
    if tier.category_id and tier.category_id != selector.category_id:
        return False
    if tier.group_id and tier.group_id != selector.group_id:
        return False
    if tier.territory and tier.territory != selector.territory:
        return False
    return True


class CsvTierStore(TierStore):
    """Reads pricing tiers from tiers.csv."""

    def __init__(self, tiers_csv: Path):
        self.table = CsvTable(tiers_csv, 'tier store')

    def get_tiers(self, tenant_id: str, selector: TierSelector) -> list[PricingTier]:
        rows = self.table.for_tenant(tenant_id)
        today = selector.as_of or date.today()

        tiers = []
        for line_num, (_, row) in enumerate(rows.iterrows(), start=2):
            tier, errors = row_to_tier(row.to_dict(), line_num)
            if errors:
                logger.warning("Skipping invalid tier row: %s", "; ".join(errors),
                               extra={"tenant_id": tenant_id})
                continue
            if not tier.is_active or not tier.is_effective(today):
                continue
            if _scope_matches(tier, selector):
                tiers.append(tier)

        # Sort by priority (lower = higher priority), then range start
        tiers.sort(key=lambda t: (t.priority, t.min_quantity))
        return tiers


class CsvTerritoryStore(TerritoryStore):
    """Reads territory multipliers from territories.csv."""

    def __init__(self, territories_csv: Path):
        self.table = CsvTable(territories_csv, 'territory store', required=('territory',))

    def get_adjustment(self, tenant_id: str, territory: str) -> Optional[TerritoryAdjustment]:
        rows = self.table.for_tenant(tenant_id)
        if rows.empty or not territory:
            return None

        matches = rows[rows['territory'] == territory]
        for _, row in matches.iterrows():
            if not _is_active_row(row):
                continue
            try:
                return TerritoryAdjustment(
                    territory=territory,
                    price_multiplier=parse_optional_float(row.get('price_multiplier')) or 1.0,
                    shipping_multiplier=parse_optional_float(row.get('shipping_multiplier')) or 1.0,
                    tax_multiplier=parse_optional_float(row.get('tax_multiplier')) or 1.0,
                )
            except (ValueError, InvalidInput) as e:
                raise CollaboratorUnavailable('territory store', f"bad row for {territory}: {e}") from e
        return None


class CsvGroupStore(GroupStore):
    """Reads B2B group default discounts (percent) from groups.csv."""

    def __init__(self, groups_csv: Path):
        self.table = CsvTable(groups_csv, 'group store', required=('group_id',))

    def get_discount_rate(self, tenant_id: str, group_id: str) -> float:
        rows = self.table.for_tenant(tenant_id)
        if rows.empty or not group_id:
            return 0.0

        matches = rows[rows['group_id'] == group_id]
        for _, row in matches.iterrows():
            if not _is_active_row(row):
                continue
            try:
                percent = parse_optional_float(row.get('discount_percent')) or 0.0
            except ValueError:
                logger.warning("Non-numeric discount for group %s", group_id,
                               extra={"tenant_id": tenant_id})
                return 0.0
            return percent / 100.0
        return 0.0


class CsvPriceBook(PriceBook):
    """Reads catalog base prices from products.csv."""

    def __init__(self, products_csv: Path):
        self.table = CsvTable(products_csv, 'price book', required=('product_id',))

    def _product_row(self, tenant_id: str, product_id: str) -> Optional[pd.Series]:
        rows = self.table.for_tenant(tenant_id)
        if rows.empty:
            return None
        matches = rows[rows['product_id'] == str(product_id)]
        if matches.empty:
            return None
        return matches.iloc[0]

    def get_base_price(self, tenant_id: str, product_id: str) -> Optional[float]:
        row = self._product_row(tenant_id, product_id)
        if row is None:
            return None
        try:
            price = parse_optional_float(row.get('base_price'))
        except ValueError:
            return None
        if price is None or price <= 0:
            return None
        return price

    def get_product_name(self, tenant_id: str, product_id: str) -> str:
        row = self._product_row(tenant_id, product_id)
        if row is not None and row.get('name'):
            return row['name']
        return super().get_product_name(tenant_id, product_id)

    def get_category_id(self, tenant_id: str, product_id: str) -> Optional[str]:
        row = self._product_row(tenant_id, product_id)
        if row is None:
            return None
        return parse_optional_str(row.get('category_id'))
