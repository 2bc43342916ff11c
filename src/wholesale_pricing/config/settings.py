"""
Centralized settings and path configuration for the wholesale pricing engine.
"""
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


DEFAULT_BREAKPOINTS = (1, 5, 10, 25, 50, 100, 250, 500, 1000)


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path
    data_dir: Path

    # Collaborator files
    tiers_csv: Path
    territories_csv: Path
    groups_csv: Path
    products_csv: Path

    # Pricing defaults
    default_territory: str = 'Lagos'
    default_currency: str = 'NGN'
    default_payment_terms: str = 'net_30'
    vat_rate: float = 0.075
    matrix_breakpoints: tuple = DEFAULT_BREAKPOINTS

    # Logging
    log_level: str = 'INFO'
    log_json: bool = False

    @classmethod
    def load(cls, project_root: Optional[Path] = None, data_dir: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()

        env_dir = os.environ.get('WHOLESALE_PRICING_DATA_DIR')
        data = data_dir or (Path(env_dir) if env_dir else root / 'data')

        settings = cls(
            project_root=root,
            data_dir=data,
            tiers_csv=data / 'tiers.csv',
            territories_csv=data / 'territories.csv',
            groups_csv=data / 'groups.csv',
            products_csv=data / 'products.csv',
        )

        if os.environ.get('WHOLESALE_PRICING_VAT_RATE'):
            settings.vat_rate = float(os.environ['WHOLESALE_PRICING_VAT_RATE'])
        if os.environ.get('WHOLESALE_PRICING_LOG_LEVEL'):
            settings.log_level = os.environ['WHOLESALE_PRICING_LOG_LEVEL'].upper()
        settings.log_json = os.environ.get('WHOLESALE_PRICING_LOG_JSON', '').lower() in ('1', 'true', 'yes')

        return settings


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings
