"""
Shared application state for the API routers.

Built lazily from settings; tests swap it out through
``app.dependency_overrides[get_state]``.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Header

from ..config.settings import Settings, get_settings
from ..engine.pricing_engine import PricingEngine
from ..errors import InvalidInput
from ..policy.channel_manager import ChannelManager
from ..policy.registry import InMemoryCellRegistry
from ..services.tiers_service import TiersService


@dataclass
class AppState:
    engine: PricingEngine
    tiers_service: TiersService
    channel_manager: ChannelManager


def build_state(settings: Optional[Settings] = None) -> AppState:
    settings = settings or get_settings()
    return AppState(
        engine=PricingEngine.from_settings(settings),
        tiers_service=TiersService(settings.tiers_csv),
        channel_manager=ChannelManager(InMemoryCellRegistry()),
    )


_state: Optional[AppState] = None


def get_state() -> AppState:
    global _state
    if _state is None:
        _state = build_state()
    return _state


def tenant_header(x_tenant_id: Optional[str] = Header(default=None)) -> str:
    """Tenant for the request, taken from the X-Tenant-ID header."""
    if not x_tenant_id or not x_tenant_id.strip():
        raise InvalidInput("X-Tenant-ID header is required")
    return x_tenant_id.strip()
