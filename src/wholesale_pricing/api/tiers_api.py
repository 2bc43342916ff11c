"""
Tiers API - FastAPI router for pricing tier management.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..engine.models import Discount, DiscountKind, PricingTier, TierStatus
from ..errors import InvalidInput, NotFound
from .state import AppState, get_state, tenant_header

router = APIRouter(prefix="/api/tiers", tags=["tiers"])


# Pydantic models for API
class TierCreate(BaseModel):
    """Request model for creating a tier."""
    tier_id: Optional[str] = None
    tier_name: Optional[str] = None
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    group_id: Optional[str] = None
    territory: Optional[str] = None
    min_quantity: int
    max_quantity: Optional[int] = None
    discount_type: str
    discount_value: float
    payment_terms_discount: float = 0.0
    priority: int = 50
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: str = TierStatus.ACTIVE.value
    currency: str = 'NGN'

    def to_tier(self, tenant_id: str) -> PricingTier:
        try:
            kind = DiscountKind(self.discount_type)
        except ValueError:
            raise InvalidInput(f"Invalid discount type '{self.discount_type}'")
        try:
            status = TierStatus(self.status)
        except ValueError:
            raise InvalidInput(f"Invalid status '{self.status}'")
        return PricingTier(
            tier_id=self.tier_id or '',
            tenant_id=tenant_id,
            tier_name=self.tier_name or '',
            min_quantity=self.min_quantity,
            max_quantity=self.max_quantity,
            discount=Discount(kind=kind, value=self.discount_value),
            product_id=self.product_id,
            category_id=self.category_id,
            group_id=self.group_id,
            territory=self.territory,
            payment_terms_discount=self.payment_terms_discount,
            priority=self.priority,
            effective_date=self.effective_date,
            expiry_date=self.expiry_date,
            status=status,
            currency=self.currency,
        )


class TierUpdate(BaseModel):
    """Request model for updating a tier."""
    tier_name: Optional[str] = None
    product_id: Optional[str] = None
    category_id: Optional[str] = None
    group_id: Optional[str] = None
    territory: Optional[str] = None
    min_quantity: Optional[int] = None
    max_quantity: Optional[int] = None
    discount_type: Optional[str] = None
    discount_value: Optional[float] = None
    payment_terms_discount: Optional[float] = None
    priority: Optional[int] = None
    effective_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: Optional[str] = None
    currency: Optional[str] = None


class TierResponse(BaseModel):
    """Response model for a tier."""
    tier_id: str
    tier_name: str
    status: str
    product_id: Optional[str]
    category_id: Optional[str]
    group_id: Optional[str]
    territory: Optional[str]
    min_quantity: int
    max_quantity: Optional[int]
    discount_type: str
    discount_value: float
    payment_terms_discount: float
    priority: int
    effective_date: Optional[date]
    expiry_date: Optional[date]
    currency: str

    @classmethod
    def from_tier(cls, tier: PricingTier) -> 'TierResponse':
        return cls(
            tier_id=tier.tier_id,
            tier_name=tier.tier_name,
            status=tier.status.value,
            product_id=tier.product_id,
            category_id=tier.category_id,
            group_id=tier.group_id,
            territory=tier.territory,
            min_quantity=tier.min_quantity,
            max_quantity=tier.max_quantity,
            discount_type=tier.discount.kind.value,
            discount_value=tier.discount.value,
            payment_terms_discount=tier.payment_terms_discount,
            priority=tier.priority,
            effective_date=tier.effective_date,
            expiry_date=tier.expiry_date,
            currency=tier.currency,
        )


class ValidationResponse(BaseModel):
    """Response model for validation."""
    valid: bool
    errors: list[str]
    warnings: list[str]
    overlapping_ids: list[str]


# Endpoints

@router.get("", response_model=list[TierResponse])
async def list_tiers(
    include_inactive: bool = True,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """List the tenant's pricing tiers."""
    tiers = state.tiers_service.list_tiers(tenant_id, include_inactive=include_inactive)
    return [TierResponse.from_tier(t) for t in tiers]


@router.get("/stats")
async def get_stats(tenant_id: str = Depends(tenant_header), state: AppState = Depends(get_state)):
    """Get tier statistics."""
    return state.tiers_service.get_stats(tenant_id)


@router.get("/{tier_id}", response_model=TierResponse)
async def get_tier(tier_id: str, tenant_id: str = Depends(tenant_header), state: AppState = Depends(get_state)):
    """Get a single tier by ID."""
    tier = state.tiers_service.get_tier(tenant_id, tier_id)
    if not tier:
        raise NotFound(f"Tier '{tier_id}' not found")
    return TierResponse.from_tier(tier)


@router.post("", response_model=TierResponse, status_code=201)
async def create_tier(
    tier_data: TierCreate,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Create a new pricing tier; overlaps are rejected with 409."""
    created = state.tiers_service.create_tier(tenant_id, tier_data.to_tier(tenant_id))
    return TierResponse.from_tier(created)


@router.put("/{tier_id}", response_model=TierResponse)
async def update_tier(
    tier_id: str,
    updates: TierUpdate,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Update an existing tier."""
    updated = state.tiers_service.update_tier(tenant_id, tier_id, updates.model_dump(exclude_unset=True))
    return TierResponse.from_tier(updated)


@router.delete("/{tier_id}")
async def delete_tier(
    tier_id: str,
    hard: bool = False,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Soft-delete (deactivate) or hard-delete (remove) a tier."""
    tier = state.tiers_service.delete_tier(tenant_id, tier_id, hard=hard)
    return {"success": True, "tier_id": tier.tier_id, "status": tier.status.value}


@router.post("/validate", response_model=ValidationResponse)
async def validate_tier(
    tier_data: TierCreate,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Validate a tier without saving."""
    result = state.tiers_service.validate_tier(tier_data.to_tier(tenant_id))
    return ValidationResponse(
        valid=result.valid,
        errors=result.errors,
        warnings=result.warnings,
        overlapping_ids=result.overlapping_ids,
    )
