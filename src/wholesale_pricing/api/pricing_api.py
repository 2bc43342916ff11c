"""
Pricing API - FastAPI router for price calculation and bulk matrices.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from ..engine.matrix import matrix_to_frame
from ..engine.models import CustomerContext, PaymentTerms
from .state import AppState, get_state, tenant_header

router = APIRouter(prefix="/api/pricing", tags=["pricing"])


class CustomerFields(BaseModel):
    group_id: Optional[str] = None
    territory: Optional[str] = None
    payment_terms: Optional[str] = None
    currency: Optional[str] = None
    as_of: Optional[date] = None

    def to_context(self, quantity: int = 1) -> CustomerContext:
        return CustomerContext(
            quantity=quantity,
            group_id=self.group_id,
            territory=self.territory,
            payment_terms=PaymentTerms.parse(self.payment_terms) if self.payment_terms else None,
            currency=self.currency,
            as_of=self.as_of,
        )


class CalculateRequest(CustomerFields):
    """Request model for a single price calculation."""
    product_id: str
    quantity: int
    base_price: float
    category_id: Optional[str] = None


class MatrixRequest(CustomerFields):
    """Request model for a bulk pricing matrix."""
    product_ids: list[str] = Field(default_factory=list)
    flat: bool = False


@router.post("/calculate")
async def calculate_price(
    req: CalculateRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Price a quantity of one product for the tenant's customer."""
    breakdown = state.engine.calculate_price(
        tenant_id=tenant_id,
        product_id=req.product_id,
        quantity=req.quantity,
        base_price=req.base_price,
        context=req.to_context(req.quantity),
        category_id=req.category_id,
    )
    result = jsonable_encoder(breakdown)
    result['trace_text'] = breakdown.get_trace_text()
    return result


@router.post("/matrix")
async def pricing_matrix(
    req: MatrixRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Bulk pricing table per product; products without a price are skipped."""
    matrix = state.engine.generate_bulk_matrix(tenant_id, req.product_ids, req.to_context())
    if req.flat:
        df = matrix_to_frame(matrix).astype(object)
        df = df.where(df.notna(), None)
        return df.to_dict(orient="records")
    return jsonable_encoder(matrix)
