"""
Channels API - FastAPI router for release channel advancement.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from ..policy.models import CellStats, ChannelAdvancement, ChannelAdvancementPolicy, VersionPin
from ..policy.registry import InMemoryCellRegistry
from ..errors import InvalidInput
from .state import AppState, get_state, tenant_header

router = APIRouter(prefix="/api/channels", tags=["channels"])


class CellRegistration(BaseModel):
    """Request model for registering a cell's channel state."""
    channels: dict[str, str] = Field(default_factory=dict)
    health: str = 'unknown'
    downloads: int = 0


class RuleModel(BaseModel):
    type: str
    threshold: Optional[float] = None


class PolicyRequest(BaseModel):
    """Request model for setting an advancement policy."""
    type: str
    rules: list[RuleModel] = Field(default_factory=list)
    channel: Optional[str] = None


class PinRequest(BaseModel):
    channel: str
    constraint: str
    version: str
    reason: Optional[str] = None


class EvaluateRequest(BaseModel):
    version: str


class AdvancementModel(BaseModel):
    cell_id: str
    channel: str
    from_version: str
    to_version: str
    reason: str


class ExecuteRequest(BaseModel):
    advancements: list[AdvancementModel]


class RollbackRequest(BaseModel):
    channel: str
    target_version: str


@router.put("/{cell_id}")
async def register_cell(
    cell_id: str,
    registration: CellRegistration,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Record a cell's channel versions and live signals in the in-memory registry."""
    registry = state.channel_manager.registry
    if not isinstance(registry, InMemoryCellRegistry):
        raise InvalidInput("The configured cell registry does not accept registrations")
    registry.register(tenant_id, cell_id, CellStats(**registration.model_dump()))
    return {"success": True, "cell_id": cell_id}


@router.put("/{cell_id}/policy")
async def set_policy(
    cell_id: str,
    req: PolicyRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Set the cell-wide policy, or a channel-specific one when `channel` is given."""
    policy = ChannelAdvancementPolicy.from_dict(req.model_dump(exclude={'channel'}))
    state.channel_manager.set_advancement_policy(tenant_id, cell_id, policy, channel=req.channel)
    return {"cell_id": cell_id, "channel": req.channel, "policy": policy.to_dict()}


@router.get("/{cell_id}/policy")
async def get_policy(
    cell_id: str,
    channel: Optional[str] = None,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    policy = state.channel_manager.get_advancement_policy(tenant_id, cell_id, channel)
    return {"cell_id": cell_id, "channel": channel, "policy": policy.to_dict()}


@router.put("/{cell_id}/pin")
async def pin_version(
    cell_id: str,
    req: PinRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Pin a channel to a version constraint."""
    pin = VersionPin.from_dict(req.model_dump(exclude={'channel'}))
    state.channel_manager.pin_version(tenant_id, cell_id, req.channel, pin)
    return {"cell_id": cell_id, "channel": req.channel, "constraint": pin.constraint.value, "version": pin.version}


@router.delete("/{cell_id}/pin/{channel}")
async def unpin_version(
    cell_id: str,
    channel: str,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    removed = state.channel_manager.unpin_version(tenant_id, cell_id, channel)
    return {"success": removed}


@router.post("/{cell_id}/evaluate")
async def evaluate_advancement(
    cell_id: str,
    req: EvaluateRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """List the channels that would advance to the candidate version."""
    advancements = state.channel_manager.evaluate_advancement(tenant_id, cell_id, req.version)
    return jsonable_encoder(advancements)


@router.post("/{cell_id}/execute")
async def execute_advancements(
    cell_id: str,
    req: ExecuteRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Apply advancements; each item reports its own success or error."""
    advancements = [ChannelAdvancement(**a.model_dump()) for a in req.advancements]
    if any(a.cell_id != cell_id for a in advancements):
        raise InvalidInput(f"All advancements must target cell '{cell_id}'")
    results = state.channel_manager.execute_advancements(tenant_id, advancements)
    return jsonable_encoder(results)


@router.post("/{cell_id}/rollback")
async def rollback_channel(
    cell_id: str,
    req: RollbackRequest,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    result = state.channel_manager.rollback_channel(tenant_id, cell_id, req.channel, req.target_version)
    return jsonable_encoder(result)


@router.get("/{cell_id}/history")
async def advancement_history(
    cell_id: str,
    limit: int = 50,
    tenant_id: str = Depends(tenant_header),
    state: AppState = Depends(get_state),
):
    """Advancement history, most recent first."""
    return jsonable_encoder(state.channel_manager.get_advancement_history(tenant_id, cell_id, limit))
