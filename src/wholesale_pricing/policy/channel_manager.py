"""
Channel Manager - Policy-driven channel advancement, pinning and rollback.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from ..errors import EvaluationFailed, InvalidInput, NotFound
from .models import (
    MANUAL_POLICY,
    AdvancementResult,
    ChannelAdvancement,
    ChannelAdvancementPolicy,
    VersionPin,
)
from .registry import CellRegistry
from .resolver import AdvancementPolicyResolver, advancement_reason
from .versioning import validate_version

logger = logging.getLogger(__name__)


class ChannelManager:
    """
    Holds per-tenant advancement policies and pins, and applies decisions
    through a CellRegistry.

    Policy lookup precedence:
    1. Channel-specific policy for the cell
    2. Cell-wide policy
    3. Fallback: manual
    """

    def __init__(self, registry: CellRegistry, resolver: Optional[AdvancementPolicyResolver] = None):
        self.registry = registry
        self.resolver = resolver or AdvancementPolicyResolver()
        self._policies: dict[tuple, ChannelAdvancementPolicy] = {}
        self._pins: dict[tuple[str, str, str], VersionPin] = {}
        self._history: dict[tuple[str, str], list[AdvancementResult]] = {}

    # Configuration

    def set_advancement_policy(
        self,
        tenant_id: str,
        cell_id: str,
        policy: ChannelAdvancementPolicy,
        channel: Optional[str] = None,
    ):
        """Set the policy for a cell, or for one channel of it."""
        self._require(tenant_id, cell_id)
        if not isinstance(policy, ChannelAdvancementPolicy):
            raise EvaluationFailed("Advancement policy must be a ChannelAdvancementPolicy")
        key = (tenant_id, cell_id, channel) if channel else (tenant_id, cell_id)
        self._policies[key] = policy
        logger.info("Set %s policy for %s%s", policy.type.value, cell_id, f":{channel}" if channel else "",
                    extra={"tenant_id": tenant_id, "cell_id": cell_id, "channel": channel})

    def get_advancement_policy(self, tenant_id: str, cell_id: str, channel: Optional[str] = None) -> ChannelAdvancementPolicy:
        if channel:
            policy = self._policies.get((tenant_id, cell_id, channel))
            if policy is not None:
                return policy
        return self._policies.get((tenant_id, cell_id), MANUAL_POLICY)

    def pin_version(self, tenant_id: str, cell_id: str, channel: str, pin: VersionPin):
        """Pin a channel to a version constraint."""
        self._require(tenant_id, cell_id)
        if not channel:
            raise InvalidInput("Channel is required to pin a version")
        if not validate_version(pin.version):
            raise EvaluationFailed(f"Pin version '{pin.version}' is not a valid semantic version")
        self._pins[(tenant_id, cell_id, channel)] = pin
        logger.info("Pinned %s:%s to %s %s", cell_id, channel, pin.constraint.value, pin.version,
                    extra={"tenant_id": tenant_id, "cell_id": cell_id, "channel": channel})

    def unpin_version(self, tenant_id: str, cell_id: str, channel: str) -> bool:
        """Remove a pin; returns False when the channel was not pinned."""
        self._require(tenant_id, cell_id)
        removed = self._pins.pop((tenant_id, cell_id, channel), None) is not None
        if removed:
            logger.info("Unpinned %s:%s", cell_id, channel,
                        extra={"tenant_id": tenant_id, "cell_id": cell_id, "channel": channel})
        return removed

    def get_pin(self, tenant_id: str, cell_id: str, channel: str) -> Optional[VersionPin]:
        return self._pins.get((tenant_id, cell_id, channel))

    # Evaluation

    def evaluate_advancement(self, tenant_id: str, cell_id: str, candidate_version: str) -> list[ChannelAdvancement]:
        """
        Decide, per channel of the cell, whether it moves to candidate_version.

        Registry failures propagate. Only approved channels are returned.
        """
        self._require(tenant_id, cell_id)
        stats = self.registry.get_cell_stats(tenant_id, cell_id)

        advancements = []
        for channel, current_version in stats.channels.items():
            policy = self.get_advancement_policy(tenant_id, cell_id, channel)
            decision = self.resolver.decide(
                current_version,
                candidate_version,
                policy=policy,
                pin=self.get_pin(tenant_id, cell_id, channel),
                signals=stats,
            )
            log_extra = {"tenant_id": tenant_id, "cell_id": cell_id, "channel": channel}
            if not decision.advance:
                logger.debug("Channel %s stays at %s: %s", channel, current_version, decision.reason,
                             extra=log_extra)
                continue

            advancements.append(ChannelAdvancement(
                cell_id=cell_id,
                channel=channel,
                from_version=current_version,
                to_version=candidate_version,
                reason=advancement_reason(current_version, candidate_version, policy),
            ))

        return advancements

    def execute_advancements(self, tenant_id: str, advancements: list[ChannelAdvancement]) -> list[AdvancementResult]:
        """Apply advancements through the registry; one failure never aborts the batch."""
        if not tenant_id:
            raise InvalidInput("Tenant ID is required")

        results = []
        for adv in advancements:
            log_extra = {"tenant_id": tenant_id, "cell_id": adv.cell_id, "channel": adv.channel}
            try:
                self.registry.update_channel(tenant_id, adv.cell_id, adv.channel, adv.to_version)
            except Exception as e:
                result = self._result(adv, success=False, error=str(e) or type(e).__name__)
                logger.error("Failed to advance %s:%s", adv.cell_id, adv.channel,
                             exc_info=True, extra=log_extra)
            else:
                result = self._result(adv, success=True)
                logger.info("Advanced %s:%s → %s", adv.cell_id, adv.channel, adv.to_version,
                            extra=log_extra)
            self._record(tenant_id, result)
            results.append(result)

        return results

    def rollback_channel(self, tenant_id: str, cell_id: str, channel: str, target_version: str) -> AdvancementResult:
        """Move a channel back to target_version; registry failures propagate."""
        self._require(tenant_id, cell_id)
        if not validate_version(target_version):
            raise InvalidInput(f"Rollback target '{target_version}' is not a valid semantic version")

        stats = self.registry.get_cell_stats(tenant_id, cell_id)
        if channel not in stats.channels:
            raise NotFound(f"Channel '{channel}' not found on cell '{cell_id}'")

        self.registry.update_channel(tenant_id, cell_id, channel, target_version)
        result = self._result(
            ChannelAdvancement(
                cell_id=cell_id,
                channel=channel,
                from_version=stats.channels[channel],
                to_version=target_version,
                reason=f"Rollback ({stats.channels[channel]} → {target_version})",
            ),
            success=True,
        )
        self._record(tenant_id, result)
        logger.info("Rolled back %s:%s → %s", cell_id, channel, target_version,
                    extra={"tenant_id": tenant_id, "cell_id": cell_id, "channel": channel})
        return result

    def get_advancement_history(self, tenant_id: str, cell_id: str, limit: int = 50) -> list[AdvancementResult]:
        """Results recorded by this manager, most recent first."""
        self._require(tenant_id, cell_id)
        if limit <= 0:
            return []
        history = self._history.get((tenant_id, cell_id), [])
        return list(reversed(history))[:limit]

    # Helpers

    @staticmethod
    def _require(tenant_id: str, cell_id: str):
        if not tenant_id:
            raise InvalidInput("Tenant ID is required")
        if not cell_id:
            raise InvalidInput("Cell ID is required")

    @staticmethod
    def _result(adv: ChannelAdvancement, success: bool, error: Optional[str] = None) -> AdvancementResult:
        return AdvancementResult(
            cell_id=adv.cell_id,
            channel=adv.channel,
            from_version=adv.from_version,
            to_version=adv.to_version,
            reason=adv.reason,
            success=success,
            executed_at=datetime.now(timezone.utc).isoformat(),
            error=error,
        )

    def _record(self, tenant_id: str, result: AdvancementResult):
        self._history.setdefault((tenant_id, result.cell_id), []).append(result)
