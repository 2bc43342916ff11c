"""
Walk a candidate version through the advancement gates for every channel
of a sample cell and print each decision.

Usage: python scripts/debug_advancement.py [candidate_version]
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from wholesale_pricing.config.logging_config import setup_logging
from wholesale_pricing.policy.channel_manager import ChannelManager
from wholesale_pricing.policy.models import (
    CellStats,
    ChannelAdvancementPolicy,
    PinConstraint,
    PolicyRule,
    PolicyType,
    RuleKind,
    VersionPin,
)
from wholesale_pricing.policy.registry import InMemoryCellRegistry

TENANT = "demo-tenant"
CELL = "WholesalePricingTiers"


def debug(candidate: str):
    setup_logging("DEBUG")

    registry = InMemoryCellRegistry()
    registry.register(TENANT, CELL, CellStats(
        channels={"stable": "2.0.5", "canary": "2.0.5", "experimental": "2.0.5", "lts": "2.0.5"},
        health="healthy",
        downloads=420,
    ))

    manager = ChannelManager(registry)
    manager.set_advancement_policy(TENANT, CELL, ChannelAdvancementPolicy(
        type=PolicyType.AUTOMATIC, rules=(PolicyRule(RuleKind.MINOR_ALLOWED),)), channel="canary")
    manager.set_advancement_policy(TENANT, CELL, ChannelAdvancementPolicy(
        type=PolicyType.CONDITIONAL, rules=(PolicyRule(RuleKind.USAGE_THRESHOLD, threshold=250),)),
        channel="experimental")
    manager.set_advancement_policy(TENANT, CELL, ChannelAdvancementPolicy(
        type=PolicyType.AUTOMATIC, rules=(PolicyRule(RuleKind.PATCH_ONLY),)), channel="lts")
    manager.pin_version(TENANT, CELL, "lts", VersionPin(PinConstraint.MAX, "2.5.0", reason="LTS freeze"))

    stats = registry.get_cell_stats(TENANT, CELL)
    print(f"\n--- Evaluating {CELL} → {candidate} ---")
    for channel, current in stats.channels.items():
        policy = manager.get_advancement_policy(TENANT, CELL, channel)
        decision = manager.resolver.decide(
            current, candidate, policy=policy, pin=manager.get_pin(TENANT, CELL, channel), signals=stats,
        )
        verdict = "ADVANCE" if decision.advance else "hold"
        print(f"{channel:<13} {current} [{policy.type.value}] {verdict:<7} ({decision.gate}) {decision.reason}")

    advancements = manager.evaluate_advancement(TENANT, CELL, candidate)
    results = manager.execute_advancements(TENANT, advancements)
    print("\nExecuted:")
    for r in results:
        print(f"  {r.channel}: {r.from_version} → {r.to_version} success={r.success} ({r.reason})")

    print("\nChannels now:", registry.get_cell_stats(TENANT, CELL).channels)


if __name__ == "__main__":
    debug(sys.argv[1] if len(sys.argv) > 1 else "2.1.0")
