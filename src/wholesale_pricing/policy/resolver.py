"""
Advancement Policy Resolver - Decides whether a channel moves to a new version.
"""
import logging
from typing import Callable, Optional

from ..errors import EvaluationFailed
from .models import (
    MANUAL_POLICY,
    AdvancementDecision,
    CellStats,
    ChannelAdvancementPolicy,
    PinConstraint,
    PolicyRule,
    PolicyType,
    RuleKind,
    VersionPin,
)
from .versioning import (
    compare_versions,
    is_major_update,
    is_minor_or_patch_update,
    is_patch_update,
    parse_version,
    validate_version,
)

logger = logging.getLogger(__name__)

DEFAULT_USAGE_THRESHOLD = 100

AUTOMATIC_KINDS = frozenset({
    RuleKind.PATCH_ONLY,
    RuleKind.MINOR_ALLOWED,
    RuleKind.MAJOR_BLOCKED,
    RuleKind.TIME_DELAY,
})
CONDITIONAL_KINDS = frozenset({
    RuleKind.HEALTH_CHECK,
    RuleKind.USAGE_THRESHOLD,
    RuleKind.DEPENDENCY_READY,
})


def _time_delay(current, candidate, rule, signals) -> bool:
    # Publication age is not tracked yet; the delay is always satisfied
    return True


def _dependency_ready(current, candidate, rule, signals) -> bool:
    # Dependent cell compatibility is not tracked yet
    return True


def _usage_threshold(current, candidate, rule, signals) -> bool:
    threshold = rule.threshold if rule.threshold else DEFAULT_USAGE_THRESHOLD
    return signals.downloads > threshold


RULE_HANDLERS: dict[RuleKind, Callable[[str, str, PolicyRule, CellStats], bool]] = {
    RuleKind.PATCH_ONLY: lambda cur, cand, rule, sig: is_patch_update(cur, cand),
    RuleKind.MINOR_ALLOWED: lambda cur, cand, rule, sig: is_minor_or_patch_update(cur, cand),
    RuleKind.MAJOR_BLOCKED: lambda cur, cand, rule, sig: not is_major_update(cur, cand),
    RuleKind.TIME_DELAY: _time_delay,
    RuleKind.HEALTH_CHECK: lambda cur, cand, rule, sig: sig.health == 'healthy',
    RuleKind.USAGE_THRESHOLD: _usage_threshold,
    RuleKind.DEPENDENCY_READY: _dependency_ready,
}


def satisfies_pin(candidate: str, pin: VersionPin) -> bool:
    """Check a candidate version against a pin; a malformed pin raises EvaluationFailed."""
    if not isinstance(pin.constraint, PinConstraint):
        raise EvaluationFailed(f"Unknown pin constraint '{pin.constraint}'")
    if not validate_version(pin.version):
        raise EvaluationFailed(f"Pin version '{pin.version}' is not a valid semantic version")

    if pin.constraint is PinConstraint.COMPATIBLE:
        return parse_version(candidate).major == parse_version(pin.version).major

    comparison = compare_versions(candidate, pin.version)
    if pin.constraint is PinConstraint.EXACT:
        return comparison == 0
    if pin.constraint is PinConstraint.MIN:
        return comparison >= 0
    if pin.constraint is PinConstraint.MAX:
        return comparison <= 0
    raise EvaluationFailed(f"Unhandled pin constraint '{pin.constraint.value}'")


def advancement_reason(current: str, candidate: str, policy: ChannelAdvancementPolicy) -> str:
    """Human-readable reason attached to an approved advancement."""
    if is_patch_update(current, candidate):
        return f"Patch update ({current} → {candidate})"
    if is_minor_or_patch_update(current, candidate):
        return f"Minor update ({current} → {candidate})"
    return f"Policy-based advancement ({policy.type.value})"


class AdvancementPolicyResolver:
    """
    Evaluates one (cell, channel) against a candidate version.

    Gate sequence, each gate a hard reject:
    1. Candidate is valid semver and strictly newer than current
    2. Version pin, when one exists
    3. Policy: manual never advances; automatic and conditional policies are
       decided by their first rule of a kind they evaluate

    Rejection is returned as a decision, never raised. Malformed policy or
    pin data raises EvaluationFailed.
    """

    def decide(
        self,
        current_version: str,
        candidate_version: str,
        policy: Optional[ChannelAdvancementPolicy] = None,
        pin: Optional[VersionPin] = None,
        signals: Optional[CellStats] = None,
    ) -> AdvancementDecision:
        policy = policy or MANUAL_POLICY
        signals = signals or CellStats()

        # 1. Version gate
        if not validate_version(candidate_version):
            return AdvancementDecision(False, 'version', f"Invalid candidate version '{candidate_version}'")
        if not validate_version(current_version):
            return AdvancementDecision(False, 'version', f"Invalid current version '{current_version}'")
        if compare_versions(candidate_version, current_version) <= 0:
            return AdvancementDecision(
                False, 'version', f"{candidate_version} is not newer than {current_version}"
            )

        # 2. Pin gate
        if pin is not None and not satisfies_pin(candidate_version, pin):
            return AdvancementDecision(
                False, 'pin', f"Pinned {pin.constraint.value} {pin.version}"
            )

        # 3. Policy gate
        if policy.type is PolicyType.MANUAL:
            return AdvancementDecision(False, 'policy', "Manual policy never auto-advances")
        if policy.type is PolicyType.AUTOMATIC:
            return self._first_rule(policy, AUTOMATIC_KINDS, current_version, candidate_version, signals)
        if policy.type is PolicyType.CONDITIONAL:
            return self._first_rule(policy, CONDITIONAL_KINDS, current_version, candidate_version, signals)
        raise EvaluationFailed(f"Unknown policy type '{policy.type}'")

    def _first_rule(
        self,
        policy: ChannelAdvancementPolicy,
        kinds: frozenset,
        current: str,
        candidate: str,
        signals: CellStats,
    ) -> AdvancementDecision:
        for rule in policy.rules:
            if not isinstance(rule, PolicyRule) or not isinstance(rule.kind, RuleKind):
                raise EvaluationFailed(f"Malformed policy rule: {rule!r}")
            if rule.kind not in kinds:
                continue
            handler = RULE_HANDLERS.get(rule.kind)
            if handler is None:
                raise EvaluationFailed(f"No evaluator for rule type '{rule.kind.value}'")
            passed = handler(current, candidate, rule, signals)
            outcome = 'passed' if passed else 'failed'
            return AdvancementDecision(passed, 'policy', f"Rule {rule.kind.value} {outcome}")

        return AdvancementDecision(
            False, 'policy', f"No applicable rule in {policy.type.value} policy"
        )
