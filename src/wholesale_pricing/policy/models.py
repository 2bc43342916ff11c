"""
Data models for channel advancement.

Rules, policies and pins are frozen tagged variants; parsing from plain
dicts (API bodies, config files) rejects unknown tags with EvaluationFailed
instead of letting them fall through.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import EvaluationFailed


class PolicyType(str, Enum):
    AUTOMATIC = 'automatic'
    MANUAL = 'manual'
    CONDITIONAL = 'conditional'


class RuleKind(str, Enum):
    # Version-shape rules, evaluated by automatic policies
    PATCH_ONLY = 'patch_only'
    MINOR_ALLOWED = 'minor_allowed'
    MAJOR_BLOCKED = 'major_blocked'
    TIME_DELAY = 'time_delay'
    # Live-signal rules, evaluated by conditional policies
    HEALTH_CHECK = 'health_check'
    USAGE_THRESHOLD = 'usage_threshold'
    DEPENDENCY_READY = 'dependency_ready'


class PinConstraint(str, Enum):
    EXACT = 'exact'
    MIN = 'min'
    MAX = 'max'
    COMPATIBLE = 'compatible'


def _parse_enum(enum_cls, value, label: str):
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(e.value for e in enum_cls)
        raise EvaluationFailed(f"Unknown {label} '{value}', must be one of: {allowed}")


@dataclass(frozen=True)
class PolicyRule:
    """A single advancement rule with an optional numeric threshold."""
    kind: RuleKind
    threshold: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'PolicyRule':
        if not isinstance(data, dict):
            raise EvaluationFailed(f"Policy rule must be an object, got {type(data).__name__}")
        kind = _parse_enum(RuleKind, data.get('type', data.get('kind')), 'rule type')
        threshold = data.get('threshold')
        if threshold is not None:
            try:
                threshold = float(threshold)
            except (TypeError, ValueError):
                raise EvaluationFailed(f"Rule threshold must be numeric, got '{threshold}'")
        return cls(kind=kind, threshold=threshold)

    def to_dict(self) -> dict:
        data = {'type': self.kind.value}
        if self.threshold is not None:
            data['threshold'] = self.threshold
        return data


@dataclass(frozen=True)
class ChannelAdvancementPolicy:
    """How a channel reacts to a newly published version."""
    type: PolicyType
    rules: tuple = ()

    @classmethod
    def from_dict(cls, data: dict) -> 'ChannelAdvancementPolicy':
        if not isinstance(data, dict):
            raise EvaluationFailed("Advancement policy must be an object")
        policy_type = _parse_enum(PolicyType, data.get('type'), 'policy type')
        rules = data.get('rules') or []
        if not isinstance(rules, (list, tuple)):
            raise EvaluationFailed("Policy rules must be a list")
        return cls(type=policy_type, rules=tuple(PolicyRule.from_dict(r) for r in rules))

    def to_dict(self) -> dict:
        return {'type': self.type.value, 'rules': [r.to_dict() for r in self.rules]}


MANUAL_POLICY = ChannelAdvancementPolicy(type=PolicyType.MANUAL)


@dataclass(frozen=True)
class VersionPin:
    """Hard constraint on which versions a channel may advance to."""
    constraint: PinConstraint
    version: str
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> 'VersionPin':
        if not isinstance(data, dict):
            raise EvaluationFailed("Version pin must be an object")
        constraint = _parse_enum(PinConstraint, data.get('constraint'), 'pin constraint')
        return cls(constraint=constraint, version=str(data.get('version') or ''), reason=data.get('reason'))


@dataclass(frozen=True)
class CellStats:
    """Registry view of a cell: channel versions plus live signals."""
    channels: dict = field(default_factory=dict)
    health: str = 'unknown'
    downloads: int = 0


@dataclass(frozen=True)
class AdvancementDecision:
    """
    Outcome of evaluating one channel.

    A rejection is a normal result, not an error; ``gate`` names the check
    that decided (version, pin or policy).
    """
    advance: bool
    gate: str
    reason: str


@dataclass(frozen=True)
class ChannelAdvancement:
    cell_id: str
    channel: str
    from_version: str
    to_version: str
    reason: str


@dataclass(frozen=True)
class AdvancementResult(ChannelAdvancement):
    success: bool = False
    executed_at: str = ''
    error: Optional[str] = None
