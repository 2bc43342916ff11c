"""
Exception taxonomy shared by the pricing engine and the channel manager.
"""
from typing import Iterable


class PricingError(Exception):
    """Base class for all engine errors."""


class InvalidInput(PricingError, ValueError):
    """Caller contract violation (bad price, quantity, or missing scope key)."""


class CollaboratorUnavailable(PricingError):
    """A store or registry could not be read."""

    def __init__(self, collaborator: str, message: str):
        self.collaborator = collaborator
        super().__init__(f"{collaborator} unavailable: {message}")


class ConfigurationConflict(PricingError):
    """Tier configuration overlaps an existing tier for the same scope."""

    def __init__(self, message: str, conflicting_ids: Iterable[str] = ()):
        self.conflicting_ids = list(conflicting_ids)
        super().__init__(message)


class EvaluationFailed(PricingError):
    """Malformed advancement policy, rule, or pin data."""


class NotFound(PricingError, LookupError):
    """A tier, cell or channel does not exist for the tenant."""
