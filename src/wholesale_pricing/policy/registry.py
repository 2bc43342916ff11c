"""
Cell registry port and an in-memory implementation.
"""
from abc import ABC, abstractmethod
from dataclasses import replace

from ..errors import NotFound
from .models import CellStats


class CellRegistry(ABC):
    """Source of channel versions and live signals for a tenant's cells."""

    @abstractmethod
    def get_cell_stats(self, tenant_id: str, cell_id: str) -> CellStats:
        ...

    @abstractmethod
    def update_channel(self, tenant_id: str, cell_id: str, channel: str, version: str) -> None:
        ...


class InMemoryCellRegistry(CellRegistry):
    """Registry held in a dict keyed by (tenant_id, cell_id)."""

    def __init__(self, cells: dict = None):
        self._cells: dict[tuple[str, str], CellStats] = dict(cells or {})

    def register(self, tenant_id: str, cell_id: str, stats: CellStats):
        self._cells[(tenant_id, cell_id)] = stats

    def get_cell_stats(self, tenant_id: str, cell_id: str) -> CellStats:
        try:
            return self._cells[(tenant_id, cell_id)]
        except KeyError:
            raise NotFound(f"Cell '{cell_id}' not found")

    def update_channel(self, tenant_id: str, cell_id: str, channel: str, version: str) -> None:
        stats = self.get_cell_stats(tenant_id, cell_id)
        channels = dict(stats.channels)
        channels[channel] = version
        self._cells[(tenant_id, cell_id)] = replace(stats, channels=channels)
