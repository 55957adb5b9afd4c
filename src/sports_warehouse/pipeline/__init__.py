"""Pipeline orchestration for warehouse loads."""

from .orchestrator import WarehouseLoadOrchestrator, WarehouseLoadResult

__all__ = [
    "WarehouseLoadOrchestrator",
    "WarehouseLoadResult",
]
