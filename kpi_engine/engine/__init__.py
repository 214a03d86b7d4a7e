"""Seed, metrics resolution, objective generation and status assembly."""

from .pipeline import EngineContext, process_batch, process_row

__all__ = [
    "EngineContext",
    "process_row",
    "process_batch",
]
