"""Command line entry point (``kpi-engine`` / ``python -m kpi_engine.cli``)."""

from .app import main

__all__ = ["main"]
