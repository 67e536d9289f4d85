"""Shared modules for stackcheck."""

from .logging import bind_scenario, configure_logging, get_logger

__all__ = [
    "bind_scenario",
    "configure_logging",
    "get_logger",
]
