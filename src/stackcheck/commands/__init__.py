"""CLI subcommands."""

from .namespace import create, delete
from .run import run

__all__ = ["create", "delete", "run"]
