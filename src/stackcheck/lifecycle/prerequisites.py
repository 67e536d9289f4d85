"""Prerequisite detection for the lifecycle harness.

Detects the orchestration binary and kubectl before a scenario starts.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

from ..errors import BinaryNotFound, CommandFailed
from .process import run_command


@dataclass
class BinaryInfo:
    """Orchestration binary detection result."""

    available: bool
    path: str | None = None
    version: str | None = None
    error: str | None = None


class BinaryDetector:
    """Resolve the orchestration binary and check that it responds."""

    def __init__(self, binary: str = "okteto"):
        """Initialize detector.

        Args:
            binary: Binary name (looked up on PATH) or path.
        """
        self.binary = binary

    async def detect(self) -> BinaryInfo:
        """Locate the binary and run ``<binary> version``."""
        found = shutil.which(self.binary)
        if not found:
            return BinaryInfo(
                available=False,
                error=f"{self.binary} not found on PATH",
            )

        path = str(Path(found).resolve())
        try:
            output = await run_command(path, ["version"])
        except CommandFailed as e:
            return BinaryInfo(available=False, path=path, error=e.message)

        return BinaryInfo(available=True, path=path, version=output.strip())


@dataclass
class KubectlInfo:
    """kubectl detection result."""

    kubectl_available: bool
    kubectl_version: str | None = None
    error: str | None = None


class KubectlDetector:
    """Detect kubectl, used for post-destroy resource lookups."""

    async def detect(self) -> KubectlInfo:
        """Check for kubectl on PATH and that it runs."""
        if not shutil.which("kubectl"):
            return KubectlInfo(
                kubectl_available=False,
                error="kubectl not found. Install kubectl: https://kubernetes.io/docs/tasks/tools/",
            )

        try:
            output = await run_command("kubectl", ["version", "--client"])
        except CommandFailed as e:
            return KubectlInfo(kubectl_available=False, error=f"kubectl error: {e.output}")

        return KubectlInfo(kubectl_available=True, kubectl_version=output.strip())


async def resolve_binary(binary: str) -> BinaryInfo:
    """Detect ``binary`` and require it to be usable.

    Raises:
        BinaryNotFound: If the binary is missing or does not respond.
    """
    info = await BinaryDetector(binary).detect()
    if not info.available or not info.path:
        raise BinaryNotFound(binary=binary, reason=info.error or "unknown error")
    return info
