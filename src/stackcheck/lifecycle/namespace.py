"""Namespace provisioning for the lifecycle harness.

Every scenario deploys into its own namespace, created before the stack and
deleted afterwards.
"""

from __future__ import annotations

from ..errors import CommandFailed, NamespaceFailed
from ..shared import get_logger
from .process import run_command

logger = get_logger(__name__)


class NamespaceProvisioner:
    """Create and delete namespaces with the orchestration binary."""

    def __init__(self, binary: str, env: dict[str, str] | None = None):
        self.binary = binary
        self.env = env

    async def create(self, namespace: str) -> None:
        """Create ``namespace``.

        Raises:
            NamespaceFailed: If the binary exits non-zero.
        """
        await self._run("create", namespace)
        logger.info("created namespace", namespace=namespace)

    async def delete(self, namespace: str) -> None:
        """Delete ``namespace``.

        Callers treat this failure as a warning: a stray namespace is a
        cleanup problem, not a correctness one.

        Raises:
            NamespaceFailed: If the binary exits non-zero.
        """
        await self._run("delete", namespace)
        logger.info("deleted namespace", namespace=namespace)

    async def _run(self, action: str, namespace: str) -> None:
        try:
            await run_command(self.binary, [action, "namespace", namespace], env=self.env)
        except CommandFailed as e:
            raise NamespaceFailed(
                namespace=namespace, action=action, output=e.output, fatal=action == "create"
            ) from e
