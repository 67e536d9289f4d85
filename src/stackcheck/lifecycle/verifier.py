"""Post-destroy verification that the stack's resources are gone.

The cluster is queried through a lookup object exposing
``async get(namespace, name) -> dict``. The lookup must fail with an error
whose text contains "not found"; a returned descriptor means the resource
survived the destroy, and any other error is unexpected.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Protocol

from ..errors import AssertionFailed, UnexpectedError
from ..shared import get_logger
from .process import run_command

logger = get_logger(__name__)

NOT_FOUND_MARKER = "not found"


class ResourceLookup(Protocol):
    """Query a named resource in a namespace."""

    async def get(self, namespace: str, name: str) -> dict[str, Any]: ...


class KubectlLookup:
    """Resource lookup backed by ``kubectl get``."""

    def __init__(self, kind: str = "deployment", kubeconfig: str | None = None):
        """Initialize lookup.

        Args:
            kind: Resource kind passed to kubectl (deployment, service, ...).
            kubeconfig: Path to kubeconfig file.
        """
        self.kind = kind
        self.kubeconfig = kubeconfig

    def _kubectl_args(self) -> list[str]:
        args: list[str] = []
        if self.kubeconfig:
            args.extend(["--kubeconfig", self.kubeconfig])
        return args

    async def get(self, namespace: str, name: str) -> dict[str, Any]:
        """Return the resource as parsed JSON.

        Raises:
            CommandFailed: If kubectl fails; a missing resource reads
                ``Error from server (NotFound): ... "<name>" not found``.
        """
        output = await run_command(
            "kubectl",
            self._kubectl_args() + ["get", self.kind, name, "-n", namespace, "-o", "json"],
        )
        return json.loads(output)


class ResourceVerifier:
    """Assert that a resource no longer exists."""

    def __init__(
        self,
        lookup: ResourceLookup,
        settle_seconds: float = 5.0,
        max_attempts: int = 1,
        interval_seconds: float = 2.0,
    ):
        """Initialize verifier.

        Args:
            lookup: Cluster lookup to query.
            settle_seconds: Wait before the first lookup, for deletion to
                propagate.
            max_attempts: Lookups made while the resource is still present.
                1 means a single lookup.
            interval_seconds: Seconds between lookups.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.lookup = lookup
        self.settle_seconds = settle_seconds
        self.max_attempts = max_attempts
        self.interval_seconds = interval_seconds

    async def assert_absent(self, namespace: str, name: str) -> None:
        """Succeed only once a lookup of ``name`` fails with not-found.

        Raises:
            AssertionFailed: If the resource is still present after every
                attempt.
            UnexpectedError: If a lookup fails for another reason.
        """
        if self.settle_seconds > 0:
            await asyncio.sleep(self.settle_seconds)

        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.lookup.get(namespace, name)
            except Exception as e:
                reason = str(e)
                if NOT_FOUND_MARKER in reason:
                    logger.info("resource absent", namespace=namespace, resource=name)
                    return
                raise UnexpectedError(namespace=namespace, resource=name, reason=reason) from e

            logger.debug("resource still present", resource=name, attempt=attempt)
            if attempt < self.max_attempts:
                await asyncio.sleep(self.interval_seconds)

        raise AssertionFailed(
            message=f"'{name}' still exists in {namespace} after stack destroy",
            details={"namespace": namespace, "resource": name, "attempts": self.max_attempts},
        )
