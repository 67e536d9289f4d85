"""Scenario identity and outcome.

A scenario's identity is computed once at start and threaded explicitly
through every step. Names are lowercase and hyphen-joined, and include a
unix timestamp and the user so concurrent CI runs on one cluster never
share a namespace.
"""

from __future__ import annotations

import platform
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..errors import HarnessError


@dataclass(frozen=True)
class ScenarioIdentity:
    """Unique names for one scenario run."""

    base_name: str
    platform: str
    timestamp: int
    user: str
    namespace_prefix: str | None = None

    @classmethod
    def create(
        cls,
        base_name: str,
        user: str,
        namespace_prefix: str | None = None,
    ) -> ScenarioIdentity:
        """Stamp a new identity with the current time and platform."""
        return cls(
            base_name=base_name,
            platform=platform.system().lower(),
            timestamp=int(time.time()),
            user=user,
            namespace_prefix=namespace_prefix,
        )

    @property
    def test_name(self) -> str:
        return f"{self.base_name}-{self.platform}"

    @property
    def name(self) -> str:
        return f"{self.test_name}-{self.timestamp}".lower()

    @property
    def namespace(self) -> str:
        if self.namespace_prefix:
            return f"{self.namespace_prefix}-{self.timestamp}-{self.user}".lower()
        return f"{self.name}-{self.user}".lower()

    def endpoint(self, service: str, domain: str) -> str:
        """Public URL of ``service`` deployed in this scenario's namespace."""
        return f"https://{service}-{self.namespace}.{domain}"


class ScenarioState(Enum):
    """Steps of the stack lifecycle, in order."""

    INIT = "init"
    NAMESPACE_CREATED = "namespace_created"
    REPO_CLONED = "repo_cloned"
    DEPLOYED = "deployed"
    VERIFIED_REACHABLE = "verified_reachable"
    DESTROYED = "destroyed"
    VERIFIED_ABSENT = "verified_absent"
    NAMESPACE_DELETED = "namespace_deleted"
    REPO_REMOVED = "repo_removed"


@dataclass
class ScenarioReport:
    """What a scenario run reached and what went wrong."""

    identity: ScenarioIdentity
    state: ScenarioState = ScenarioState.INIT
    completed: list[ScenarioState] = field(default_factory=list)
    content: str | None = None
    probe_attempts: int = 0
    warnings: list[HarnessError] = field(default_factory=list)
    error: HarnessError | None = None
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None and self.state == ScenarioState.REPO_REMOVED

    def advance(self, state: ScenarioState) -> None:
        self.state = state
        self.completed.append(state)

    def reached(self, state: ScenarioState) -> bool:
        return state in self.completed

    def to_dict(self) -> dict[str, Any]:
        return {
            "test": self.identity.test_name,
            "namespace": self.identity.namespace,
            "success": self.success,
            "state": self.state.value,
            "completed": [s.value for s in self.completed],
            "probe_attempts": self.probe_attempts,
            "warnings": [w.to_dict() for w in self.warnings],
            "error": self.error.to_dict() if self.error else None,
            "elapsed_seconds": round(self.elapsed_seconds, 2),
        }
