"""Error taxonomy for the stack lifecycle harness.

Every failure the harness can observe is a ``HarnessError``. Each error
carries a readable message plus the structured fields needed to diagnose it
(captured subprocess output, endpoint, attempts, ...).

Errors are routed through one of two lanes (see ``ErrorLanes``):
- fatal: logged and raised, aborting the scenario
- warn: logged and recorded, the scenario continues
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NoReturn


@dataclass(eq=False)
class HarnessError(Exception):
    """Base error class for harness errors."""

    message: str = "Harness failure"
    fatal: bool = True

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dict for structured logs and JSON output."""
        return {"type": type(self).__name__, "message": self.message, "fatal": self.fatal}


@dataclass(eq=False)
class CommandFailed(HarnessError):
    """A subprocess exited with a non-zero status (or could not be spawned)."""

    command: str = ""
    output: str = ""
    returncode: int | None = None

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            if self.returncode is None:
                self.message = f"{self.command} could not be started: {self.output}"
            else:
                self.message = (
                    f"{self.command} failed: {self.output} - exit status {self.returncode}"
                )


@dataclass(eq=False)
class CloneFailed(HarnessError):
    """Cloning a git repository failed."""

    remote: str = ""
    output: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"cloning git repo {self.remote} failed: {self.output}"


@dataclass(eq=False)
class CleanupFailed(HarnessError):
    """Removing the local repository checkout failed."""

    path: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"delete git repo {self.path} failed: {self.reason}"


@dataclass(eq=False)
class DeployFailed(HarnessError):
    """The orchestration binary failed to deploy the stack."""

    manifest: str = ""
    output: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"stack deploy of {self.manifest} failed: {self.output}"


@dataclass(eq=False)
class DestroyFailed(HarnessError):
    """The orchestration binary failed to destroy the stack."""

    manifest: str = ""
    output: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"stack destroy of {self.manifest} failed: {self.output}"


@dataclass(eq=False)
class NamespaceFailed(HarnessError):
    """Creating or deleting a namespace failed."""

    namespace: str = ""
    action: str = ""
    output: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"{self.action} namespace {self.namespace} failed: {self.output}"


@dataclass(eq=False)
class Unreachable(HarnessError):
    """The reachability probe budget was exhausted."""

    endpoint: str = ""
    attempts: int = 0
    last_error: str | None = None

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = (
                f"{self.endpoint} wasn't available after {self.attempts} attempts"
                f" (last error: {self.last_error or 'none'})"
            )


@dataclass(eq=False)
class AssertionFailed(HarnessError):
    """A scenario assertion did not hold (wrong content, resource still present)."""

    details: dict[str, Any] = field(default_factory=dict)


@dataclass(eq=False)
class UnexpectedError(HarnessError):
    """A resource lookup failed for a reason other than not-found."""

    namespace: str = ""
    resource: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"error getting {self.resource} in {self.namespace}: {self.reason}"


@dataclass(eq=False)
class BinaryNotFound(HarnessError):
    """The orchestration binary is not installed or not responding."""

    binary: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"{self.binary} is not available: {self.reason}"


@dataclass(eq=False)
class ConfigError(HarnessError):
    """Invalid configuration value."""

    key: str = ""
    source: str = ""


@dataclass(eq=False)
class ScenarioTimeout(HarnessError):
    """The whole scenario exceeded its configured time budget."""

    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        if self.message == HarnessError.message:
            self.message = f"scenario did not finish within {self.timeout_seconds:g}s"


class ErrorLanes:
    """Route errors to the fatal or the warn lane.

    Every external call site in the orchestrator goes through exactly one of
    ``fatal`` or ``warn``.
    """

    def __init__(self, logger: Any):
        self._logger = logger
        self.warnings: list[HarnessError] = []

    def fatal(self, error: HarnessError, step: str) -> NoReturn:
        """Log and raise ``error``, aborting the scenario."""
        self._logger.error("step failed", step=step, error=str(error))
        raise error

    def warn(self, error: HarnessError, step: str) -> None:
        """Log and record ``error``; the scenario continues."""
        self._logger.warning("step failed, continuing", step=step, error=str(error))
        self.warnings.append(error)
