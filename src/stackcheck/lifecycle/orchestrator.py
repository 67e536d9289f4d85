"""End-to-end stack lifecycle scenario.

Sequence:
1. Create the scenario namespace
2. Clone the repository holding the stack manifest
3. Deploy the stack (build + wait)
4. Probe the public endpoint until it serves the expected marker
5. Destroy the stack
6. Verify the backing resource is gone
7. Delete the namespace (best-effort)
8. Remove the checkout (always, last)

A failed step aborts the scenario with its own error. Cleanup still runs:
the stack is destroyed (best-effort) if it had been deployed, the namespace
is deleted (best-effort) if it had been created, and the checkout is always
removed.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack
from datetime import datetime
from pathlib import Path

from ..config import HarnessConfig
from ..errors import (
    AssertionFailed,
    CleanupFailed,
    CloneFailed,
    DeployFailed,
    DestroyFailed,
    ErrorLanes,
    HarnessError,
    NamespaceFailed,
    ScenarioTimeout,
    UnexpectedError,
    Unreachable,
)
from ..shared import bind_scenario, get_logger
from .namespace import NamespaceProvisioner
from .prerequisites import resolve_binary
from .reachability import ReachabilityPoller
from .repository import RepositoryFetcher, RepositoryRef
from .scenario import ScenarioIdentity, ScenarioReport, ScenarioState
from .stack import StackController
from .verifier import KubectlLookup, ResourceVerifier

logger = get_logger(__name__)


class StackScenario:
    """Run the full deploy / verify / destroy / verify-gone lifecycle once."""

    def __init__(
        self,
        identity: ScenarioIdentity,
        *,
        repository: RepositoryRef,
        manifest: str,
        service: str,
        domain: str,
        marker: str,
        namespaces: NamespaceProvisioner,
        fetcher: RepositoryFetcher,
        stack: StackController,
        poller: ReachabilityPoller,
        verifier: ResourceVerifier,
        resource_name: str | None = None,
        timeout_seconds: float | None = None,
    ):
        """Initialize scenario.

        Args:
            identity: Unique names for this run.
            repository: Repository holding the stack manifest.
            manifest: Manifest path relative to the checkout root.
            service: Service whose public endpoint is probed.
            domain: Platform domain the endpoint is served under.
            marker: Text the endpoint body must contain.
            namespaces: Namespace provisioner.
            fetcher: Repository fetcher.
            stack: Stack deploy/destroy controller.
            poller: Reachability poller for the service endpoint.
            verifier: Post-destroy absence verifier.
            resource_name: Resource that must be gone after destroy.
                Defaults to ``service``.
            timeout_seconds: Optional budget for the whole scenario.
        """
        self.identity = identity
        self.repository = repository
        self.manifest = manifest
        self.service = service
        self.domain = domain
        self.marker = marker
        self.namespaces = namespaces
        self.fetcher = fetcher
        self.stack = stack
        self.poller = poller
        self.verifier = verifier
        self.resource_name = resource_name or service
        self.timeout_seconds = timeout_seconds

        self.report = ScenarioReport(identity=identity)
        self._lanes = ErrorLanes(logger)
        self._repo_dir: Path | None = None

    @property
    def endpoint(self) -> str:
        return self.identity.endpoint(self.service, self.domain)

    async def run(self) -> ScenarioReport:
        """Run the scenario.

        Returns:
            The report of a successful run.

        Raises:
            HarnessError: The error of the first fatal step. ``self.report``
                still describes how far the run got.
        """
        start = datetime.now()
        with bind_scenario(test=self.identity.test_name, namespace=self.identity.namespace):
            logger.info("running scenario", endpoint=self.endpoint)
            try:
                if self.timeout_seconds:
                    try:
                        await asyncio.wait_for(self._run_steps(), self.timeout_seconds)
                    except asyncio.TimeoutError as e:
                        raise ScenarioTimeout(timeout_seconds=self.timeout_seconds) from e
                else:
                    await self._run_steps()
            except HarnessError as e:
                self.report.error = e
                raise
            finally:
                if self._repo_dir is not None and not self._repo_dir.exists():
                    self.report.advance(ScenarioState.REPO_REMOVED)
                self.report.warnings = list(self._lanes.warnings)
                self.report.elapsed_seconds = (datetime.now() - start).total_seconds()
                logger.info(
                    "scenario finished",
                    success=self.report.success,
                    state=self.report.state.value,
                    warnings=len(self.report.warnings),
                    elapsed_seconds=round(self.report.elapsed_seconds, 2),
                )
        return self.report

    def run_sync(self) -> ScenarioReport:
        """Synchronous wrapper for run."""
        return asyncio.run(self.run())

    async def _run_steps(self) -> None:
        namespace = self.identity.namespace
        try:
            await self.namespaces.create(namespace)
        except NamespaceFailed as e:
            self._lanes.fatal(e, "create namespace")
        except BaseException:
            # Interrupted mid-create: the namespace may exist already
            await self._delete_namespace(namespace)
            raise
        self.report.advance(ScenarioState.NAMESPACE_CREATED)

        try:
            async with AsyncExitStack() as cleanup:
                try:
                    repo_dir = await self._checkout(cleanup)
                    await self._exercise_stack(repo_dir)
                finally:
                    await self._delete_namespace(namespace)
        except CleanupFailed as e:
            self._lanes.fatal(e, "remove repository")

    async def _checkout(self, cleanup: AsyncExitStack) -> Path:
        try:
            repo_dir = await cleanup.enter_async_context(
                self.fetcher.checkout(self.repository, on_cleanup_error=self._warn_cleanup)
            )
        except CloneFailed as e:
            self._lanes.fatal(e, "clone repository")
        self._repo_dir = repo_dir
        self.report.advance(ScenarioState.REPO_CLONED)
        return repo_dir

    async def _exercise_stack(self, repo_dir: Path) -> None:
        try:
            await self.stack.deploy(self.manifest, repo_dir)
        except DeployFailed as e:
            self._lanes.fatal(e, "deploy stack")
        self.report.advance(ScenarioState.DEPLOYED)

        try:
            await self._verify_reachable()
        except BaseException:
            await self._destroy_best_effort(repo_dir)
            raise

        try:
            await self.stack.destroy(self.manifest, repo_dir)
        except DestroyFailed as e:
            self._lanes.fatal(e, "destroy stack")
        self.report.advance(ScenarioState.DESTROYED)

        try:
            await self.verifier.assert_absent(self.identity.namespace, self.resource_name)
        except (AssertionFailed, UnexpectedError) as e:
            self._lanes.fatal(e, "verify resource absent")
        self.report.advance(ScenarioState.VERIFIED_ABSENT)

    async def _verify_reachable(self) -> None:
        endpoint = self.endpoint
        try:
            result = await self.poller.probe(endpoint)
        except Unreachable as e:
            self._lanes.fatal(e, "probe endpoint")

        self.report.content = result.body
        self.report.probe_attempts = result.attempts
        if self.marker not in result.body:
            self._lanes.fatal(
                AssertionFailed(
                    message=f"wrong stack content from {endpoint}: {result.body[:500]}",
                    details={"endpoint": endpoint, "marker": self.marker},
                ),
                "verify content",
            )
        self.report.advance(ScenarioState.VERIFIED_REACHABLE)

    async def _destroy_best_effort(self, repo_dir: Path) -> None:
        try:
            await self.stack.destroy(self.manifest, repo_dir)
        except DestroyFailed as e:
            self._lanes.warn(e, "destroy stack after failure")

    async def _delete_namespace(self, namespace: str) -> None:
        try:
            await self.namespaces.delete(namespace)
        except NamespaceFailed as e:
            self._lanes.warn(e, "delete namespace")
            return
        self.report.advance(ScenarioState.NAMESPACE_DELETED)

    def _warn_cleanup(self, error: CleanupFailed) -> None:
        self._lanes.warn(error, "remove repository")


async def build_scenario(
    config: HarnessConfig,
    identity: ScenarioIdentity,
) -> StackScenario:
    """Assemble a scenario from configuration.

    Resolves the orchestration binary first; the scenario cannot start
    without it.

    Raises:
        BinaryNotFound: If the binary is missing or does not respond.
    """
    info = await resolve_binary(config.binary)
    logger.info("using orchestration binary", path=info.path, version=info.version)

    base_dir = Path(config.work_dir).resolve()
    return StackScenario(
        identity,
        repository=RepositoryRef(remote=config.git_remote, local_dir=config.repo_dir),
        manifest=config.manifest,
        service=config.service,
        domain=config.domain,
        marker=config.marker,
        namespaces=NamespaceProvisioner(info.path),
        fetcher=RepositoryFetcher(base_dir),
        stack=StackController(info.path),
        poller=ReachabilityPoller(
            max_attempts=config.probe_attempts,
            interval_seconds=config.probe_interval,
            timeout_seconds=config.probe_timeout,
        ),
        verifier=ResourceVerifier(
            KubectlLookup(kind=config.resource_kind, kubeconfig=config.kubeconfig),
            settle_seconds=config.absence_wait,
            max_attempts=config.absence_attempts,
            interval_seconds=config.absence_interval,
        ),
        resource_name=config.resource_name,
        timeout_seconds=config.scenario_timeout or None,
    )
