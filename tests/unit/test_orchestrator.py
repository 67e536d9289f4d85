"""Unit tests for the stack lifecycle orchestrator."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from stackcheck.errors import (
    AssertionFailed,
    CleanupFailed,
    CloneFailed,
    DeployFailed,
    DestroyFailed,
    NamespaceFailed,
    ScenarioTimeout,
    UnexpectedError,
    Unreachable,
)
from stackcheck.lifecycle import ScenarioState

from tests.fakes import FakeNamespaces, FakePoller, FakeStack, FakeVerifier

NAMESPACE = "testk8-1700000000-alice"
ENDPOINT = "https://vote-testk8-1700000000-alice.cloud.example.net"
CHECKOUT = "stacks-getting-started"


class TestHappyPath:
    """Tests for a scenario where every step succeeds."""

    @pytest.mark.asyncio
    async def test_runs_steps_in_order(self, make_scenario, call_log):
        """Test the full lifecycle runs in the documented order."""
        report = await make_scenario().run()

        assert report.success is True
        assert call_log.calls == [
            f"create_namespace {NAMESPACE}",
            "clone git@github.com:okteto/stacks-getting-started.git",
            "deploy okteto-stack.yml",
            f"probe {ENDPOINT}",
            "destroy okteto-stack.yml",
            f"assert_absent {NAMESPACE}/vote",
            f"delete_namespace {NAMESPACE}",
        ]

    @pytest.mark.asyncio
    async def test_reaches_every_state(self, make_scenario):
        """Test the report records each state of the lifecycle."""
        report = await make_scenario().run()

        assert report.completed == [
            ScenarioState.NAMESPACE_CREATED,
            ScenarioState.REPO_CLONED,
            ScenarioState.DEPLOYED,
            ScenarioState.VERIFIED_REACHABLE,
            ScenarioState.DESTROYED,
            ScenarioState.VERIFIED_ABSENT,
            ScenarioState.NAMESPACE_DELETED,
            ScenarioState.REPO_REMOVED,
        ]
        assert report.state == ScenarioState.REPO_REMOVED
        assert report.error is None
        assert report.warnings == []

    @pytest.mark.asyncio
    async def test_records_content(self, make_scenario):
        """Test the probed body is kept for inspection."""
        report = await make_scenario().run()

        assert "Cats vs Dogs!" in report.content
        assert report.probe_attempts == 3

    @pytest.mark.asyncio
    async def test_stack_runs_inside_checkout(self, make_scenario, call_log, tmp_path):
        """Test deploy and destroy run in the cloned repository."""
        stack = FakeStack(call_log)
        await make_scenario(stack=stack).run()

        assert stack.work_dirs == [tmp_path / CHECKOUT, tmp_path / CHECKOUT]

    @pytest.mark.asyncio
    async def test_checkout_removed(self, make_scenario, tmp_path):
        """Test the local checkout is gone after a successful run."""
        await make_scenario().run()

        assert not (tmp_path / CHECKOUT).exists()


class TestFatalFailures:
    """Tests for steps whose failure aborts the scenario."""

    @pytest.mark.asyncio
    async def test_namespace_create_failure(self, make_scenario, call_log):
        """Test nothing else runs when the namespace cannot be created."""
        scenario = make_scenario(namespaces=FakeNamespaces(call_log, fail_create=True))

        with pytest.raises(NamespaceFailed):
            await scenario.run()

        assert call_log.names() == ["create_namespace"]
        assert scenario.report.state == ScenarioState.INIT

    @pytest.mark.asyncio
    async def test_clone_failure(self, make_scenario, call_log, fake_git, tmp_path):
        """Test a failed clone only leaves best-effort namespace deletion."""
        fake_git.fail = True
        scenario = make_scenario()

        with pytest.raises(CloneFailed) as exc_info:
            await scenario.run()

        assert "okteto/stacks-getting-started" in exc_info.value.remote
        assert call_log.names() == ["create_namespace", "clone", "delete_namespace"]
        assert not (tmp_path / CHECKOUT).exists()
        assert scenario.report.error is exc_info.value

    @pytest.mark.asyncio
    async def test_deploy_failure(self, make_scenario, call_log, tmp_path):
        """Test a failed deploy skips destroy but still cleans up."""
        scenario = make_scenario(stack=FakeStack(call_log, fail_deploy=True))

        with pytest.raises(DeployFailed):
            await scenario.run()

        assert call_log.names() == ["create_namespace", "clone", "deploy", "delete_namespace"]
        assert not (tmp_path / CHECKOUT).exists()
        assert scenario.report.reached(ScenarioState.REPO_REMOVED)

    @pytest.mark.asyncio
    async def test_unreachable_still_destroys(self, make_scenario, call_log, tmp_path):
        """Test the stack is destroyed when the probe budget runs out."""
        scenario = make_scenario(poller=FakePoller(call_log, body=None))

        with pytest.raises(Unreachable):
            await scenario.run()

        assert call_log.names() == [
            "create_namespace",
            "clone",
            "deploy",
            "probe",
            "destroy",
            "delete_namespace",
        ]
        assert not (tmp_path / CHECKOUT).exists()
        assert scenario.report.success is False

    @pytest.mark.asyncio
    async def test_wrong_content_still_destroys(self, make_scenario, call_log):
        """Test a body without the marker fails the scenario, not the poller."""
        scenario = make_scenario(poller=FakePoller(call_log, body="<h1>Welcome to nginx!</h1>"))

        with pytest.raises(AssertionFailed) as exc_info:
            await scenario.run()

        assert "wrong stack content" in str(exc_info.value)
        assert "destroy" in call_log.names()
        assert "assert_absent" not in call_log.names()
        assert scenario.report.content == "<h1>Welcome to nginx!</h1>"

    @pytest.mark.asyncio
    async def test_best_effort_destroy_failure_is_warning(self, make_scenario, call_log):
        """Test a failed cleanup destroy does not mask the probe failure."""
        scenario = make_scenario(
            stack=FakeStack(call_log, fail_destroy=True),
            poller=FakePoller(call_log, body=None),
        )

        with pytest.raises(Unreachable):
            await scenario.run()

        assert len(scenario.report.warnings) == 1
        assert isinstance(scenario.report.warnings[0], DestroyFailed)

    @pytest.mark.asyncio
    async def test_destroy_failure(self, make_scenario, call_log):
        """Test a failed destroy skips the absence check."""
        scenario = make_scenario(stack=FakeStack(call_log, fail_destroy=True))

        with pytest.raises(DestroyFailed):
            await scenario.run()

        assert "assert_absent" not in call_log.names()
        assert call_log.names()[-1] == "delete_namespace"

    @pytest.mark.asyncio
    async def test_resource_still_present(self, make_scenario, call_log, still_present_error):
        """Test a resource surviving destroy fails the scenario."""
        scenario = make_scenario(verifier=FakeVerifier(call_log, error=still_present_error))

        with pytest.raises(AssertionFailed):
            await scenario.run()

        assert scenario.report.state == ScenarioState.REPO_REMOVED
        assert not scenario.report.reached(ScenarioState.VERIFIED_ABSENT)

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error(self, make_scenario, call_log):
        """Test a lookup failing for another reason fails the scenario."""
        error = UnexpectedError(namespace=NAMESPACE, resource="vote", reason="Unauthorized")
        scenario = make_scenario(verifier=FakeVerifier(call_log, error=error))

        with pytest.raises(UnexpectedError):
            await scenario.run()


class TestBestEffortCleanup:
    """Tests for cleanup failures routed to the warn lane."""

    @pytest.mark.asyncio
    async def test_namespace_delete_failure_is_warning(self, make_scenario, call_log):
        """Test a failed namespace deletion does not fail the scenario."""
        scenario = make_scenario(namespaces=FakeNamespaces(call_log, fail_delete=True))

        report = await scenario.run()

        assert report.error is None
        assert len(report.warnings) == 1
        assert isinstance(report.warnings[0], NamespaceFailed)
        assert not report.reached(ScenarioState.NAMESPACE_DELETED)

    @pytest.mark.asyncio
    async def test_checkout_removal_failure_after_success(self, make_scenario):
        """Test a removal failure fails an otherwise successful scenario."""
        scenario = make_scenario()

        with patch(
            "stackcheck.lifecycle.repository.shutil.rmtree",
            side_effect=PermissionError("read-only file system"),
        ):
            with pytest.raises(CleanupFailed):
                await scenario.run()

        assert scenario.report.reached(ScenarioState.VERIFIED_ABSENT)
        assert not scenario.report.reached(ScenarioState.REPO_REMOVED)

    @pytest.mark.asyncio
    async def test_checkout_removal_failure_keeps_original_error(self, make_scenario, call_log):
        """Test a removal failure does not mask an earlier fatal error."""
        scenario = make_scenario(stack=FakeStack(call_log, fail_deploy=True))

        with patch(
            "stackcheck.lifecycle.repository.shutil.rmtree",
            side_effect=PermissionError("read-only file system"),
        ):
            with pytest.raises(DeployFailed):
                await scenario.run()

        assert [type(w) for w in scenario.report.warnings] == [CleanupFailed]


class TestScenarioTimeout:
    """Tests for the overall scenario time budget."""

    @pytest.mark.asyncio
    async def test_timeout_cancels_and_cleans_up(self, make_scenario, call_log, tmp_path):
        """Test an expired budget cancels the step and still cleans up."""
        scenario = make_scenario(
            stack=FakeStack(call_log, deploy_delay=30),
            timeout_seconds=0.2,
        )

        with pytest.raises(ScenarioTimeout):
            await scenario.run()

        assert call_log.names()[-1] == "delete_namespace"
        assert not (tmp_path / CHECKOUT).exists()
        assert isinstance(scenario.report.error, ScenarioTimeout)

    @pytest.mark.asyncio
    async def test_timeout_during_clone_removes_partial_checkout(
        self, make_scenario, call_log, fake_git, tmp_path
    ):
        """Test a clone interrupted by the budget leaves nothing on disk."""
        fake_git.delay = 30
        scenario = make_scenario(timeout_seconds=0.2)

        with pytest.raises(ScenarioTimeout):
            await scenario.run()

        assert not (tmp_path / CHECKOUT).exists()
        assert call_log.names() == ["create_namespace", "clone", "delete_namespace"]
        assert "deploy" not in call_log.names()

    @pytest.mark.asyncio
    async def test_timeout_during_namespace_create_deletes_namespace(
        self, make_scenario, call_log
    ):
        """Test a namespace whose creation was interrupted is still deleted."""
        scenario = make_scenario(
            namespaces=FakeNamespaces(call_log, create_delay=30),
            timeout_seconds=0.2,
        )

        with pytest.raises(ScenarioTimeout):
            await scenario.run()

        assert call_log.calls == [
            f"create_namespace {NAMESPACE}",
            f"delete_namespace {NAMESPACE}",
        ]
        assert not scenario.report.reached(ScenarioState.NAMESPACE_CREATED)

    def test_run_sync(self, make_scenario):
        """Test the synchronous wrapper."""
        report = make_scenario().run_sync()

        assert report.success is True
