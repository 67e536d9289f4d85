"""Shared test fixtures for stackcheck tests."""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from stackcheck.errors import AssertionFailed, CommandFailed
from stackcheck.lifecycle import (
    RepositoryFetcher,
    RepositoryRef,
    ScenarioIdentity,
    StackScenario,
    repo_dir_name,
)
from tests.fakes import (
    DOMAIN,
    MARKER,
    STACK_MANIFEST,
    STACK_REMOTE,
    CallLog,
    FakeNamespaces,
    FakePoller,
    FakeStack,
    FakeVerifier,
)


@pytest.fixture
def identity() -> ScenarioIdentity:
    """Deterministic scenario identity."""
    return ScenarioIdentity(
        base_name="TestStacks",
        platform="linux",
        timestamp=1700000000,
        user="alice",
        namespace_prefix="testk8",
    )


@pytest.fixture
def call_log() -> CallLog:
    return CallLog()


@pytest.fixture
def fake_git(monkeypatch, call_log):
    """Patch ``git clone`` so it creates the checkout on disk.

    Set ``fake_git.fail = True`` to make the clone fail, or ``fake_git.delay``
    to leave a partial checkout on disk while the clone hangs.
    """

    class _FakeGit:
        fail = False
        delay = 0.0

        async def __call__(self, command, args=(), *, cwd=None, env=None):
            call_log.add(f"clone {args[1]}")
            if self.fail:
                raise CommandFailed(
                    command=command,
                    output="fatal: Could not read from remote repository.",
                    returncode=128,
                )
            checkout = Path(cwd) / repo_dir_name(args[1])
            checkout.mkdir()
            if self.delay:
                await asyncio.sleep(self.delay)
            (checkout / STACK_MANIFEST).write_text("services:\n  vote:\n    build: vote\n")
            return f"Cloning into '{checkout.name}'..."

    fake = _FakeGit()
    monkeypatch.setattr("stackcheck.lifecycle.repository.run_command", fake)
    return fake


@pytest.fixture
def make_scenario(tmp_path, identity, call_log, fake_git):
    """Factory building a StackScenario from fakes plus a real fetcher."""

    def _make(
        namespaces: FakeNamespaces | None = None,
        stack: FakeStack | None = None,
        poller: FakePoller | None = None,
        verifier: FakeVerifier | None = None,
        timeout_seconds: float | None = None,
    ) -> StackScenario:
        return StackScenario(
            identity,
            repository=RepositoryRef(remote=STACK_REMOTE),
            manifest=STACK_MANIFEST,
            service="vote",
            domain=DOMAIN,
            marker=MARKER,
            namespaces=namespaces or FakeNamespaces(call_log),
            fetcher=RepositoryFetcher(tmp_path),
            stack=stack or FakeStack(call_log),
            poller=poller or FakePoller(call_log),
            verifier=verifier or FakeVerifier(call_log),
            timeout_seconds=timeout_seconds,
        )

    return _make


@pytest.fixture
def still_present_error() -> AssertionFailed:
    return AssertionFailed(message="'vote' still exists in testk8-1700000000-alice")
