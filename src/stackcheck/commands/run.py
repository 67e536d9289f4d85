"""Run command for the stack lifecycle scenario.

This module provides the `stackcheck run` command which deploys a stack
into a fresh namespace, checks it serves traffic, destroys it and checks
its resources are gone.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass

import click

from ..config import HarnessConfig
from ..errors import HarnessError
from ..lifecycle import KubectlDetector, ScenarioIdentity, ScenarioReport, build_scenario
from ._common import load_or_exit


@dataclass
class RunResult:
    """Result of run execution."""

    success: bool
    report: ScenarioReport | None = None
    error: HarnessError | None = None


@click.command()
@click.option("--user", default=None, help="User tag appended to the namespace")
@click.option("--namespace-prefix", default=None, help="Namespace prefix (default: test name)")
@click.option("--marker", default=None, help="Text the endpoint must serve")
@click.option("--probe-attempts", default=None, type=int, help="Reachability attempts")
@click.pass_context
def run(ctx, user, namespace_prefix, marker, probe_attempts):
    """Deploy, probe, destroy and verify a stack end to end.

    Examples:

        # Run with defaults from stackcheck.yaml / environment
        stackcheck run

        # Run in CI with a per-job namespace prefix
        stackcheck --json-logs run --user "$CI_JOB_ID" --namespace-prefix ci
    """
    config = load_or_exit(
        ctx,
        overrides={
            "user": user,
            "namespace_prefix": namespace_prefix,
            "marker": marker,
            "probe_attempts": probe_attempts,
        },
    )

    if config.mode == "client":
        click.echo("Skipped: the stack scenario is not required in client mode")
        return

    result = asyncio.run(_run_scenario(config))
    _print_result(result, json_output=ctx.obj.get("json_output", False))
    if not result.success:
        sys.exit(1)


async def _run_scenario(config: HarnessConfig) -> RunResult:
    """Execute the scenario and collect its outcome."""
    kubectl = await KubectlDetector().detect()
    if not kubectl.kubectl_available:
        return RunResult(success=False, error=HarnessError(message=kubectl.error or "no kubectl"))

    identity = ScenarioIdentity.create(
        base_name=config.base_name,
        user=config.user,
        namespace_prefix=config.namespace_prefix,
    )
    try:
        scenario = await build_scenario(config, identity)
    except HarnessError as e:
        return RunResult(success=False, error=e)

    try:
        report = await scenario.run()
    except HarnessError as e:
        return RunResult(success=False, report=scenario.report, error=e)
    return RunResult(success=report.success, report=report)


def _print_result(result: RunResult, json_output: bool) -> None:
    if json_output:
        data = result.report.to_dict() if result.report else {"success": False}
        if result.error and not result.report:
            data["error"] = result.error.to_dict()
        click.echo(json.dumps(data, indent=2))
        return

    report = result.report
    if report:
        click.echo(f"Test:      {report.identity.test_name}")
        click.echo(f"Namespace: {report.identity.namespace}")
        click.echo(f"Reached:   {report.state.value}")
        if report.probe_attempts:
            click.echo(f"Probe:     {report.probe_attempts} attempt(s)")
        for warning in report.warnings:
            click.echo(f"  ⚠ {warning}")

    if result.success:
        click.echo("✓ Stack lifecycle passed")
    else:
        click.echo(f"✗ {result.error}", err=True)
