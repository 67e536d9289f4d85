"""Stack lifecycle harness.

This package runs one end-to-end stack scenario:
1. Creates an isolated namespace
2. Clones the repository holding the stack manifest
3. Deploys the stack with the orchestration binary
4. Probes the public endpoint for the expected content
5. Destroys the stack and verifies its resources are gone
6. Deletes the namespace and removes the checkout
"""

from .namespace import NamespaceProvisioner
from .orchestrator import StackScenario, build_scenario
from .prerequisites import (
    BinaryDetector,
    BinaryInfo,
    KubectlDetector,
    KubectlInfo,
    resolve_binary,
)
from .process import run_command
from .reachability import ProbeResult, ReachabilityPoller
from .repository import RepositoryFetcher, RepositoryRef, repo_dir_name
from .scenario import ScenarioIdentity, ScenarioReport, ScenarioState
from .stack import StackController
from .verifier import KubectlLookup, ResourceLookup, ResourceVerifier

__all__ = [
    # Processes
    "run_command",
    # Prerequisites
    "BinaryDetector",
    "BinaryInfo",
    "KubectlDetector",
    "KubectlInfo",
    "resolve_binary",
    # Repository
    "RepositoryFetcher",
    "RepositoryRef",
    "repo_dir_name",
    # Stack
    "StackController",
    "NamespaceProvisioner",
    # Verification
    "ReachabilityPoller",
    "ProbeResult",
    "ResourceLookup",
    "KubectlLookup",
    "ResourceVerifier",
    # Scenario
    "ScenarioIdentity",
    "ScenarioReport",
    "ScenarioState",
    "StackScenario",
    "build_scenario",
]
