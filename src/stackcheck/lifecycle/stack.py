"""Stack deploy/destroy through the orchestration binary.

Both operations are blocking, single-shot and never retried: when one fails
the cluster state is unknown and the scenario cannot continue.
"""

from __future__ import annotations

from pathlib import Path

from ..errors import CommandFailed, DeployFailed, DestroyFailed
from ..shared import get_logger
from .process import run_command

logger = get_logger(__name__)


class StackController:
    """Deploy and destroy a stack manifest inside a repository checkout."""

    def __init__(self, binary: str, env: dict[str, str] | None = None):
        """Initialize controller.

        Args:
            binary: Path of the orchestration binary.
            env: Extra environment for the binary, merged over ours.
        """
        self.binary = binary
        self.env = env

    def deploy_args(self, manifest: str) -> list[str]:
        return ["stack", "deploy", "-f", manifest, "--build", "--wait"]

    def destroy_args(self, manifest: str) -> list[str]:
        return ["stack", "destroy", "-f", manifest]

    async def deploy(self, manifest: str, work_dir: Path) -> str:
        """Build and deploy ``manifest``, waiting until its services are ready.

        Args:
            manifest: Manifest path relative to ``work_dir``.
            work_dir: Repository checkout root.

        Returns:
            The binary's combined output.

        Raises:
            DeployFailed: If the binary exits non-zero.
        """
        logger.info("stack deploy", manifest=manifest, work_dir=str(work_dir))
        try:
            output = await run_command(
                self.binary, self.deploy_args(manifest), cwd=work_dir, env=self.env
            )
        except CommandFailed as e:
            raise DeployFailed(manifest=manifest, output=e.output) from e
        logger.info("stack deploy success", manifest=manifest)
        return output

    async def destroy(self, manifest: str, work_dir: Path) -> str:
        """Destroy the stack described by ``manifest``.

        Raises:
            DestroyFailed: If the binary exits non-zero.
        """
        logger.info("stack destroy", manifest=manifest, work_dir=str(work_dir))
        try:
            output = await run_command(
                self.binary, self.destroy_args(manifest), cwd=work_dir, env=self.env
            )
        except CommandFailed as e:
            raise DestroyFailed(manifest=manifest, output=e.output) from e
        logger.info("stack destroy success", manifest=manifest)
        return output
