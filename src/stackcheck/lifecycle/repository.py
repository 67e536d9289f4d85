"""Git repository checkout for the lifecycle harness.

Clones the repository holding the stack manifest and removes the local
checkout afterwards. ``checkout()`` scopes both: the directory is removed on
every exit path, whether the block succeeded, returned early or raised.
"""

from __future__ import annotations

import shutil
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from ..errors import CleanupFailed, CloneFailed, CommandFailed
from ..shared import get_logger
from .process import run_command

logger = get_logger(__name__)


def repo_dir_name(remote: str) -> str:
    """Directory name git derives from a remote URL.

    >>> repo_dir_name("git@github.com:okteto/stacks-getting-started.git")
    'stacks-getting-started'
    """
    tail = remote.rstrip("/").replace(":", "/").rsplit("/", 1)[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    if not tail:
        raise ValueError(f"Cannot derive a directory name from remote: {remote!r}")
    return tail


@dataclass(frozen=True)
class RepositoryRef:
    """A remote repository and the local directory it is cloned into."""

    remote: str
    local_dir: str | None = None

    @property
    def dir_name(self) -> str:
        return self.local_dir or repo_dir_name(self.remote)


class RepositoryFetcher:
    """Clone and remove repository checkouts."""

    def __init__(self, base_dir: Path | None = None):
        """Initialize fetcher.

        Args:
            base_dir: Directory clones are created in. Defaults to the
                current working directory.
        """
        self.base_dir = base_dir or Path.cwd()

    async def clone(self, repo: RepositoryRef) -> Path:
        """Clone ``repo`` into the base directory.

        Returns:
            Path of the new checkout.

        Raises:
            CloneFailed: If ``git clone`` exits non-zero.
        """
        logger.info("cloning git repo", remote=repo.remote)
        args = ["clone", repo.remote]
        if repo.local_dir:
            args.append(repo.local_dir)

        try:
            await run_command("git", args, cwd=self.base_dir)
        except CommandFailed as e:
            raise CloneFailed(remote=repo.remote, output=e.output) from e

        path = self.base_dir / repo.dir_name
        logger.info("clone git repo success", remote=repo.remote, path=str(path))
        return path

    def remove(self, path: Path) -> None:
        """Recursively delete a checkout. A missing path is not an error.

        Raises:
            CleanupFailed: If the directory cannot be removed.
        """
        logger.info("delete git repo", path=str(path))
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            raise CleanupFailed(path=str(path), reason=str(e)) from e
        logger.info("deleted git repo", path=str(path))

    @asynccontextmanager
    async def checkout(
        self,
        repo: RepositoryRef,
        on_cleanup_error: Callable[[CleanupFailed], None] | None = None,
    ) -> AsyncIterator[Path]:
        """Clone ``repo`` for the duration of the block, then remove it.

        A removal failure is raised when the block itself succeeded. When the
        block is already raising, the removal failure goes to
        ``on_cleanup_error`` (or the log) and the original error propagates.

        Usage:
            async with fetcher.checkout(RepositoryRef(remote)) as repo_dir:
                ...
        """
        target = self.base_dir / repo.dir_name
        preexisting = target.exists()
        try:
            path = await self.clone(repo)
        except BaseException:
            # A killed or failed clone can leave a partial checkout behind
            if not preexisting:
                self._discard(target, on_cleanup_error)
            raise

        failed = False
        try:
            yield path
        except BaseException:
            failed = True
            raise
        finally:
            if failed:
                self._discard(path, on_cleanup_error)
            else:
                self.remove(path)

    def _discard(
        self,
        path: Path,
        on_cleanup_error: Callable[[CleanupFailed], None] | None,
    ) -> None:
        """Remove ``path`` while another error propagates; never raises."""
        try:
            self.remove(path)
        except CleanupFailed as e:
            if on_cleanup_error:
                on_cleanup_error(e)
            else:
                logger.warning("repository cleanup failed", error=e.message)
