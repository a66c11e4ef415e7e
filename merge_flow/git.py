"""
Git collaborator.

Thin wrapper over the git command line. Every call receives the
``RepositoryContext`` it operates on; nothing here depends on the process
working directory. Methods that change the working copy or a remote ask
the operator first.
"""

import logging
import subprocess
from pathlib import Path
from typing import Optional

from .config import GitConfig
from .confirm import Confirmer
from .errors import GitOperationError
from .models import RepositoryContext
from .utils import run_command, truncate_string

logger = logging.getLogger(__name__)


class Git:
    """Version-control operations for a merge run."""

    def __init__(self, config: GitConfig, confirmer: Confirmer):
        self.config = config
        self.confirmer = confirmer

    def run_git(
        self,
        path: Path,
        *args: str,
        check: bool = True,
        timeout: Optional[int] = None,
    ) -> subprocess.CompletedProcess:
        """
        Run a git command in the given directory.

        Args:
            path: Directory to run in.
            *args: Git command arguments.
            check: Whether to raise on non-zero exit code.
            timeout: Command timeout in seconds (defaults to the configured one).

        Returns:
            CompletedProcess instance.

        Raises:
            GitOperationError: If git command fails.
        """
        return run_command(
            ["git", *args],
            cwd=path,
            timeout=timeout or self.config.command_timeout,
            error_cls=GitOperationError,
            check=check,
        )

    def _gated(self, path: Path, description: str, *args: str, network: bool = False) -> subprocess.CompletedProcess:
        self.confirmer.require(description, f"git {' '.join(args)}")
        timeout = self.config.network_timeout if network else None
        return self.run_git(path, *args, timeout=timeout)

    # ------------------------------------------------------------------ #
    # Read-only operations
    # ------------------------------------------------------------------ #

    def current_branch(self, path: Path) -> str:
        return self.run_git(path, "rev-parse", "--abbrev-ref", "HEAD").stdout.strip()

    def head_sha(self, ctx: RepositoryContext) -> str:
        return self.run_git(ctx.path, "rev-parse", "HEAD").stdout.strip()

    def fetch(self, ctx: RepositoryContext, branch: str) -> None:
        """Fetch one branch from the remote. Only remote-tracking refs change."""
        self.run_git(ctx.path, "fetch", ctx.remote, branch, timeout=self.config.network_timeout)
        logger.debug("Fetched %s/%s", ctx.remote, branch)

    def show_file(self, ctx: RepositoryContext, branch: str, file_path: str) -> str:
        """Return a file's content from a remote-tracking branch."""
        return self.run_git(ctx.path, "show", f"{ctx.remote}/{branch}:{file_path}").stdout

    def conflicted_paths(self, ctx: RepositoryContext) -> list[str]:
        result = self.run_git(ctx.path, "diff", "--name-only", "--diff-filter=U")
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    # ------------------------------------------------------------------ #
    # Mutating operations (confirmed)
    # ------------------------------------------------------------------ #

    def clone(self, clone_url: str, destination: Path) -> None:
        description = f"Cloning repository {destination.name} from {clone_url}"
        self.confirmer.require(description, f"git clone {clone_url} {destination}")
        print(f"📥 Cloning {clone_url} into {destination}...")
        self.run_git(
            destination.parent, "clone", clone_url, str(destination),
            timeout=self.config.network_timeout,
        )

    def checkout_reset(self, ctx: RepositoryContext) -> None:
        """Create or reset the local branch to its remote-tracking counterpart."""
        print(f"🌿 Checking out branch \"{ctx.branch}\"...")
        self._gated(
            ctx.path, f"Checking out branch {ctx.branch}",
            "checkout", "-B", ctx.branch, f"{ctx.remote}/{ctx.branch}",
        )

    def pull(self, ctx: RepositoryContext) -> None:
        print(f"⬇️ Pulling latest changes for branch \"{ctx.branch}\"...")
        self._gated(ctx.path, f"Pulling latest changes for branch {ctx.branch}", "pull", network=True)

    def merge(self, ctx: RepositoryContext, ref: str) -> bool:
        """
        Merge ``ref`` into the current branch without editing the message.

        Returns:
            True if the merge succeeded, False if git stopped (usually on
            conflicts). The caller inspects :meth:`conflicted_paths`.
        """
        self.confirmer.require(
            f"This will merge {ref} into the current branch.",
            f"git merge {ref} --no-edit",
        )
        result = self.run_git(ctx.path, "merge", ref, "--no-edit", check=False)
        if result.returncode != 0:
            logger.info(
                "git merge %s exited %d: %s",
                ref, result.returncode, truncate_string(result.stdout.strip(), 500),
            )
            return False
        logger.debug("Merge output: %s", result.stdout.strip())
        return True

    def resolve_with_theirs(self, ctx: RepositoryContext, file_path: str, message: str) -> None:
        """Resolve a conflicted file with the incoming version and commit the merge."""
        command = (
            f"git checkout --theirs {file_path} && git add {file_path} && "
            f"git commit -m \"{message}\""
        )
        self.confirmer.require(f"Auto-resolving {file_path} conflict", command)
        self.run_git(ctx.path, "checkout", "--theirs", "--", file_path)
        self.run_git(ctx.path, "add", "--", file_path)
        self.run_git(ctx.path, "commit", "-m", message)
        logger.info("Auto-resolved %s conflict", file_path)

    def push_branch(self, ctx: RepositoryContext) -> None:
        print(f"⬆️ Pushing branch {ctx.branch}...")
        self._gated(
            ctx.path, f"This will push the branch \"{ctx.branch}\" to {ctx.remote}.",
            "push", ctx.remote, ctx.branch, network=True,
        )
        print("✅ Branch pushed")

    def offer_tag_push(self, ctx: RepositoryContext, tag: str) -> bool:
        """
        Offer to push a release tag.

        Declining is not an abort: the tag push is optional.

        Returns:
            True if the tag was pushed.
        """
        if not self.confirmer.confirm(
            f"Do you want to push the new tag {tag} to {ctx.remote}?",
            f"git push {ctx.remote} {tag}",
        ):
            print("ℹ️ Skipping tag push.")
            return False
        self.run_git(ctx.path, "push", ctx.remote, tag, timeout=self.config.network_timeout)
        print(f"🏷️ Tag {tag} pushed successfully.")
        return True
