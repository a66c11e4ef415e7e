"""
Keeps the feature branch current with trunk.

``TrunkMerger`` merges trunk into the branch and applies the single
auto-resolution policy: a conflict confined to the manifest file is
resolved with trunk's copy. ``BranchSyncLoop`` repeats the merge until it
is a no-op, reinstalling dependencies and pushing after every merge that
brought something in.
"""

import logging
import time
from typing import Callable, Optional

from .errors import ConflictUnresolvableError, GitOperationError, SyncTimeoutError
from .models import MergeAttempt, RepositoryContext, SyncResult

logger = logging.getLogger(__name__)


class TrunkMerger:
    """Merges trunk into the feature branch."""

    def __init__(self, git, manifest_file: str = "package.json"):
        self.git = git
        self.manifest_file = manifest_file

    def merge_trunk(self, ctx: RepositoryContext) -> MergeAttempt:
        """
        Merge ``<remote>/<trunk>`` into the checked-out branch.

        Returns:
            MergeAttempt describing whether new content came in.

        Raises:
            ConflictUnresolvableError: If anything other than the manifest
                alone is in conflict. The working copy is left mid-merge
                for manual resolution.
            GitOperationError: If the merge failed without conflicts.
        """
        before = self.git.head_sha(ctx)
        print(f"🔀 Merging {ctx.remote_trunk} into {ctx.branch}...")
        if self.git.merge(ctx, ctx.remote_trunk):
            after = self.git.head_sha(ctx)
            if before == after:
                logger.info("%s already up to date with %s", ctx.branch, ctx.remote_trunk)
            return MergeAttempt(merged=True, was_up_to_date=before == after)

        logger.debug("Merge command failed, checking for conflicts...")
        conflicts = self.git.conflicted_paths(ctx)
        logger.info("Detected conflicts in files: %s", ", ".join(conflicts) or "none")

        if conflicts == [self.manifest_file]:
            self.git.resolve_with_theirs(
                ctx,
                self.manifest_file,
                f"Auto-resolved {self.manifest_file} conflict from merging {ctx.remote_trunk}",
            )
            print(f"✅ Auto-resolved {self.manifest_file} conflict.")
            return MergeAttempt(
                merged=True,
                was_up_to_date=False,
                conflicts=tuple(conflicts),
                auto_resolved=True,
            )

        if conflicts:
            print(f"❌ Merge conflicts detected in files: {', '.join(conflicts)}")
            print("   Please resolve these conflicts manually and then restart.")
            raise ConflictUnresolvableError(
                f"Merge of {ctx.remote_trunk} into {ctx.branch} conflicts in: {', '.join(conflicts)}",
                conflicts,
            )

        raise GitOperationError(f"git merge {ctx.remote_trunk} failed without reporting conflicts")


class BranchSyncLoop:
    """
    Repeats trunk merges until the branch has converged.

    Args:
        git: ``Git`` collaborator.
        package_manager: ``PackageManager`` collaborator.
        merger: ``TrunkMerger`` applying the conflict policy.
        sync_interval: Seconds to wait after pushing a sync merge.
        max_rounds: Optional cap on rounds; None means no cap.
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        git,
        package_manager,
        merger: TrunkMerger,
        sync_interval: float = 60.0,
        max_rounds: Optional[int] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.git = git
        self.package_manager = package_manager
        self.merger = merger
        self.sync_interval = sync_interval
        self.max_rounds = max_rounds
        self.sleep = sleep or time.sleep

    def run(self, ctx: RepositoryContext) -> SyncResult:
        """
        Sync until a merge of trunk is a no-op.

        Returns:
            SyncResult with ``converged=True`` and the number of rounds.

        Raises:
            ConflictUnresolvableError: On conflicts outside the manifest.
            SyncTimeoutError: If ``max_rounds`` is set and exceeded.
        """
        iteration = 0
        while self.max_rounds is None or iteration < self.max_rounds:
            iteration += 1
            print(f"\n--- Fetching latest changes from {ctx.remote} (sync round {iteration}) ---")
            try:
                self.git.fetch(ctx, ctx.trunk)
            except GitOperationError as e:
                # Merge whatever remote-tracking state we already have
                logger.warning("Failed to fetch %s: %s", ctx.remote_trunk, e)
                print(f"⚠️ Failed to fetch the default branch: {e}")

            attempt = self.merger.merge_trunk(ctx)
            if not attempt.introduced_changes:
                print("✅ PR branch is up-to-date with the default branch. Skipping install.")
                return SyncResult(converged=True, iterations=iteration)

            print("📦 New changes merged from the default branch, updating dependencies...")
            self.package_manager.install(ctx)
            self.git.push_branch(ctx)
            print(f"⏳ Checking merge status again in {self.sync_interval:.0f}s...")
            self.sleep(self.sync_interval)

        raise SyncTimeoutError(
            f"Branch {ctx.branch} did not converge with {ctx.remote_trunk} after {self.max_rounds} rounds"
        )
