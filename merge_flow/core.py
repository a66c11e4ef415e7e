"""
Core Merge Flow implementation.

This module contains the MergeFlow class that lands one pull request:
it reconciles the manifest version with trunk, keeps the branch synced,
waits for the pull request to become mergeable (remediating failed
workflow runs along the way) and finally merges it.
"""

import logging
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from .config import MergeFlowConfig
from .confirm import Confirmer, TerminalConfirmer
from .errors import (
    ConfigurationError,
    PollingTimeoutError,
    PROperationError,
    RemediationExhaustedError,
)
from .git import Git
from .github_client import PlatformClient
from .models import (
    PollOutcome,
    RepositoryContext,
    RepositoryInfo,
    RunResult,
    RunStatus,
)
from .package_manager import PackageManager, manifest_version
from .poller import MergeabilityPoller
from .remediation import WorkflowRemediator
from .security import parse_pull_request_url, validate_branch_name, validate_bump_type
from .sync import BranchSyncLoop, TrunkMerger
from .versioning import parse_version, requires_bump

logger = logging.getLogger(__name__)


class MergeFlow:
    """
    Automated landing of a single pull request.

    The run proceeds in strict sequence, each step gating the next:

    1. Resolve the repository's default branch and the pull request
    2. If already merged, offer to push the release tag and stop
    3. Bump the manifest version if the branch is not ahead of trunk
    4. Sync the branch with trunk until a merge is a no-op
    5. Poll mergeability, remediating failed workflow runs
    6. Merge once the pull request is clean, then offer the tag push

    Example:
        ```python
        from merge_flow import MergeFlow, MergeFlowConfig

        config = MergeFlowConfig(
            pr_url="https://github.com/owner/repo/pull/42",
            bump_type="minor",
        )

        result = MergeFlow(config).run()
        ```
    """

    def __init__(
        self,
        config,
        confirmer: Optional[Confirmer] = None,
        platform: Optional[PlatformClient] = None,
        git: Optional[Git] = None,
        package_manager: Optional[PackageManager] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize the merge flow.

        Args:
            config: MergeFlowConfig instance (or dict of its fields).
            confirmer: Confirmation capability; defaults to the terminal.
            platform: Platform client; built from the token when omitted.
            git: Git collaborator; built from config when omitted.
            package_manager: Package manager collaborator; built from config when omitted.
            sleep: Sleep function used for every wait.

        Raises:
            ConfigurationError: If configuration is invalid or no token is set.
            MalformedInputError: If the pull request URL or bump type is malformed.
        """
        if isinstance(config, dict):
            try:
                config = MergeFlowConfig(**config)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Invalid configuration: {e}") from e

        self.config = config
        self.pr = parse_pull_request_url(config.pr_url)
        self.bump_type = validate_bump_type(config.bump_type)

        # Never log or print the actual token
        self.github_token = config.github_token or os.environ.get("GITHUB_TOKEN")
        if not self.github_token and platform is None:
            raise ConfigurationError(
                "GITHUB_TOKEN not set. Either set the environment variable "
                "or pass it in config."
            )

        self.confirmer = confirmer or TerminalConfirmer()
        self.sleep = sleep or time.sleep
        self.platform = platform or PlatformClient(self.pr, self.github_token, self.confirmer)
        self.git = git or Git(config.git, self.confirmer)
        self.package_manager = package_manager or PackageManager(
            config.package_manager, self.confirmer, config.git.manifest_file,
        )

        polling = config.polling
        self.merger = TrunkMerger(self.git, config.git.manifest_file)
        self.sync_loop = BranchSyncLoop(
            self.git,
            self.package_manager,
            self.merger,
            sync_interval=polling.sync_interval,
            max_rounds=polling.max_sync_rounds,
            sleep=self.sleep,
        )
        self.remediator = WorkflowRemediator(
            self.platform,
            polling.log_dir,
            cooldown=polling.rerun_cooldown,
            sleep=self.sleep,
        )
        self.poller = MergeabilityPoller(
            self.platform,
            self.remediator,
            max_polling_rounds=polling.max_polling_rounds,
            poll_interval=polling.poll_interval,
            max_retries=polling.max_retries,
            sleep=self.sleep,
            on_poll=config.on_poll,
        )

        self.run_id = datetime.now().strftime("%Y%m%d-%H%M%S")
        logger.info(
            "Initialized MergeFlow for pr=%s bump=%s run_id=%s",
            self.pr.url, self.bump_type, self.run_id,
        )

    # ------------------------------------------------------------------ #
    # Working copy
    # ------------------------------------------------------------------ #

    def repository_path(self) -> Path:
        """The checkout lives in the work dir itself if it is named after the repo."""
        work_dir = self.config.work_dir.resolve()
        if work_dir.name == self.pr.repo:
            return work_dir
        return work_dir / self.pr.repo

    def open_repository(self, info: RepositoryInfo, branch: str) -> RepositoryContext:
        """
        Clone if needed and fetch ``branch``; the checkout is not touched.

        Returns:
            The RepositoryContext every later step operates on.
        """
        path = self.repository_path()
        if not path.exists():
            print(f"ℹ️ Directory '{path}' not found.")
            self.git.clone(info.clone_url, path)

        ctx = RepositoryContext(
            path=path,
            branch=branch,
            trunk=info.default_branch,
            remote=self.config.git.remote,
        )
        self.git.fetch(ctx, branch)
        return ctx

    def check_out(self, ctx: RepositoryContext) -> None:
        """Leave the working copy on an up-to-date ``ctx.branch``."""
        current = self.git.current_branch(ctx.path)
        logger.debug("Current branch is: %s", current)
        if current == ctx.branch:
            print(f"ℹ️ Already on branch \"{ctx.branch}\".")
        else:
            self.git.checkout_reset(ctx)
        self.git.pull(ctx)
        logger.info("Repository prepared at %s on branch %s", ctx.path, ctx.branch)

    def prepare_repository(self, info: RepositoryInfo, branch: str) -> RepositoryContext:
        """Open the repository and check out an up-to-date ``branch``."""
        ctx = self.open_repository(info, branch)
        self.check_out(ctx)
        return ctx

    def read_versions(self, ctx: RepositoryContext) -> tuple[str, str]:
        """
        Read and validate the manifest versions of trunk and the PR branch.

        Both are read from remote-tracking refs, so nothing in the working
        copy changes before a malformed version is reported.

        Returns:
            ``(trunk_version, branch_version)``

        Raises:
            MalformedVersionError: If either manifest or version is malformed.
        """
        manifest = self.config.git.manifest_file
        self.git.fetch(ctx, ctx.trunk)
        versions = []
        for branch in (ctx.trunk, ctx.branch):
            version = manifest_version(
                self.git.show_file(ctx, branch, manifest),
                source=f"{ctx.remote}/{branch}:{manifest}",
            )
            parse_version(version)
            versions.append(version)
        return versions[0], versions[1]

    # ------------------------------------------------------------------ #
    # Steps
    # ------------------------------------------------------------------ #

    def reconcile_version(self, ctx: RepositoryContext, trunk_version: str, branch_version: str) -> bool:
        """
        Bump the branch's manifest version when it is not ahead of trunk.

        Returns:
            True if a bump was performed and pushed.
        """
        print(f"\n🔢 Comparing {self.config.git.manifest_file} versions between default branch and PR branch...")
        print(f"   Default branch version: {trunk_version}")
        print(f"   PR branch version:      {branch_version}")

        if not requires_bump(trunk_version, branch_version):
            print("ℹ️ PR branch version is greater than the default branch version. No version bump required.")
            return False

        print("🔼 PR branch version is lower or equal to the default branch version.")
        attempt = self.merger.merge_trunk(ctx)
        if attempt.introduced_changes:
            print("📦 Merge brought in new changes, updating dependencies...")
            self.package_manager.install(ctx)
        else:
            print("ℹ️ No changes detected from merging default branch, skipping install.")

        self.package_manager.bump_version(ctx, self.bump_type)
        self.git.push_branch(ctx)
        return True

    def merge_pull_request(self) -> Optional[str]:
        """
        Issue the merge call.

        Returns:
            SHA of the merge commit.

        Raises:
            PROperationError: If the platform did not merge the pull request.
        """
        title = self.config.pr.commit_title.format(number=self.pr.number)
        print("\n🔀 All updates and checks passed, and the PR is mergeable. Proceeding to merge...")
        status = self.platform.merge_pull_request(title, self.config.pr.merge_method)
        if not status.merged:
            logger.error("Merge result: merged=%s message=%s", status.merged, status.message)
            raise PROperationError(f"Merge failed: {status.message}")

        print(f"✅ Pull request #{self.pr.number} merged successfully!")
        logger.info("PR #%d merged as %s", self.pr.number, status.sha)
        if self.config.on_merged:
            self.config.on_merged(self.pr.number, status.sha)
        return status.sha

    def offer_tag_push(self, ctx: RepositoryContext) -> Optional[str]:
        """Offer to push ``<tag_prefix><manifest version>``; returns the tag if pushed."""
        version = self.package_manager.local_version(ctx)
        tag = f"{self.config.git.tag_prefix}{version}"
        return tag if self.git.offer_tag_push(ctx, tag) else None

    def run(self) -> RunResult:
        """
        Land the pull request.

        Returns:
            RunResult with status MERGED, ALREADY_MERGED or MERGED_EXTERNALLY.

        Raises:
            MergeFlowError: Any fatal condition (user abort, API failure,
                unresolvable conflict, exhausted remediation, polling timeout).
        """
        logger.info("=== Merge run start (run_id=%s, pr=%s) ===", self.run_id, self.pr.url)

        print("📡 Fetching repository details...")
        info = self.platform.get_repository_info()
        validate_branch_name(info.default_branch)
        print(f"   Default branch is: {info.default_branch}")

        print("📡 Fetching pull request details...")
        snapshot = self.platform.get_pull_request()

        if snapshot.merged:
            print("ℹ️ Pull request is already merged.")
            ctx = self.prepare_repository(info, info.default_branch)
            tag = self.offer_tag_push(ctx)
            return RunResult(status=RunStatus.ALREADY_MERGED, pr=self.pr, tag_pushed=tag)

        branch = validate_branch_name(snapshot.head_branch)
        print(f"   Pull request branch: {branch}")
        ctx = self.open_repository(info, branch)
        trunk_version, branch_version = self.read_versions(ctx)
        self.check_out(ctx)
        result = RunResult(status=RunStatus.MERGED, pr=self.pr)

        result.version_bumped = self.reconcile_version(ctx, trunk_version, branch_version)

        print("\n🔄 Starting periodic sync with default branch...")
        result.sync_iterations = self.sync_loop.run(ctx).iterations

        poll = self.poller.poll()
        if poll.outcome is PollOutcome.MERGED_EXTERNALLY:
            print("ℹ️ Exiting without merge: the PR was merged externally.")
            result.status = RunStatus.MERGED_EXTERNALLY
            return result
        if poll.outcome is PollOutcome.EXHAUSTED_REMEDIATION:
            raise RemediationExhaustedError(
                f"Failed workflows on {poll.remediation.head_sha} could not be fixed "
                f"after {self.config.polling.max_retries} re-run attempts",
                poll.remediation,
            )
        if poll.outcome is PollOutcome.TIMED_OUT:
            raise PollingTimeoutError(
                f"PR #{self.pr.number} did not become mergeable within {poll.rounds} polling rounds",
                poll.rounds,
            )

        result.merge_sha = self.merge_pull_request()
        result.tag_pushed = self.offer_tag_push(ctx)
        logger.info("Merge run completed successfully (run_id=%s)", self.run_id)
        return result
