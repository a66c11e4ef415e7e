"""
Configuration classes for the Merge Flow framework.

This module provides dataclasses for configuring a merge run, making it
easy to adapt to projects with a different manifest, package manager or
polling cadence.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Callable

from .security import BUMP_TYPES
from .utils import validate_non_negative_number, validate_positive_int

MERGE_METHODS = ("merge", "squash", "rebase")


@dataclass
class GitConfig:
    """Configuration for Git operations."""

    remote: str = "origin"
    """Name of the remote the pull request branches live on."""

    manifest_file: str = "package.json"
    """Project manifest carrying the version; the only file conflicts are auto-resolved for."""

    tag_prefix: str = "v"
    """Prefix prepended to the manifest version to form the release tag."""

    command_timeout: int = 120
    """Timeout in seconds for ordinary git commands."""

    network_timeout: int = 600
    """Timeout in seconds for clone, fetch, pull and push."""


@dataclass
class PackageManagerConfig:
    """Configuration for the package manager collaborator."""

    install_command: list[str] = field(default_factory=lambda: ["yarn", "install"])
    """Command that refreshes the lock file and installed packages."""

    bump_command: list[str] = field(default_factory=lambda: ["yarn", "version", "--{bump}"])
    """Version bump command; ``{bump}`` is replaced with patch, minor or major."""

    timeout: int = 900
    """Timeout in seconds for package manager commands."""


@dataclass
class PollingConfig:
    """Configuration for mergeability polling, remediation and branch sync."""

    max_polling_rounds: int = 30
    """Polls of the pull request before giving up."""

    poll_interval: float = 30.0
    """Seconds to wait between mergeability polls."""

    max_retries: int = 2
    """Re-run requests allowed per head commit before remediation is exhausted."""

    rerun_cooldown: float = 30.0
    """Seconds to wait after requesting re-runs before checking again."""

    sync_interval: float = 60.0
    """Seconds to wait after pushing a sync merge before syncing again."""

    max_sync_rounds: Optional[int] = None
    """Optional cap on branch sync rounds. None keeps syncing until converged."""

    log_dir: Path = field(default_factory=lambda: Path.cwd() / "merge-flow-logs")
    """Directory failed workflow run logs are written to."""


@dataclass
class PRConfig:
    """Configuration for the final merge call."""

    merge_method: str = "merge"
    """Merge method: 'merge', 'squash', or 'rebase'."""

    commit_title: str = "Auto-merge pull request #{number}"
    """Merge commit title; ``{number}`` is replaced with the pull request number."""


@dataclass
class MergeFlowConfig:
    """
    Main configuration for the Merge Flow framework.

    Example:
        ```python
        from merge_flow import MergeFlowConfig, MergeFlow

        config = MergeFlowConfig(
            pr_url="https://github.com/owner/repo/pull/42",
            bump_type="patch",
        )

        result = MergeFlow(config).run()
        ```
    """

    # Required settings
    pr_url: str = ""
    """Pull request URL, e.g. 'https://github.com/owner/repo/pull/42'."""

    bump_type: str = "patch"
    """Version bump applied when the branch is not ahead of trunk."""

    work_dir: Path = field(default_factory=Path.cwd)
    """Directory holding (or that will hold) the repository checkout."""

    # Authentication
    github_token: Optional[str] = None
    """GitHub token. Falls back to the GITHUB_TOKEN environment variable."""

    # Sub-configurations
    git: GitConfig = field(default_factory=GitConfig)
    """Git-related configuration."""

    package_manager: PackageManagerConfig = field(default_factory=PackageManagerConfig)
    """Package manager configuration."""

    polling: PollingConfig = field(default_factory=PollingConfig)
    """Polling, remediation and sync configuration."""

    pr: PRConfig = field(default_factory=PRConfig)
    """Pull request merge configuration."""

    # Callbacks (for custom integrations)
    on_poll: Optional[Callable[[int, object], None]] = None
    """Callback after each mergeability poll: (round, snapshot)."""

    on_merged: Optional[Callable[[int, str], None]] = None
    """Callback after a successful merge: (pr_number, merge_sha)."""

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.work_dir, str):
            self.work_dir = Path(self.work_dir)
        if isinstance(self.polling.log_dir, str):
            self.polling.log_dir = Path(self.polling.log_dir)

        if self.bump_type not in BUMP_TYPES:
            raise ValueError(
                f"Invalid bump type: '{self.bump_type}'. "
                f"Expected one of: {', '.join(BUMP_TYPES)}"
            )

        if self.pr.merge_method not in MERGE_METHODS:
            raise ValueError(
                f"Invalid merge method: '{self.pr.merge_method}'. "
                f"Expected one of: {', '.join(MERGE_METHODS)}"
            )

        # Validate polling budgets
        validate_positive_int(self.polling.max_polling_rounds, "max_polling_rounds")
        if not isinstance(self.polling.max_retries, int) or self.polling.max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        if self.polling.max_sync_rounds is not None:
            validate_positive_int(self.polling.max_sync_rounds, "max_sync_rounds")
        validate_non_negative_number(self.polling.poll_interval, "poll_interval")
        validate_non_negative_number(self.polling.rerun_cooldown, "rerun_cooldown")
        validate_non_negative_number(self.polling.sync_interval, "sync_interval")

        # Validate command timeouts
        validate_positive_int(self.git.command_timeout, "git command_timeout")
        validate_positive_int(self.git.network_timeout, "git network_timeout")
        validate_positive_int(self.package_manager.timeout, "package manager timeout")

        if not self.package_manager.install_command:
            raise ValueError("install_command cannot be empty")
        if not self.package_manager.bump_command:
            raise ValueError("bump_command cannot be empty")

        if not self.git.manifest_file:
            raise ValueError("manifest_file cannot be empty")
