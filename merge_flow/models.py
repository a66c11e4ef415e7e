"""
Data model for the Merge Flow framework.

Snapshots fetched from the platform are frozen dataclasses: a poll never
mutates a snapshot, it replaces it. Mutable bookkeeping (the remediation
retry counter) lives in ``RemediationAttempt``.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class PullRequestRef:
    """Identity of a pull request, parsed from its URL."""

    host: str
    owner: str
    repo: str
    number: int

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    @property
    def api_base_url(self) -> str:
        """REST API root for the host (GitHub Enterprise uses /api/v3)."""
        if self.host in ("github.com", "www.github.com"):
            return "https://api.github.com"
        return f"https://{self.host}/api/v3"

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.repo}/pull/{self.number}"


class MergeableState(Enum):
    """Platform-reported reason a pull request can or cannot be merged."""

    CLEAN = "clean"
    BLOCKED = "blocked"
    BEHIND = "behind"
    UNSTABLE = "unstable"
    HAS_HOOKS = "has_hooks"
    DRAFT = "draft"
    DIRTY = "dirty"
    UNKNOWN = "unknown"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def parse(cls, value: Optional[str]) -> "MergeableState":
        """Map an API string onto a state.

        ``None`` means the platform has not computed the state yet. Any
        string this version does not know about maps to ``UNRECOGNIZED``
        rather than raising.
        """
        if value is None:
            return cls.UNKNOWN
        normalized = value.strip().lower()
        for state in cls:
            if state is not cls.UNRECOGNIZED and state.value == normalized:
                return state
        return cls.UNRECOGNIZED


@dataclass(frozen=True)
class PullRequestSnapshot:
    """One fetch of a pull request's merge-readiness."""

    ref: PullRequestRef
    merged: bool
    mergeable: Optional[bool]
    mergeable_state: MergeableState
    head_sha: str
    head_branch: str
    raw_state: str = ""


class CheckStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CheckStatus":
        # queued, in_progress, waiting, requested all count as pending
        if value == "completed":
            return cls.COMPLETED
        return cls.PENDING


class CheckConclusion(Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    NEUTRAL = "neutral"
    SKIPPED = "skipped"
    ACTION_REQUIRED = "action_required"
    STALE = "stale"
    OTHER = "other"
    NONE = "none"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CheckConclusion":
        if value is None:
            return cls.NONE
        for conclusion in cls:
            if conclusion.value == value:
                return conclusion
        return cls.OTHER


FAILED_CONCLUSIONS = frozenset({
    CheckConclusion.FAILURE,
    CheckConclusion.TIMED_OUT,
    CheckConclusion.CANCELLED,
})


@dataclass(frozen=True)
class CheckRun:
    """One automated check execution against a commit."""

    id: int
    name: str
    head_sha: str
    status: CheckStatus
    conclusion: CheckConclusion

    @property
    def failed(self) -> bool:
        return self.status is CheckStatus.COMPLETED and self.conclusion in FAILED_CONCLUSIONS


@dataclass
class RemediationAttempt:
    """Retry counter for remediation of one head commit."""

    head_sha: str
    max_retries: int = 2
    count: int = 0

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")

    @property
    def exhausted(self) -> bool:
        return self.count >= self.max_retries

    def increment(self) -> None:
        if self.exhausted:
            raise RuntimeError(
                f"Retry budget of {self.max_retries} already spent for {self.head_sha}"
            )
        self.count += 1

    def reset(self, head_sha: str) -> None:
        """Start counting from zero for a new head commit."""
        self.head_sha = head_sha
        self.count = 0


@dataclass(frozen=True)
class CapturedLog:
    """Where a failed run's log archive ended up (or why it did not)."""

    run_id: int
    run_name: str
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.path is not None and self.error is None


class RemediationOutcome(Enum):
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


@dataclass
class RemediationReport:
    """Result of one ``WorkflowRemediator.remediate`` call."""

    outcome: RemediationOutcome
    head_sha: str
    cycles: int = 0
    captured_logs: list[CapturedLog] = field(default_factory=list)
    rerun_errors: dict[int, str] = field(default_factory=dict)

    @property
    def resolved(self) -> bool:
        return self.outcome is RemediationOutcome.RESOLVED


class PollOutcome(Enum):
    CLEAN = "clean"
    MERGED_EXTERNALLY = "merged_externally"
    EXHAUSTED_REMEDIATION = "exhausted_remediation"
    TIMED_OUT = "timed_out"


@dataclass
class PollResult:
    outcome: PollOutcome
    rounds: int
    snapshot: Optional[PullRequestSnapshot] = None
    remediation: Optional[RemediationReport] = None


@dataclass(frozen=True)
class MergeAttempt:
    """Outcome of merging trunk into the feature branch."""

    merged: bool
    was_up_to_date: bool
    conflicts: tuple[str, ...] = ()
    auto_resolved: bool = False

    @property
    def introduced_changes(self) -> bool:
        return self.merged and not self.was_up_to_date


@dataclass(frozen=True)
class SyncResult:
    converged: bool
    iterations: int


@dataclass(frozen=True)
class RepositoryContext:
    """Local working copy a run operates on.

    Passed explicitly to every git and package-manager call instead of
    relying on the process working directory.
    """

    path: Path
    branch: str
    trunk: str
    remote: str = "origin"

    @property
    def remote_trunk(self) -> str:
        return f"{self.remote}/{self.trunk}"


@dataclass(frozen=True)
class RepositoryInfo:
    full_name: str
    default_branch: str
    clone_url: str


class RunStatus(Enum):
    MERGED = "merged"
    ALREADY_MERGED = "already_merged"
    MERGED_EXTERNALLY = "merged_externally"


@dataclass
class RunResult:
    status: RunStatus
    pr: PullRequestRef
    version_bumped: bool = False
    sync_iterations: int = 0
    merge_sha: Optional[str] = None
    tag_pushed: Optional[str] = None
