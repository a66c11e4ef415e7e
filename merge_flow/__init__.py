"""
Merge Flow Framework

Lands a single pull request: bumps the manifest version when the branch
is not ahead of trunk, keeps the branch synced with trunk, re-runs failed
workflow runs (capturing their logs first), and merges once the platform
reports the pull request mergeable and clean. Every mutating action is
confirmed by the operator.

Quick Start:
    ```python
    from merge_flow import MergeFlow, MergeFlowConfig

    config = MergeFlowConfig(
        pr_url="https://github.com/owner/repo/pull/42",
        bump_type="patch",
    )

    result = MergeFlow(config).run()
    ```

Command Line:
    ```bash
    merge-flow https://github.com/owner/repo/pull/42 patch
    python -m merge_flow https://github.com/owner/repo/pull/42 minor --merge-method squash
    ```
"""

__version__ = "1.0.0"
__author__ = "Merge Flow Contributors"

from .config import (
    MergeFlowConfig,
    GitConfig,
    PackageManagerConfig,
    PollingConfig,
    PRConfig,
)

from .core import MergeFlow

from .errors import (
    MergeFlowError,
    ConfigurationError,
    MalformedInputError,
    MalformedVersionError,
    UserAbortError,
    TransientNetworkError,
    GitOperationError,
    PackageManagerError,
    ConflictUnresolvableError,
    SyncTimeoutError,
    RemediationExhaustedError,
    PollingTimeoutError,
    PROperationError,
)

from .models import MergeableState, PullRequestRef, RunResult, RunStatus
from .versioning import parse_version, requires_bump


__all__ = [
    # Version
    "__version__",
    # Config classes
    "MergeFlowConfig",
    "GitConfig",
    "PackageManagerConfig",
    "PollingConfig",
    "PRConfig",
    # Core classes
    "MergeFlow",
    "MergeableState",
    "PullRequestRef",
    "RunResult",
    "RunStatus",
    # Versioning
    "parse_version",
    "requires_bump",
    # Errors
    "MergeFlowError",
    "ConfigurationError",
    "MalformedInputError",
    "MalformedVersionError",
    "UserAbortError",
    "TransientNetworkError",
    "GitOperationError",
    "PackageManagerError",
    "ConflictUnresolvableError",
    "SyncTimeoutError",
    "RemediationExhaustedError",
    "PollingTimeoutError",
    "PROperationError",
]
