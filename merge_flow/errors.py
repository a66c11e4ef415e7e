"""
Exception hierarchy for the Merge Flow framework.

Every fatal condition raised anywhere in the package derives from
``MergeFlowError`` and bubbles up to the CLI, which prints a diagnostic
and exits with the error's ``exit_code``.
"""

from typing import Optional


class MergeFlowError(Exception):
    """Base exception for merge flow errors."""

    exit_code = 1


class ConfigurationError(MergeFlowError):
    """Exception raised for configuration errors."""
    pass


class MalformedInputError(MergeFlowError):
    """Exception raised for a bad pull request URL, bump type or similar input."""

    exit_code = 2


class MalformedVersionError(MalformedInputError):
    """Exception raised when a version string cannot be parsed as semver."""
    pass


class UserAbortError(MergeFlowError):
    """Exception raised when the operator declines a confirmation."""
    pass


class TransientNetworkError(MergeFlowError):
    """Exception raised when a platform API call does not succeed."""
    pass


class GitOperationError(MergeFlowError):
    """Exception raised for git operation failures."""
    pass


class PackageManagerError(MergeFlowError):
    """Exception raised when an install or version-bump command fails."""
    pass


class ConflictUnresolvableError(MergeFlowError):
    """Exception raised when a merge conflicts outside the manifest file."""

    def __init__(self, message: str, conflicts: Optional[list[str]] = None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])


class SyncTimeoutError(MergeFlowError):
    """Exception raised when branch sync exceeds its round budget."""
    pass


class RemediationExhaustedError(MergeFlowError):
    """Exception raised when failing workflow runs outlive the retry budget."""

    def __init__(self, message: str, report=None):
        super().__init__(message)
        self.report = report


class PollingTimeoutError(MergeFlowError):
    """Exception raised when the pull request never became mergeable."""

    def __init__(self, message: str, rounds: int = 0):
        super().__init__(message)
        self.rounds = rounds


class PROperationError(MergeFlowError):
    """Exception raised for pull request operation failures."""
    pass
