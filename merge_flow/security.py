"""
Input validation for the Merge Flow framework.

This module validates everything that arrives from the command line or
from the platform before it reaches a git command line, and keeps tokens
out of anything that gets printed.
"""

import re
from typing import Optional

from .errors import MalformedInputError
from .models import PullRequestRef

BUMP_TYPES = ("patch", "minor", "major")

PR_URL_PATTERN = re.compile(
    r"^https://(?P<host>[A-Za-z0-9.-]+(?::\d+)?)/"
    r"(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+)/pull/(?P<number>\d+)"
    r"(?:[/?#]\S*)?$"
)
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+$")


def parse_pull_request_url(url: str) -> PullRequestRef:
    """
    Parse a pull request URL into its identity.

    Args:
        url: URL of the form ``https://<host>/<owner>/<repo>/pull/<number>``.
            Trailing paths such as ``/files`` are ignored.

    Returns:
        The parsed PullRequestRef.

    Raises:
        MalformedInputError: If the URL does not match the expected format.
    """
    if not url or not isinstance(url, str):
        raise MalformedInputError("Pull request URL must be a non-empty string")

    match = PR_URL_PATTERN.match(url.strip())
    if not match:
        raise MalformedInputError(
            f"Invalid pull request URL format: '{url}'. "
            "Expected format: https://github.com/owner/repo/pull/123"
        )

    owner, repo = match["owner"], match["repo"]
    if not NAME_PATTERN.match(owner) or not NAME_PATTERN.match(repo):
        raise MalformedInputError("Invalid repository name format in pull request URL")
    if len(owner) > 100 or len(repo) > 100:
        raise MalformedInputError("Repository name components too long")

    number = int(match["number"])
    if number <= 0:
        raise MalformedInputError("Pull request number must be positive")

    return PullRequestRef(host=match["host"].lower(), owner=owner, repo=repo, number=number)


def validate_bump_type(bump_type: str) -> str:
    """
    Validate a version bump type token.

    Raises:
        MalformedInputError: If the token is not patch, minor or major.
    """
    if bump_type not in BUMP_TYPES:
        raise MalformedInputError(
            f"Bump type must be one of: {', '.join(BUMP_TYPES)} (got '{bump_type}')"
        )
    return bump_type


def sanitize_git_arg(arg: str) -> str:
    """
    Sanitize a git command argument to prevent command injection.

    Args:
        arg: The argument to sanitize.

    Returns:
        The sanitized argument.

    Raises:
        MalformedInputError: If the argument contains dangerous characters.
    """
    # Reject arguments with potential command injection characters
    dangerous_chars = [';', '|', '&', '$', '`', '\n', '\r', '>', '<', '(', ')']
    for char in dangerous_chars:
        if char in arg:
            raise MalformedInputError(f"Potentially dangerous character '{char}' in git argument")

    # Values taken from the platform must never be read as options
    if arg.startswith('-'):
        raise MalformedInputError(f"Git argument may not start with '-': {arg}")

    return arg


def validate_branch_name(branch: str) -> str:
    """
    Validate a git branch name.

    Args:
        branch: The branch name to validate.

    Returns:
        The validated branch name.

    Raises:
        MalformedInputError: If the branch name is invalid.
    """
    if not branch or len(branch) > 255:
        raise MalformedInputError("Invalid branch name length")

    # Git branch names have specific rules
    # Cannot contain: .., @{, \, space at start/end, control chars, ~, ^, :, ?, *, [
    invalid_patterns = [
        r'\.\.',  # Double dots
        r'@\{',   # @{
        r'\\',    # Backslash
        r'^\s',   # Leading space
        r'\s$',   # Trailing space
        r'[\x00-\x1f\x7f]',  # Control characters
        r'[~^:?*\[]',  # Special git characters
        r'//',    # Double slash
        r'\.lock$',  # .lock suffix
        r'^/',    # Leading slash
        r'/$',    # Trailing slash
        r'^-',    # Option-like
    ]

    for pattern in invalid_patterns:
        if re.search(pattern, branch):
            raise MalformedInputError(f"Branch name '{branch}' contains invalid pattern: {pattern}")

    return sanitize_git_arg(branch)


def redact_token(text: str, token: Optional[str] = None) -> str:
    """
    Redact tokens from text to prevent accidental exposure.

    Args:
        text: The text that may contain tokens.
        token: Optional specific token to redact.

    Returns:
        Text with tokens redacted.
    """
    if not text:
        return text

    # Redact specific token if provided
    if token:
        if len(token) > 8:
            text = text.replace(token, f"{token[:4]}...{token[-4:]}")
        else:
            text = text.replace(token, "****")

    # Classic, fine-grained and OAuth GitHub tokens
    text = re.sub(r'ghp_[a-zA-Z0-9]{36,}', 'ghp_****REDACTED****', text)
    text = re.sub(r'github_pat_[a-zA-Z0-9_]{82,}', 'github_pat_****REDACTED****', text)
    text = re.sub(r'gho_[a-zA-Z0-9]{36,}', 'gho_****REDACTED****', text)

    return text
