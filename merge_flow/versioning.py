"""
Semantic version comparison for manifest version reconciliation.

Versions are parsed and ordered by the ``semver`` package under SemVer 2.0
precedence rules. Build metadata takes no part in precedence and is
dropped after parsing.
"""

import logging

from semver import Version

from .errors import MalformedVersionError

logger = logging.getLogger(__name__)

# Prefixes npm tolerates in front of a version ("v1.2.3", "=1.2.3").
LOOSE_PREFIXES = ("v", "V", "=")


def parse_version(value: str) -> Version:
    """
    Parse a semantic version string.

    Args:
        value: Version such as ``1.2.3``, ``v1.2.3`` or ``2.0.0-rc.1+build.5``.

    Returns:
        A comparable ``semver.Version`` without build metadata.

    Raises:
        MalformedVersionError: If the string is not a valid semantic version.
    """
    if not isinstance(value, str) or not value.strip():
        raise MalformedVersionError(f"Version must be a non-empty string, got {value!r}")

    text = value.strip()
    if text.startswith(LOOSE_PREFIXES):
        text = text[1:]

    try:
        parsed = Version.parse(text)
    except ValueError as exc:
        raise MalformedVersionError(
            f"Version '{value}' is not a valid semantic version (X.Y.Z): {exc}"
        ) from exc

    return parsed.replace(build=None)


def requires_bump(trunk_version: str, branch_version: str) -> bool:
    """
    Decide whether the branch needs a version bump before merging.

    Returns True iff ``branch_version`` is lower than or equal to
    ``trunk_version``.

    Raises:
        MalformedVersionError: If either version is malformed.
    """
    trunk = parse_version(trunk_version)
    branch = parse_version(branch_version)
    result = branch.compare(trunk) <= 0
    logger.debug("requires_bump(trunk=%s, branch=%s) -> %s", trunk, branch, result)
    return result
