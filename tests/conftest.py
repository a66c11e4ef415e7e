"""
Shared fixtures for the merge flow tests.
"""

from pathlib import Path

import pytest

from merge_flow.confirm import Confirmer
from merge_flow.models import (
    MergeableState,
    PullRequestRef,
    PullRequestSnapshot,
    RepositoryContext,
)


class ScriptedConfirmer(Confirmer):
    """Confirmer that answers from a fixed policy and records every prompt."""

    def __init__(self, answer=True, declines=()):
        self.answer = answer
        self.declines = tuple(declines)
        self.prompts = []

    def confirm(self, description, command=""):
        self.prompts.append((description, command))
        if any(text in description for text in self.declines):
            return False
        return self.answer


@pytest.fixture
def confirmer():
    return ScriptedConfirmer()


@pytest.fixture
def pr_ref():
    return PullRequestRef(host="github.com", owner="acme", repo="widgets", number=42)


@pytest.fixture
def ctx(tmp_path):
    return RepositoryContext(path=tmp_path, branch="feature/login", trunk="main")


def make_snapshot(ref, state="clean", mergeable=True, merged=False, head_sha="abc123", head_branch="feature/login"):
    return PullRequestSnapshot(
        ref=ref,
        merged=merged,
        mergeable=mergeable,
        mergeable_state=MergeableState.parse(state),
        head_sha=head_sha,
        head_branch=head_branch,
        raw_state=state or "",
    )


@pytest.fixture
def snapshot(pr_ref):
    """Factory for PullRequestSnapshot instances of the test pull request."""
    def factory(**kwargs):
        return make_snapshot(pr_ref, **kwargs)
    return factory


@pytest.fixture
def declining_confirmer():
    return ScriptedConfirmer(answer=False)
