"""
Unit tests for models.py module.
"""

import pytest

from merge_flow.models import (
    CheckConclusion,
    CheckRun,
    CheckStatus,
    MergeAttempt,
    MergeableState,
    PullRequestRef,
    RemediationAttempt,
    RepositoryContext,
)


class TestPullRequestRef:

    def test_github_com_api(self, pr_ref):
        assert pr_ref.full_name == "acme/widgets"
        assert pr_ref.api_base_url == "https://api.github.com"
        assert pr_ref.url == "https://github.com/acme/widgets/pull/42"

    def test_enterprise_api(self):
        ref = PullRequestRef(host="git.example.com", owner="a", repo="b", number=1)
        assert ref.api_base_url == "https://git.example.com/api/v3"


class TestMergeableState:

    @pytest.mark.parametrize("value,expected", [
        ("clean", MergeableState.CLEAN),
        ("blocked", MergeableState.BLOCKED),
        ("behind", MergeableState.BEHIND),
        ("unstable", MergeableState.UNSTABLE),
        ("has_hooks", MergeableState.HAS_HOOKS),
        ("draft", MergeableState.DRAFT),
        ("dirty", MergeableState.DIRTY),
        ("unknown", MergeableState.UNKNOWN),
        (" CLEAN ", MergeableState.CLEAN),
    ])
    def test_known_states(self, value, expected):
        assert MergeableState.parse(value) is expected

    def test_none_is_unknown(self):
        assert MergeableState.parse(None) is MergeableState.UNKNOWN

    def test_unseen_value_is_unrecognized(self):
        assert MergeableState.parse("queued_for_merge") is MergeableState.UNRECOGNIZED
        assert MergeableState.parse("unrecognized") is MergeableState.UNRECOGNIZED


class TestCheckRun:

    def _run(self, status, conclusion):
        return CheckRun(
            id=1, name="ci", head_sha="abc",
            status=CheckStatus.parse(status),
            conclusion=CheckConclusion.parse(conclusion),
        )

    @pytest.mark.parametrize("conclusion", ["failure", "timed_out", "cancelled"])
    def test_failed_conclusions(self, conclusion):
        assert self._run("completed", conclusion).failed is True

    @pytest.mark.parametrize("conclusion", ["success", "skipped", "neutral", "action_required", "mystery"])
    def test_other_conclusions_not_failed(self, conclusion):
        assert self._run("completed", conclusion).failed is False

    def test_in_progress_never_failed(self):
        assert self._run("in_progress", None).failed is False

    def test_parse_unknown_conclusion(self):
        assert CheckConclusion.parse("mystery") is CheckConclusion.OTHER
        assert CheckConclusion.parse(None) is CheckConclusion.NONE


class TestRemediationAttempt:

    def test_budget(self):
        attempt = RemediationAttempt("abc", max_retries=2)
        assert not attempt.exhausted
        attempt.increment()
        attempt.increment()
        assert attempt.exhausted
        with pytest.raises(RuntimeError):
            attempt.increment()

    def test_reset_for_new_head(self):
        attempt = RemediationAttempt("abc", max_retries=1, count=1)
        attempt.reset("def")
        assert attempt.head_sha == "def"
        assert attempt.count == 0
        assert not attempt.exhausted

    def test_zero_budget_is_exhausted(self):
        assert RemediationAttempt("abc", max_retries=0).exhausted

    def test_negative_budget_rejected(self):
        with pytest.raises(ValueError):
            RemediationAttempt("abc", max_retries=-1)


class TestMergeAttempt:

    def test_introduced_changes(self):
        assert MergeAttempt(merged=True, was_up_to_date=False).introduced_changes
        assert not MergeAttempt(merged=True, was_up_to_date=True).introduced_changes
        assert not MergeAttempt(merged=False, was_up_to_date=False).introduced_changes


def test_repository_context_remote_trunk(tmp_path):
    ctx = RepositoryContext(path=tmp_path, branch="feature", trunk="develop", remote="upstream")
    assert ctx.remote_trunk == "upstream/develop"
