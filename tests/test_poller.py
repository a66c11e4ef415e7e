"""
Tests for mergeability polling.
"""

from unittest.mock import Mock

import pytest

from merge_flow.models import (
    PollOutcome,
    RemediationOutcome,
    RemediationReport,
)
from merge_flow.poller import MergeabilityPoller, is_merge_ready


def report(outcome, head_sha="abc123"):
    return RemediationReport(outcome=outcome, head_sha=head_sha)


@pytest.fixture
def platform():
    return Mock()


@pytest.fixture
def remediator():
    remediator = Mock()
    remediator.remediate.return_value = report(RemediationOutcome.RESOLVED)
    return remediator


@pytest.fixture
def sleep():
    return Mock()


def make_poller(platform, remediator, sleep, **kwargs):
    kwargs.setdefault("max_polling_rounds", 5)
    kwargs.setdefault("poll_interval", 30.0)
    return MergeabilityPoller(platform, remediator, sleep=sleep, **kwargs)


class TestIsMergeReady:

    def test_clean_and_mergeable(self, snapshot):
        assert is_merge_ready(snapshot())

    @pytest.mark.parametrize("state,mergeable,merged", [
        ("clean", None, False),
        ("clean", False, False),
        ("clean", True, True),
        ("unstable", True, False),
        ("has_hooks", True, False),
        ("brand_new_state", True, False),
    ])
    def test_not_ready(self, snapshot, state, mergeable, merged):
        assert not is_merge_ready(snapshot(state=state, mergeable=mergeable, merged=merged))


class TestPoll:

    def test_clean_on_first_round(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.return_value = snapshot()
        result = make_poller(platform, remediator, sleep).poll()
        assert result.outcome is PollOutcome.CLEAN
        assert result.rounds == 1
        sleep.assert_not_called()
        remediator.remediate.assert_not_called()

    def test_waits_through_uncomputed_state(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.side_effect = [
            snapshot(state=None, mergeable=None),
            snapshot(state="behind", mergeable=True),
            snapshot(),
        ]
        result = make_poller(platform, remediator, sleep).poll()
        assert result.outcome is PollOutcome.CLEAN
        assert result.rounds == 3
        assert sleep.call_count == 2
        remediator.remediate.assert_not_called()

    def test_merged_externally(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.side_effect = [snapshot(state="blocked", mergeable=False), snapshot(merged=True)]
        result = make_poller(platform, remediator, sleep).poll()
        assert result.outcome is PollOutcome.MERGED_EXTERNALLY
        assert result.rounds == 2

    def test_blocked_triggers_remediation(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.side_effect = [snapshot(state="blocked", mergeable=False), snapshot()]
        result = make_poller(platform, remediator, sleep).poll()
        assert result.outcome is PollOutcome.CLEAN
        remediator.remediate.assert_called_once()
        head_sha, attempt = remediator.remediate.call_args.args
        assert head_sha == "abc123"
        assert attempt.max_retries == 2

    def test_exhausted_remediation_stops_polling(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.return_value = snapshot(state="unstable", mergeable=False)
        remediator.remediate.return_value = report(RemediationOutcome.EXHAUSTED)
        result = make_poller(platform, remediator, sleep).poll()
        assert result.outcome is PollOutcome.EXHAUSTED_REMEDIATION
        assert result.rounds == 1
        assert result.remediation is remediator.remediate.return_value
        sleep.assert_not_called()

    def test_attempt_shared_for_same_head(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.side_effect = [
            snapshot(state="blocked", mergeable=False),
            snapshot(state="blocked", mergeable=False),
            snapshot(),
        ]
        make_poller(platform, remediator, sleep).poll()
        first = remediator.remediate.call_args_list[0].args[1]
        second = remediator.remediate.call_args_list[1].args[1]
        assert first is second

    def test_new_head_resets_attempt(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.side_effect = [
            snapshot(state="blocked", mergeable=False, head_sha="aaa"),
            snapshot(state="blocked", mergeable=False, head_sha="bbb"),
            snapshot(),
        ]
        make_poller(platform, remediator, sleep).poll()
        attempt = remediator.remediate.call_args_list[1].args[1]
        assert attempt.head_sha == "bbb"
        assert attempt.count == 0

    def test_dirty_is_not_remediated(self, platform, remediator, sleep, snapshot):
        platform.get_pull_request.return_value = snapshot(state="dirty", mergeable=False)
        result = make_poller(platform, remediator, sleep, max_polling_rounds=3).poll()
        assert result.outcome is PollOutcome.TIMED_OUT
        remediator.remediate.assert_not_called()

    def test_unrecognized_state_times_out(self, platform, remediator, sleep, snapshot, caplog):
        platform.get_pull_request.return_value = snapshot(state="queued_for_merge", mergeable=True)
        result = make_poller(platform, remediator, sleep, max_polling_rounds=3).poll()
        assert result.outcome is PollOutcome.TIMED_OUT
        assert result.rounds == 3
        # no sleep after the final poll
        assert sleep.call_count == 2
        assert "queued_for_merge" in caplog.text

    def test_on_poll_callback(self, platform, remediator, sleep, snapshot):
        on_poll = Mock()
        platform.get_pull_request.return_value = snapshot()
        make_poller(platform, remediator, sleep, on_poll=on_poll).poll()
        on_poll.assert_called_once_with(1, platform.get_pull_request.return_value)
