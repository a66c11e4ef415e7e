"""
Mergeability polling.

Polls the pull request until the platform reports it ``clean`` (the only
state that authorizes a merge), until someone else merges it, until
remediation of failed runs is exhausted, or until the round budget is
spent.
"""

import logging
import time
from typing import Callable, Optional

from .models import (
    MergeableState,
    PollOutcome,
    PollResult,
    PullRequestSnapshot,
    RemediationAttempt,
)

logger = logging.getLogger(__name__)

# States worth remediating while the platform says "not mergeable".
REMEDIABLE_STATES = frozenset({MergeableState.BLOCKED, MergeableState.UNSTABLE})

# States reported alongside mergeable=True that still mean "not yet".
WAITING_STATES = frozenset({
    MergeableState.BLOCKED,
    MergeableState.BEHIND,
    MergeableState.UNSTABLE,
    MergeableState.HAS_HOOKS,
})


def is_merge_ready(snapshot: PullRequestSnapshot) -> bool:
    """True only for an unmerged pull request that is mergeable and clean."""
    return (
        not snapshot.merged
        and snapshot.mergeable is True
        and snapshot.mergeable_state is MergeableState.CLEAN
    )


class MergeabilityPoller:
    """
    Drives a pull request to a terminal mergeability verdict.

    Args:
        platform: ``PlatformClient`` (or compatible).
        remediator: ``WorkflowRemediator`` invoked for blocked/unstable states.
        max_polling_rounds: Polls before returning ``TIMED_OUT``.
        poll_interval: Seconds between polls.
        max_retries: Re-run budget per head commit.
        sleep: Sleep function (injectable for tests).
        on_poll: Optional callback ``(round, snapshot)`` after every fetch.
    """

    def __init__(
        self,
        platform,
        remediator,
        max_polling_rounds: int = 30,
        poll_interval: float = 30.0,
        max_retries: int = 2,
        sleep: Optional[Callable[[float], None]] = None,
        on_poll: Optional[Callable[[int, PullRequestSnapshot], None]] = None,
    ):
        self.platform = platform
        self.remediator = remediator
        self.max_polling_rounds = max_polling_rounds
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.sleep = sleep or time.sleep
        self.on_poll = on_poll

    def _wait(self, round_number: int) -> None:
        # No point sleeping after the last permitted poll
        if round_number < self.max_polling_rounds:
            print(f"⏳ Will wait and retry in {self.poll_interval:.0f}s...")
            self.sleep(self.poll_interval)

    def poll(self) -> PollResult:
        """
        Poll until a terminal outcome.

        Returns:
            PollResult whose outcome is ``CLEAN``, ``MERGED_EXTERNALLY``,
            ``EXHAUSTED_REMEDIATION`` or ``TIMED_OUT``.
        """
        attempt: Optional[RemediationAttempt] = None
        snapshot = None
        last_report = None

        for round_number in range(1, self.max_polling_rounds + 1):
            print(f"🔍 Checking if PR is mergeable (round {round_number}/{self.max_polling_rounds})...")
            snapshot = self.platform.get_pull_request()
            if self.on_poll:
                self.on_poll(round_number, snapshot)

            if snapshot.merged:
                print("ℹ️ Pull request is already merged externally.")
                return PollResult(PollOutcome.MERGED_EXTERNALLY, round_number, snapshot, last_report)

            state = snapshot.mergeable_state
            if snapshot.mergeable is not True:
                print(
                    f"   mergeable={snapshot.mergeable}, mergeable_state={snapshot.raw_state or state.value}. "
                    "Possibly waiting on checks or reviews."
                )
                if state in REMEDIABLE_STATES:
                    if attempt is None:
                        attempt = RemediationAttempt(snapshot.head_sha, max_retries=self.max_retries)
                    elif attempt.head_sha != snapshot.head_sha:
                        logger.info("Head moved %s -> %s; resetting retry counter", attempt.head_sha, snapshot.head_sha)
                        attempt.reset(snapshot.head_sha)

                    print(f"🩺 mergeable_state={state.value} => Attempting to handle failed workflows...")
                    last_report = self.remediator.remediate(snapshot.head_sha, attempt)
                    if not last_report.resolved:
                        print(f"⛔ Failed workflows could not be fixed after {self.max_retries} attempts.")
                        return PollResult(PollOutcome.EXHAUSTED_REMEDIATION, round_number, snapshot, last_report)
                self._wait(round_number)
                continue

            if state is MergeableState.CLEAN:
                print("✅ PR is mergeable and 'clean'. All checks have passed.")
                return PollResult(PollOutcome.CLEAN, round_number, snapshot, last_report)

            if state in WAITING_STATES:
                print(f"   mergeable_state={state.value}.")
            else:
                # draft, dirty, unknown and anything the platform adds later
                if state is MergeableState.UNRECOGNIZED:
                    logger.warning("Unrecognized mergeable_state %r treated as not ready", snapshot.raw_state)
                print(f"   mergeable_state={snapshot.raw_state or state.value}. Possibly a draft or conflict.")
            self._wait(round_number)

        print("⛔ Exceeded max polling rounds waiting for PR to become mergeable.")
        return PollResult(PollOutcome.TIMED_OUT, self.max_polling_rounds, snapshot, last_report)
