"""
Remediation of failed workflow runs.

One remediation cycle lists the runs for a commit, captures the logs of
every failed run, and (while budget remains) asks the platform to run them
again. Logs are always captured before a re-run so the operator keeps the
evidence even when remediation finally gives up.
"""

import logging
import time
import zipfile
from pathlib import Path
from typing import Callable, Optional

from .errors import TransientNetworkError
from .models import (
    CapturedLog,
    CheckRun,
    RemediationAttempt,
    RemediationOutcome,
    RemediationReport,
)

logger = logging.getLogger(__name__)


class WorkflowRemediator:
    """
    Detects failed runs on a commit, captures their logs and re-runs them.

    Args:
        platform: ``PlatformClient`` (or compatible) used for API calls.
        log_dir: Directory receiving ``run-<id>.zip`` and ``run-<id>/``.
        cooldown: Seconds to wait after requesting re-runs.
        sleep: Sleep function (injectable for tests).
    """

    def __init__(
        self,
        platform,
        log_dir: Path,
        cooldown: float = 30.0,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.platform = platform
        self.log_dir = Path(log_dir)
        self.cooldown = cooldown
        self.sleep = sleep or time.sleep

    def failed_runs(self, head_sha: str) -> list[CheckRun]:
        return [run for run in self.platform.list_check_runs(head_sha) if run.failed]

    def capture_logs(self, run: CheckRun) -> CapturedLog:
        """
        Download and extract the log archive of one run.

        Failures are returned on the ``CapturedLog`` rather than raised.
        """
        print(f"📥 Downloading logs for failed run #{run.id} ({run.name}).")
        try:
            content = self.platform.download_run_logs(run.id)
            self.log_dir.mkdir(parents=True, exist_ok=True)
            zip_path = self.log_dir / f"run-{run.id}.zip"
            zip_path.write_bytes(content)
            extract_dir = self.log_dir / f"run-{run.id}"
            with zipfile.ZipFile(zip_path) as archive:
                archive.extractall(extract_dir)
        except (TransientNetworkError, OSError, zipfile.BadZipFile) as e:
            logger.error("Error downloading logs for run #%d: %s", run.id, e)
            print(f"⚠️ Could not capture logs for run #{run.id}: {e}")
            return CapturedLog(run_id=run.id, run_name=run.name, error=str(e))

        print(f"📁 Logs for run {run.id} saved in {extract_dir}")
        return CapturedLog(run_id=run.id, run_name=run.name, path=extract_dir)

    def request_rerun(self, run: CheckRun, report: RemediationReport) -> None:
        try:
            accepted = self.platform.rerun(run.id)
        except TransientNetworkError as e:
            report.rerun_errors[run.id] = str(e)
            logger.error("Error re-running workflow #%d: %s", run.id, e)
            return
        if not accepted:
            report.rerun_errors[run.id] = f"Forbidden: could not re-run workflow {run.id}"
            logger.error("Re-run of workflow #%d was rejected", run.id)

    def remediate(self, head_sha: str, attempt: RemediationAttempt) -> RemediationReport:
        """
        Run remediation cycles for ``head_sha`` until runs pass or budget runs out.

        Args:
            head_sha: Commit whose workflow runs are inspected.
            attempt: Retry counter for this commit; it is advanced in place
                so the budget holds across calls for the same commit.

        Returns:
            A ``RESOLVED`` report once no failed runs remain, or an
            ``EXHAUSTED`` report carrying every captured log.
        """
        if attempt.head_sha != head_sha:
            attempt.reset(head_sha)

        report = RemediationReport(outcome=RemediationOutcome.RESOLVED, head_sha=head_sha)
        while True:
            report.cycles += 1
            failed = self.failed_runs(head_sha)
            if not failed:
                logger.info("No failed runs on %s", head_sha)
                return report

            print(
                f"❌ Found {len(failed)} failed run(s). "
                f"Attempt {attempt.count} of {attempt.max_retries}."
            )
            for run in failed:
                report.captured_logs.append(self.capture_logs(run))

            if attempt.exhausted:
                print(f"⛔ Max retries reached. See logs in {self.log_dir}.")
                report.outcome = RemediationOutcome.EXHAUSTED
                return report

            for run in failed:
                self.request_rerun(run, report)

            attempt.increment()
            print(f"⏳ Waiting {self.cooldown:.0f}s for re-run to start...")
            self.sleep(self.cooldown)
