"""
Collaboration-platform client.

Wraps PyGithub for repository, pull request, workflow run and merge calls.
Workflow log archives are served through a redirect that PyGithub does not
follow for binary content, so they are fetched with requests.
"""

import json
import logging
from typing import Any, Callable, Optional

import requests
from github import Auth, Github, GithubException

from .confirm import Confirmer
from .errors import PROperationError, TransientNetworkError
from .models import (
    CheckConclusion,
    CheckRun,
    CheckStatus,
    MergeableState,
    PullRequestRef,
    PullRequestSnapshot,
    RepositoryInfo,
)
from .security import redact_token

logger = logging.getLogger(__name__)


def _describe(e: GithubException) -> str:
    message = e.data.get("message") if isinstance(e.data, dict) else e.data
    return f"{e.status} / {message}"


class PlatformClient:
    """
    API access for one pull request.

    Args:
        ref: The pull request being landed.
        token: Bearer credential (never logged).
        confirmer: Gate for the merge call.
        github: Optional pre-built ``Github`` instance.
        timeout: HTTP timeout in seconds.
    """

    def __init__(
        self,
        ref: PullRequestRef,
        token: str,
        confirmer: Confirmer,
        github: Optional[Github] = None,
        timeout: int = 30,
    ):
        self.ref = ref
        self.confirmer = confirmer
        self.timeout = timeout
        self._token = token
        self.github = github or Github(auth=Auth.Token(token), base_url=ref.api_base_url, timeout=timeout)
        self._repo = None

    def _call(self, action: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except GithubException as e:
            logger.error("Failed to %s: %s", action, _describe(e))
            raise TransientNetworkError(f"Failed to {action}: {_describe(e)}") from e

    @property
    def repo(self):
        if self._repo is None:
            self._repo = self._call("fetch repository details", self.github.get_repo, self.ref.full_name)
        return self._repo

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "Content-Type": "application/json",
        }

    def get_repository_info(self) -> RepositoryInfo:
        repo = self.repo
        logger.debug("Repository %s default branch: %s", repo.full_name, repo.default_branch)
        return RepositoryInfo(
            full_name=repo.full_name,
            default_branch=repo.default_branch,
            clone_url=repo.clone_url,
        )

    def get_pull_request(self) -> PullRequestSnapshot:
        """Fetch a fresh snapshot of the pull request."""
        pr = self._call("fetch pull request details", self.repo.get_pull, self.ref.number)
        snapshot = PullRequestSnapshot(
            ref=self.ref,
            merged=bool(pr.merged),
            mergeable=pr.mergeable,
            mergeable_state=MergeableState.parse(pr.mergeable_state),
            head_sha=pr.head.sha,
            head_branch=pr.head.ref,
            raw_state=pr.mergeable_state or "",
        )
        logger.debug(
            "PR #%d: merged=%s mergeable=%s mergeable_state=%s head=%s",
            self.ref.number, snapshot.merged, snapshot.mergeable, snapshot.raw_state, snapshot.head_sha,
        )
        return snapshot

    def list_check_runs(self, head_sha: str) -> list[CheckRun]:
        """List the workflow runs executed against a commit."""
        runs = self._call(
            "list workflow runs",
            lambda: list(self.repo.get_workflow_runs(head_sha=head_sha)),
        )
        return [
            CheckRun(
                id=run.id,
                name=run.name or f"run {run.id}",
                head_sha=run.head_sha,
                status=CheckStatus.parse(run.status),
                conclusion=CheckConclusion.parse(run.conclusion),
            )
            for run in runs
            if run.head_sha == head_sha
        ]

    def download_run_logs(self, run_id: int) -> bytes:
        """
        Download the zipped log archive of a workflow run.

        Raises:
            TransientNetworkError: If the archive could not be downloaded.
        """
        url = f"{self.ref.api_base_url}/repos/{self.ref.full_name}/actions/runs/{run_id}/logs"
        logger.debug("Downloading logs: %s", url)
        try:
            response = requests.get(url, headers=self.headers, timeout=self.timeout, allow_redirects=True)
        except requests.RequestException as e:
            raise TransientNetworkError(
                f"Failed to download logs for run {run_id}: {redact_token(str(e), self._token)}"
            ) from e
        if not response.ok:
            raise TransientNetworkError(
                f"Failed to download logs for run {run_id}: {response.status_code} / {response.reason}"
            )
        return response.content

    def rerun(self, run_id: int) -> bool:
        """
        Request re-execution of a workflow run.

        Returns:
            True if the platform accepted the request, False if it refused
            (e.g. 403 Forbidden).

        Raises:
            TransientNetworkError: If the run could not be looked up.
        """
        run = self._call(f"fetch workflow run {run_id}", self.repo.get_workflow_run, run_id)
        accepted = self._call(f"re-run workflow run {run_id}", run.rerun)
        if accepted:
            print(f"🔁 Requested re-run for workflow run {run_id}.")
        return bool(accepted)

    def merge_pull_request(self, commit_title: str, merge_method: str):
        """
        Issue the merge call for the pull request.

        Returns:
            PyGithub's ``PullRequestMergeStatus`` (``merged``, ``sha``, ``message``).

        Raises:
            UserAbortError: If the operator declines.
            PROperationError: If the platform rejects the merge.
        """
        body = {"commit_title": commit_title, "merge_method": merge_method}
        api_url = f"{self.ref.api_base_url}/repos/{self.ref.full_name}/pulls/{self.ref.number}/merge"
        curl = (
            f"curl -X PUT {api_url} \\\n"
            f"  -H \"Authorization: Bearer $GITHUB_TOKEN\" \\\n"
            f"  -H \"Content-Type: application/json\" \\\n"
            f"  -d '{json.dumps(body)}'"
        )
        self.confirmer.require("Merging the pull request via GitHub API", curl)

        pr = self._call("fetch pull request details", self.repo.get_pull, self.ref.number)
        logger.info("Merging PR #%d (method=%s)", self.ref.number, merge_method)
        try:
            return pr.merge(commit_title=commit_title, merge_method=merge_method)
        except GithubException as e:
            logger.error("Merge failed: %s", _describe(e))
            raise PROperationError(f"Merge failed: {_describe(e)}") from e
