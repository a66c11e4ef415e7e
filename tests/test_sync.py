"""
Tests for trunk merging and the branch sync loop.
"""

from unittest.mock import Mock

import pytest

from merge_flow.errors import ConflictUnresolvableError, GitOperationError, SyncTimeoutError
from merge_flow.models import MergeAttempt
from merge_flow.sync import BranchSyncLoop, TrunkMerger


@pytest.fixture
def git():
    git = Mock()
    git.merge.return_value = True
    git.conflicted_paths.return_value = []
    return git


class TestTrunkMerger:

    def test_no_op_merge(self, git, ctx):
        git.head_sha.side_effect = ["aaa", "aaa"]
        attempt = TrunkMerger(git).merge_trunk(ctx)
        assert attempt == MergeAttempt(merged=True, was_up_to_date=True)
        assert not attempt.introduced_changes
        git.merge.assert_called_once_with(ctx, "origin/main")

    def test_merge_with_changes(self, git, ctx):
        git.head_sha.side_effect = ["aaa", "bbb"]
        attempt = TrunkMerger(git).merge_trunk(ctx)
        assert attempt.introduced_changes

    def test_manifest_only_conflict_auto_resolved(self, git, ctx):
        git.head_sha.return_value = "aaa"
        git.merge.return_value = False
        git.conflicted_paths.return_value = ["package.json"]

        attempt = TrunkMerger(git).merge_trunk(ctx)

        assert attempt.auto_resolved
        assert attempt.introduced_changes
        assert attempt.conflicts == ("package.json",)
        git.resolve_with_theirs.assert_called_once_with(
            ctx, "package.json", "Auto-resolved package.json conflict from merging origin/main",
        )

    def test_other_conflicts_raise(self, git, ctx):
        git.head_sha.return_value = "aaa"
        git.merge.return_value = False
        git.conflicted_paths.return_value = ["package.json", "src/app.js"]

        with pytest.raises(ConflictUnresolvableError) as exc_info:
            TrunkMerger(git).merge_trunk(ctx)

        assert exc_info.value.conflicts == ["package.json", "src/app.js"]
        git.resolve_with_theirs.assert_not_called()

    def test_failure_without_conflicts(self, git, ctx):
        git.head_sha.return_value = "aaa"
        git.merge.return_value = False
        with pytest.raises(GitOperationError):
            TrunkMerger(git).merge_trunk(ctx)

    def test_custom_manifest(self, git, ctx):
        git.head_sha.return_value = "aaa"
        git.merge.return_value = False
        git.conflicted_paths.return_value = ["pyproject.toml"]
        assert TrunkMerger(git, manifest_file="pyproject.toml").merge_trunk(ctx).auto_resolved


class TestBranchSyncLoop:

    @pytest.fixture
    def merger(self):
        return Mock()

    @pytest.fixture
    def package_manager(self):
        return Mock()

    def test_converges_on_first_no_op(self, git, merger, package_manager, ctx):
        merger.merge_trunk.return_value = MergeAttempt(merged=True, was_up_to_date=True)
        sleep = Mock()
        result = BranchSyncLoop(git, package_manager, merger, sleep=sleep).run(ctx)
        assert result.converged
        assert result.iterations == 1
        git.fetch.assert_called_once_with(ctx, "main")
        package_manager.install.assert_not_called()
        git.push_branch.assert_not_called()
        sleep.assert_not_called()

    def test_installs_and_pushes_until_converged(self, git, merger, package_manager, ctx):
        merger.merge_trunk.side_effect = [
            MergeAttempt(merged=True, was_up_to_date=False),
            MergeAttempt(merged=True, was_up_to_date=False, conflicts=("package.json",), auto_resolved=True),
            MergeAttempt(merged=True, was_up_to_date=True),
        ]
        sleep = Mock()
        result = BranchSyncLoop(git, package_manager, merger, sync_interval=60.0, sleep=sleep).run(ctx)
        assert result.iterations == 3
        assert package_manager.install.call_count == 2
        assert git.push_branch.call_count == 2
        assert sleep.call_count == 2
        sleep.assert_called_with(60.0)

    def test_fetch_failure_is_tolerated(self, git, merger, package_manager, ctx):
        git.fetch.side_effect = GitOperationError("network down")
        merger.merge_trunk.return_value = MergeAttempt(merged=True, was_up_to_date=True)
        result = BranchSyncLoop(git, package_manager, merger, sleep=Mock()).run(ctx)
        assert result.converged
        merger.merge_trunk.assert_called_once_with(ctx)

    def test_conflict_stops_loop(self, git, merger, package_manager, ctx):
        merger.merge_trunk.side_effect = ConflictUnresolvableError("conflict", ["src/app.js"])
        with pytest.raises(ConflictUnresolvableError):
            BranchSyncLoop(git, package_manager, merger, sleep=Mock()).run(ctx)
        package_manager.install.assert_not_called()

    def test_round_cap(self, git, merger, package_manager, ctx):
        merger.merge_trunk.return_value = MergeAttempt(merged=True, was_up_to_date=False)
        with pytest.raises(SyncTimeoutError):
            BranchSyncLoop(git, package_manager, merger, max_rounds=2, sleep=Mock()).run(ctx)
        assert merger.merge_trunk.call_count == 2
