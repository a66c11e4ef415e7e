"""
Unit tests for config.py module.
"""

import pytest
from pathlib import Path

from merge_flow.config import (
    GitConfig,
    PackageManagerConfig,
    PollingConfig,
    PRConfig,
    MergeFlowConfig,
    MERGE_METHODS,
)


class TestGitConfig:
    """Tests for GitConfig dataclass."""

    def test_default_values(self):
        config = GitConfig()
        assert config.remote == "origin"
        assert config.manifest_file == "package.json"
        assert config.tag_prefix == "v"


class TestPackageManagerConfig:
    """Tests for PackageManagerConfig dataclass."""

    def test_default_values(self):
        config = PackageManagerConfig()
        assert config.install_command == ["yarn", "install"]
        assert config.bump_command == ["yarn", "version", "--{bump}"]

    def test_defaults_not_shared(self):
        a = PackageManagerConfig()
        b = PackageManagerConfig()
        a.install_command.append("--frozen-lockfile")
        assert b.install_command == ["yarn", "install"]


class TestPollingConfig:
    """Tests for PollingConfig dataclass."""

    def test_default_values(self):
        config = PollingConfig()
        assert config.max_polling_rounds == 30
        assert config.poll_interval == 30.0
        assert config.max_retries == 2
        assert config.rerun_cooldown == 30.0
        assert config.sync_interval == 60.0
        assert config.max_sync_rounds is None
        assert config.log_dir.name == "merge-flow-logs"


class TestPRConfig:
    """Tests for PRConfig dataclass."""

    def test_default_values(self):
        config = PRConfig()
        assert config.merge_method == "merge"
        assert config.commit_title.format(number=7) == "Auto-merge pull request #7"

    def test_merge_methods(self):
        assert MERGE_METHODS == ("merge", "squash", "rebase")


class TestMergeFlowConfig:
    """Tests for MergeFlowConfig dataclass."""

    def test_default_values(self):
        config = MergeFlowConfig(pr_url="https://github.com/a/b/pull/1")
        assert config.bump_type == "patch"
        assert config.github_token is None
        assert isinstance(config.git, GitConfig)
        assert isinstance(config.polling, PollingConfig)
        assert config.on_poll is None
        assert config.on_merged is None

    def test_str_paths_converted(self, tmp_path):
        config = MergeFlowConfig(
            work_dir=str(tmp_path),
            polling=PollingConfig(log_dir=str(tmp_path / "logs")),
        )
        assert isinstance(config.work_dir, Path)
        assert config.polling.log_dir == tmp_path / "logs"

    def test_invalid_bump_type(self):
        with pytest.raises(ValueError, match="Invalid bump type"):
            MergeFlowConfig(bump_type="huge")

    def test_invalid_merge_method(self):
        with pytest.raises(ValueError, match="Invalid merge method"):
            MergeFlowConfig(pr=PRConfig(merge_method="fast-forward"))

    def test_invalid_polling_rounds(self):
        with pytest.raises(ValueError, match="max_polling_rounds must be positive"):
            MergeFlowConfig(polling=PollingConfig(max_polling_rounds=0))

    def test_negative_retries(self):
        with pytest.raises(ValueError, match="max_retries cannot be negative"):
            MergeFlowConfig(polling=PollingConfig(max_retries=-1))

    def test_zero_retries_allowed(self):
        config = MergeFlowConfig(polling=PollingConfig(max_retries=0))
        assert config.polling.max_retries == 0

    def test_invalid_sync_rounds(self):
        with pytest.raises(ValueError, match="max_sync_rounds"):
            MergeFlowConfig(polling=PollingConfig(max_sync_rounds=0))

    def test_negative_interval(self):
        with pytest.raises(ValueError, match="poll_interval cannot be negative"):
            MergeFlowConfig(polling=PollingConfig(poll_interval=-1))

    def test_zero_intervals_allowed(self):
        config = MergeFlowConfig(
            polling=PollingConfig(poll_interval=0, rerun_cooldown=0, sync_interval=0),
        )
        assert config.polling.sync_interval == 0

    def test_invalid_timeout(self):
        with pytest.raises(ValueError, match="timeout"):
            MergeFlowConfig(git=GitConfig(command_timeout=0))

    def test_empty_install_command(self):
        with pytest.raises(ValueError, match="install_command cannot be empty"):
            MergeFlowConfig(package_manager=PackageManagerConfig(install_command=[]))

    def test_empty_manifest(self):
        with pytest.raises(ValueError, match="manifest_file cannot be empty"):
            MergeFlowConfig(git=GitConfig(manifest_file=""))
