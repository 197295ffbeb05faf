"""
Tests for git publishing (backup_audit/publish.py).
"""

import subprocess
from unittest.mock import patch, MagicMock

from backup_audit.environment import Environment, INTERACTIVE, UNATTENDED
from backup_audit.publish import PublishResult, publish_report, should_publish


def completed(returncode=0, stdout="", stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestShouldPublish:
    """Tests for should_publish()."""

    def test_interactive_always(self):
        """Test local runs publish."""
        assert should_publish(Environment(mode=INTERACTIVE), {})

    def test_unattended_needs_token(self):
        """Test unattended runs publish only with a token."""
        env = Environment(mode=UNATTENDED)
        assert not should_publish(env, {})
        assert should_publish(env, {"GITHUB_TOKEN": "x"})


class TestPublishReport:
    """Tests for publish_report()."""

    @patch("backup_audit.publish.subprocess.run")
    def test_full_sequence(self, mock_run, tmp_path):
        """Test config, add, commit, pull and push run in order."""
        mock_run.return_value = completed()
        result = publish_report(tmp_path, ["games.json", "index.html"], "Update report", "Bot", "bot@example.com")

        assert result == PublishResult(
            success=True, committed=True, pushed=True,
            steps=("config", "config", "add", "commit", "pull", "push"),
        )
        commands = [call.args[0] for call in mock_run.call_args_list]
        assert commands[0] == ["git", "-C", str(tmp_path), "config", "user.name", "Bot"]
        assert commands[2] == ["git", "-C", str(tmp_path), "add", "--", "games.json", "index.html"]
        assert commands[3][-2:] == ["-m", "Update report"]
        assert "--strategy=ours" in commands[4]

    @patch("backup_audit.publish.subprocess.run")
    def test_identity_optional(self, mock_run, tmp_path):
        """Test git config is skipped without a committer identity."""
        mock_run.return_value = completed()
        result = publish_report(tmp_path, ["games.json"], "msg")
        assert result.steps == ("add", "commit", "pull", "push")

    @patch("backup_audit.publish.subprocess.run")
    def test_nothing_to_commit(self, mock_run, tmp_path):
        """Test an unchanged report is a successful no-op."""
        mock_run.side_effect = [
            completed(),
            completed(returncode=1, stdout="nothing to commit, working tree clean"),
        ]
        result = publish_report(tmp_path, ["games.json"], "msg")
        assert result.success
        assert not result.committed
        assert result.steps == ("add", "commit")

    @patch("backup_audit.publish.subprocess.run")
    def test_push_failure_reported(self, mock_run, tmp_path):
        """Test a failing step stops the sequence without raising."""
        mock_run.side_effect = [
            completed(), completed(), completed(),
            completed(returncode=128, stderr="fatal: could not read Username"),
        ]
        result = publish_report(tmp_path, ["games.json"], "msg")
        assert not result.success
        assert result.steps[-1] == "push"
        assert "could not read Username" in result.error

    @patch("backup_audit.publish.subprocess.run")
    def test_timeout_reported(self, mock_run, tmp_path):
        """Test a hanging git command is reported."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=120)
        result = publish_report(tmp_path, ["games.json"], "msg")
        assert not result.success
        assert "timed out" in result.error

    @patch("backup_audit.publish.subprocess.run")
    def test_git_missing_reported(self, mock_run, tmp_path):
        """Test a missing git executable is reported."""
        mock_run.side_effect = FileNotFoundError("git")
        result = publish_report(tmp_path, ["games.json"], "msg")
        assert not result.success
        assert result.steps == ("add",)
