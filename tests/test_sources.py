"""
Unit tests for the external collaborators.

Tests usage fetching and git publishing with subprocess mocked out.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from usage_heatmap.sources.ccusage import UsageFetchError, fetch_usage, parse_report
from usage_heatmap.sources.publish import PublishError, commit_and_push, pull


class TestFetchUsage:
    """Test running the usage tool."""

    @patch('usage_heatmap.sources.ccusage.subprocess.run')
    def test_fetch_success_strips_preamble(self, mock_run):
        """Text before the JSON report is discarded."""
        mock_run.return_value = Mock(stdout='Need to install ccusage\nOk to proceed? (y)\n{"daily": [{"date": "2024-03-01"}]}')

        report = fetch_usage(("npx", "ccusage@latest", "--json"), timeout=30)

        assert report == {"daily": [{"date": "2024-03-01"}]}
        args, kwargs = mock_run.call_args
        assert args[0] == ["npx", "ccusage@latest", "--json"]
        assert kwargs["input"] == "y\n"
        assert kwargs["timeout"] == 30
        assert kwargs["check"] is True

    @patch('usage_heatmap.sources.ccusage.subprocess.run')
    def test_missing_tool(self, mock_run):
        """A missing executable raises UsageFetchError."""
        mock_run.side_effect = FileNotFoundError()
        with pytest.raises(UsageFetchError, match="Usage tool not found: npx"):
            fetch_usage()

    @patch('usage_heatmap.sources.ccusage.subprocess.run')
    def test_non_zero_exit(self, mock_run):
        """A failing command raises UsageFetchError."""
        mock_run.side_effect = subprocess.CalledProcessError(2, ["npx"])
        with pytest.raises(UsageFetchError, match="exited with status 2"):
            fetch_usage()

    @patch('usage_heatmap.sources.ccusage.subprocess.run')
    def test_timeout(self, mock_run):
        """A hung command raises UsageFetchError."""
        mock_run.side_effect = subprocess.TimeoutExpired(["npx"], 5)
        with pytest.raises(UsageFetchError, match="timed out after 5s"):
            fetch_usage(timeout=5)


class TestParseReport:
    """Test extracting JSON from tool output."""

    def test_no_json(self):
        """Output without JSON is rejected."""
        with pytest.raises(UsageFetchError, match="No JSON found"):
            parse_report("Please log in first")

    def test_invalid_json(self):
        """Malformed JSON is rejected."""
        with pytest.raises(UsageFetchError, match="Invalid JSON"):
            parse_report("{daily: ")


class TestPublish:
    """Test git publishing."""

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_commit_and_push(self, mock_run):
        """Files are staged, committed and pushed."""
        assert commit_and_push(["data/usage_history.json"], "data: update", repo_dir="/repo") is True

        commands = [c.args[0] for c in mock_run.call_args_list]
        assert commands == [
            ["git", "add", "--", "data/usage_history.json"],
            ["git", "commit", "-m", "data: update"],
            ["git", "push"],
        ]
        assert mock_run.call_args_list[0].kwargs["cwd"] == "/repo"

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_nothing_to_commit(self, mock_run):
        """A failed commit means nothing changed."""
        mock_run.side_effect = [Mock(), subprocess.CalledProcessError(1, ["git", "commit"])]

        assert commit_and_push(["usage.svg"], "chore: update") is False
        assert mock_run.call_count == 2

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_push_failure_is_not_fatal(self, mock_run):
        """A rejected push returns False."""
        mock_run.side_effect = [
            Mock(),
            Mock(),
            subprocess.CalledProcessError(1, ["git", "push"], stderr="rejected"),
        ]
        assert commit_and_push(["usage.svg"], "chore: update") is False

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_stage_failure_raises(self, mock_run):
        """A failed git add raises PublishError."""
        mock_run.side_effect = subprocess.CalledProcessError(128, ["git", "add"])
        with pytest.raises(PublishError, match="Failed to stage usage.svg"):
            commit_and_push(["usage.svg"], "chore: update")

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_pull(self, mock_run):
        """pull runs git pull in the repo directory."""
        assert pull("/repo") is True
        mock_run.assert_called_once()
        assert mock_run.call_args.args[0] == ["git", "pull"]

    @patch('usage_heatmap.sources.publish.subprocess.run')
    def test_pull_failure_is_ignored(self, mock_run):
        """A failed pull returns False."""
        mock_run.side_effect = subprocess.CalledProcessError(1, ["git", "pull"])
        assert pull() is False
