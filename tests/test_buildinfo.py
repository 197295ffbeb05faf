"""
Tests for build info extraction and retry (backup_audit/buildinfo.py).
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from backup_audit.buildinfo import (
    BuildInfo,
    RetryPolicy,
    extract_build_info,
    extract_int_field,
    fetch_build_info,
)


APP_INFO = '''
"620"
{
    "common"
    {
        "name"      "Portal 2"
    }
    "depots"
    {
        "branches"
        {
            "public"
            {
                "buildid"       "42"
                "timeupdated"   "1700000000"
            }
            "beta"
            {
                "buildid"       "57"
                "timeupdated"   "1700500000"
            }
        }
    }
}
'''


class TestExtraction:
    """Tests for scraping fields out of app-info text."""

    def test_extracts_public_build(self):
        """Test the first buildid (public branch) wins."""
        info = extract_build_info(APP_INFO)
        assert info.version == 42
        assert info.observed_at == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_single_line(self):
        """Test extraction from a minimal fragment."""
        assert extract_build_info('"buildid" "42"') == BuildInfo(version=42)

    def test_no_match(self):
        """Test unrelated text yields nothing and does not raise."""
        assert extract_build_info("Steam>quit\nLogging in...") == BuildInfo()
        assert extract_build_info("") == BuildInfo()

    def test_non_numeric_ignored(self):
        """Test non-numeric values do not match."""
        assert extract_int_field('"buildid" "abc"', "buildid") is None

    def test_zero_timeupdated_ignored(self):
        """Test a zero timestamp is treated as missing."""
        info = extract_build_info('"buildid" "42" "timeupdated" "0"')
        assert info.version == 42
        assert info.observed_at is None


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_retry_only_on_miss(self):
        """Test retry is requested only when the build id is missing."""
        policy = RetryPolicy(max_attempts=2)
        assert policy.should_retry(BuildInfo(), 1)
        assert not policy.should_retry(BuildInfo(), 2)
        assert not policy.should_retry(BuildInfo(version=1), 1)

    def test_invalid_attempts(self):
        """Test max_attempts below one is rejected."""
        with pytest.raises(ValueError):
            RetryPolicy(max_attempts=0)


class TestFetchBuildInfo:
    """Tests for oracle invocation with retry."""

    def test_first_attempt_succeeds(self):
        """Test a successful first call is not retried."""
        invoke = MagicMock(return_value='"buildid" "42"')
        result = fetch_build_info(620, invoke)
        assert result.info.version == 42
        assert result.attempts == 1
        invoke.assert_called_once_with(620)

    def test_exactly_one_retry(self):
        """Test a persistent miss is retried exactly once."""
        invoke = MagicMock(return_value="no build here")
        result = fetch_build_info(620, invoke)
        assert result.info.version is None
        assert invoke.call_count == 2
        assert result.raw_outputs == ("no build here", "no build here")

    def test_retry_recovers(self):
        """Test a miss followed by a hit resolves."""
        invoke = MagicMock(side_effect=["", '"buildid" "43"'])
        result = fetch_build_info(620, invoke)
        assert result.info.version == 43
        assert result.attempts == 2

    def test_custom_attempts(self):
        """Test the attempt budget follows the policy."""
        invoke = MagicMock(return_value="")
        fetch_build_info(620, invoke, RetryPolicy(max_attempts=3))
        assert invoke.call_count == 3

    def test_unresolved_logs_preview(self, caplog):
        """Test an unresolved entry logs a bounded output preview."""
        invoke = MagicMock(return_value="x" * 2000)
        with caplog.at_level("WARNING", logger="backup_audit.buildinfo"):
            fetch_build_info(620, invoke)
        messages = [r.getMessage() for r in caplog.records if r.levelname == "WARNING"]
        assert len(messages) == 1
        assert "620" in messages[0]
        assert "x" * 501 not in messages[0]
