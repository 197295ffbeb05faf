"""
Tests for Steam review summaries (backup_audit/ratings.py).
"""

import json
from unittest.mock import patch

import pytest

from backup_audit.catalog import RatingSummary
from backup_audit.common import NetworkError, ParseError
from backup_audit.ratings import fetch_rating, parse_rating


PAYLOAD = {
    "success": 1,
    "query_summary": {
        "num_reviews": 0,
        "review_score": 9,
        "review_score_desc": "Overwhelmingly Positive",
        "total_positive": 297,
        "total_negative": 3,
        "total_reviews": 300,
    },
}


class TestParseRating:
    """Tests for parse_rating()."""

    def test_full_summary(self):
        """Test a complete summary."""
        rating = parse_rating(PAYLOAD)
        assert rating == RatingSummary(
            percent=99.0, total=300, positive=297, negative=3,
            description="Overwhelmingly Positive",
        )

    def test_percent_rounded(self):
        """Test the percentage is rounded to two places."""
        rating = parse_rating({"query_summary": {"total_reviews": 3, "total_positive": 2}})
        assert rating.percent == 66.67

    def test_zero_reviews(self):
        """Test no percentage without reviews."""
        rating = parse_rating({"success": 1, "query_summary": {"total_reviews": 0, "total_positive": 0}})
        assert rating.percent is None
        assert rating.total == 0

    def test_missing_summary(self):
        """Test a body without query_summary is a parse error."""
        with pytest.raises(ParseError):
            parse_rating({"success": 1})

    def test_reported_failure(self):
        """Test success=2 is a parse error."""
        with pytest.raises(ParseError):
            parse_rating({"success": 2, "query_summary": {}})

    def test_not_an_object(self):
        """Test non-object bodies are rejected."""
        with pytest.raises(ParseError):
            parse_rating([1, 2])


class TestFetchRating:
    """Tests for fetch_rating()."""

    @patch("backup_audit.ratings.http_get")
    def test_success(self, mock_get):
        """Test a successful fetch."""
        mock_get.return_value = json.dumps(PAYLOAD).encode()
        rating = fetch_rating(620, timeout=3)
        assert rating.total == 300
        url = mock_get.call_args[0][0]
        assert "appreviews/620" in url
        assert mock_get.call_args[1]["timeout"] == 3

    @patch("backup_audit.ratings.http_get")
    def test_network_error_degrades(self, mock_get):
        """Test network failures yield an all-null summary."""
        mock_get.side_effect = NetworkError("down")
        assert fetch_rating(620) == RatingSummary()

    @patch("backup_audit.ratings.http_get")
    def test_invalid_json_degrades(self, mock_get):
        """Test invalid JSON yields an all-null summary."""
        mock_get.return_value = b"<html>"
        assert fetch_rating(620).is_empty()
