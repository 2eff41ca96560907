"""
Configuration unit tests.

Covers the count safety ceiling and the default seat count, from the
engine constant through the counter argument to the environment
variables read by the web service.
"""

import os
from unittest.mock import patch

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from counting.exceptions import CountConfigurationError
from counting.prstv import MAX_COUNTS, PRSTVCounter
from web.main import (
    DEFAULT_SEATS,
    app,
    get_default_seats,
    get_max_counts,
    set_max_counts,
)

CANDIDATES = [
    {"id": "A", "name": "Alice"},
    {"id": "B", "name": "Bob"},
    {"id": "C", "name": "Charlie"},
    {"id": "D", "name": "Diana"},
]


@pytest.mark.unit
class TestCounterCeiling:
    """Test the max_counts setting on the counter itself."""

    def test_default_ceiling(self):
        assert MAX_COUNTS == 20
        assert PRSTVCounter(CANDIDATES, total_seats=1).max_counts == MAX_COUNTS

    @pytest.mark.parametrize("max_counts", [0, -3])
    def test_rejects_ceiling_below_one(self, max_counts):
        with pytest.raises(CountConfigurationError, match="max_counts"):
            PRSTVCounter(CANDIDATES, total_seats=1, max_counts=max_counts)

    def test_ceiling_stops_eliminations(self):
        counter = PRSTVCounter(CANDIDATES, total_seats=1, max_counts=3)
        result = counter.run_full_count([])

        assert [c.id for c in result.final_results.eliminated_candidates] == ["A", "B"]
        assert [c.id for c in result.final_results.elected_candidates] == ["C"]
        assert [s.count for s in result.all_counts] == [1, 2, 3, 4]
        assert result.all_counts[-1].description.startswith("Final Count")


@pytest.mark.unit
class TestMaxCountsEnvironment:
    """Test PRSTV_MAX_COUNTS resolution in the web service."""

    def teardown_method(self):
        set_max_counts(None)

    @patch.dict("os.environ", {}, clear=True)
    def test_default(self):
        assert get_max_counts() == MAX_COUNTS

    @patch.dict("os.environ", {"PRSTV_MAX_COUNTS": "7"})
    def test_from_environment(self):
        assert get_max_counts() == 7

    @pytest.mark.parametrize("value", ["many", "0", "-2"])
    def test_invalid_environment(self, value):
        with patch.dict("os.environ", {"PRSTV_MAX_COUNTS": value}):
            with pytest.raises(HTTPException, match="Invalid PRSTV_MAX_COUNTS"):
                get_max_counts()

    @patch.dict("os.environ", {"PRSTV_MAX_COUNTS": "7"})
    def test_override_wins_over_environment(self):
        with patch("web.main.logger") as mock_logger:
            set_max_counts(5)

            assert get_max_counts() == 5
            assert os.environ["PRSTV_MAX_COUNTS"] == "5"
            mock_logger.info.assert_called()

    @patch.dict("os.environ", {})
    def test_reset_clears_environment(self):
        set_max_counts(4)
        set_max_counts(None)

        assert "PRSTV_MAX_COUNTS" not in os.environ
        assert get_max_counts() == MAX_COUNTS

    def test_set_rejects_zero(self):
        with pytest.raises(ValueError, match="at least 1"):
            set_max_counts(0)


@pytest.mark.unit
class TestDefaultSeatsEnvironment:
    """Test PRSTV_DEFAULT_SEATS resolution in the web service."""

    @patch.dict("os.environ", {}, clear=True)
    def test_default(self):
        assert get_default_seats() == DEFAULT_SEATS == 3

    @patch.dict("os.environ", {"PRSTV_DEFAULT_SEATS": "2"})
    def test_from_environment(self):
        assert get_default_seats() == 2

    @pytest.mark.parametrize("value", ["two", "0", "1.5"])
    def test_invalid_environment(self, value):
        with patch.dict("os.environ", {"PRSTV_DEFAULT_SEATS": value}):
            with pytest.raises(HTTPException, match="Invalid PRSTV_DEFAULT_SEATS"):
                get_default_seats()

    @patch.dict("os.environ", {"PRSTV_DEFAULT_SEATS": "two"})
    def test_count_request_reports_invalid_setting(self):
        client = TestClient(app)
        response = client.post(
            "/api/count", json={"candidates": CANDIDATES, "num_voters": 5, "seed": 1}
        )

        assert response.status_code == 500
        assert response.json()["detail"] == "Invalid PRSTV_DEFAULT_SEATS: 'two'"

    @patch.dict("os.environ", {"PRSTV_DEFAULT_SEATS": "two"})
    def test_explicit_seats_ignore_environment(self):
        client = TestClient(app)
        response = client.post(
            "/api/count",
            json={"candidates": CANDIDATES, "seats": 1, "num_voters": 5, "seed": 1},
        )

        assert response.status_code == 200
        assert response.json()["final_results"]["total_seats"] == 1
