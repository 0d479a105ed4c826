"""
Tests for elevation sampling.

HTTP calls are mocked; no test talks to the real elevation service.
"""

from unittest.mock import MagicMock, Mock, patch

import pytest
import requests

from src.flowmap.elevation import (
    ElevationClient,
    ElevationSample,
    ElevationServiceError,
    sample_elevation_grid,
    sample_with_fallback,
    synthetic_elevation_grid,
)
from src.flowmap.geo import Bounds, LatLng, grid_locations


def _ok_response(locations, elevation=120.0):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {
        "status": "OK",
        "results": [
            {"elevation": elevation + k, "location": {"lat": p.lat, "lng": p.lng}, "resolution": 9.5}
            for k, p in enumerate(locations)
        ],
    }
    return response


def _session_answering_ok():
    """Session whose GET echoes one result per requested location."""
    session = MagicMock()

    def fake_get(url, params=None, timeout=None):
        pairs = params["locations"].split("|")
        locations = [LatLng(*map(float, pair.split(","))) for pair in pairs]
        return _ok_response(locations)

    session.get.side_effect = fake_get
    return session


class TestGridLocations:
    """Row-major lattice over the viewport."""

    def test_point_count(self, survey_bounds):
        assert len(grid_locations(survey_bounds, 20)) == 441

    def test_row_major_order(self, survey_bounds):
        locations = grid_locations(survey_bounds, 2)

        assert locations[0] == LatLng(survey_bounds.south_west.lat, survey_bounds.south_west.lng)
        # Second point steps east, fourth starts the next row north
        assert locations[1].lat == locations[0].lat
        assert locations[1].lng > locations[0].lng
        assert locations[3].lat > locations[0].lat
        assert locations[3].lng == locations[0].lng

    def test_rejects_zero_grid_size(self, survey_bounds):
        with pytest.raises(ValueError):
            grid_locations(survey_bounds, 0)

    def test_bounds_reject_inverted_latitudes(self):
        with pytest.raises(ValueError):
            Bounds(north_east=LatLng(1.0, 1.0), south_west=LatLng(2.0, 0.0))


class TestElevationClient:
    """Requests, batching and failure reporting."""

    def test_returns_sample_per_location_in_order(self):
        session = _session_answering_ok()
        client = ElevationClient(api_key="k", session=session)
        locations = [LatLng(47.6, -122.0), LatLng(47.61, -122.01)]

        samples = client.get_elevations(locations)

        assert [s.elevation for s in samples] == [120.0, 121.0]
        assert samples[1].lat == pytest.approx(47.61)

    def test_sends_locations_and_key(self):
        session = _session_answering_ok()
        client = ElevationClient(api_key="secret", base_url="https://example.test/elev", session=session)

        client.get_elevations([LatLng(1.5, 2.25)])

        args, kwargs = session.get.call_args
        assert args[0] == "https://example.test/elev"
        assert kwargs["params"]["locations"] == "1.500000,2.250000"
        assert kwargs["params"]["key"] == "secret"
        assert kwargs["timeout"] == client.timeout

    def test_splits_requests_at_location_cap(self):
        session = _session_answering_ok()
        client = ElevationClient(session=session, max_locations=500)
        locations = [LatLng(0.0, k * 0.001) for k in range(1201)]

        samples = client.get_elevations(locations)

        assert session.get.call_count == 3
        batch_sizes = [
            len(call.kwargs["params"]["locations"].split("|"))
            for call in session.get.call_args_list
        ]
        assert batch_sizes == [500, 500, 201]
        assert len(samples) == 1201
        assert samples[-1].lng == pytest.approx(1.2)

    @pytest.mark.parametrize("status", ["OVER_QUERY_LIMIT", "REQUEST_DENIED", "INVALID_REQUEST"])
    def test_non_ok_status_raises(self, status):
        session = MagicMock()
        response = Mock()
        response.json.return_value = {"status": status, "results": [], "error_message": "nope"}
        session.get.return_value = response
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError, match=status):
            client.get_elevations([LatLng(0.0, 0.0)])

    def test_network_error_raises(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("unreachable")
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError, match="unreachable"):
            client.get_elevations([LatLng(0.0, 0.0)])

    def test_timeout_raises(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout("slow")
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError):
            client.get_elevations([LatLng(0.0, 0.0)])

    def test_http_error_raises(self):
        session = MagicMock()
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")
        session.get.return_value = response
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError, match="500"):
            client.get_elevations([LatLng(0.0, 0.0)])

    def test_result_count_mismatch_raises(self):
        session = MagicMock()
        session.get.return_value = _ok_response([LatLng(0.0, 0.0)])
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError, match="Expected 2"):
            client.get_elevations([LatLng(0.0, 0.0), LatLng(0.0, 1.0)])

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            "OK",
            {"status": "OK", "results": {"elevation": 1.0}},
        ],
    )
    def test_payload_with_wrong_shape_raises(self, payload):
        session = MagicMock()
        response = Mock()
        response.json.return_value = payload
        session.get.return_value = response
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError):
            client.get_elevations([LatLng(0.0, 0.0)])

    @pytest.mark.parametrize(
        "result",
        [
            {"elevation": None},
            {"location": {"lat": 0.0, "lng": 0.0}},
            {"elevation": "high"},
            {"elevation": 12.0, "location": {"lat": None, "lng": 0.0}},
            None,
        ],
    )
    def test_malformed_result_raises(self, result):
        session = MagicMock()
        response = Mock()
        response.json.return_value = {"status": "OK", "results": [result]}
        session.get.return_value = response
        client = ElevationClient(session=session)

        with pytest.raises(ElevationServiceError, match="Malformed elevation result"):
            client.get_elevations([LatLng(0.0, 0.0)])

    def test_from_env_reads_api_key(self, monkeypatch):
        monkeypatch.setenv("ELEVATION_API_KEY", "from-env")

        client = ElevationClient.from_env()

        assert client.api_key == "from-env"

    def test_rejects_non_positive_cap(self):
        with pytest.raises(ValueError):
            ElevationClient(max_locations=0)


class TestSyntheticElevation:
    """Deterministic fallback terrain."""

    def test_is_deterministic(self, survey_bounds):
        assert synthetic_elevation_grid(survey_bounds, 20) == synthetic_elevation_grid(survey_bounds, 20)

    def test_hill_peaks_at_center(self, survey_bounds):
        samples = synthetic_elevation_grid(survey_bounds, 20)
        center = samples[10 * 21 + 10]
        corner = samples[0]

        assert center.elevation == pytest.approx(150.0)
        assert corner.elevation == pytest.approx(100.0)
        assert max(s.elevation for s in samples) == center.elevation

    def test_aligned_with_grid_locations(self, survey_bounds):
        samples = synthetic_elevation_grid(survey_bounds, 6)
        locations = grid_locations(survey_bounds, 6)

        assert [s.location for s in samples] == locations

    def test_respects_floor(self, survey_bounds):
        samples = synthetic_elevation_grid(survey_bounds, 8, base_elevation=10.0, floor=50.0)

        assert min(s.elevation for s in samples) >= 50.0


class TestSampling:
    """Grid sampling and fallback behavior."""

    def test_sample_elevation_grid_uses_lattice_coordinates(self, survey_bounds):
        client = MagicMock()
        client.get_elevations.side_effect = lambda locs: [
            ElevationSample(200.0, p.lat + 1.0, p.lng + 1.0) for p in locs
        ]

        samples = sample_elevation_grid(survey_bounds, 4, client)

        assert len(samples) == 25
        assert [s.location for s in samples] == grid_locations(survey_bounds, 4)
        assert all(s.elevation == 200.0 for s in samples)

    def test_fallback_on_service_error(self, survey_bounds):
        client = MagicMock()
        client.get_elevations.side_effect = ElevationServiceError("OVER_QUERY_LIMIT")

        samples, used_synthetic = sample_with_fallback(survey_bounds, 20, client)

        assert used_synthetic is True
        assert samples == synthetic_elevation_grid(survey_bounds, 20)

    def test_no_client_uses_synthetic(self, survey_bounds):
        samples, used_synthetic = sample_with_fallback(survey_bounds, 5, None)

        assert used_synthetic is True
        assert len(samples) == 36

    def test_success_does_not_fall_back(self, survey_bounds):
        client = ElevationClient(session=_session_answering_ok())

        samples, used_synthetic = sample_with_fallback(survey_bounds, 3, client)

        assert used_synthetic is False
        assert samples[0].elevation == 120.0

    def test_fallback_logs_warning(self, survey_bounds, caplog):
        client = MagicMock()
        client.get_elevations.side_effect = ElevationServiceError("boom")

        with caplog.at_level("WARNING", logger="src.flowmap.elevation"):
            sample_with_fallback(survey_bounds, 2, client)

        assert "falling back to synthetic" in caplog.text
