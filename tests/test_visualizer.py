"""Tests for flow-line and depth-label builders."""

import numpy as np
import pytest

from src.config import FlowConfig
from src.flowmap.flow_grid import FlowGrid
from src.flowmap.geo import LatLng
from src.flowmap.relaxation import FlowTransfer
from src.flowmap.visualizer import (
    ARROW_SCALE_RANGE,
    FLOW_COLOR,
    OPACITY_RANGE,
    WEIGHT_RANGE,
    build_depth_labels,
    build_flow_lines,
    flow_line_style,
    is_visible_transfer,
)


@pytest.fixture
def coordinate_grid():
    """3x3 grid with 0.01 degree spacing."""
    lat = 47.0 + 0.01 * np.arange(3)[:, None] * np.ones((1, 3))
    lng = -122.0 + 0.01 * np.ones((3, 1)) * np.arange(3)[None, :]
    return FlowGrid.from_elevations(np.zeros((3, 3)), lat=lat, lng=lng)


class TestVisibilityGate:
    """Threshold and sampling-stride filtering."""

    def test_small_transfer_is_hidden(self):
        transfer = FlowTransfer(0, (0, 0), (0, 1), 0.004)

        assert not is_visible_transfer(transfer)

    def test_transfer_at_threshold_is_hidden(self):
        transfer = FlowTransfer(0, (0, 0), (0, 1), 0.005)

        assert not is_visible_transfer(transfer)

    @pytest.mark.parametrize("iteration", [1, 2, 3, 4, 6, 49])
    def test_off_stride_iterations_are_hidden(self, iteration):
        transfer = FlowTransfer(iteration, (0, 0), (0, 1), 1.0)

        assert not is_visible_transfer(transfer)

    @pytest.mark.parametrize("iteration", [0, 5, 10, 45])
    def test_on_stride_large_transfer_is_visible(self, iteration):
        transfer = FlowTransfer(iteration, (0, 0), (0, 1), 0.01)

        assert is_visible_transfer(transfer)

    def test_custom_stride(self):
        config = FlowConfig(sample_stride=2, min_visible_flow=0.0)

        assert is_visible_transfer(FlowTransfer(4, (0, 0), (0, 1), 0.001), config)
        assert not is_visible_transfer(FlowTransfer(3, (0, 0), (0, 1), 0.001), config)


class TestFlowLineStyle:
    """Monotonic, clamped styling."""

    def test_values_clamped_to_ranges(self):
        tiny = flow_line_style(0.0)
        huge = flow_line_style(100.0)

        assert tiny["opacity"] == OPACITY_RANGE[0]
        assert tiny["weight"] == WEIGHT_RANGE[0]
        assert tiny["arrow_scale"] == ARROW_SCALE_RANGE[0]
        assert huge["opacity"] == OPACITY_RANGE[1]
        assert huge["weight"] == WEIGHT_RANGE[1]
        assert huge["arrow_scale"] == ARROW_SCALE_RANGE[1]

    def test_weight_is_monotonic(self):
        amounts = np.linspace(0.0, 0.2, 50)
        weights = [flow_line_style(a)["weight"] for a in amounts]

        assert all(b >= a for a, b in zip(weights, weights[1:]))

    def test_mid_range_weight(self):
        assert flow_line_style(0.03)["weight"] == pytest.approx(3.0)


class TestBuildFlowLines:
    """Line geometry and filtering."""

    def test_line_stops_short_of_target(self, coordinate_grid):
        transfers = [FlowTransfer(0, (0, 0), (1, 1), 0.01)]

        (line,) = build_flow_lines(coordinate_grid, transfers)

        assert line.start == LatLng(47.0, -122.0)
        assert line.end.lat == pytest.approx(47.009)
        assert line.end.lng == pytest.approx(-121.991)
        assert line.color == FLOW_COLOR
        assert line.source == (0, 0)
        assert line.target == (1, 1)

    def test_filters_invisible_transfers(self, coordinate_grid):
        transfers = [
            FlowTransfer(0, (0, 0), (0, 1), 0.01),
            FlowTransfer(0, (0, 1), (0, 2), 0.001),
            FlowTransfer(3, (1, 0), (1, 1), 0.5),
            FlowTransfer(5, (2, 0), (2, 1), 0.02),
        ]

        lines = build_flow_lines(coordinate_grid, transfers)

        assert [(l.iteration, l.source) for l in lines] == [(0, (0, 0)), (5, (2, 0))]

    def test_keys_are_unique_per_transfer(self, coordinate_grid):
        transfers = [
            FlowTransfer(0, (0, 0), (0, 1), 0.01),
            FlowTransfer(5, (0, 0), (0, 1), 0.01),
        ]

        lines = build_flow_lines(coordinate_grid, transfers)

        assert len({l.key for l in lines}) == 2


class TestDepthLabels:
    """Labels for pooled water."""

    def test_only_deep_cells_labelled(self, coordinate_grid):
        coordinate_grid.water_depth[:] = 0.01
        coordinate_grid.water_depth[2, 2] = 0.0508

        labels = build_depth_labels(coordinate_grid)

        assert len(labels) == 1
        label = labels[0]
        assert label.cell == (2, 2)
        assert label.text == '2.0"'
        assert label.title == "Water depth: 2.00 inches"
        assert label.position.lat == pytest.approx(47.02)
        assert label.position.lng == pytest.approx(-121.98)

    def test_custom_threshold(self, coordinate_grid):
        coordinate_grid.water_depth[:] = 0.01

        assert len(build_depth_labels(coordinate_grid, threshold=0.005)) == 9
