"""Tests for the max movement filter buffer and its two veto queries."""

import logging

import pytest

from retest.strategy.movement_filter import MovementFilter


def _filter_with(*pairs: tuple[float, float]) -> MovementFilter:
    mf = MovementFilter()
    for high, low in pairs:
        mf.add(high, low)
    return mf


class TestAdd:
    def test_appends_high_then_low(self):
        mf = _filter_with((12.0, 10.0), (13.0, 11.0))
        assert mf.samples == [12.0, 10.0, 13.0, 11.0]
        assert len(mf) == 4

    @pytest.mark.parametrize("high,low", [(-1.0, 5.0), (5.0, -0.01), (-2.0, -3.0)])
    def test_rejects_negative_values_without_mutation(self, high, low):
        mf = _filter_with((12.0, 10.0))
        with pytest.raises(ValueError, match="non-negative"):
            mf.add(high, low)
        assert mf.samples == [12.0, 10.0]

    def test_zero_is_accepted(self):
        mf = _filter_with((0.0, 0.0))
        assert mf.samples == [0.0, 0.0]

    def test_reset_clears_buffer(self):
        mf = _filter_with((12.0, 10.0))
        mf.reset()
        assert len(mf) == 0


class TestHighToLowest:
    def test_range_above_threshold_vetoes(self, caplog):
        caplog.set_level(logging.INFO, logger="retest")
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        assert mf.high_to_low_range() == pytest.approx(7.0)
        assert mf.is_out_of_max_move_high_to_lowest(True, 5.0) is True
        assert "[MAX MOVEMENT HIGHEST TO LOWEST] : TRADE STOPPED" in caplog.text

    def test_range_below_threshold_passes(self):
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        assert mf.is_out_of_max_move_high_to_lowest(True, 8.0) is False

    def test_range_equal_to_threshold_passes(self):
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        assert mf.is_out_of_max_move_high_to_lowest(True, 7.0) is False

    def test_disabled_never_vetoes(self):
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        assert mf.is_out_of_max_move_high_to_lowest(False, 0.1) is False

    def test_empty_buffer_never_vetoes(self):
        assert MovementFilter().is_out_of_max_move_high_to_lowest(True, 0.1) is False

    def test_query_does_not_mutate(self):
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        mf.is_out_of_max_move_high_to_lowest(True, 5.0)
        assert mf.samples == [10.0, 12.0, 8.0, 15.0]


class TestFromOpen:
    def test_furthest_distance_from_entry(self):
        mf = _filter_with((10.0, 12.0), (8.0, 15.0))
        assert mf.furthest_from(11.0) == pytest.approx(4.0)

    def test_tie_reports_first_furthest_sample(self, caplog):
        caplog.set_level(logging.DEBUG, logger="retest")
        mf = _filter_with((99.0, 103.0))
        assert mf.furthest_from(101.0) == pytest.approx(2.0)
        assert "[MAX MOVEMENT OPEN TO HIGHEST] : Furthest value: 99.0" in caplog.text
        assert "Furthest value: 103.0" not in caplog.text

    def test_distance_above_threshold_vetoes(self, caplog):
        caplog.set_level(logging.INFO, logger="retest")
        mf = _filter_with((101.5, 100.2))
        assert mf.is_out_of_max_move_from_open(True, 101.0, 1.0, 100.0) is True
        assert "[MAX MOVEMENT OPEN TO HIGHEST] : TRADE STOPPED" in caplog.text

    def test_distance_within_threshold_passes(self):
        mf = _filter_with((100.8, 99.6))
        assert mf.is_out_of_max_move_from_open(True, 100.0, 1.0, 100.0) is False

    def test_anchor_is_entry_price_not_current_close(self):
        mf = _filter_with((100.5, 100.0))
        # A far-away close does not matter; only the entry anchors the distance
        assert mf.is_out_of_max_move_from_open(True, 250.0, 1.0, 100.0) is False
        assert mf.is_out_of_max_move_from_open(True, 100.0, 1.0, 90.0) is True

    def test_disabled_never_vetoes(self):
        mf = _filter_with((150.0, 50.0))
        assert mf.is_out_of_max_move_from_open(False, 100.0, 1.0, 100.0) is False

    def test_empty_buffer_never_vetoes(self):
        assert MovementFilter().is_out_of_max_move_from_open(True, 100.0, 0.1, 100.0) is False


class TestFailures:
    def test_empty_distances_log_error_and_return_zero(self, caplog):
        mf = MovementFilter()
        assert mf.furthest_from(100.0) == 0.0
        assert mf.high_to_low_range() == 0.0
        assert "[ERROR] barData is empty." in caplog.text

    def test_computation_failure_is_not_a_veto(self, monkeypatch, caplog):
        mf = _filter_with((150.0, 50.0))

        def _boom(*args, **kwargs):
            raise RuntimeError("bad sample")

        monkeypatch.setattr(mf, "furthest_from", _boom)
        monkeypatch.setattr(mf, "high_to_low_range", _boom)

        assert mf.is_out_of_max_move_from_open(True, 100.0, 1.0, 100.0) is False
        assert mf.is_out_of_max_move_high_to_lowest(True, 1.0) is False
        assert "[ERROR] Failed to calculate distance: bad sample" in caplog.text
