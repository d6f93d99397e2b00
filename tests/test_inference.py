"""Tests for single-input price prediction and the confidence heuristic."""

from datetime import datetime

import numpy as np
import pytest

from housecast.errors import PredictionError
from housecast.modeling.inference import predict_price, range_confidence
from housecast.schemas.records import PredictionInput


class TestRangeConfidence:
    """Tests for range_confidence."""

    def test_midpoint_is_maximal(self) -> None:
        """The midpoint of the range scores exactly 1.0."""
        assert range_confidence(1700.0, 800.0, 2600.0) == pytest.approx(1.0)

    @pytest.mark.parametrize("edge", [800.0, 2600.0])
    def test_edges_score_point_nine(self, edge: float) -> None:
        """Either bound scores 0.9."""
        assert range_confidence(edge, 800.0, 2600.0) == pytest.approx(0.9)

    def test_just_outside_is_below_point_eight(self) -> None:
        """Leaving the range drops the score below 0.8."""
        score = range_confidence(2601.0, 800.0, 2600.0)
        assert 0.79 < score < 0.8

    def test_floor_at_half(self) -> None:
        """Distances of a full range width or more score 0.5."""
        assert range_confidence(4400.0, 800.0, 2600.0) == pytest.approx(0.5)
        assert range_confidence(1e9, 800.0, 2600.0) == pytest.approx(0.5)
        assert range_confidence(-1e9, 800.0, 2600.0) == pytest.approx(0.5)

    def test_bounds_hold_everywhere(self) -> None:
        """Scores stay in [0.5, 1.0] across a wide sweep."""
        for value in np.linspace(-5000, 10000, 301):
            score = range_confidence(float(value), 800.0, 2600.0)
            assert 0.5 <= score <= 1.0

    def test_only_midpoint_reaches_one(self) -> None:
        """Every value other than the midpoint scores below 1.0."""
        for value in [800.0, 1000.0, 1699.0, 1701.0, 2600.0, 3000.0]:
            assert range_confidence(value, 800.0, 2600.0) < 1.0

    def test_monotonic_outside_range(self) -> None:
        """Moving further outside never increases the score."""
        above = [range_confidence(v, 2.0, 5.0) for v in [5.0, 5.5, 6.0, 7.0, 8.0, 20.0]]
        below = [range_confidence(v, 2.0, 5.0) for v in [2.0, 1.5, 1.0, 0.0, -10.0]]
        assert above == sorted(above, reverse=True)
        assert below == sorted(below, reverse=True)

    def test_monotonic_inside_range(self) -> None:
        """Moving from the midpoint towards an edge never increases the score."""
        scores = [range_confidence(v, 800.0, 2600.0) for v in [1700, 2000, 2300, 2600]]
        assert scores == sorted(scores, reverse=True)

    def test_degenerate_range(self) -> None:
        """min == max scores 1.0 on the value and 0.5 elsewhere."""
        assert range_confidence(3.0, 3.0, 3.0) == 1.0
        assert range_confidence(4.0, 3.0, 3.0) == pytest.approx(0.5)


class TestPredictPrice:
    """Tests for predict_price with a constant-output model."""

    def test_concrete_example(self, constant_model, sample_params) -> None:
        """Normalized 0.75 over 150k-400k is 337,500.00."""
        result = predict_price(
            constant_model,
            PredictionInput(square_footage=1500, bedrooms=3),
            sample_params,
        )
        assert result.price == 337500.00
        assert 0.9 <= result.confidence <= 1.0
        assert constant_model.calls == 1

    def test_in_range_more_confident_than_out_of_range(
        self, constant_model, sample_params
    ) -> None:
        """In-range inputs score higher than far out-of-range inputs."""
        inside = predict_price(
            constant_model,
            PredictionInput(square_footage=1500, bedrooms=3),
            sample_params,
        )
        outside = predict_price(
            constant_model,
            PredictionInput(square_footage=5000, bedrooms=8),
            sample_params,
        )
        assert inside.confidence > outside.confidence
        assert outside.confidence == pytest.approx(0.5)

    def test_confidence_is_feature_average(self, constant_model, sample_params) -> None:
        """Confidence averages the two per-feature scores."""
        result = predict_price(
            constant_model,
            PredictionInput(square_footage=1700, bedrooms=8),
            sample_params,
        )
        assert result.confidence == pytest.approx((1.0 + 0.5) / 2)

    def test_price_rounded_to_cents(self, constant_model_factory, sample_params) -> None:
        """Prices carry at most two decimals."""
        model = constant_model_factory(0.123456789)
        result = predict_price(
            model, PredictionInput(square_footage=1500, bedrooms=3), sample_params
        )
        assert result.price == round(result.price, 2)

    def test_timestamp_is_iso8601(self, constant_model, sample_params) -> None:
        """Timestamps parse as timezone-aware ISO-8601."""
        result = predict_price(
            constant_model,
            PredictionInput(square_footage=1500, bedrooms=3),
            sample_params,
        )
        assert datetime.fromisoformat(result.timestamp).tzinfo is not None

    def test_non_finite_output_raises(
        self, constant_model_factory, sample_params
    ) -> None:
        """A NaN from the network is a prediction error."""
        model = constant_model_factory(float("nan"))
        with pytest.raises(PredictionError, match="non-finite"):
            predict_price(
                model, PredictionInput(square_footage=1500, bedrooms=3), sample_params
            )
