"""
Inference for single price predictions.

Applies a trained model to one normalized input, maps the output back
to a price and scores how close the input lies to the training range.

The confidence score is a proximity-to-training-distribution proxy, not
a calibrated predictive interval: it only says whether the inputs look
like the data the model was fitted on.
"""

import math
from datetime import datetime, timezone
from typing import Any

import numpy as np

from housecast.errors import PredictionError
from housecast.modeling.preprocessing import (
    NormalizationParams,
    denormalize_price,
    normalize_features,
)
from housecast.schemas.records import PredictionInput, PredictionResult
from housecast.utils.logging import get_logger

log = get_logger(__name__)

# Confidence bands: in-range scores live in [0.9, 1.0],
# out-of-range scores in [0.5, 0.8)
IN_RANGE_BASE = 0.8
IN_RANGE_WEIGHT = 0.2
OUT_OF_RANGE_BASE = 0.8
OUT_OF_RANGE_PENALTY = 0.3


def range_confidence(value: float, min_value: float, max_value: float) -> float:
    """
    Score how well a value sits inside a training range.

    Inside [min, max] the score is 1.0 at the midpoint and falls
    linearly to 0.9 at either edge. Outside, it starts just below 0.8
    and falls with the distance to the nearest bound, floored at 0.5
    once the distance reaches the width of the range.

    A degenerate range (min == max) scores 1.0 for the exact value and
    0.5 for anything else.

    Args:
        value: Raw feature value.
        min_value: Training minimum of the feature.
        max_value: Training maximum of the feature.

    Returns:
        Confidence in [0.5, 1.0].
    """
    range_size = max_value - min_value

    if min_value <= value <= max_value:
        if range_size == 0:
            return 1.0
        middle = (min_value + max_value) / 2
        distance = abs(value - middle) / range_size
        return IN_RANGE_BASE + (1 - distance) * IN_RANGE_WEIGHT

    distance_to_range = min_value - value if value < min_value else value - max_value
    if range_size == 0:
        normalized_distance = 1.0
    else:
        normalized_distance = min(distance_to_range / range_size, 1.0)
    return OUT_OF_RANGE_BASE - normalized_distance * OUT_OF_RANGE_PENALTY


def _forward(model: Any, features: tuple[float, float]) -> float:
    """Run one forward pass and return the single normalized output."""
    batch = np.array([features], dtype=np.float32)
    output = np.asarray(model.predict_on_batch(batch))
    if output.size != 1:
        msg = f"Model returned {output.size} values, expected exactly 1"
        raise PredictionError(msg)
    return float(output.reshape(-1)[0])


def predict_price(
    model: Any,
    prediction_input: PredictionInput,
    normalization_params: NormalizationParams,
) -> PredictionResult:
    """
    Predict the sale price for one input.

    Args:
        model: Trained model exposing ``predict_on_batch`` (Keras API).
        prediction_input: Validated features.
        normalization_params: Parameters the model was trained against.

    Returns:
        PredictionResult with the 2-decimal price, confidence and timestamp.

    Raises:
        PredictionError: If the model output is malformed or not finite.
    """
    features = normalize_features(
        prediction_input.square_footage,
        prediction_input.bedrooms,
        normalization_params,
    )
    normalized_price = _forward(model, features)
    if not math.isfinite(normalized_price):
        msg = f"Model produced a non-finite output: {normalized_price}"
        raise PredictionError(msg)

    price = denormalize_price(normalized_price, normalization_params)

    sqft_confidence = range_confidence(
        prediction_input.square_footage,
        normalization_params.square_footage.min,
        normalization_params.square_footage.max,
    )
    bedrooms_confidence = range_confidence(
        prediction_input.bedrooms,
        normalization_params.bedrooms.min,
        normalization_params.bedrooms.max,
    )
    confidence = (sqft_confidence + bedrooms_confidence) / 2

    result = PredictionResult(
        price=round(price, 2),
        confidence=confidence,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
    log.debug(
        "Predicted price",
        square_footage=prediction_input.square_footage,
        bedrooms=prediction_input.bedrooms,
        price=result.price,
        confidence=f"{confidence:.3f}",
    )
    return result
