"""
Min/max normalization of features and target.

Maps square footage, bedrooms and price into [0, 1] using statistics
taken from the full training corpus, and back again for prices.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from housecast.errors import EmptyDatasetError
from housecast.schemas.records import TrainingExample
from housecast.schemas.training import (
    TRAINING_COLUMNS,
    TrainingExampleSchema,
    examples_to_frame,
)
from housecast.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class FeatureRange:
    """Observed [min, max] of one column."""

    min: float
    max: float

    def __post_init__(self) -> None:
        if self.min > self.max:
            msg = f"Range min must not exceed max, got min={self.min}, max={self.max}"
            raise ValueError(msg)

    @property
    def span(self) -> float:
        """Width of the range (0 for a degenerate range)."""
        return self.max - self.min

    def to_dict(self) -> dict[str, float]:
        """Convert to a JSON-serializable dictionary."""
        return {"min": self.min, "max": self.max}


@dataclass(frozen=True)
class NormalizationParams:
    """
    Normalization statistics derived from one training run.

    Always persisted and loaded together with the model trained on them.

    Attributes:
        square_footage: Range of the square footage feature.
        bedrooms: Range of the bedrooms feature.
        price: Range of the target.
    """

    square_footage: FeatureRange
    bedrooms: FeatureRange
    price: FeatureRange

    def to_dict(self) -> dict[str, dict[str, float]]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "square_footage": self.square_footage.to_dict(),
            "bedrooms": self.bedrooms.to_dict(),
            "price": self.price.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NormalizationParams":
        """
        Rebuild parameters from their dictionary form.

        Raises:
            KeyError: If a column or bound is missing.
            ValueError: If a bound is not numeric or min exceeds max.
        """
        return cls(
            **{
                column: FeatureRange(
                    min=float(data[column]["min"]),
                    max=float(data[column]["max"]),
                )
                for column in TRAINING_COLUMNS
            }
        )


def as_training_frame(
    examples: Sequence[TrainingExample] | pd.DataFrame,
) -> pd.DataFrame:
    """Accept examples as records or a DataFrame and return a validated frame."""
    if isinstance(examples, pd.DataFrame):
        return TrainingExampleSchema.validate(examples[TRAINING_COLUMNS])
    return examples_to_frame(examples)


def compute_normalization_params(
    examples: Sequence[TrainingExample] | pd.DataFrame,
) -> NormalizationParams:
    """
    Compute min/max of each column across all examples.

    Args:
        examples: Training examples (records or DataFrame).

    Returns:
        NormalizationParams for square footage, bedrooms and price.

    Raises:
        EmptyDatasetError: If there are no examples.
    """
    if len(examples) == 0:
        msg = "Cannot compute normalization parameters from an empty dataset"
        raise EmptyDatasetError(msg)

    df = as_training_frame(examples)
    params = NormalizationParams(
        **{
            column: FeatureRange(
                min=float(df[column].min()),
                max=float(df[column].max()),
            )
            for column in TRAINING_COLUMNS
        }
    )
    log.debug("Computed normalization parameters", params=params.to_dict())
    return params


def normalize(
    value: float | np.ndarray, min_value: float, max_value: float
) -> float | np.ndarray:
    """
    Map a value into [0, 1] relative to [min_value, max_value].

    A degenerate range (max == min) maps every value to 0. This happens
    when all training examples share one value for a column.

    Args:
        value: Scalar or array of raw values.
        min_value: Lower bound of the training range.
        max_value: Upper bound of the training range.

    Returns:
        Normalized value(s); values outside the range fall outside [0, 1].
    """
    if max_value == min_value:
        if isinstance(value, np.ndarray):
            return np.zeros_like(value, dtype=np.float64)
        return 0.0
    return (value - min_value) / (max_value - min_value)


def denormalize_price(normalized_price: float, params: NormalizationParams) -> float:
    """Inverse of price normalization."""
    return float(normalized_price * params.price.span + params.price.min)


def normalize_features(
    square_footage: float, bedrooms: float, params: NormalizationParams
) -> tuple[float, float]:
    """Normalize one (square_footage, bedrooms) pair."""
    return (
        float(
            normalize(square_footage, params.square_footage.min, params.square_footage.max)
        ),
        float(normalize(bedrooms, params.bedrooms.min, params.bedrooms.max)),
    )


def prepare_training_arrays(
    examples: Sequence[TrainingExample] | pd.DataFrame,
    params: NormalizationParams,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Build the normalized feature matrix and target vector.

    Args:
        examples: Training examples (records or DataFrame).
        params: Normalization parameters to apply.

    Returns:
        Tuple of (features, targets) with shapes (N, 2) and (N, 1), float32.
    """
    df = as_training_frame(examples)

    sqft = normalize(
        df["square_footage"].to_numpy(dtype=np.float64),
        params.square_footage.min,
        params.square_footage.max,
    )
    beds = normalize(
        df["bedrooms"].to_numpy(dtype=np.float64),
        params.bedrooms.min,
        params.bedrooms.max,
    )
    prices = normalize(
        df["price"].to_numpy(dtype=np.float64),
        params.price.min,
        params.price.max,
    )

    features = np.column_stack([sqft, beds]).astype(np.float32)
    targets = np.asarray(prices, dtype=np.float32).reshape(-1, 1)
    return features, targets
