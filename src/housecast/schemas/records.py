"""
Record types exchanged between the pipeline and its callers.

TrainingExample and PredictionResult are plain frozen dataclasses.
PredictionInput is a Pydantic model because it sits at the caller
boundary and carries the range/type validation rules.
"""

import math
import numbers
from dataclasses import asdict, dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

MAX_SQUARE_FOOTAGE = 10000.0
MIN_BEDROOMS = 1
MAX_BEDROOMS = 10


@dataclass(frozen=True)
class TrainingExample:
    """
    One row of the training corpus.

    Attributes:
        square_footage: Living area in square feet (> 0).
        bedrooms: Number of bedrooms (>= 1).
        price: Observed sale price (> 0).
    """

    square_footage: float
    bedrooms: int
    price: float


class PredictionInput(BaseModel):
    """Caller-supplied features for a single prediction."""

    model_config = ConfigDict(frozen=True)

    square_footage: float
    bedrooms: int

    @field_validator("square_footage", mode="before")
    @classmethod
    def validate_square_footage(cls, v: Any) -> float:
        """Require a finite number in (0, 10000]."""
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            msg = f"Square footage must be a number, got: {v!r}"
            raise ValueError(msg)
        value = float(v)
        if not math.isfinite(value):
            msg = f"Square footage must be a finite number, got: {v!r}"
            raise ValueError(msg)
        if value <= 0 or value > MAX_SQUARE_FOOTAGE:
            msg = f"Square footage must be a positive number up to 10,000, got: {v!r}"
            raise ValueError(msg)
        return value

    @field_validator("bedrooms", mode="before")
    @classmethod
    def validate_bedrooms(cls, v: Any) -> int:
        """Require an integer in [1, 10]; integral floats such as 3.0 pass."""
        if isinstance(v, bool) or not isinstance(v, numbers.Real):
            msg = f"Bedrooms must be an integer between 1 and 10, got: {v!r}"
            raise ValueError(msg)
        if not isinstance(v, numbers.Integral):
            as_float = float(v)
            if not (math.isfinite(as_float) and as_float.is_integer()):
                msg = f"Bedrooms must be an integer between 1 and 10, got: {v!r}"
                raise ValueError(msg)
        value = int(v)
        if value < MIN_BEDROOMS or value > MAX_BEDROOMS:
            msg = f"Bedrooms must be an integer between 1 and 10, got: {v!r}"
            raise ValueError(msg)
        return value


@dataclass(frozen=True)
class PredictionResult:
    """
    Outcome of a single prediction.

    Attributes:
        price: Predicted sale price, rounded to 2 decimals.
        confidence: Proximity-to-training-range score in [0.5, 1.0].
        timestamp: ISO-8601 instant the prediction was made.
    """

    price: float
    confidence: float
    timestamp: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return asdict(self)
