"""
Schema definitions for records and the training corpus.

Record types describe what flows through the pipeline; the Pandera
schema guards the training corpus at the system boundary.
"""

from housecast.schemas.records import (
    MAX_BEDROOMS,
    MAX_SQUARE_FOOTAGE,
    MIN_BEDROOMS,
    PredictionInput,
    PredictionResult,
    TrainingExample,
)
from housecast.schemas.training import (
    TRAINING_COLUMNS,
    TrainingExampleSchema,
    examples_to_frame,
    frame_to_examples,
)

__all__ = [
    "MAX_BEDROOMS",
    "MAX_SQUARE_FOOTAGE",
    "MIN_BEDROOMS",
    "TRAINING_COLUMNS",
    "PredictionInput",
    "PredictionResult",
    "TrainingExample",
    "TrainingExampleSchema",
    "examples_to_frame",
    "frame_to_examples",
]
