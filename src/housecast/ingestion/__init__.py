"""
Collaborators consumed by the prediction service.

Training corpus providers and prediction log sinks, with file-backed
and in-memory implementations.
"""

from housecast.ingestion.base import PredictionLogSink, TrainingCorpusProvider
from housecast.ingestion.corpus import CsvTrainingCorpus, InMemoryTrainingCorpus
from housecast.ingestion.prediction_log import (
    InMemoryPredictionLog,
    JsonlPredictionLog,
    read_prediction_log,
)

__all__ = [
    "CsvTrainingCorpus",
    "InMemoryPredictionLog",
    "InMemoryTrainingCorpus",
    "JsonlPredictionLog",
    "PredictionLogSink",
    "TrainingCorpusProvider",
    "read_prediction_log",
]
