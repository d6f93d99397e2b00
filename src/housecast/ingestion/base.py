"""
Base classes for the service's external collaborators.

The service only depends on these interfaces; storage details of the
corpus and the prediction log live in the implementations.
"""

import threading
from abc import ABC, abstractmethod

from housecast.schemas.records import (
    PredictionInput,
    PredictionResult,
    TrainingExample,
)


class TrainingCorpusProvider(ABC):
    """
    Source of the full training corpus.

    Counts fetches so callers can observe how often training data was read.
    """

    def __init__(self) -> None:
        self._fetch_count = 0
        self._count_lock = threading.Lock()

    @abstractmethod
    def _fetch(self) -> list[TrainingExample]:
        """Read all examples from the source. Implemented by subclasses."""
        ...

    def fetch_all_training_examples(self) -> list[TrainingExample]:
        """
        Return every training example.

        Returns:
            List of examples (possibly empty).
        """
        with self._count_lock:
            self._fetch_count += 1
        return self._fetch()

    @property
    def fetch_count(self) -> int:
        """Number of fetch_all_training_examples() calls so far."""
        return self._fetch_count


class PredictionLogSink(ABC):
    """Destination for prediction records (best-effort)."""

    @abstractmethod
    def record_prediction(
        self, prediction_input: PredictionInput, result: PredictionResult
    ) -> None:
        """
        Record one prediction.

        Args:
            prediction_input: Features the prediction was made for.
            result: The prediction returned to the caller.
        """
        ...
