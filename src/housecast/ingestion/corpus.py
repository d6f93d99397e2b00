"""Training corpus providers."""

from collections.abc import Iterable
from pathlib import Path

import pandas as pd

from housecast.ingestion.base import TrainingCorpusProvider
from housecast.schemas.records import TrainingExample
from housecast.schemas.training import frame_to_examples
from housecast.utils.logging import get_logger

log = get_logger(__name__)


class CsvTrainingCorpus(TrainingCorpusProvider):
    """
    Training corpus stored as CSV.

    Expects columns square_footage, bedrooms and price; extra columns
    are ignored. Rows are validated with TrainingExampleSchema.
    """

    def __init__(self, path: Path) -> None:
        """
        Initialize corpus.

        Args:
            path: CSV file path.
        """
        super().__init__()
        self.path = Path(path)

    def _fetch(self) -> list[TrainingExample]:
        if not self.path.exists():
            msg = f"Training data not found: {self.path}"
            raise FileNotFoundError(msg)

        df = pd.read_csv(self.path)
        log.info("Loaded training data", path=str(self.path), rows=len(df))
        return frame_to_examples(df)


class InMemoryTrainingCorpus(TrainingCorpusProvider):
    """Fixed list of training examples."""

    def __init__(self, examples: Iterable[TrainingExample] = ()) -> None:
        super().__init__()
        self.examples = list(examples)

    def _fetch(self) -> list[TrainingExample]:
        return list(self.examples)
