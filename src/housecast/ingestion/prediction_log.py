"""
Prediction log sinks.

Each prediction becomes one flat record with the input features, the
predicted price, the confidence and the timestamp.
"""

import json
import threading
from pathlib import Path
from typing import Any

import pandas as pd

from housecast.ingestion.base import PredictionLogSink
from housecast.schemas.records import PredictionInput, PredictionResult
from housecast.utils.logging import get_logger

log = get_logger(__name__)

LOG_COLUMNS = [
    "square_footage",
    "bedrooms",
    "predicted_price",
    "confidence",
    "timestamp",
]


def _to_record(
    prediction_input: PredictionInput, result: PredictionResult
) -> dict[str, Any]:
    return {
        "square_footage": prediction_input.square_footage,
        "bedrooms": prediction_input.bedrooms,
        "predicted_price": result.price,
        "confidence": result.confidence,
        "timestamp": result.timestamp,
    }


class JsonlPredictionLog(PredictionLogSink):
    """Appends one JSON object per prediction to a file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def record_prediction(
        self, prediction_input: PredictionInput, result: PredictionResult
    ) -> None:
        line = json.dumps(_to_record(prediction_input, result))
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")


class InMemoryPredictionLog(PredictionLogSink):
    """Keeps prediction records in a list."""

    def __init__(self) -> None:
        self.records: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    def record_prediction(
        self, prediction_input: PredictionInput, result: PredictionResult
    ) -> None:
        with self._lock:
            self.records.append(_to_record(prediction_input, result))


def read_prediction_log(path: Path, limit: int | None = None) -> pd.DataFrame:
    """
    Read a JSON-lines prediction log, newest first.

    Lines that are not valid JSON are skipped with a warning.

    Args:
        path: Log file path.
        limit: Maximum number of records to return.

    Returns:
        DataFrame with LOG_COLUMNS (empty if the file does not exist).
    """
    path = Path(path)
    if not path.exists():
        return pd.DataFrame(columns=LOG_COLUMNS)

    records: list[dict[str, Any]] = []
    with path.open(encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError:
                log.warning("Skipping malformed log line", path=str(path), line=line_no)

    df = pd.DataFrame(records, columns=LOG_COLUMNS)
    df = df.iloc[::-1].reset_index(drop=True)
    if limit is not None:
        df = df.head(limit)
    return df
