"""Tests for training corpora and prediction logs."""

import json

import pandera.errors
import pytest

from housecast.ingestion import (
    CsvTrainingCorpus,
    InMemoryPredictionLog,
    InMemoryTrainingCorpus,
    JsonlPredictionLog,
    read_prediction_log,
)
from housecast.ingestion.prediction_log import LOG_COLUMNS
from housecast.schemas.records import PredictionInput, PredictionResult, TrainingExample


def _prediction(square_footage: float, price: float) -> tuple[PredictionInput, PredictionResult]:
    return (
        PredictionInput(square_footage=square_footage, bedrooms=3),
        PredictionResult(price=price, confidence=0.95, timestamp="2024-01-01T00:00:00+00:00"),
    )


class TestCsvTrainingCorpus:
    """Tests for CsvTrainingCorpus."""

    def test_reads_seed_data(self, project_root, seed_examples) -> None:
        """The shipped seed CSV holds the eight seed rows."""
        corpus = CsvTrainingCorpus(project_root / "data" / "training_data.csv")
        assert corpus.fetch_all_training_examples() == seed_examples
        assert corpus.fetch_count == 1

    def test_extra_columns_ignored(self, tmp_path) -> None:
        """Columns beyond the three training columns are dropped."""
        path = tmp_path / "corpus.csv"
        path.write_text("id,square_footage,bedrooms,price\n7,1000,2,120000\n")

        examples = CsvTrainingCorpus(path).fetch_all_training_examples()

        assert examples == [
            TrainingExample(square_footage=1000.0, bedrooms=2, price=120000.0)
        ]

    def test_header_only_is_empty(self, tmp_path) -> None:
        """A CSV without rows yields no examples."""
        path = tmp_path / "corpus.csv"
        path.write_text("square_footage,bedrooms,price\n")
        assert CsvTrainingCorpus(path).fetch_all_training_examples() == []

    def test_invalid_row_rejected(self, tmp_path) -> None:
        """Rows violating the schema fail validation."""
        path = tmp_path / "corpus.csv"
        path.write_text("square_footage,bedrooms,price\n1000,2,-5\n")
        with pytest.raises(pandera.errors.SchemaError):
            CsvTrainingCorpus(path).fetch_all_training_examples()

    def test_fractional_bedrooms_rejected(self, tmp_path) -> None:
        """A bedroom count of 2.5 is an error, not 2."""
        path = tmp_path / "corpus.csv"
        path.write_text("square_footage,bedrooms,price\n1000,2.5,120000\n")
        with pytest.raises(pandera.errors.SchemaError):
            CsvTrainingCorpus(path).fetch_all_training_examples()

    def test_missing_file(self, tmp_path) -> None:
        """A missing CSV raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            CsvTrainingCorpus(tmp_path / "absent.csv").fetch_all_training_examples()


class TestInMemoryTrainingCorpus:
    """Tests for InMemoryTrainingCorpus."""

    def test_returns_copy_and_counts(self, seed_examples) -> None:
        """Every fetch returns a fresh list and is counted."""
        corpus = InMemoryTrainingCorpus(seed_examples)
        first = corpus.fetch_all_training_examples()
        first.clear()

        assert corpus.fetch_all_training_examples() == seed_examples
        assert corpus.fetch_count == 2


class TestPredictionLogs:
    """Tests for the prediction log sinks."""

    def test_in_memory_record(self) -> None:
        """Records are flat dictionaries with the log columns."""
        sink = InMemoryPredictionLog()
        sink.record_prediction(*_prediction(1500.0, 250000.0))

        assert sink.records == [
            {
                "square_footage": 1500.0,
                "bedrooms": 3,
                "predicted_price": 250000.0,
                "confidence": 0.95,
                "timestamp": "2024-01-01T00:00:00+00:00",
            }
        ]
        assert list(sink.records[0]) == LOG_COLUMNS

    def test_jsonl_appends(self, tmp_path) -> None:
        """Each prediction is one JSON line; parent folders are created."""
        path = tmp_path / "logs" / "predictions.jsonl"
        sink = JsonlPredictionLog(path)
        sink.record_prediction(*_prediction(1000.0, 100000.0))
        sink.record_prediction(*_prediction(2000.0, 200000.0))

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["predicted_price"] == 200000.0


class TestReadPredictionLog:
    """Tests for read_prediction_log."""

    def test_missing_file(self, tmp_path) -> None:
        """No log yet -> empty frame with the log columns."""
        df = read_prediction_log(tmp_path / "absent.jsonl")
        assert df.empty
        assert list(df.columns) == LOG_COLUMNS

    def test_newest_first_with_limit(self, tmp_path) -> None:
        """Most recent records come first; limit truncates."""
        path = tmp_path / "predictions.jsonl"
        sink = JsonlPredictionLog(path)
        for i in range(1, 4):
            sink.record_prediction(*_prediction(1000.0 * i, 100000.0 * i))

        df = read_prediction_log(path, limit=2)

        assert df["predicted_price"].tolist() == [300000.0, 200000.0]

    def test_malformed_lines_skipped(self, tmp_path) -> None:
        """Lines that are not JSON are ignored."""
        path = tmp_path / "predictions.jsonl"
        JsonlPredictionLog(path).record_prediction(*_prediction(1000.0, 100000.0))
        with path.open("a") as f:
            f.write("{truncated\n")

        df = read_prediction_log(path)

        assert len(df) == 1
        assert df.loc[0, "square_footage"] == 1000.0
