"""Pytest configuration and shared fixtures."""

from pathlib import Path

import numpy as np
import pytest

from housecast.modeling.preprocessing import FeatureRange, NormalizationParams
from housecast.schemas.records import TrainingExample


class ConstantModel:
    """Stand-in for a Keras model that always outputs the same value."""

    def __init__(self, value: float = 0.75) -> None:
        self.value = value
        self.calls = 0

    def predict_on_batch(self, batch: np.ndarray) -> np.ndarray:
        self.calls += 1
        return np.full((len(batch), 1), self.value, dtype=np.float32)


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def seed_examples() -> list[TrainingExample]:
    """The eight-row seed corpus."""
    rows = [
        (800, 2, 150000),
        (1200, 3, 200000),
        (1500, 3, 250000),
        (1800, 4, 300000),
        (2000, 4, 320000),
        (2200, 5, 360000),
        (2400, 4, 380000),
        (2600, 5, 400000),
    ]
    return [
        TrainingExample(square_footage=float(s), bedrooms=b, price=float(p))
        for s, b, p in rows
    ]


@pytest.fixture
def sample_params() -> NormalizationParams:
    """Normalization parameters of the seed corpus."""
    return NormalizationParams(
        square_footage=FeatureRange(min=800.0, max=2600.0),
        bedrooms=FeatureRange(min=2.0, max=5.0),
        price=FeatureRange(min=150000.0, max=400000.0),
    )


@pytest.fixture
def constant_model() -> ConstantModel:
    """Model returning normalized price 0.75 for any input."""
    return ConstantModel(0.75)


@pytest.fixture
def constant_model_factory() -> type[ConstantModel]:
    """Factory for constant-output models with a chosen value."""
    return ConstantModel
