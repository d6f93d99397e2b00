"""
Error taxonomy for the prediction pipeline.

Every failure the core reports to its callers is one of these types.
"NotFound" from the model store is not an error: ``ModelStore.load()``
returns ``None`` when nothing has been trained yet.
"""


class HousecastError(Exception):
    """Base class for all housecast errors."""


class ValidationError(HousecastError):
    """Caller-supplied prediction input violates a range or type constraint.

    Attributes:
        violations: Human-readable description of each violated constraint.
    """

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        super().__init__("; ".join(self.violations) or "Invalid prediction input")


class EmptyDatasetError(HousecastError):
    """No training examples were given; min/max are undefined."""


class NoTrainingDataError(EmptyDatasetError):
    """The training corpus provider returned no examples."""


class ModelInitializationError(HousecastError):
    """Load-or-train did not produce a usable model."""


class StoreError(HousecastError):
    """Model artifact is present but unreadable, or could not be written."""


class TrainingError(HousecastError):
    """Fitting the network failed (for example a non-finite loss)."""


class PredictionError(HousecastError):
    """The forward pass or the output arithmetic failed."""
