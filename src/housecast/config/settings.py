"""
Typed configuration models using Pydantic.

All configuration is defined here with explicit typing and validation.
Hyperparameter defaults match the small two-feature corpus the model
is designed for.
"""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreBackend(str, Enum):
    """Storage medium for model artifacts."""

    LOCAL = "local"  # directory on local disk
    MEMORY = "memory"  # process memory, lost on exit


class TrainingConfig(BaseModel):
    """Model training configuration."""

    model_config = ConfigDict(frozen=True)

    epochs: int = Field(default=200, ge=1, le=10000)
    batch_size: int = Field(default=4, ge=1)
    validation_split: float = Field(default=0.2, ge=0.0, lt=1.0)
    learning_rate: float = Field(default=0.01, gt=0.0)
    seed: int | None = Field(
        default=None, description="Seed for weight init and shuffling (None = random)"
    )


class StoreConfig(BaseModel):
    """Model artifact store configuration."""

    model_config = ConfigDict(frozen=True)

    backend: StoreBackend = Field(default=StoreBackend.LOCAL)
    root: Path = Field(
        default=Path("./output/model"),
        description="Artifact directory (local backend only)",
    )
    keep_versions: int = Field(
        default=2, ge=1, description="Number of artifact versions kept after a save"
    )


class DataConfig(BaseModel):
    """Training corpus and prediction log locations."""

    model_config = ConfigDict(frozen=True)

    training_data: Path = Field(
        default=Path("./data/training_data.csv"),
        description="CSV with square_footage, bedrooms, price columns",
    )
    prediction_log: Path = Field(
        default=Path("./output/predictions.jsonl"),
        description="JSON-lines file receiving one record per prediction",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True)

    level: str = Field(default="INFO")
    json_output: bool = Field(default=False)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Ensure level is a known stdlib log level name."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            msg = f"Log level must be one of {sorted(allowed)}, got: {v!r}"
            raise ValueError(msg)
        return v.upper()


class AppConfig(BaseModel):
    """Complete application configuration."""

    model_config = ConfigDict(frozen=True)

    project: str = Field(default="housecast", description="Project identifier")

    training: TrainingConfig = Field(default_factory=TrainingConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
