"""
Model training functionality.

Normalizes the corpus, builds a fresh network and fits it with a
held-out validation fraction, shuffling every epoch.
"""

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

import pandas as pd
from tensorflow import keras

from housecast.config.settings import TrainingConfig
from housecast.errors import TrainingError
from housecast.modeling.models import DEFAULT_LEARNING_RATE, build_model
from housecast.modeling.preprocessing import (
    NormalizationParams,
    compute_normalization_params,
    prepare_training_arrays,
)
from housecast.schemas.records import TrainingExample
from housecast.utils.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class TrainingOptions:
    """
    Options for a single training run.

    Attributes:
        epochs: Passes over the training data.
        batch_size: Examples per gradient update.
        validation_split: Fraction of examples held out for monitoring.
        learning_rate: Adam learning rate.
        seed: Seed for weight init and shuffling (None = random).
        callbacks: Extra Keras callbacks (e.g. per-epoch progress).
    """

    epochs: int = 100
    batch_size: int = 4
    validation_split: float = 0.2
    learning_rate: float = DEFAULT_LEARNING_RATE
    seed: int | None = None
    callbacks: tuple[keras.callbacks.Callback, ...] = ()

    @classmethod
    def from_config(cls, config: TrainingConfig) -> "TrainingOptions":
        """Build options from the training section of the app config."""
        return cls(
            epochs=config.epochs,
            batch_size=config.batch_size,
            validation_split=config.validation_split,
            learning_rate=config.learning_rate,
            seed=config.seed,
        )


@dataclass
class TrainingResult:
    """
    Container for a trained model with metadata.

    Attributes:
        model: Fitted Keras model.
        normalization_params: Parameters the model was trained against.
        final_loss: Training loss of the last epoch.
        history: Per-epoch metrics as reported by Keras.
        n_samples: Number of training examples.
        training_time_s: Wall-clock fit time in seconds.
    """

    model: keras.Model
    normalization_params: NormalizationParams
    final_loss: float
    history: dict[str, list[float]] = field(default_factory=dict)
    n_samples: int = 0
    training_time_s: float = 0.0


def _effective_validation_split(n_samples: int, validation_split: float) -> float:
    """Disable the hold-out when it would leave either side empty."""
    if validation_split <= 0:
        return 0.0
    split_at = math.floor(n_samples * (1.0 - validation_split))
    if split_at == 0 or split_at == n_samples:
        log.warning(
            "Too few samples for validation split, training on all samples",
            n_samples=n_samples,
            validation_split=validation_split,
        )
        return 0.0
    return validation_split


def train_model(
    examples: Sequence[TrainingExample] | pd.DataFrame,
    options: TrainingOptions | None = None,
) -> TrainingResult:
    """
    Train a price regression network on the given examples.

    Args:
        examples: Training examples (records or DataFrame).
        options: Training options (defaults: 100 epochs, batch 4, 20% hold-out).

    Returns:
        TrainingResult with the model, its normalization parameters and
        the final epoch's training loss.

    Raises:
        EmptyDatasetError: If there are no examples.
        TrainingError: If fitting fails or the loss is not finite.
    """
    if options is None:
        options = TrainingOptions()

    training_start = time.perf_counter()

    normalization_params = compute_normalization_params(examples)
    features, targets = prepare_training_arrays(examples, normalization_params)
    n_samples = len(features)

    log.info(
        "Starting training",
        n_samples=n_samples,
        epochs=options.epochs,
        batch_size=options.batch_size,
    )

    if options.seed is not None:
        keras.utils.set_random_seed(options.seed)

    model = build_model(learning_rate=options.learning_rate)
    validation_split = _effective_validation_split(n_samples, options.validation_split)

    try:
        history = model.fit(
            features,
            targets,
            epochs=options.epochs,
            batch_size=options.batch_size,
            validation_split=validation_split,
            shuffle=True,
            callbacks=[keras.callbacks.TerminateOnNaN(), *options.callbacks],
            verbose=0,
        )
    except Exception as e:
        msg = f"Model fit failed: {e}"
        raise TrainingError(msg) from e

    losses = history.history.get("loss", [])
    if not losses:
        msg = "Model fit produced no loss history"
        raise TrainingError(msg)

    final_loss = float(losses[-1])
    if not math.isfinite(final_loss):
        msg = f"Training diverged after {len(losses)} epochs (loss={final_loss})"
        raise TrainingError(msg)

    training_time_s = time.perf_counter() - training_start
    log.info(
        "Training complete",
        final_loss=f"{final_loss:.6f}",
        epochs_run=len(losses),
        training_time_s=f"{training_time_s:.2f}",
    )

    return TrainingResult(
        model=model,
        normalization_params=normalization_params,
        final_loss=final_loss,
        history={k: [float(v) for v in vals] for k, vals in history.history.items()},
        n_samples=n_samples,
        training_time_s=training_time_s,
    )


def evaluate_model(
    model: keras.Model,
    examples: Sequence[TrainingExample] | pd.DataFrame,
    normalization_params: NormalizationParams,
) -> float:
    """
    Compute the model's mean squared error on normalized examples.

    Args:
        model: Compiled Keras model.
        examples: Examples to evaluate on.
        normalization_params: Parameters the model was trained against.

    Returns:
        Loss (MSE in normalized price units).
    """
    features, targets = prepare_training_arrays(examples, normalization_params)
    scores = model.evaluate(features, targets, verbose=0, return_dict=True)
    return float(scores["loss"])
