"""
Prediction service.

Owns the active model slot, lazily loads or trains a model, serves
predictions and hands each one to the prediction log.

State machine:
    UNINITIALIZED -> INITIALIZING -> READY
    READY -> TRAINING -> READY | FAILED

FAILED only records that the last training attempt failed; a model
that was active before the attempt keeps serving predictions.
"""

import threading
from collections.abc import Mapping
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

import pydantic

from housecast.config.settings import AppConfig
from housecast.errors import (
    HousecastError,
    ModelInitializationError,
    NoTrainingDataError,
    PredictionError,
    StoreError,
    TrainingError,
    ValidationError,
)
from housecast.ingestion.base import PredictionLogSink, TrainingCorpusProvider
from housecast.ingestion.corpus import CsvTrainingCorpus
from housecast.ingestion.prediction_log import JsonlPredictionLog
from housecast.modeling.inference import predict_price
from housecast.modeling.persistence import ArtifactManifest, ModelStore
from housecast.modeling.preprocessing import NormalizationParams
from housecast.modeling.training import TrainingOptions, TrainingResult, train_model
from housecast.schemas.records import PredictionInput, PredictionResult
from housecast.utils.logging import get_logger, log_context

log = get_logger(__name__)


class ServiceState(str, Enum):
    """Lifecycle state of the prediction service."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    TRAINING = "training"
    FAILED = "failed"


@dataclass(frozen=True)
class ActiveModel:
    """A model and the normalization parameters it was trained against."""

    model: Any
    normalization_params: NormalizationParams
    version: str | None = None
    trained_at: str | None = None


@dataclass(frozen=True)
class StatusSnapshot:
    """Read-only view of the service state."""

    state: ServiceState
    is_initialized: bool
    has_model: bool
    has_params: bool
    model_version: str | None = None
    trained_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        data = asdict(self)
        data["state"] = self.state.value
        return data


def validate_prediction_input(
    raw: PredictionInput | Mapping[str, Any],
) -> PredictionInput:
    """
    Validate caller input.

    Args:
        raw: A PredictionInput or a mapping with square_footage and bedrooms.

    Returns:
        Validated PredictionInput.

    Raises:
        ValidationError: Listing every violated constraint.
    """
    if isinstance(raw, PredictionInput):
        return raw
    if not isinstance(raw, Mapping):
        msg = f"Prediction input must be a mapping, got {type(raw).__name__}"
        raise ValidationError([msg])
    try:
        return PredictionInput.model_validate(dict(raw))
    except pydantic.ValidationError as e:
        violations = [
            f"{'.'.join(str(part) for part in err['loc'])}: "
            f"{err['msg'].removeprefix('Value error, ')}"
            for err in e.errors()
        ]
        raise ValidationError(violations) from e


class PredictionService:
    """
    Stateful facade over training, persistence and inference.

    The active model and its normalization parameters live in one
    immutable ActiveModel that is replaced wholesale, so every
    prediction reads a consistent pair.
    """

    def __init__(
        self,
        corpus: TrainingCorpusProvider,
        store: ModelStore,
        prediction_log: PredictionLogSink | None = None,
        training_options: TrainingOptions | None = None,
        *,
        background_logging: bool = True,
    ) -> None:
        """
        Initialize service.

        Args:
            corpus: Source of training examples.
            store: Model artifact store.
            prediction_log: Optional sink receiving every prediction.
            training_options: Options for train_new_model()
                (default: 200 epochs, batch size 4).
            background_logging: Record predictions on a worker thread
                instead of the calling thread.
        """
        self.corpus = corpus
        self.store = store
        self.prediction_log = prediction_log
        self.training_options = training_options or TrainingOptions(
            epochs=200, batch_size=4
        )

        self._active: ActiveModel | None = None
        self._state = ServiceState.UNINITIALIZED
        self._state_lock = threading.Lock()
        # Reentrant: the load path falls back to train_new_model() while holding it
        self._train_lock = threading.RLock()
        self._init_future: Future[None] | None = None

        self._log_executor: ThreadPoolExecutor | None = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="prediction-log")
            if background_logging and prediction_log is not None
            else None
        )

    # --- lifecycle ---

    @property
    def state(self) -> ServiceState:
        """Current lifecycle state."""
        return self._state

    def _set_state(self, state: ServiceState) -> None:
        with self._state_lock:
            previous = self._state
            self._state = state
        if previous != state:
            log.debug("Service state changed", old=previous.value, new=state.value)

    def _publish(self, active: ActiveModel) -> None:
        """Swap in a fully built model/params pair."""
        self._active = active

    def initialize(self) -> None:
        """
        Load the stored model, or train one if none exists.

        Concurrent callers share a single load-or-train run; the others
        wait for it and see its outcome.

        Raises:
            NoTrainingDataError: If training was needed but the corpus is empty.
            TrainingError: If training was needed and failed.
        """
        with self._state_lock:
            if self._active is not None:
                return
            if self._init_future is not None:
                future = self._init_future
                owner = False
            else:
                future = Future()
                self._init_future = future
                self._state = ServiceState.INITIALIZING
                owner = True

        if not owner:
            future.result()
            return

        try:
            self._load_or_train()
        except BaseException as e:
            with self._state_lock:
                self._init_future = None
                if self._active is None:
                    self._state = ServiceState.FAILED
            future.set_exception(e)
            raise

        with self._state_lock:
            self._init_future = None
        future.set_result(None)

    def _load_or_train(self) -> None:
        # Serialized with training so a load never replaces a newer model
        with self._train_lock:
            if self._active is not None:
                log.debug("Model became active while waiting, skipping load")
                return

            try:
                loaded = self.store.load()
            except StoreError as e:
                log.error("Stored model is unusable, training a new one", error=str(e))
                loaded = None

            if loaded is None:
                self.train_new_model()
                return

            self._publish(
                ActiveModel(
                    model=loaded.model,
                    normalization_params=loaded.normalization_params,
                    version=loaded.manifest.version,
                    trained_at=loaded.manifest.created_at,
                )
            )
            self._set_state(ServiceState.READY)
            log.info("Model loaded", version=loaded.manifest.version)

    def train_new_model(self) -> TrainingResult:
        """
        Train a model on the full corpus, persist it and make it active.

        On failure the previously active model (if any) stays active.

        Returns:
            The training result of the newly active model.

        Raises:
            NoTrainingDataError: If the corpus is empty.
            TrainingError: If fetching, fitting or persisting fails.
        """
        with self._train_lock:
            self._set_state(ServiceState.TRAINING)
            try:
                result, manifest = self._train_and_save()
            except BaseException:
                self._set_state(ServiceState.FAILED)
                raise

            with log_context(model_version=manifest.version):
                self._publish(
                    ActiveModel(
                        model=result.model,
                        normalization_params=result.normalization_params,
                        version=manifest.version,
                        trained_at=manifest.created_at,
                    )
                )
                self._set_state(ServiceState.READY)
                log.info(
                    "Model trained successfully",
                    n_samples=result.n_samples,
                    final_loss=f"{result.final_loss:.6f}",
                )
            return result

    def _train_and_save(self) -> tuple[TrainingResult, ArtifactManifest]:
        try:
            examples = self.corpus.fetch_all_training_examples()
        except Exception as e:
            msg = f"Could not fetch training data: {e}"
            raise TrainingError(msg) from e

        if not examples:
            msg = "No training data available"
            raise NoTrainingDataError(msg)

        log.info("Training model", n_samples=len(examples))
        try:
            result = train_model(examples, self.training_options)
        except HousecastError:
            raise
        except Exception as e:
            msg = f"Training failed: {e}"
            raise TrainingError(msg) from e

        try:
            manifest = self.store.save(
                result.model,
                result.normalization_params,
                final_loss=result.final_loss,
            )
        except StoreError as e:
            msg = f"Trained model could not be persisted: {e}"
            raise TrainingError(msg) from e

        return result, manifest

    def retrain(self) -> TrainingResult:
        """Train a new model regardless of the current state."""
        return self.train_new_model()

    # --- inference ---

    def predict(
        self, prediction_input: PredictionInput | Mapping[str, Any]
    ) -> PredictionResult:
        """
        Predict the sale price for one input.

        Args:
            prediction_input: PredictionInput or mapping with
                square_footage and bedrooms.

        Returns:
            PredictionResult.

        Raises:
            ValidationError: If the input violates a constraint.
            ModelInitializationError: If no model could be loaded or trained.
            PredictionError: If inference fails.
        """
        validated = validate_prediction_input(prediction_input)

        if self._active is None:
            try:
                self.initialize()
            except Exception as e:
                msg = f"Model initialization failed: {e}"
                raise ModelInitializationError(msg) from e

        active = self._active
        if active is None:
            msg = "Model initialization failed: no active model"
            raise ModelInitializationError(msg)

        try:
            result = predict_price(
                active.model, validated, active.normalization_params
            )
        except PredictionError:
            raise
        except Exception as e:
            msg = f"Prediction failed: {e}"
            raise PredictionError(msg) from e

        self._submit_log(validated, result)
        return result

    def _submit_log(
        self, prediction_input: PredictionInput, result: PredictionResult
    ) -> None:
        if self.prediction_log is None:
            return
        if self._log_executor is not None:
            try:
                self._log_executor.submit(self._record_safely, prediction_input, result)
                return
            except RuntimeError:
                # Executor already shut down
                pass
        self._record_safely(prediction_input, result)

    def _record_safely(
        self, prediction_input: PredictionInput, result: PredictionResult
    ) -> None:
        """Record a prediction; failures are logged, never raised."""
        try:
            self.prediction_log.record_prediction(prediction_input, result)
        except Exception as e:
            log.warning("Failed to record prediction", error=str(e))

    # --- introspection ---

    def get_status(self) -> StatusSnapshot:
        """Snapshot of the service state; no side effects."""
        active = self._active
        return StatusSnapshot(
            state=self._state,
            is_initialized=active is not None,
            has_model=active is not None and active.model is not None,
            has_params=active is not None and active.normalization_params is not None,
            model_version=active.version if active else None,
            trained_at=active.trained_at if active else None,
        )

    def close(self) -> None:
        """Wait for pending prediction log writes and stop the worker."""
        if self._log_executor is not None:
            self._log_executor.shutdown(wait=True)

    def __enter__(self) -> "PredictionService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def build_service(
    config: AppConfig, *, background_logging: bool = True
) -> PredictionService:
    """
    Wire a service from configuration.

    Uses the CSV training corpus, the JSON-lines prediction log and the
    configured artifact backend.

    Args:
        config: Application configuration.
        background_logging: Record predictions on a worker thread.

    Returns:
        Uninitialized PredictionService.
    """
    return PredictionService(
        corpus=CsvTrainingCorpus(config.data.training_data),
        store=ModelStore.from_config(config.store),
        prediction_log=JsonlPredictionLog(config.data.prediction_log),
        training_options=TrainingOptions.from_config(config.training),
        background_logging=background_logging,
    )
