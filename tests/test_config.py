"""Tests for configuration system."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from housecast.config import (
    AppConfig,
    LoggingConfig,
    StoreBackend,
    StoreConfig,
    TrainingConfig,
    load_config,
)


class TestTrainingConfig:
    """Tests for TrainingConfig."""

    def test_defaults(self) -> None:
        """Defaults match the small-corpus training setup."""
        config = TrainingConfig()
        assert config.epochs == 200
        assert config.batch_size == 4
        assert config.validation_split == 0.2
        assert config.learning_rate == 0.01
        assert config.seed is None

    def test_invalid_validation_split(self) -> None:
        """A split of 1.0 would leave nothing to train on."""
        with pytest.raises(ValidationError):
            TrainingConfig(validation_split=1.0)

    def test_invalid_epochs(self) -> None:
        """Epochs must be positive."""
        with pytest.raises(ValidationError):
            TrainingConfig(epochs=0)

    def test_frozen(self) -> None:
        """Config objects are immutable."""
        config = TrainingConfig()
        with pytest.raises(ValidationError):
            config.epochs = 10  # type: ignore[misc]


class TestStoreConfig:
    """Tests for StoreConfig."""

    def test_defaults(self) -> None:
        """Local backend is the default."""
        config = StoreConfig()
        assert config.backend == StoreBackend.LOCAL
        assert config.keep_versions == 2

    def test_backend_from_string(self) -> None:
        """Backend accepts its string value."""
        config = StoreConfig(backend="memory")
        assert config.backend == StoreBackend.MEMORY

    def test_invalid_backend(self) -> None:
        """Unknown backend names are rejected."""
        with pytest.raises(ValidationError):
            StoreConfig(backend="s3")


class TestLoggingConfig:
    """Tests for LoggingConfig."""

    def test_level_normalized(self) -> None:
        """Level names are upper-cased."""
        assert LoggingConfig(level="debug").level == "DEBUG"

    def test_invalid_level(self) -> None:
        """Unknown level names are rejected."""
        with pytest.raises(ValidationError, match="Log level must be one of"):
            LoggingConfig(level="verbose")


class TestLoadConfig:
    """Tests for YAML config loading."""

    def test_none_returns_defaults(self) -> None:
        """No path yields the default configuration."""
        assert load_config(None) == AppConfig()

    def test_minimal_config(self, tmp_path: Path) -> None:
        """Missing sections fall back to defaults."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("project: test-project\n")

        config = load_config(config_file)

        assert config.project == "test-project"
        assert config.training.epochs == 200
        assert config.store.backend == StoreBackend.LOCAL

    def test_base_config_inheritance(self, tmp_path: Path) -> None:
        """Main config overrides base.yaml in the same directory."""
        (tmp_path / "base.yaml").write_text(
            "training:\n  epochs: 50\n  batch_size: 8\nstore:\n  keep_versions: 3\n"
        )
        config_file = tmp_path / "config.yaml"
        config_file.write_text("training:\n  epochs: 10\n")

        config = load_config(config_file)

        assert config.training.epochs == 10
        assert config.training.batch_size == 8
        assert config.store.keep_versions == 3

    def test_env_var_interpolation(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """${VAR} and ${VAR:default} are resolved from the environment."""
        monkeypatch.setenv("HOUSECAST_TEST_ROOT", "/tmp/models")
        monkeypatch.delenv("HOUSECAST_TEST_LOG", raising=False)
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "store:\n"
            "  root: ${HOUSECAST_TEST_ROOT}\n"
            "data:\n"
            "  prediction_log: ${HOUSECAST_TEST_LOG:./fallback.jsonl}\n"
        )

        config = load_config(config_file)

        assert config.store.root == Path("/tmp/models")
        assert config.data.prediction_log == Path("./fallback.jsonl")

    def test_shipped_base_config(self, project_root: Path) -> None:
        """The repository's base.yaml validates."""
        config = load_config(project_root / "configs" / "base.yaml")
        assert config.project == "housecast"
        assert config.training.batch_size == 4
