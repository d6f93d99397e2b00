"""
Model artifact persistence (save/load).

A model artifact is the network topology, its weights and the
normalization parameters it was trained against. The three are always
written and read as one unit:

    <version>/topology.json       Keras model config
    <version>/weights.npz         weight arrays in layer order
    <version>/normalization.json  min/max per column
    manifest.json                 current version + blob checksums

Blobs of a new version are written first; writing the manifest is the
publish step. A reader therefore sees either the previous complete
artifact or the new complete artifact, never a mix.
"""

import io
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import numpy as np
from tensorflow import keras

from housecast.config.settings import StoreBackend, StoreConfig
from housecast.errors import StoreError
from housecast.modeling.models import compile_model
from housecast.modeling.preprocessing import NormalizationParams
from housecast.utils.hashing import hash_bytes, hash_mapping
from housecast.utils.logging import get_logger

log = get_logger(__name__)

MANIFEST_KEY = "manifest.json"
TOPOLOGY_BLOB = "topology.json"
WEIGHTS_BLOB = "weights.npz"
PARAMS_BLOB = "normalization.json"
BLOB_NAMES = (TOPOLOGY_BLOB, WEIGHTS_BLOB, PARAMS_BLOB)

MANIFEST_FORMAT = 1


class ArtifactBackend(ABC):
    """Byte-oriented key/value storage for artifact blobs."""

    @abstractmethod
    def get(self, key: str) -> bytes | None:
        """Return the blob stored under key, or None if absent."""
        ...

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """Store data under key, replacing any previous blob atomically."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...

    @abstractmethod
    def list_keys(self) -> list[str]:
        """List all stored keys."""
        ...


class LocalArtifactBackend(ArtifactBackend):
    """Blobs as files under a root directory."""

    _TMP_PREFIX = ".tmp-"

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / key

    def get(self, key: str) -> bytes | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            msg = f"Could not read artifact blob {path}: {e}"
            raise StoreError(msg) from e

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=self._TMP_PREFIX, dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            msg = f"Could not write artifact blob {path}: {e}"
            raise StoreError(msg) from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
            if path.parent != self.root and path.parent.exists():
                if not any(path.parent.iterdir()):
                    path.parent.rmdir()
        except OSError as e:
            msg = f"Could not delete artifact blob {path}: {e}"
            raise StoreError(msg) from e

    def list_keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file() and not p.name.startswith(self._TMP_PREFIX)
        )


class InMemoryArtifactBackend(ArtifactBackend):
    """Blobs in a dictionary; contents are lost when the process exits."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(key)

    def put(self, key: str, data: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(data)

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)

    def list_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)


def create_backend(config: StoreConfig) -> ArtifactBackend:
    """Instantiate the artifact backend selected in configuration."""
    if config.backend == StoreBackend.MEMORY:
        return InMemoryArtifactBackend()
    return LocalArtifactBackend(config.root)


@dataclass(frozen=True)
class ArtifactManifest:
    """
    Pointer to the current artifact version.

    Attributes:
        version: Version identifier (sortable, timestamp first).
        created_at: ISO timestamp when the artifact was saved.
        checksums: SHA-256 per blob name.
        final_loss: Training loss of the saved model, if known.
    """

    version: str
    created_at: str
    checksums: dict[str, str] = field(default_factory=dict)
    final_loss: float | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "format": MANIFEST_FORMAT,
            "version": self.version,
            "created_at": self.created_at,
            "final_loss": self.final_loss,
            "checksums": dict(self.checksums),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ArtifactManifest":
        """Parse a manifest dictionary."""
        if data.get("format") != MANIFEST_FORMAT:
            msg = f"Unsupported manifest format: {data.get('format')!r}"
            raise ValueError(msg)
        final_loss = data.get("final_loss")
        return cls(
            version=str(data["version"]),
            created_at=str(data["created_at"]),
            checksums={str(k): str(v) for k, v in data["checksums"].items()},
            final_loss=float(final_loss) if final_loss is not None else None,
        )


@dataclass
class LoadedArtifact:
    """A model rebuilt from storage together with its parameters."""

    model: keras.Model
    normalization_params: NormalizationParams
    manifest: ArtifactManifest


def _serialize_weights(weights: list[np.ndarray]) -> bytes:
    buffer = io.BytesIO()
    np.savez(buffer, **{f"w{i:03d}": w for i, w in enumerate(weights)})
    return buffer.getvalue()


def _deserialize_weights(data: bytes) -> list[np.ndarray]:
    with np.load(io.BytesIO(data), allow_pickle=False) as npz:
        return [npz[name] for name in sorted(npz.files)]


def _new_version(params: NormalizationParams) -> str:
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    return f"{stamp}-{hash_mapping(params.to_dict())[:8]}"


class ModelStore:
    """
    Saves and loads model artifacts through an ArtifactBackend.

    Saves and loads through one store instance are serialized; across
    processes the manifest-last write keeps readers consistent.
    """

    def __init__(self, backend: ArtifactBackend, keep_versions: int = 2) -> None:
        """
        Initialize store.

        Args:
            backend: Blob storage.
            keep_versions: Artifact versions retained after each save.
        """
        if keep_versions < 1:
            msg = f"keep_versions must be at least 1, got {keep_versions}"
            raise ValueError(msg)
        self.backend = backend
        self.keep_versions = keep_versions
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: StoreConfig) -> "ModelStore":
        """Build a store with the configured backend."""
        return cls(create_backend(config), keep_versions=config.keep_versions)

    def save(
        self,
        model: keras.Model,
        normalization_params: NormalizationParams,
        *,
        final_loss: float | None = None,
    ) -> ArtifactManifest:
        """
        Persist model and normalization parameters as a new version.

        Args:
            model: Trained Keras model.
            normalization_params: Parameters the model was trained against.
            final_loss: Optional training loss recorded in the manifest.

        Returns:
            Manifest of the published version.

        Raises:
            StoreError: If serialization or any write fails. The
                previously published version stays current.
        """
        try:
            blobs = {
                TOPOLOGY_BLOB: model.to_json().encode("utf-8"),
                WEIGHTS_BLOB: _serialize_weights(model.get_weights()),
                PARAMS_BLOB: json.dumps(
                    normalization_params.to_dict(), indent=2
                ).encode("utf-8"),
            }
        except (TypeError, ValueError) as e:
            msg = f"Could not serialize model artifact: {e}"
            raise StoreError(msg) from e

        with self._lock:
            version = _new_version(normalization_params)
            for name, data in blobs.items():
                self.backend.put(f"{version}/{name}", data)

            manifest = ArtifactManifest(
                version=version,
                created_at=datetime.now(timezone.utc).isoformat(),
                checksums={name: hash_bytes(data) for name, data in blobs.items()},
                final_loss=final_loss,
            )
            self.backend.put(
                MANIFEST_KEY, json.dumps(manifest.to_dict(), indent=2).encode("utf-8")
            )
            log.info("Saved model artifact", version=version)

            self._prune(current_version=version)

        return manifest

    def _read_manifest(self) -> ArtifactManifest | None:
        raw_manifest = self.backend.get(MANIFEST_KEY)
        if raw_manifest is None:
            return None
        try:
            return ArtifactManifest.from_dict(json.loads(raw_manifest))
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            msg = f"Corrupt artifact manifest: {e}"
            raise StoreError(msg) from e

    def _read_blobs(self, version: str) -> dict[str, bytes | None]:
        return {name: self.backend.get(f"{version}/{name}") for name in BLOB_NAMES}

    def load(self) -> LoadedArtifact | None:
        """
        Load the current artifact.

        If blobs of the manifest's version are missing, the manifest is
        read once more: another process may have published a newer
        version and pruned the one read first.

        Returns:
            LoadedArtifact, or None when no complete artifact exists yet.

        Raises:
            StoreError: If the artifact exists but is corrupt or unreadable.
        """
        with self._lock:
            manifest = self._read_manifest()
            if manifest is None:
                log.info("No model artifact found")
                return None
            blobs = self._read_blobs(manifest.version)

            if any(data is None for data in blobs.values()):
                latest = self._read_manifest()
                if latest is not None and latest.version != manifest.version:
                    log.debug(
                        "Manifest moved while loading",
                        old=manifest.version,
                        new=latest.version,
                    )
                    manifest = latest
                    blobs = self._read_blobs(manifest.version)

        missing = [name for name, data in blobs.items() if data is None]
        if missing:
            log.warning(
                "Model artifact incomplete", version=manifest.version, missing=missing
            )
            return None

        for name, data in blobs.items():
            expected = manifest.checksums.get(name)
            if expected != hash_bytes(data):
                msg = f"Checksum mismatch for {manifest.version}/{name}"
                raise StoreError(msg)

        try:
            params = NormalizationParams.from_dict(
                json.loads(blobs[PARAMS_BLOB].decode("utf-8"))
            )
        except (ValueError, KeyError, TypeError) as e:
            msg = f"Corrupt normalization parameters: {e}"
            raise StoreError(msg) from e

        try:
            model = keras.models.model_from_json(blobs[TOPOLOGY_BLOB].decode("utf-8"))
            model.set_weights(_deserialize_weights(blobs[WEIGHTS_BLOB]))
            compile_model(model)
        except Exception as e:
            msg = f"Could not rebuild model from artifact {manifest.version}: {e}"
            raise StoreError(msg) from e

        log.info("Loaded model artifact", version=manifest.version)
        return LoadedArtifact(
            model=model, normalization_params=params, manifest=manifest
        )

    def current_version(self) -> str | None:
        """Version named by the manifest, or None if nothing is published."""
        manifest = self._read_manifest()
        return manifest.version if manifest is not None else None

    def list_versions(self) -> list[str]:
        """All stored versions, oldest first."""
        return sorted(
            {key.split("/", 1)[0] for key in self.backend.list_keys() if "/" in key}
        )

    def _prune(self, current_version: str) -> None:
        """Delete versions beyond keep_versions, never the current one."""
        versions = [v for v in self.list_versions() if v != current_version]
        stale = versions[: max(len(versions) - (self.keep_versions - 1), 0)]
        for version in stale:
            for name in BLOB_NAMES:
                self.backend.delete(f"{version}/{name}")
        if stale:
            log.debug("Pruned old model artifacts", versions=stale)
