"""Configuration dataclasses and YAML loader."""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

DEFAULT_DATASET = Path("Data/Friday-WorkingHours-Afternoon-DDos.pcap_ISCX.csv")


@dataclass
class PathsConfig:
    """Where run artifacts are written."""

    artifacts_dir: Path = Path("Model")

    @property
    def scaler_path(self) -> Path:
        return self.artifacts_dir / "scaler.json"

    @property
    def threshold_path(self) -> Path:
        return self.artifacts_dir / "threshold.json"

    @property
    def best_model_path(self) -> Path:
        return self.artifacts_dir / "best_state.pt"

    @property
    def final_model_path(self) -> Path:
        return self.artifacts_dir / "ae.pt"

    @property
    def model_config_path(self) -> Path:
        return self.artifacts_dir / "model_config.json"

    @property
    def history_path(self) -> Path:
        return self.artifacts_dir / "train_metrics.csv"

    @property
    def metrics_path(self) -> Path:
        return self.artifacts_dir / "metrics.json"


@dataclass
class DataConfig:
    """Label parsing and partition sizes."""

    benign_label: str = "BENIGN"
    test_pct: float = 0.10
    val_pct: float = 0.10


@dataclass
class ModelConfig:
    """Feed-forward autoencoder shape."""

    hidden: List[int] = field(default_factory=lambda: [256, 128])
    latent_dim: int = 32
    activation: str = "ReLU"
    dropout: float = 0.0


@dataclass
class TrainConfig:
    """Optimizer, early stopping and plateau scheduler settings."""

    epochs: int = 100
    batch_size: int = 512
    lr: float = 1e-3
    patience: int = 3
    min_delta: float = 1e-4
    scheduler_patience: int = 3
    scheduler_factor: float = 0.5
    scheduler_threshold: float = 1e-4
    shuffle_batches: bool = False
    device: str = "auto"
    num_threads: Optional[int] = None


@dataclass
class ThresholdConfig:
    """Percentile grid and calibration source for the anomaly threshold."""

    grid_start: float = 0.900
    grid_stop: float = 0.999
    calibrate_on: str = "test"
    holdout_pct: float = 0.5


@dataclass
class Config:
    """Top-level run configuration."""

    seed: int = 42
    paths: PathsConfig = field(default_factory=PathsConfig)
    data: DataConfig = field(default_factory=DataConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    train: TrainConfig = field(default_factory=TrainConfig)
    threshold: ThresholdConfig = field(default_factory=ThresholdConfig)

    def as_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["paths"] = {key: str(value) for key, value in payload["paths"].items()}
        return payload

    def hash(self) -> str:
        canonical = json.dumps(self.as_dict(), sort_keys=True).encode("utf-8")
        return hashlib.sha256(canonical).hexdigest()

    def validate(self) -> "Config":
        if not 0.0 <= self.data.test_pct < 1.0:
            raise ValueError(f"data.test_pct must be in [0, 1), got {self.data.test_pct}")
        if not 0.0 < self.data.val_pct < 1.0:
            raise ValueError(f"data.val_pct must be in (0, 1), got {self.data.val_pct}")
        if self.train.batch_size <= 0:
            raise ValueError("train.batch_size must be positive")
        if self.train.epochs <= 0:
            raise ValueError("train.epochs must be positive")
        if self.train.patience <= 0:
            raise ValueError("train.patience must be positive")
        if not 0.0 < self.threshold.grid_start <= self.threshold.grid_stop < 1.0:
            raise ValueError("threshold grid must satisfy 0 < grid_start <= grid_stop < 1")
        if self.threshold.calibrate_on not in {"test", "holdout"}:
            raise ValueError(f"Unknown threshold.calibrate_on: {self.threshold.calibrate_on}")
        if self.threshold.calibrate_on == "holdout" and not 0.0 < self.threshold.holdout_pct < 1.0:
            raise ValueError("threshold.holdout_pct must be in (0, 1)")
        return self


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def config_from_dict(raw: Dict[str, Any]) -> Config:
    """Build a :class:`Config` from a plain mapping, filling in defaults."""

    paths_payload = dict(raw.get("paths") or {})
    if "artifacts_dir" in paths_payload:
        paths_payload["artifacts_dir"] = Path(paths_payload["artifacts_dir"])

    config = Config(
        seed=int(raw.get("seed", 42)),
        paths=PathsConfig(**paths_payload),
        data=DataConfig(**(raw.get("data") or {})),
        model=ModelConfig(**(raw.get("model") or {})),
        train=TrainConfig(**(raw.get("train") or {})),
        threshold=ThresholdConfig(**(raw.get("threshold") or {})),
    )
    return config.validate()


def load_config(path: Optional[Path | str] = None) -> Config:
    """Load a YAML configuration file; ``None`` returns the defaults.

    Relative ``paths.artifacts_dir`` values are kept relative to the working
    directory, matching how the CLI resolves the dataset path.
    """

    if path is None:
        return Config().validate()
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    return config_from_dict(_load_yaml(config_path))


__all__ = [
    "Config",
    "DataConfig",
    "DEFAULT_DATASET",
    "ModelConfig",
    "PathsConfig",
    "ThresholdConfig",
    "TrainConfig",
    "config_from_dict",
    "load_config",
]
