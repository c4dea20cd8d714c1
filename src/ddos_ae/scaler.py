from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

EPSILON = 1e-6


class FlowScaler:
    """
    Z-score scaler fitted on benign training flows:
      x_scaled = (x - mean) / (population_std + eps)

    The stored ``std_`` already includes ``eps`` so it is strictly positive,
    also for features that are constant in the training rows.

    Persistence is a JSON object ``{"mean": [...], "std": [...]}``; Python
    floats serialise with full double precision, so a reloaded scaler
    reproduces transforms bit for bit.
    """

    def __init__(self, eps: float = EPSILON):
        self.eps = float(eps)
        self.mean_: Optional[np.ndarray] = None
        self.std_: Optional[np.ndarray] = None

    @property
    def fitted(self) -> bool:
        return self.mean_ is not None and self.std_ is not None

    @property
    def n_features(self) -> int:
        if self.mean_ is None:
            raise RuntimeError("FlowScaler not fitted.")
        return int(self.mean_.shape[0])

    # -------- fit / transform --------
    def fit(self, X: np.ndarray) -> "FlowScaler":
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise ValueError(f"FlowScaler.fit expects 2D array, got shape {X.shape}")
        if X.shape[0] == 0:
            raise ValueError("Cannot fit scaler on zero training rows")
        mean = X.mean(axis=0)
        var = ((X - mean) ** 2).sum(axis=0) / X.shape[0]
        self.mean_ = mean
        self.std_ = np.sqrt(var) + self.eps
        return self

    def transform(self, X: np.ndarray) -> np.ndarray:
        if not self.fitted:
            raise RuntimeError("FlowScaler not fitted.")
        X = np.asarray(X, dtype=np.float64)
        if X.shape[-1] != self.n_features:
            raise ValueError(f"Feature dimension mismatch: got {X.shape[-1]}, expected {self.n_features}")
        return (X - self.mean_) / self.std_

    def fit_transform(self, X: np.ndarray) -> np.ndarray:
        return self.fit(X).transform(X)

    # -------- persistence --------
    def to_dict(self) -> Dict[str, Any]:
        if not self.fitted:
            raise RuntimeError("FlowScaler not fitted.")
        return {"mean": [float(v) for v in self.mean_], "std": [float(v) for v in self.std_]}

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "FlowScaler":
        if "mean" not in payload or "std" not in payload:
            raise ValueError("Scaler payload must contain 'mean' and 'std'")
        mean = np.asarray(payload["mean"], dtype=np.float64)
        std = np.asarray(payload["std"], dtype=np.float64)
        if mean.shape != std.shape or mean.ndim != 1:
            raise ValueError(f"Scaler arrays disagree: mean {mean.shape}, std {std.shape}")
        if np.any(std <= 0):
            raise ValueError("Scaler std entries must be strictly positive")
        obj = cls()
        obj.mean_ = mean
        obj.std_ = std
        return obj

    def save(self, path: Path | str) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(json.dumps(self.to_dict()), encoding="utf-8")

    @classmethod
    def load(cls, path: Path | str) -> "FlowScaler":
        source = Path(path)
        if not source.exists():
            raise FileNotFoundError(f"Scaler file not found: {source}")
        return cls.from_dict(json.loads(source.read_text(encoding="utf-8")))
