"""Reconstruction errors, confusion counts and derived detection metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np
import torch
from sklearn import metrics
from torch import nn

from .model import FeedForwardAutoencoder


@dataclass(frozen=True)
class ConfusionMatrix:
    tp: int
    fp: int
    fn: int
    tn: int

    @property
    def total(self) -> int:
        return self.tp + self.fp + self.fn + self.tn

    @property
    def accuracy(self) -> float:
        return (self.tp + self.tn) / self.total if self.total else 0.0

    @property
    def precision(self) -> float:
        denom = self.tp + self.fp
        return self.tp / denom if denom else 0.0

    @property
    def recall(self) -> float:
        denom = self.tp + self.fn
        return self.tp / denom if denom else 0.0

    @property
    def f1(self) -> float:
        precision, recall = self.precision, self.recall
        denom = precision + recall
        return 2 * precision * recall / denom if denom else 0.0

    @property
    def false_positive_rate(self) -> float:
        denom = self.fp + self.tn
        return self.fp / denom if denom else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "tp": self.tp,
            "fp": self.fp,
            "fn": self.fn,
            "tn": self.tn,
            "total": self.total,
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
            "false_positive_rate": self.false_positive_rate,
        }


def reconstruction_errors(
    model: nn.Module,
    data: np.ndarray,
    device: torch.device | None = None,
    chunk_size: int = 65536,
) -> np.ndarray:
    """Per-row MSE between ``data`` (already scaled) and its reconstruction."""

    device = device or torch.device("cpu")
    rows = np.ascontiguousarray(data, dtype=np.float32)
    if rows.shape[0] == 0:
        return np.zeros(0, dtype=np.float64)

    model.eval()
    errors = []
    with torch.no_grad():
        for start in range(0, rows.shape[0], chunk_size):
            inputs = torch.from_numpy(rows[start:start + chunk_size]).to(device)
            batch_errors = FeedForwardAutoencoder.reconstruction_error(inputs, model(inputs))
            errors.append(batch_errors.detach().cpu().numpy())
    return np.concatenate(errors).astype(np.float64)


def confusion_matrix(errors: Sequence[float], labels: Sequence[int], threshold: float) -> ConfusionMatrix:
    """Flag a row as anomalous iff its error is strictly greater than ``threshold``."""

    y_true = np.asarray(labels, dtype=int)
    scores = np.asarray(errors, dtype=float)
    if y_true.shape != scores.shape:
        raise ValueError(f"errors {scores.shape} and labels {y_true.shape} differ in shape")
    if y_true.size == 0:
        return ConfusionMatrix(tp=0, fp=0, fn=0, tn=0)

    y_pred = (scores > threshold).astype(int)
    tn, fp, fn, tp = metrics.confusion_matrix(y_true, y_pred, labels=[0, 1]).ravel()
    return ConfusionMatrix(tp=int(tp), fp=int(fp), fn=int(fn), tn=int(tn))


__all__ = ["ConfusionMatrix", "confusion_matrix", "reconstruction_errors"]
