"""Deterministic train/validation/test partitioning."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


@dataclass(frozen=True)
class Partition:
    """Index sets into the loaded flow table.

    ``train`` and ``val`` only hold benign rows; ``test`` is drawn from the
    whole population before benign filtering, so it keeps the class mix.
    Malicious rows outside ``test`` are never used and land in ``excluded``.
    """

    train: np.ndarray
    val: np.ndarray
    test: np.ndarray
    excluded: np.ndarray

    def sizes(self) -> dict:
        return {
            "train": int(self.train.size),
            "val": int(self.val.size),
            "test": int(self.test.size),
            "excluded": int(self.excluded.size),
        }

    def holdout(self, pct: float) -> Tuple[np.ndarray, np.ndarray]:
        """Split ``test`` into (calibration, evaluation) index arrays."""

        if not 0.0 < pct < 1.0:
            raise ValueError(f"holdout pct must be in (0, 1), got {pct}")
        cut = int(math.floor(self.test.size * pct))
        calibration, evaluation = self.test[:cut], self.test[cut:]
        if calibration.size == 0 or evaluation.size == 0:
            raise ValueError(
                f"Holdout split of {self.test.size} test rows at {pct} leaves an empty side"
            )
        return calibration, evaluation


def split_indices(
    labels: Sequence[int] | np.ndarray,
    test_pct: float,
    val_pct: float,
    seed: int,
) -> Partition:
    labels = np.asarray(labels)
    total = int(labels.shape[0])
    if total == 0:
        raise ValueError("Cannot split an empty dataset")

    rng = np.random.default_rng(seed)
    order = rng.permutation(total)

    test_n = int(math.floor(total * test_pct))
    test_idx = order[:test_n]
    rest = order[test_n:]

    benign_rest = rest[labels[rest] == 0]
    val_n = int(math.floor(benign_rest.size * val_pct))
    val_idx = benign_rest[:val_n]
    train_idx = benign_rest[val_n:]

    if train_idx.size == 0:
        raise ValueError(
            f"Training partition is empty ({benign_rest.size} benign rows outside the test split)"
        )
    if val_idx.size == 0:
        raise ValueError(
            f"Validation partition is empty ({benign_rest.size} benign rows, val_pct={val_pct})"
        )

    return Partition(train=train_idx, val=val_idx, test=test_idx, excluded=rest[labels[rest] != 0])


__all__ = ["Partition", "split_indices"]
