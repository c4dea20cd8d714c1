from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .metrics import confusion_matrix

GRID_RESOLUTION = 1000


@dataclass
class ThresholdResult:
    threshold: float
    percentile: Optional[float]
    f1: float
    source: str = "test"

    @property
    def fallback(self) -> bool:
        return self.percentile is None


def percentile_grid(start: float = 0.900, stop: float = 0.999) -> List[int]:
    """Grid steps in thousandths, inclusive on both ends (0.900 -> 900, ..., 0.999 -> 999)."""

    first = int(round(start * GRID_RESOLUTION))
    last = int(round(stop * GRID_RESOLUTION))
    if not 0 < first <= last < GRID_RESOLUTION:
        raise ValueError(f"Invalid percentile grid [{start}, {stop}]")
    return list(range(first, last + 1))


def candidate_thresholds(
    val_errors: Sequence[float],
    start: float = 0.900,
    stop: float = 0.999,
) -> List[Tuple[float, float]]:
    """Return ``(percentile, threshold)`` pairs read off the sorted validation errors.

    The rank is ``floor(p * n)`` computed in integer arithmetic so that grid
    points such as 0.9 never land one slot low through float rounding.
    """

    errors = np.sort(np.asarray(val_errors, dtype=float))
    n = errors.size
    if n == 0:
        raise ValueError("Cannot calibrate a threshold from an empty validation error set")
    return [
        (step / GRID_RESOLUTION, float(errors[(step * n) // GRID_RESOLUTION]))
        for step in percentile_grid(start, stop)
    ]


def calibrate_threshold(
    val_errors: Sequence[float],
    eval_errors: Sequence[float],
    eval_labels: Sequence[int],
    start: float = 0.900,
    stop: float = 0.999,
    source: str = "test",
) -> ThresholdResult:
    """Pick the grid threshold with the highest F1 on the labeled ``eval`` rows.

    Ties keep the first candidate found. If no candidate reaches an F1 above
    zero the largest validation error is used instead.
    """

    candidates = candidate_thresholds(val_errors, start, stop)

    best_f1 = 0.0
    best: Optional[Tuple[float, float]] = None
    for percentile, tau in candidates:
        f1 = confusion_matrix(eval_errors, eval_labels, tau).f1
        if f1 > best_f1:
            best_f1 = f1
            best = (percentile, tau)

    if best is None:
        return ThresholdResult(
            threshold=float(np.max(np.asarray(val_errors, dtype=float))),
            percentile=None,
            f1=0.0,
            source=source,
        )
    return ThresholdResult(threshold=best[1], percentile=best[0], f1=best_f1, source=source)


def save_threshold(result: ThresholdResult, path: Path | str) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(asdict(result), indent=2), encoding="utf-8")


def load_threshold(path: Path | str) -> ThresholdResult:
    source = Path(path)
    if not source.exists():
        raise FileNotFoundError(f"Threshold file not found: {source}")
    data = json.loads(source.read_text(encoding="utf-8"))
    if "threshold" not in data:
        raise ValueError(f"Threshold file {source} has no 'threshold' key")
    threshold = float(data["threshold"])
    if math.isnan(threshold):
        raise ValueError(f"Threshold file {source} holds NaN")
    percentile = data.get("percentile")
    return ThresholdResult(
        threshold=threshold,
        percentile=float(percentile) if percentile is not None else None,
        f1=float(data.get("f1", 0.0)),
        source=str(data.get("source", "test")),
    )
