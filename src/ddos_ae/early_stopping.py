"""Early-stopping state machine driven by validation loss."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class EpochOutcome(str, Enum):
    IMPROVED = "improved"
    STAGNATING = "stagnating"
    STOPPED = "stopped"


@dataclass
class TrainingState:
    """Mutable per-run training state, created at run start and dropped at the end."""

    epoch: int = 0
    best_val_loss: float = math.inf
    best_epoch: int = 0
    bad_epochs: int = 0
    lr: float = 0.0
    stopped: bool = False


class EarlyStopping:
    """Stop after ``patience`` consecutive epochs without an improvement above ``min_delta``.

    Improvement means ``best - current > min_delta``; a NaN loss never
    satisfies that, so diverging runs simply stagnate until they stop.
    """

    def __init__(self, patience: int, min_delta: float) -> None:
        if patience <= 0:
            raise ValueError("patience must be positive")
        self.patience = int(patience)
        self.min_delta = float(min_delta)

    def update(self, state: TrainingState, val_loss: float) -> EpochOutcome:
        if state.stopped:
            raise RuntimeError("update() called after early stopping already fired")

        state.epoch += 1
        if state.best_val_loss - val_loss > self.min_delta:
            state.best_val_loss = float(val_loss)
            state.best_epoch = state.epoch
            state.bad_epochs = 0
            return EpochOutcome.IMPROVED

        state.bad_epochs += 1
        if state.bad_epochs >= self.patience:
            state.stopped = True
            return EpochOutcome.STOPPED
        return EpochOutcome.STAGNATING
