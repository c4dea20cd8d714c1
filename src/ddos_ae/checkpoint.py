"""Sinks for the "best so far" model snapshot.

The trainer only calls ``save`` and ``load``; the filesystem sink is used for
real runs and the in-memory sink keeps tests free of disk I/O.
"""

from __future__ import annotations

import pickle
from pathlib import Path
from typing import Dict, Optional, Protocol

import torch
from torch import nn


class CheckpointError(RuntimeError):
    """The best checkpoint is missing or cannot be restored."""


class CheckpointSink(Protocol):
    def save(self, model: nn.Module) -> None:
        ...

    def load(self, model: nn.Module) -> None:
        ...


def _snapshot(model: nn.Module) -> Dict[str, torch.Tensor]:
    return {key: value.detach().cpu().clone() for key, value in model.state_dict().items()}


class FileCheckpointSink:
    """Overwrites a single ``state_dict`` file on every save.

    Only a file written through this sink is ever restored; a file left in
    place by an earlier run is ignored until ``save`` overwrites it.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.saves = 0

    def save(self, model: nn.Module) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        torch.save(_snapshot(model), self.path)
        self.saves += 1

    def load(self, model: nn.Module) -> None:
        if self.saves == 0:
            raise CheckpointError(f"No best checkpoint was recorded during training: {self.path}")
        if not self.path.exists():
            raise CheckpointError(f"Best checkpoint not found: {self.path}")
        try:
            state = torch.load(self.path, map_location="cpu", weights_only=True)
            model.load_state_dict(state)
        except (RuntimeError, ValueError, OSError, EOFError, pickle.UnpicklingError) as exc:
            raise CheckpointError(f"Failed to restore best checkpoint {self.path}: {exc}") from exc


class MemoryCheckpointSink:
    """Keeps the best ``state_dict`` in process memory."""

    def __init__(self) -> None:
        self.state: Optional[Dict[str, torch.Tensor]] = None
        self.saves = 0

    def save(self, model: nn.Module) -> None:
        self.state = _snapshot(model)
        self.saves += 1

    def load(self, model: nn.Module) -> None:
        if self.state is None:
            raise CheckpointError("No best checkpoint was recorded during training")
        model.load_state_dict(self.state)


def save_model(model: nn.Module, path: Path | str) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    torch.save(_snapshot(model), target)
    return target


__all__ = [
    "CheckpointError",
    "CheckpointSink",
    "FileCheckpointSink",
    "MemoryCheckpointSink",
    "save_model",
]
