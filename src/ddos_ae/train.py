"""Mini-batch training loop with plateau LR reduction and early stopping."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, List, Optional

import numpy as np
import torch
from torch import nn

from .checkpoint import CheckpointSink
from .config import TrainConfig
from .early_stopping import EarlyStopping, EpochOutcome, TrainingState
from .logging import get_logger
from .model import count_parameters
from .progress import progress


@dataclass
class EpochRecord:
    epoch: int
    train_loss: float
    val_loss: float
    lr: float
    outcome: str


@dataclass
class TrainingResult:
    history: List[EpochRecord] = field(default_factory=list)
    best_val_loss: float = float("inf")
    best_epoch: int = 0
    stopped_early: bool = False

    @property
    def epochs_run(self) -> int:
        return len(self.history)

    def history_rows(self) -> List[Dict[str, float]]:
        return [asdict(record) for record in self.history]


def to_tensor(data: np.ndarray) -> torch.Tensor:
    return torch.from_numpy(np.ascontiguousarray(data, dtype=np.float32))


def iter_batches(
    n_rows: int,
    batch_size: int,
    generator: Optional[torch.Generator] = None,
) -> Iterator[torch.Tensor]:
    """Yield row-index batches.

    Without a generator the order is sequential: ``[0, bs)``, ``[bs, 2*bs)``, ...
    with the last batch truncated. With a generator the rows are permuted first.
    """

    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    if generator is None:
        order = torch.arange(n_rows)
    else:
        order = torch.randperm(n_rows, generator=generator)
    for start in range(0, n_rows, batch_size):
        yield order[start:start + batch_size]


class Trainer:
    """Train an autoencoder on benign rows and keep the best validation snapshot."""

    def __init__(
        self,
        config: TrainConfig,
        sink: CheckpointSink,
        device: torch.device | None = None,
        seed: int = 0,
        show_progress: bool = False,
    ) -> None:
        self.config = config
        self.sink = sink
        self.device = device or torch.device("cpu")
        self.seed = seed
        self.show_progress = show_progress
        self.logger = get_logger("train")
        self.criterion = nn.MSELoss()

    def train_epoch(
        self,
        model: nn.Module,
        data: torch.Tensor,
        optimizer: torch.optim.Optimizer,
        generator: Optional[torch.Generator] = None,
    ) -> float:
        model.train()
        epoch_loss = 0.0
        batches = 0
        for index in iter_batches(data.shape[0], self.config.batch_size, generator):
            batch = data[index].to(self.device)

            optimizer.zero_grad()
            loss = self.criterion(model(batch), batch)
            loss.backward()
            optimizer.step()

            epoch_loss += float(loss.item())
            batches += 1
        return epoch_loss / max(batches, 1)

    def validation_loss(self, model: nn.Module, data: torch.Tensor) -> float:
        model.eval()
        with torch.no_grad():
            inputs = data.to(self.device)
            return float(self.criterion(model(inputs), inputs).item())

    def fit(self, model: nn.Module, train_data: np.ndarray, val_data: np.ndarray) -> TrainingResult:
        if len(train_data) == 0:
            raise ValueError("Training set is empty")
        if len(val_data) == 0:
            raise ValueError("Validation set is empty")

        x_train = to_tensor(train_data)
        x_val = to_tensor(val_data)
        model.to(self.device)

        optimizer = torch.optim.Adam(model.parameters(), lr=self.config.lr)
        scheduler = torch.optim.lr_scheduler.ReduceLROnPlateau(
            optimizer,
            mode="min",
            factor=self.config.scheduler_factor,
            patience=self.config.scheduler_patience,
            threshold=self.config.scheduler_threshold,
            threshold_mode="abs",
        )
        stopper = EarlyStopping(self.config.patience, self.config.min_delta)
        state = TrainingState(lr=self.config.lr)
        result = TrainingResult()

        generator = None
        if self.config.shuffle_batches:
            generator = torch.Generator().manual_seed(self.seed)

        self.logger.info(
            "training_start",
            epochs=self.config.epochs,
            params=count_parameters(model),
            batch_size=self.config.batch_size,
            train_rows=int(x_train.shape[0]),
            val_rows=int(x_val.shape[0]),
            device=str(self.device),
        )

        for _ in progress(range(self.config.epochs), desc="epochs", unit="epoch", disable=not self.show_progress):
            train_loss = self.train_epoch(model, x_train, optimizer, generator)
            val_loss = self.validation_loss(model, x_val)
            scheduler.step(val_loss)
            state.lr = float(optimizer.param_groups[0]["lr"])

            outcome = stopper.update(state, val_loss)
            if outcome is EpochOutcome.IMPROVED:
                self.sink.save(model)

            result.history.append(
                EpochRecord(
                    epoch=state.epoch,
                    train_loss=train_loss,
                    val_loss=val_loss,
                    lr=state.lr,
                    outcome=outcome.value,
                )
            )
            self.logger.info(
                "epoch_complete",
                epoch=state.epoch,
                train_loss=train_loss,
                val_loss=val_loss,
                lr=state.lr,
                outcome=outcome.value,
            )

            if outcome is EpochOutcome.STOPPED:
                self.logger.info("early_stopping", epoch=state.epoch, best_epoch=state.best_epoch)
                break

        self.sink.load(model)
        model.eval()
        self.logger.info("best_reloaded", best_epoch=state.best_epoch, best_val_loss=state.best_val_loss)

        result.best_val_loss = state.best_val_loss
        result.best_epoch = state.best_epoch
        result.stopped_early = state.stopped
        return result


__all__ = ["EpochRecord", "Trainer", "TrainingResult", "iter_batches", "to_tensor"]
