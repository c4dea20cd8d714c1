from __future__ import annotations

import math

import numpy as np
import pytest
import torch

from ddos_ae.checkpoint import CheckpointError, FileCheckpointSink, MemoryCheckpointSink
from ddos_ae.config import ModelConfig, TrainConfig
from ddos_ae.model import build_model
from ddos_ae.train import Trainer, iter_batches


def small_data(rows: int = 64, features: int = 6, seed: int = 0) -> np.ndarray:
    rng = np.random.default_rng(seed)
    return rng.normal(size=(rows, features))


def small_model(features: int = 6):
    torch.manual_seed(0)
    return build_model(ModelConfig(hidden=[8], latent_dim=3), input_dim=features)


def states_equal(left, right) -> bool:
    return all(torch.equal(left[key].cpu(), right[key].cpu()) for key in left)


class ScriptedTrainer(Trainer):
    """Replays fixed validation losses and snapshots the weights each epoch."""

    def __init__(self, losses, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.losses = list(losses)
        self.snapshots = []

    def validation_loss(self, model, data):
        self.snapshots.append({k: v.detach().clone() for k, v in model.state_dict().items()})
        return self.losses[len(self.snapshots) - 1]


def test_sequential_batches_truncate_last():
    batches = [batch.tolist() for batch in iter_batches(10, 4)]
    assert batches == [[0, 1, 2, 3], [4, 5, 6, 7], [8, 9]]


def test_shuffled_batches_are_seeded_permutations():
    first = torch.cat(list(iter_batches(50, 8, torch.Generator().manual_seed(5))))
    second = torch.cat(list(iter_batches(50, 8, torch.Generator().manual_seed(5))))

    assert torch.equal(first, second)
    assert sorted(first.tolist()) == list(range(50))
    assert not torch.equal(first, torch.arange(50))


def test_zero_learning_rate_stops_at_patience_plus_one():
    config = TrainConfig(epochs=20, batch_size=16, lr=0.0, patience=3)
    sink = MemoryCheckpointSink()
    result = Trainer(config, sink).fit(small_model(), small_data(), small_data(seed=1))

    assert result.epochs_run == 4
    assert result.stopped_early
    assert result.best_epoch == 1
    assert sink.saves == 1
    assert [record.outcome for record in result.history] == ["improved", "stagnating", "stagnating", "stopped"]


def test_reaching_max_epochs_without_stopping():
    config = TrainConfig(epochs=3, batch_size=16, lr=0.0, patience=5)
    result = Trainer(config, MemoryCheckpointSink()).fit(small_model(), small_data(), small_data(seed=1))

    assert result.epochs_run == 3
    assert not result.stopped_early


def test_best_checkpoint_is_restored_not_last_epoch():
    config = TrainConfig(epochs=10, batch_size=16, lr=0.01, patience=3)
    sink = MemoryCheckpointSink()
    trainer = ScriptedTrainer([1.0, 0.5, 0.8, 0.9, 0.95], config, sink)
    model = small_model()

    result = trainer.fit(model, small_data(), small_data(seed=1))

    assert result.best_epoch == 2
    assert result.best_val_loss == 0.5
    assert result.epochs_run == 5
    final_state = model.state_dict()
    assert states_equal(final_state, trainer.snapshots[1])
    assert not states_equal(final_state, trainer.snapshots[-1])


def test_real_run_restores_lowest_recorded_validation_loss():
    config = TrainConfig(epochs=15, batch_size=8, lr=0.05, patience=2)
    sink = MemoryCheckpointSink()
    trainer = Trainer(config, sink)
    model = small_model()
    val = small_data(seed=1)

    result = trainer.fit(model, small_data(), val)

    recorded = result.history[result.best_epoch - 1].val_loss
    assert recorded == result.best_val_loss
    assert trainer.validation_loss(model, torch.from_numpy(val.astype(np.float32))) == pytest.approx(recorded, rel=1e-5)
    assert min(r.val_loss for r in result.history) >= result.best_val_loss - config.min_delta


def test_plateau_scheduler_halves_learning_rate():
    config = TrainConfig(
        epochs=12,
        batch_size=16,
        lr=0.01,
        patience=20,
        scheduler_patience=1,
        scheduler_factor=0.5,
    )
    trainer = ScriptedTrainer([1.0] * 12, config, MemoryCheckpointSink())
    result = trainer.fit(small_model(), small_data(), small_data(seed=1))

    rates = [record.lr for record in result.history]
    assert rates[0] == pytest.approx(0.01)
    assert rates[-1] < rates[0]
    assert all(later <= earlier for earlier, later in zip(rates, rates[1:]))


def test_diverged_run_without_checkpoint_is_fatal():
    config = TrainConfig(epochs=5, batch_size=16, lr=0.01, patience=2)
    trainer = ScriptedTrainer([math.nan] * 5, config, MemoryCheckpointSink())
    with pytest.raises(CheckpointError):
        trainer.fit(small_model(), small_data(), small_data(seed=1))


def test_empty_validation_set_is_rejected():
    config = TrainConfig(epochs=2, batch_size=16)
    with pytest.raises(ValueError, match="Validation set is empty"):
        Trainer(config, MemoryCheckpointSink()).fit(small_model(), small_data(), np.empty((0, 6)))


def test_file_sink_roundtrip(tmp_path):
    path = tmp_path / "best_state.pt"
    sink = FileCheckpointSink(path)
    source = small_model()
    sink.save(source)

    torch.manual_seed(99)
    target = build_model(ModelConfig(hidden=[8], latent_dim=3), input_dim=6)
    sink.load(target)
    assert states_equal(source.state_dict(), target.state_dict())


def test_file_sink_missing_or_corrupt(tmp_path):
    missing = FileCheckpointSink(tmp_path / "missing.pt")
    missing.save(small_model())
    missing.path.unlink()
    with pytest.raises(CheckpointError, match="not found"):
        missing.load(small_model())

    corrupt = FileCheckpointSink(tmp_path / "corrupt.pt")
    corrupt.save(small_model())
    corrupt.path.write_bytes(b"not a checkpoint")
    with pytest.raises(CheckpointError):
        corrupt.load(small_model())


def test_file_sink_ignores_file_it_did_not_write(tmp_path):
    path = tmp_path / "best_state.pt"
    FileCheckpointSink(path).save(small_model())

    with pytest.raises(CheckpointError, match="No best checkpoint"):
        FileCheckpointSink(path).load(small_model())


def test_diverged_run_does_not_restore_stale_best_file(tmp_path):
    path = tmp_path / "best_state.pt"
    torch.manual_seed(123)
    stale = build_model(ModelConfig(hidden=[8], latent_dim=3), input_dim=6)
    torch.save(stale.state_dict(), path)

    config = TrainConfig(epochs=5, batch_size=16, lr=0.01, patience=2)
    trainer = ScriptedTrainer([math.nan] * 5, config, FileCheckpointSink(path))
    model = small_model()
    with pytest.raises(CheckpointError):
        trainer.fit(model, small_data(), small_data(seed=1))
    assert not states_equal(model.state_dict(), stale.state_dict())
