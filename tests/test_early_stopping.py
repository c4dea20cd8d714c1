from __future__ import annotations

import math

import pytest

from ddos_ae.early_stopping import EarlyStopping, EpochOutcome, TrainingState


def run_sequence(losses, patience=3, min_delta=1e-4):
    stopper = EarlyStopping(patience, min_delta)
    state = TrainingState()
    outcomes = []
    for loss in losses:
        outcome = stopper.update(state, loss)
        outcomes.append(outcome)
        if outcome is EpochOutcome.STOPPED:
            break
    return state, outcomes


def test_stops_at_patience_plus_one_without_improvement():
    state, outcomes = run_sequence([1.0] * 10, patience=3)

    assert state.epoch == 4
    assert state.stopped
    assert outcomes[0] is EpochOutcome.IMPROVED
    assert outcomes[1:3] == [EpochOutcome.STAGNATING, EpochOutcome.STAGNATING]
    assert outcomes[-1] is EpochOutcome.STOPPED
    assert state.best_epoch == 1


def test_improvement_resets_the_counter():
    state, outcomes = run_sequence([1.0, 0.9, 0.9, 0.9, 0.5, 0.5, 0.5, 0.5, 0.1], patience=3)

    assert state.epoch == 8
    assert state.best_epoch == 5
    assert state.best_val_loss == 0.5
    assert outcomes[4] is EpochOutcome.IMPROVED


def test_gain_below_min_delta_is_not_improvement():
    state, outcomes = run_sequence([1.0, 1.0 - 5e-5, 1.0 - 9e-5], patience=5, min_delta=1e-4)

    assert outcomes[1:] == [EpochOutcome.STAGNATING, EpochOutcome.STAGNATING]
    assert state.best_val_loss == 1.0
    assert state.bad_epochs == 2


def test_nan_losses_never_improve():
    state, outcomes = run_sequence([math.nan] * 5, patience=3)

    assert state.epoch == 3
    assert state.best_epoch == 0
    assert math.isinf(state.best_val_loss)
    assert outcomes[-1] is EpochOutcome.STOPPED


def test_update_after_stop_is_rejected():
    stopper = EarlyStopping(patience=1, min_delta=0.0)
    state = TrainingState()
    stopper.update(state, 1.0)
    assert stopper.update(state, 1.0) is EpochOutcome.STOPPED
    with pytest.raises(RuntimeError):
        stopper.update(state, 0.1)


def test_patience_must_be_positive():
    with pytest.raises(ValueError):
        EarlyStopping(patience=0, min_delta=1e-4)
