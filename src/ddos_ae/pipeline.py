"""End-to-end run: split, scale, train, calibrate, evaluate, persist."""

from __future__ import annotations

import csv
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import torch

from .checkpoint import CheckpointSink, FileCheckpointSink, save_model
from .config import Config
from .loader import FlowDataset, load_flows
from .logging import get_logger
from .metrics import ConfusionMatrix, confusion_matrix, reconstruction_errors
from .model import build_model
from .scaler import FlowScaler
from .seed import resolve_device, seed_everything
from .split import Partition, split_indices
from .threshold import ThresholdResult, calibrate_threshold, save_threshold
from .train import Trainer, TrainingResult


@dataclass
class TrainingArtifacts:
    model_path: Path
    best_model_path: Path
    scaler_path: Path
    threshold_path: Path
    model_config_path: Path
    history_path: Path
    metrics_path: Path


@dataclass
class RunReport:
    partition: Partition
    training: TrainingResult
    threshold: ThresholdResult
    evaluation: ConfusionMatrix
    artifacts: TrainingArtifacts
    model: torch.nn.Module
    scaler: FlowScaler


def _write_history(result: TrainingResult, path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=["epoch", "train_loss", "val_loss", "lr", "outcome"])
        writer.writeheader()
        writer.writerows(result.history_rows())


def _write_json(payload: Dict, path: Path) -> None:
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def run_pipeline(
    config: Config,
    dataset: FlowDataset,
    sink: Optional[CheckpointSink] = None,
    show_progress: bool = False,
) -> RunReport:
    logger = get_logger("pipeline")

    seed_everything(config.seed)
    if config.train.num_threads:
        torch.set_num_threads(int(config.train.num_threads))
    device = resolve_device(config.train.device)

    paths = config.paths
    paths.artifacts_dir.mkdir(parents=True, exist_ok=True)

    partition = split_indices(dataset.labels, config.data.test_pct, config.data.val_pct, config.seed)
    if partition.test.size == 0:
        raise ValueError(f"Test partition is empty ({len(dataset)} rows, test_pct={config.data.test_pct})")
    logger.info("split_complete", **partition.sizes())

    scaler = FlowScaler().fit(dataset.features[partition.train])
    x_train = scaler.transform(dataset.features[partition.train])
    x_val = scaler.transform(dataset.features[partition.val])
    x_test = scaler.transform(dataset.features[partition.test])
    y_test = dataset.labels[partition.test]

    model = build_model(config.model, input_dim=dataset.n_features)
    if sink is None:
        sink = FileCheckpointSink(paths.best_model_path)
    trainer = Trainer(config.train, sink, device=device, seed=config.seed, show_progress=show_progress)
    training = trainer.fit(model, x_train, x_val)

    val_errors = reconstruction_errors(model, x_val, device)
    test_errors = reconstruction_errors(model, x_test, device)

    if config.threshold.calibrate_on == "holdout":
        # holdout() keeps test order: calibration rows first, evaluation rows after
        calib_idx, _ = partition.holdout(config.threshold.holdout_pct)
        calib_pos = np.arange(calib_idx.size)
        eval_pos = np.arange(calib_idx.size, partition.test.size)
    else:
        calib_pos = eval_pos = np.arange(partition.test.size)

    threshold = calibrate_threshold(
        val_errors,
        test_errors[calib_pos],
        y_test[calib_pos],
        start=config.threshold.grid_start,
        stop=config.threshold.grid_stop,
        source=config.threshold.calibrate_on,
    )
    logger.info(
        "threshold_selected",
        threshold=threshold.threshold,
        percentile=threshold.percentile,
        calibration_f1=threshold.f1,
        source=threshold.source,
        fallback=threshold.fallback,
    )

    evaluation = confusion_matrix(test_errors[eval_pos], y_test[eval_pos], threshold.threshold)
    logger.info("evaluation_complete", **evaluation.as_dict())

    save_model(model, paths.final_model_path)
    save_threshold(threshold, paths.threshold_path)
    scaler.save(paths.scaler_path)
    _write_json(
        {
            "input_dim": dataset.n_features,
            "model": {
                "hidden": list(config.model.hidden),
                "latent_dim": config.model.latent_dim,
                "activation": config.model.activation,
                "dropout": config.model.dropout,
            },
            "feature_names": dataset.feature_names,
            "benign_label": config.data.benign_label,
            "config_hash": config.hash(),
        },
        paths.model_config_path,
    )
    _write_history(training, paths.history_path)
    _write_json(
        {
            "evaluation": evaluation.as_dict(),
            "threshold": threshold.threshold,
            "percentile": threshold.percentile,
            "calibration_f1": threshold.f1,
            "calibration_source": threshold.source,
            "best_epoch": training.best_epoch,
            "best_val_loss": training.best_val_loss,
            "epochs_run": training.epochs_run,
            "stopped_early": training.stopped_early,
            "partition": partition.sizes(),
        },
        paths.metrics_path,
    )

    artifacts = TrainingArtifacts(
        model_path=paths.final_model_path,
        best_model_path=paths.best_model_path,
        scaler_path=paths.scaler_path,
        threshold_path=paths.threshold_path,
        model_config_path=paths.model_config_path,
        history_path=paths.history_path,
        metrics_path=paths.metrics_path,
    )
    logger.info("artifacts_saved", artifacts_dir=str(paths.artifacts_dir))

    return RunReport(
        partition=partition,
        training=training,
        threshold=threshold,
        evaluation=evaluation,
        artifacts=artifacts,
        model=model,
        scaler=scaler,
    )


def run_training(config: Config, csv_path: Path | str, show_progress: bool = True) -> RunReport:
    logger = get_logger("pipeline")
    dataset = load_flows(csv_path, config.data.benign_label)
    logger.info(
        "dataset_loaded",
        path=str(csv_path),
        rows=len(dataset),
        features=dataset.n_features,
        malicious=int(dataset.labels.sum()),
    )
    return run_pipeline(config, dataset, show_progress=show_progress)


__all__ = ["RunReport", "TrainingArtifacts", "run_pipeline", "run_training"]
