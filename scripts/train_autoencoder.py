#!/usr/bin/env python3
from __future__ import annotations

import argparse
from pathlib import Path

from ddos_ae.config import DEFAULT_DATASET, load_config
from ddos_ae.logging import configure_logging, get_logger
from ddos_ae.pipeline import run_training


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train the flow autoencoder and calibrate its threshold")
    parser.add_argument("--config", default="configs/config.yaml", help="Path to config.yaml")
    parser.add_argument("--csv", default=str(DEFAULT_DATASET), help="Flow CSV with a Label column")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    config = load_config(Path(args.config))
    report = run_training(config, Path(args.csv))
    logger = get_logger("train_script")
    logger.info(
        "training_artifacts",
        model=str(report.artifacts.model_path),
        scaler=str(report.artifacts.scaler_path),
        threshold=report.threshold.threshold,
    )


if __name__ == "__main__":
    main()
