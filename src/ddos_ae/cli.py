from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Sequence

from .config import DEFAULT_DATASET, load_config
from .infer import score_csv
from .logging import configure_logging, get_logger, log_config
from .pipeline import run_training


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ddos-ae",
        description="Train the DDoS flow autoencoder and calibrate its anomaly threshold",
    )
    parser.add_argument(
        "csv",
        nargs="?",
        default=str(DEFAULT_DATASET),
        help=f"Flow CSV to train on (default: {DEFAULT_DATASET})",
    )
    parser.add_argument("--config", help="Optional path to config.yaml")
    return parser


def build_score_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ddos-ae-score", description="Score a flow CSV with trained artifacts")
    parser.add_argument("csv", help="Flow CSV to score")
    parser.add_argument("--artifacts", default="Model", help="Directory holding the trained artifacts")
    parser.add_argument("--out", help="Optional report JSON output path")
    parser.add_argument("--details", help="Optional CSV output path for per-row scores")
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    configure_logging()
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    logger = get_logger("cli")
    log_config(logger, config.as_dict())

    report = run_training(config, Path(args.csv))
    logger.info(
        "train_done",
        model=str(report.artifacts.model_path),
        threshold=report.threshold.threshold,
        f1=report.evaluation.f1,
    )


def score_main(argv: Sequence[str] | None = None) -> None:
    configure_logging()
    args = build_score_parser().parse_args(argv)

    result = score_csv(Path(args.csv), Path(args.artifacts))

    if args.out:
        out_path = Path(args.out)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(result["report"], indent=2), encoding="utf-8")
    if args.details:
        result["details"].to_csv(args.details, index=False)

    get_logger("cli").info(
        "score_done",
        anomalous=result["report"]["anomalous_rows"],
        rows=result["report"]["rows"],
    )


if __name__ == "__main__":
    main()
