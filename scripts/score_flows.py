#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
from pathlib import Path

from ddos_ae.infer import score_csv
from ddos_ae.logging import configure_logging


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Score a flow CSV with a trained autoencoder")
    parser.add_argument("--csv", required=True, help="Flow CSV to score")
    parser.add_argument("--artifacts", default="Model", help="Artifacts directory from training")
    parser.add_argument("--out", required=True, help="Report JSON output path")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging()
    result = score_csv(Path(args.csv), Path(args.artifacts))
    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(result["report"], indent=2), encoding="utf-8")
    result["details"].to_csv(out_path.with_suffix(".csv"), index=False)


if __name__ == "__main__":
    main()
