from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

import numpy as np
import pandas as pd
import torch

from .config import ModelConfig, PathsConfig
from .loader import FlowDataset, load_flows
from .logging import get_logger
from .metrics import ConfusionMatrix, confusion_matrix, reconstruction_errors
from .model import FeedForwardAutoencoder, build_model
from .scaler import FlowScaler
from .seed import resolve_device
from .threshold import ThresholdResult, load_threshold


@dataclass
class Detector:
    model: FeedForwardAutoencoder
    scaler: FlowScaler
    threshold: ThresholdResult
    feature_names: List[str]
    benign_label: str
    device: torch.device

    def errors(self, features: np.ndarray) -> np.ndarray:
        return reconstruction_errors(self.model, self.scaler.transform(features), self.device)

    def score(self, dataset: FlowDataset) -> pd.DataFrame:
        if dataset.feature_names != self.feature_names:
            missing = sorted(set(self.feature_names) - set(dataset.feature_names))
            raise ValueError(f"Feature columns differ from the trained model (missing: {missing})")
        errors = self.errors(dataset.features)
        return pd.DataFrame(
            {
                "reconstruction_error": errors,
                "anomaly": (errors > self.threshold.threshold).astype(int),
                "label": dataset.labels,
            }
        )


def load_detector(artifacts_dir: Path | str, device: str = "auto") -> Detector:
    paths = PathsConfig(artifacts_dir=Path(artifacts_dir))
    if not paths.model_config_path.exists():
        raise FileNotFoundError(f"Model config not found in {paths.artifacts_dir}. Train the model first.")

    model_config = json.loads(paths.model_config_path.read_text(encoding="utf-8"))
    model = build_model(ModelConfig(**model_config["model"]), input_dim=int(model_config["input_dim"]))
    if not paths.final_model_path.exists():
        raise FileNotFoundError(f"Model weights not found: {paths.final_model_path}")
    state = torch.load(paths.final_model_path, map_location="cpu", weights_only=True)
    model.load_state_dict(state)

    torch_device = resolve_device(device)
    model.to(torch_device)
    model.eval()

    return Detector(
        model=model,
        scaler=FlowScaler.load(paths.scaler_path),
        threshold=load_threshold(paths.threshold_path),
        feature_names=list(model_config["feature_names"]),
        benign_label=str(model_config.get("benign_label", "BENIGN")),
        device=torch_device,
    )


def score_csv(csv_path: Path | str, artifacts_dir: Path | str) -> Dict[str, object]:
    logger = get_logger("infer")
    detector = load_detector(artifacts_dir)
    dataset = load_flows(csv_path, detector.benign_label)
    details = detector.score(dataset)
    summary: ConfusionMatrix = confusion_matrix(
        details["reconstruction_error"].to_numpy(),
        details["label"].to_numpy(),
        detector.threshold.threshold,
    )
    report = {
        "csv": str(csv_path),
        "rows": len(dataset),
        "anomalous_rows": int(details["anomaly"].sum()),
        "threshold": detector.threshold.threshold,
        "evaluation": summary.as_dict(),
    }
    logger.info("score_complete", rows=report["rows"], anomalous=report["anomalous_rows"])
    return {"report": report, "details": details}
