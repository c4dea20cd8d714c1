"""CSV flow loader.

Reads CIC-IDS style flow exports: identifier and timestamp columns are
dropped, every remaining non-label column becomes a numeric feature, and the
label column is collapsed to 0 (benign) or 1 (anything else).
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

import numpy as np
import pandas as pd

SKIP_COLUMNS = ("FLOW ID", "SOURCE IP", "DESTINATION IP", "TIMESTAMP")
LABEL_COLUMN = "LABEL"


@dataclass(frozen=True)
class FlowDataset:
    features: np.ndarray
    labels: np.ndarray
    header: List[str]
    feature_names: List[str]

    def __len__(self) -> int:
        return int(self.labels.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.features.shape[1])

    def subset(self, indices: np.ndarray) -> "FlowDataset":
        return FlowDataset(
            features=self.features[indices],
            labels=self.labels[indices],
            header=self.header,
            feature_names=self.feature_names,
        )


def replace_invalid(df: pd.DataFrame) -> pd.DataFrame:
    return df.replace([np.inf, -np.inf], np.nan).fillna(0.0)


def _label_column(header: Sequence[str]) -> str:
    for name in header:
        if name.upper() == LABEL_COLUMN:
            return name
    return header[-1]


def parse_labels(values: pd.Series, benign_label: str) -> np.ndarray:
    """Return 0 for the benign token (case-insensitive, trimmed), 1 otherwise."""

    benign = benign_label.strip().upper()
    cleaned = values.fillna("").astype(str).str.strip().str.upper()
    # short rows leave the label cell empty; those count as benign
    cleaned = cleaned.mask(cleaned == "", benign)
    return (cleaned != benign).astype(np.int64).to_numpy()


def frame_to_dataset(raw: pd.DataFrame, benign_label: str = "BENIGN") -> FlowDataset:
    raw = raw.rename(columns=lambda name: str(name).strip())
    header = list(raw.columns)
    if not header:
        raise ValueError("Flow table has no columns")

    label_col = _label_column(header)
    feature_cols = [
        name for name in header
        if name != label_col and name.upper() not in SKIP_COLUMNS
    ]
    if not feature_cols:
        raise ValueError("Flow table has no numeric feature columns")

    numeric = raw[feature_cols].apply(
        lambda column: pd.to_numeric(column.astype(str).str.strip(), errors="coerce")
    )
    numeric = replace_invalid(numeric)

    return FlowDataset(
        features=numeric.to_numpy(dtype=np.float64),
        labels=parse_labels(raw[label_col], benign_label),
        header=header,
        feature_names=feature_cols,
    )


def load_flows(path: Path | str, benign_label: str = "BENIGN") -> FlowDataset:
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Dataset not found: {csv_path}")

    raw = pd.read_csv(csv_path, dtype=str, keep_default_na=False, low_memory=False)
    if raw.empty:
        raise ValueError(f"No flow records found in {csv_path}")
    return frame_to_dataset(raw, benign_label)


__all__ = ["FlowDataset", "frame_to_dataset", "load_flows", "parse_labels", "replace_invalid"]
