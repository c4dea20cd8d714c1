from __future__ import annotations

import numpy as np
import pytest

from ddos_ae.loader import FlowDataset


def make_synthetic_flows(
    n_benign: int = 1000,
    n_anomalous: int = 100,
    n_features: int = 8,
    shifted_feature: int = 3,
    seed: int = 0,
) -> FlowDataset:
    """Benign rows lie near a 2-D subspace; anomalous rows have one feature pushed +10 std."""

    rng = np.random.default_rng(seed)
    total = n_benign + n_anomalous
    basis = rng.normal(size=(2, n_features))
    latent = rng.normal(size=(total, 2))
    features = latent @ basis + 0.05 * rng.normal(size=(total, n_features))

    benign_std = features[:n_benign, shifted_feature].std()
    features[n_benign:, shifted_feature] += 10.0 * benign_std

    labels = np.zeros(total, dtype=np.int64)
    labels[n_benign:] = 1

    names = [f"f{i}" for i in range(n_features)]
    return FlowDataset(features=features, labels=labels, header=names + ["Label"], feature_names=names)


@pytest.fixture
def synthetic_flows() -> FlowDataset:
    return make_synthetic_flows()
