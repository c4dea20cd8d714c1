from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
import torch

from ddos_ae.config import Config, config_from_dict, load_config
from ddos_ae.seed import resolve_device, seed_everything

REPO_CONFIG = Path(__file__).resolve().parents[1] / "configs" / "config.yaml"


def test_defaults_match_reference_hyperparameters():
    config = load_config(None)

    assert config.train.epochs == 100
    assert config.train.batch_size == 512
    assert config.train.lr == 1e-3
    assert config.train.patience == 3
    assert config.train.min_delta == 1e-4
    assert config.data.test_pct == 0.10
    assert config.data.val_pct == 0.10
    assert config.paths.threshold_path == Path("Model") / "threshold.json"


def test_repository_config_loads():
    config = load_config(REPO_CONFIG)

    assert config.model.hidden == [256, 128]
    assert config.model.latent_dim == 32
    assert config.threshold.calibrate_on == "test"
    assert not config.train.shuffle_batches


def test_partial_sections_fall_back_to_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("train:\n  epochs: 5\n", encoding="utf-8")
    config = load_config(path)

    assert config.train.epochs == 5
    assert config.train.batch_size == 512
    assert config.seed == 42


def test_unknown_keys_are_rejected():
    with pytest.raises(TypeError):
        config_from_dict({"train": {"epochz": 5}})


def test_invalid_calibration_source():
    with pytest.raises(ValueError, match="calibrate_on"):
        config_from_dict({"threshold": {"calibrate_on": "validation"}})


def test_missing_config_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")


def test_config_hash_is_stable():
    assert Config().hash() == Config().hash()
    assert Config().hash() != config_from_dict({"seed": 1}).hash()


def test_seed_determinism():
    seed_everything(123)
    torch_vals1 = torch.randn(3)
    np_vals1 = np.random.rand(3)
    seed_everything(123)
    torch_vals2 = torch.randn(3)
    np_vals2 = np.random.rand(3)
    assert torch.allclose(torch_vals1, torch_vals2)
    assert np.allclose(np_vals1, np_vals2)


def test_resolve_device():
    assert resolve_device("cpu") == torch.device("cpu")
    assert resolve_device("auto").type in {"cpu", "cuda"}
