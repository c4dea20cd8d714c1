from __future__ import annotations

from typing import Iterable, List

import torch
from torch import nn

from .config import ModelConfig


def activation_factory(name: str):
    name_lower = name.lower()
    if name_lower == "relu":
        return lambda: nn.ReLU()
    if name_lower == "leakyrelu":
        return lambda: nn.LeakyReLU(negative_slope=0.01)
    if name_lower == "elu":
        return lambda: nn.ELU()
    if name_lower == "tanh":
        return lambda: nn.Tanh()
    raise ValueError(f"Unsupported activation: {name}")


class FeedForwardAutoencoder(nn.Module):
    """Symmetric fully connected autoencoder, e.g. D-256-128-32-128-256-D."""

    def __init__(
        self,
        input_dim: int,
        hidden_layers: Iterable[int],
        latent_dim: int,
        activation: str = "ReLU",
        dropout: float = 0.0,
    ) -> None:
        super().__init__()
        hidden = list(hidden_layers)
        if input_dim <= 0:
            raise ValueError("input_dim must be positive")
        if latent_dim <= 0:
            raise ValueError("latent_dim must be positive")

        activation_ctor = activation_factory(activation)

        encoder_layers: List[nn.Module] = []
        prev_dim = input_dim
        for width in hidden + [latent_dim]:
            encoder_layers.append(nn.Linear(prev_dim, width))
            encoder_layers.append(activation_ctor())
            if dropout > 0:
                encoder_layers.append(nn.Dropout(dropout))
            prev_dim = width
        self.encoder = nn.Sequential(*encoder_layers)

        decoder_layers: List[nn.Module] = []
        for width in reversed(hidden):
            decoder_layers.append(nn.Linear(prev_dim, width))
            decoder_layers.append(activation_ctor())
            prev_dim = width
        decoder_layers.append(nn.Linear(prev_dim, input_dim))
        self.decoder = nn.Sequential(*decoder_layers)

        self.input_dim = input_dim

    def forward(self, x: torch.Tensor) -> torch.Tensor:  # type: ignore[override]
        return self.decoder(self.encoder(x))

    @staticmethod
    def reconstruction_error(inputs: torch.Tensor, reconstruction: torch.Tensor) -> torch.Tensor:
        """Per-row mean squared error."""
        return ((reconstruction - inputs) ** 2).mean(dim=1)


def build_model(model_cfg: ModelConfig, input_dim: int) -> FeedForwardAutoencoder:
    return FeedForwardAutoencoder(
        input_dim=input_dim,
        hidden_layers=model_cfg.hidden,
        latent_dim=int(model_cfg.latent_dim),
        activation=model_cfg.activation,
        dropout=float(model_cfg.dropout),
    )


def count_parameters(model: nn.Module) -> int:
    return sum(p.numel() for p in model.parameters() if p.requires_grad)
