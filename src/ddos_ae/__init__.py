"""Autoencoder-based DDoS flow anomaly detection."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ddos-ae")
except PackageNotFoundError:  # pragma: no cover - fallback for source checkouts
    __version__ = "0.0.0"

__all__ = ["__version__"]
