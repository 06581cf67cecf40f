"""Mediagate - HTTP gateway from prompts and uploaded media to a generative model."""

__version__ = "0.1.0"

from mediagate.core.config import GatewayConfig, config
from mediagate.core.pipeline import RequestPipeline

__all__ = [
    "GatewayConfig",
    "RequestPipeline",
    "config",
]
