"""Survey Gateway service layer - FastAPI application and HTTP interfaces."""

from .app import create_gateway_app
from .config import GatewayConfig

__all__ = ["create_gateway_app", "GatewayConfig"]
