from .client import GatewayClient, load_protos

__all__ = ["GatewayClient", "load_protos"]
