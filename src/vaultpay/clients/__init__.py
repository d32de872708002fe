from .relayer import RelayerClient

__all__ = ["RelayerClient"]
