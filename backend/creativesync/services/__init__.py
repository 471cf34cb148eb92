from creativesync.services.meta_graph_client import MetaAPIError, MetaGraphClient

__all__ = ["MetaAPIError", "MetaGraphClient"]
