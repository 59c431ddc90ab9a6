from taskgraph.graph_stores.base import GraphStore

__all__ = ["GraphStore"]
