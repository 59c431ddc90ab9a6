from taskgraph.similarity_stores.base import SimilarityDocument, SimilarityStore

__all__ = ["SimilarityDocument", "SimilarityStore"]
