"""Relationship extraction module for inferring task dependencies and writing graph edges."""

from taskgraph.synchronization.relationship_extraction.edge_synchronizer import (
    EdgeSynchronizer,
    EdgeWriteResult,
)
from taskgraph.synchronization.relationship_extraction.extractor import DependencyExtractor
from taskgraph.synchronization.relationship_extraction.resolver import ReferenceResolver

__all__ = [
    "DependencyExtractor",
    "EdgeSynchronizer",
    "EdgeWriteResult",
    "ReferenceResolver",
]
