"""Writing typed, weighted edges to the graph store."""

from loguru import logger
from pydantic import BaseModel

from taskgraph.domain.relationships import RelationshipType, SimilarityMatch
from taskgraph.graph_stores.base import GraphStore


class EdgeWriteResult(BaseModel):
    """Outcome of one edge write."""

    source_task_id: str
    target_task_id: str
    type: RelationshipType
    weight: float | None = None
    success: bool
    error_type: str | None = None
    error: str | None = None


class EdgeSynchronizer:
    """Issues edge upserts and deletes, one isolated write at a time."""

    def __init__(self, graph_store: GraphStore, *, similarity_threshold: float = 0.7):
        """Initialize the edge synchronizer.

        Args:
            graph_store: Graph store receiving the writes
            similarity_threshold: Matches scoring at or below this value get no SIMILAR_TO edge
        """
        self.graph_store = graph_store
        self.similarity_threshold = similarity_threshold

    def upsert(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
        weight: float = 1.0,
    ) -> EdgeWriteResult:
        """Upsert a single directed edge. Never raises; failures are reported in the result."""
        weight = min(max(float(weight), 0.0), 1.0)
        result = EdgeWriteResult(
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            type=relationship_type,
            weight=weight,
            success=False,
        )

        if source_task_id == target_task_id:
            result.error_type = "ValidationError"
            result.error = "Self relationships are not allowed"
            logger.warning(f"Skipping self {relationship_type.value} edge on {source_task_id}")
            return result

        try:
            self.graph_store.upsert_edge(
                source_task_id, target_task_id, relationship_type, project_id, weight
            )
        except Exception as e:
            result.error_type = type(e).__name__
            result.error = str(e)
            logger.error(
                f"Failed to write {relationship_type.value} edge "
                f"{source_task_id} -> {target_task_id}: {e}"
            )
            return result

        result.success = True
        logger.info(
            f"Wrote {relationship_type.value} edge {source_task_id} -> {target_task_id} "
            f"(weight: {weight:.2f})"
        )
        return result

    def upsert_similar(
        self, source_task_id: str, matches: list[SimilarityMatch], project_id: str
    ) -> list[EdgeWriteResult]:
        """Write reciprocal SIMILAR_TO edges for every match above threshold.

        Both directions are attempted for each match even when one of them fails.
        """
        results = []
        for match in matches:
            if match.id == source_task_id or match.relevance_score <= self.similarity_threshold:
                continue
            for source, target in ((source_task_id, match.id), (match.id, source_task_id)):
                results.append(
                    self.upsert(
                        source,
                        target,
                        RelationshipType.SIMILAR_TO,
                        project_id,
                        match.relevance_score,
                    )
                )
        return results

    def delete(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> EdgeWriteResult:
        """Delete one directed edge. The reciprocal SIMILAR_TO edge is left untouched."""
        result = EdgeWriteResult(
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            type=relationship_type,
            success=False,
        )
        try:
            deleted = self.graph_store.delete_edge(
                source_task_id, target_task_id, relationship_type, project_id
            )
        except Exception as e:
            result.error_type = type(e).__name__
            result.error = str(e)
            logger.error(
                f"Failed to delete {relationship_type.value} edge "
                f"{source_task_id} -> {target_task_id}: {e}"
            )
            return result

        if not deleted:
            result.error_type = "NotFoundError"
            result.error = "Relationship not found"
            logger.warning(
                f"No {relationship_type.value} edge {source_task_id} -> {target_task_id} to delete"
            )
            return result

        result.success = True
        return result
