"""Reference resolution for converting candidate dependencies to task IDs."""

from loguru import logger
from pydantic import BaseModel

from taskgraph.domain.relationships import CandidateDependency, ResolvedReference
from taskgraph.similarity_stores.base import SimilarityStore


class ResolutionError(BaseModel):
    """A candidate whose resolution raised instead of simply missing."""

    candidate: CandidateDependency
    error_type: str
    error: str


class ReferenceResolver:
    """Resolves candidate references to task IDs, by explicit ID or similarity search."""

    def __init__(
        self,
        similarity_store: SimilarityStore,
        *,
        threshold: float = 0.6,
        explicit_id_prefix: str = "task-",
        top_k: int = 5,
    ):
        """Initialize the resolver.

        Args:
            similarity_store: Store queried for free-text references
            threshold: Matches scoring at or below this value are ignored
            explicit_id_prefix: Prefix that marks a reference as a task ID
            top_k: Number of similarity results to consider
        """
        self.similarity_store = similarity_store
        self.threshold = threshold
        self.explicit_id_prefix = explicit_id_prefix
        self.top_k = top_k

    def is_explicit_id(self, reference: str) -> bool:
        return reference.startswith(self.explicit_id_prefix)

    def resolve(
        self, reference: str, *, source_task_id: str, corpus: str
    ) -> ResolvedReference | None:
        """Resolve one reference to a target task.

        Args:
            reference: Explicit task ID or free-text phrase
            source_task_id: Task the reference was found in, never its own target
            corpus: Similarity corpus of the task's project

        Returns:
            The resolved target, or None when nothing matched above threshold
        """
        if self.is_explicit_id(reference):
            if reference == source_task_id:
                logger.debug(f"Ignoring self reference {reference}")
                return None
            return ResolvedReference(target_task_id=reference, weight=1.0, explicit=True)

        matches = self.similarity_store.search(reference, corpus, top_k=self.top_k)
        accepted = [
            m for m in matches if m.id != source_task_id and m.relevance_score > self.threshold
        ]
        if not accepted:
            logger.debug(f'No matching task found for "{reference}"')
            return None

        best = max(accepted, key=lambda m: m.relevance_score)
        logger.debug(f'Resolved "{reference}" to {best.id} (score: {best.relevance_score:.2f})')
        return ResolvedReference(target_task_id=best.id, weight=best.relevance_score)

    def resolve_all(
        self, candidates: list[CandidateDependency], *, source_task_id: str, corpus: str
    ) -> tuple[list[tuple[CandidateDependency, ResolvedReference]], list[ResolutionError]]:
        """Resolve a batch of candidates independently.

        A candidate that raises is recorded and skipped; the rest are still resolved.

        Returns:
            Tuple of (resolved candidate/target pairs, resolution errors)
        """
        resolved = []
        errors = []
        for candidate in candidates:
            try:
                target = self.resolve(
                    candidate.target_reference, source_task_id=source_task_id, corpus=corpus
                )
            except Exception as e:
                logger.error(f'Error resolving "{candidate.target_reference}": {e}')
                errors.append(
                    ResolutionError(candidate=candidate, error_type=type(e).__name__, error=str(e))
                )
                continue
            if target:
                resolved.append((candidate, target))
        return resolved, errors
