"""Similarity search over a project's tasks, enriched with graph relationships."""

from typing import List

from loguru import logger
from pydantic import BaseModel

from taskgraph.domain.relationships import GraphSearchResult, SimilarityMatch
from taskgraph.domain.task import Task
from taskgraph.graph_stores.base import GraphStore
from taskgraph.similarity_stores.base import SimilarityStore

CONTEXT_HEADER = "SIMILAR EXISTING TASKS/CONTEXT FOUND IN PROJECT (from GraphRAG search):"

CONTEXT_INSTRUCTIONS = """IMPORTANT: Review the above search results to check if similar tasks already exist in the project. If you find existing tasks that are similar to what the user is asking for:
1. Mention to the user that similar tasks may already exist
2. Explain what you found and how it relates to their request
3. Consider the graph relationships - if a task has dependencies or is part of an epic, mention this context
4. Only suggest NEW tasks that are genuinely different from existing ones
5. If the user's request is already covered by existing tasks, let them know instead of creating duplicates"""


class EnrichedSearchResult(SimilarityMatch):
    graph_context: GraphSearchResult | None = None
    related_tasks: List[Task] = []


class GraphSearchService:
    """Combines similarity search with graph lookups for each hit."""

    def __init__(
        self,
        *,
        similarity_store: SimilarityStore,
        graph_store: GraphStore,
        corpus_suffix: str = "-tasks-rag",
        top_k: int = 5,
        relationship_depth: int = 2,
    ):
        self.similarity_store = similarity_store
        self.graph_store = graph_store
        self.corpus_suffix = corpus_suffix
        self.top_k = top_k
        self.relationship_depth = relationship_depth

    def search(
        self,
        query: str,
        project_id: str,
        *,
        include_graph_context: bool = True,
        include_related_tasks: bool = True,
    ) -> List[EnrichedSearchResult]:
        """Search a project's tasks and attach relationship context to each hit."""
        corpus = f"{project_id}{self.corpus_suffix}"
        matches = self.similarity_store.search(query, corpus, top_k=self.top_k)
        logger.info(f"Found {len(matches)} similarity results for project {project_id}")

        results = []
        for match in matches:
            result = EnrichedSearchResult(**match.model_dump())
            if include_graph_context:
                result.graph_context = self.graph_store.get_task_with_relationships(
                    match.id, project_id
                )
            if include_related_tasks:
                result.related_tasks = self.graph_store.find_related_tasks(
                    match.id, project_id, depth=self.relationship_depth
                )
            results.append(result)
        return results


def format_for_llm_context(results: List[EnrichedSearchResult]) -> str:
    """Render enriched results as context for a task-planning prompt."""
    if not results:
        return ""

    sections = [CONTEXT_HEADER, "---"]
    for index, result in enumerate(results, start=1):
        sections.append(
            f"[Result {index}] (relevance: {result.relevance_score * 100:.1f}%)"
        )
        sections.append(result.content)
        if result.graph_context:
            sections.append(f"\nGraph Relationships: {result.graph_context.context_summary}")
        if result.related_tasks:
            sections.append("\nRelated Tasks:")
            for task in result.related_tasks[:3]:
                sections.append(f"  - {task.title} ({task.category}, {task.priority})")
        sections.append("")

    sections += ["---", "", CONTEXT_INSTRUCTIONS]
    return "\n".join(sections)
