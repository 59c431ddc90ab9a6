"""Relationship domain models."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, field_validator

from taskgraph.domain.task import Epic, Task


class RelationshipType(str, Enum):
    """Edge types the synchronizer manages between tasks."""

    DEPENDS_ON = "DEPENDS_ON"
    BLOCKS = "BLOCKS"
    RELATED_TO = "RELATED_TO"
    SIMILAR_TO = "SIMILAR_TO"


DEPENDENCY_TYPES = (RelationshipType.DEPENDS_ON, RelationshipType.BLOCKS)

# Containment edge from a task to its epic; written only by link_task_to_epic.
PART_OF_EPIC = "PART_OF_EPIC"


class RelationshipEdge(BaseModel):
    """A typed, weighted, directed edge between two tasks.

    ``(source_task_id, target_task_id, type, project_id)`` is the natural key;
    only ``weight`` changes when the same edge is written again.
    """

    source_task_id: str
    target_task_id: str
    type: RelationshipType
    project_id: str
    weight: float = 1.0

    @property
    def key(self) -> tuple[str, str, str, str]:
        return (self.source_task_id, self.target_task_id, self.type.value, self.project_id)


class CandidateDependency(BaseModel):
    """An unresolved hint that a task depends on or blocks another task."""

    type: RelationshipType
    target_reference: str

    @field_validator("type")
    @classmethod
    def _only_dependency_types(cls, value: RelationshipType) -> RelationshipType:
        if value not in DEPENDENCY_TYPES:
            raise ValueError(f"Candidate dependencies must be one of {DEPENDENCY_TYPES}")
        return value


class SimilarityMatch(BaseModel):
    """A ranked hit returned by the similarity store."""

    id: str
    content: str = ""
    relevance_score: float


class ResolvedReference(BaseModel):
    """A candidate reference turned into a concrete target task."""

    target_task_id: str
    weight: float
    explicit: bool = False


class RelatedNode(BaseModel):
    type: str
    related_task: Task | None = None
    related_epic: Epic | None = None
    weight: float | None = None


class GraphSearchResult(BaseModel):
    """A task together with its incoming and outgoing relationships."""

    task: Task
    relationships: list[RelatedNode] = []
    context_summary: str = ""


class GraphNode(BaseModel):
    id: str
    label: str
    type: Literal["task", "epic"]
    category: str | None = None
    priority: str | None = None
    clean_architecture_area: str | None = None
    description: str | None = None


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    type: str
    weight: float = 1.0


class ProjectGraph(BaseModel):
    """All nodes and edges of one project, as drawn by the graph view."""

    nodes: list[GraphNode] = []
    edges: list[GraphEdge] = []

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        return len(self.edges)


def summarize_relationships(relationships: list[RelatedNode]) -> str:
    """Build a one-line, human readable summary of a task's relationships."""
    parts = []

    epic_titles = [
        r.related_epic.title for r in relationships if r.type == PART_OF_EPIC and r.related_epic
    ]
    if epic_titles:
        parts.append(f'Part of epic: "{epic_titles[0]}"')

    labels = [
        (RelationshipType.DEPENDS_ON, "Depends on"),
        (RelationshipType.BLOCKS, "Blocks"),
        (RelationshipType.RELATED_TO, "Related to"),
        (RelationshipType.SIMILAR_TO, "Similar to"),
    ]
    for rel_type, label in labels:
        titles = [
            f'"{r.related_task.title}"'
            for r in relationships
            if r.type == rel_type.value and r.related_task
        ]
        if titles:
            parts.append(f"{label}: {', '.join(titles)}")

    if not parts:
        return "No relationships found for this task."
    return ". ".join(parts)
