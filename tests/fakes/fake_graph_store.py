from typing import Dict, List

from taskgraph.domain.relationships import (
    GraphSearchResult,
    ProjectGraph,
    RelationshipEdge,
    RelationshipType,
)
from taskgraph.domain.task import Epic, Task
from taskgraph.errors import ExternalStoreError
from taskgraph.graph_stores.base import GraphStore


class FakeGraphStore(GraphStore):
    """Fake graph store keeping edges by natural key and recording every write.

    Edges listed in ``failing_edges`` as ``(source, target)`` raise on upsert.
    """

    def __init__(self, failing_edges: set[tuple[str, str]] | None = None) -> None:
        self.failing_edges = failing_edges or set()
        self.tasks: Dict[str, Task] = {}
        self.epics: Dict[str, Epic] = {}
        self.epic_links: Dict[str, str] = {}
        self.edges: Dict[tuple, RelationshipEdge] = {}
        self.edge_writes: list[tuple[str, str, RelationshipType, float]] = []

    def upsert_task_node(self, task: Task) -> None:
        self.tasks[task.id] = task

    def upsert_epic_node(self, epic: Epic) -> None:
        self.epics[epic.id] = epic

    def link_task_to_epic(self, task_id: str, epic_id: str, project_id: str) -> None:
        self.epic_links[task_id] = epic_id

    def upsert_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
        weight: float,
    ) -> None:
        self.edge_writes.append((source_task_id, target_task_id, relationship_type, weight))
        if (source_task_id, target_task_id) in self.failing_edges:
            raise ExternalStoreError(f"Write failed for {source_task_id} -> {target_task_id}")
        edge = RelationshipEdge(
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            type=relationship_type,
            project_id=project_id,
            weight=weight,
        )
        self.edges[edge.key] = edge

    def delete_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> bool:
        key = (source_task_id, target_task_id, RelationshipType(relationship_type).value, project_id)
        return self.edges.pop(key, None) is not None

    def delete_task(self, task_id: str, project_id: str) -> bool:
        return self.tasks.pop(task_id, None) is not None

    def delete_epic(self, epic_id: str, project_id: str) -> bool:
        return self.epics.pop(epic_id, None) is not None

    def get_task_with_relationships(
        self, task_id: str, project_id: str
    ) -> GraphSearchResult | None:
        task = self.tasks.get(task_id)
        return GraphSearchResult(task=task) if task else None

    def find_related_tasks(self, task_id: str, project_id: str, depth: int = 2) -> List[Task]:
        return []

    def get_project_graph(self, project_id: str) -> ProjectGraph:
        return ProjectGraph()

    def health_check(self) -> bool:
        return True

    def edges_of_type(self, relationship_type: RelationshipType) -> List[RelationshipEdge]:
        return [e for e in self.edges.values() if e.type == relationship_type]
