from typing import List, Protocol

from taskgraph.domain.relationships import GraphSearchResult, ProjectGraph, RelationshipType
from taskgraph.domain.task import Epic, Task


class GraphStore(Protocol):
    """Property graph of tasks and epics, scoped per project.

    Write operations raise ``ExternalStoreError`` when the backend fails and
    ``NotFoundError`` when an edge endpoint does not exist.
    """

    def upsert_task_node(self, task: Task) -> None:
        """Create or update a task node."""
        ...

    def upsert_epic_node(self, epic: Epic) -> None:
        """Create or update an epic node."""
        ...

    def link_task_to_epic(self, task_id: str, epic_id: str, project_id: str) -> None:
        """Upsert the containment edge from a task to its epic."""
        ...

    def upsert_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
        weight: float,
    ) -> None:
        """Create an edge or update the weight of the edge with the same key."""
        ...

    def delete_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> bool:
        """Delete one directed edge. Returns False when no such edge exists."""
        ...

    def delete_task(self, task_id: str, project_id: str) -> bool:
        """Delete a task node together with its own edges."""
        ...

    def delete_epic(self, epic_id: str, project_id: str) -> bool:
        """Delete an epic node and unlink its tasks."""
        ...

    def get_task_with_relationships(
        self, task_id: str, project_id: str
    ) -> GraphSearchResult | None:
        """Get a task with its incoming and outgoing relationships."""
        ...

    def find_related_tasks(self, task_id: str, project_id: str, depth: int = 2) -> List[Task]:
        """Find tasks reachable from the given task within ``depth`` hops."""
        ...

    def get_project_graph(self, project_id: str) -> ProjectGraph:
        """Get every node and edge of a project."""
        ...

    def health_check(self) -> bool:
        """Check that the store can be reached."""
        ...
