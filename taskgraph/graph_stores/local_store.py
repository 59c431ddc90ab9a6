import json
import threading
from collections import deque
from pathlib import Path
from typing import Dict, List, Tuple

from taskgraph.domain.relationships import (
    PART_OF_EPIC,
    GraphEdge,
    GraphNode,
    GraphSearchResult,
    ProjectGraph,
    RelatedNode,
    RelationshipEdge,
    RelationshipType,
    summarize_relationships,
)
from taskgraph.domain.task import Epic, Task
from taskgraph.errors import NotFoundError
from taskgraph.graph_stores.base import GraphStore

NodeKey = Tuple[str, str]  # (project_id, node_id)
EdgeKey = Tuple[str, str, str, str]  # (source, target, type, project_id)


class LocalGraphStore(GraphStore):
    """Local graph store that keeps task and epic nodes and their edges in a JSON file."""

    def __init__(self, filepath: str | Path | None = None, related_limit: int = 20) -> None:
        """Initialize LocalGraphStore.

        Args:
            filepath: Path to the graph file. If provided and exists, will auto-load.
                     If provided and doesn't exist, every write is saved to this path.
                     If not provided, the graph lives in memory only.
            related_limit: Maximum number of tasks returned by find_related_tasks.
        """
        self._filepath = str(filepath) if filepath else None
        self._related_limit = related_limit
        # Reentrant so read helpers can be called while the lock is held
        self._lock = threading.RLock()
        self._tasks: Dict[NodeKey, Task] = {}
        self._epics: Dict[NodeKey, Epic] = {}
        self._edges: Dict[EdgeKey, RelationshipEdge] = {}
        self._epic_links: Dict[NodeKey, str] = {}  # (project_id, task_id) -> epic_id

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            for task_data in data.get("tasks", []):
                task = Task(**task_data)
                self._tasks[(task.project_id, task.id)] = task
            for epic_data in data.get("epics", []):
                epic = Epic(**epic_data)
                self._epics[(epic.project_id, epic.id)] = epic
            for edge_data in data.get("edges", []):
                edge = RelationshipEdge(**edge_data)
                self._edges[edge.key] = edge
            for link in data.get("epic_links", []):
                self._epic_links[(link["project_id"], link["task_id"])] = link["epic_id"]

    def upsert_task_node(self, task: Task) -> None:
        with self._lock:
            self._tasks[(task.project_id, task.id)] = task
            self._save()

    def upsert_epic_node(self, epic: Epic) -> None:
        with self._lock:
            self._epics[(epic.project_id, epic.id)] = epic
            self._save()

    def link_task_to_epic(self, task_id: str, epic_id: str, project_id: str) -> None:
        with self._lock:
            if (project_id, task_id) not in self._tasks:
                raise NotFoundError(f"Task {task_id} not found in project {project_id}")
            if (project_id, epic_id) not in self._epics:
                raise NotFoundError(f"Epic {epic_id} not found in project {project_id}")
            self._epic_links[(project_id, task_id)] = epic_id
            self._save()

    def upsert_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
        weight: float,
    ) -> None:
        edge = RelationshipEdge(
            source_task_id=source_task_id,
            target_task_id=target_task_id,
            type=relationship_type,
            project_id=project_id,
            weight=weight,
        )
        with self._lock:
            for task_id in (source_task_id, target_task_id):
                if (project_id, task_id) not in self._tasks:
                    raise NotFoundError(f"Task {task_id} not found in project {project_id}")
            self._edges[edge.key] = edge
            self._save()

    def delete_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> bool:
        key = (source_task_id, target_task_id, RelationshipType(relationship_type).value, project_id)
        with self._lock:
            if key not in self._edges:
                return False
            del self._edges[key]
            self._save()
        return True

    def delete_task(self, task_id: str, project_id: str) -> bool:
        with self._lock:
            if (project_id, task_id) not in self._tasks:
                return False
            del self._tasks[(project_id, task_id)]
            self._epic_links.pop((project_id, task_id), None)
            incident = [
                key
                for key, edge in self._edges.items()
                if edge.project_id == project_id and task_id in (key[0], key[1])
            ]
            for key in incident:
                del self._edges[key]
            self._save()
        return True

    def delete_epic(self, epic_id: str, project_id: str) -> bool:
        with self._lock:
            if (project_id, epic_id) not in self._epics:
                return False
            del self._epics[(project_id, epic_id)]
            unlinked = [
                key
                for key, linked_epic in self._epic_links.items()
                if key[0] == project_id and linked_epic == epic_id
            ]
            for key in unlinked:
                del self._epic_links[key]
            self._save()
        return True

    def get_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> RelationshipEdge | None:
        """Get a single edge by its natural key."""
        key = (source_task_id, target_task_id, RelationshipType(relationship_type).value, project_id)
        with self._lock:
            return self._edges.get(key)

    def get_edges(self, project_id: str) -> List[RelationshipEdge]:
        """Get all task-to-task edges of a project."""
        with self._lock:
            return [edge for edge in self._edges.values() if edge.project_id == project_id]

    def get_task_with_relationships(
        self, task_id: str, project_id: str
    ) -> GraphSearchResult | None:
        with self._lock:
            task = self._tasks.get((project_id, task_id))
            if not task:
                return None

            relationships = []
            for edge in self.get_edges(project_id):
                if edge.source_task_id == task_id:
                    other_id = edge.target_task_id
                elif edge.target_task_id == task_id:
                    other_id = edge.source_task_id
                else:
                    continue
                related = self._tasks.get((project_id, other_id))
                if related:
                    relationships.append(
                        RelatedNode(type=edge.type.value, related_task=related, weight=edge.weight)
                    )

            epic_id = self._epic_links.get((project_id, task_id))
            epic = self._epics.get((project_id, epic_id)) if epic_id else None
            if epic:
                relationships.append(RelatedNode(type=PART_OF_EPIC, related_epic=epic))

        return GraphSearchResult(
            task=task,
            relationships=relationships,
            context_summary=summarize_relationships(relationships),
        )

    def find_related_tasks(self, task_id: str, project_id: str, depth: int = 2) -> List[Task]:
        """Find tasks reachable from the given task within ``depth`` hops in either direction.

        Epics are traversed like any other node, so tasks of the same epic are two hops apart.
        """
        start = ("task", task_id)
        with self._lock:
            if (project_id, task_id) not in self._tasks:
                return []

            neighbours = self._build_adjacency(project_id)
            visited = {start}
            related: List[Task] = []
            queue = deque([(start, 0)])  # (node, depth)

            while queue:
                node, node_depth = queue.popleft()

                kind, node_id = node
                if node_depth > 0 and kind == "task" and node_id != task_id:
                    related.append(self._tasks[(project_id, node_id)])
                    if len(related) >= self._related_limit:
                        break

                if node_depth < depth:
                    for linked in neighbours.get(node, ()):
                        if linked not in visited:
                            visited.add(linked)
                            queue.append((linked, node_depth + 1))

        return related

    def get_project_graph(self, project_id: str) -> ProjectGraph:
        with self._lock:
            nodes = [
                GraphNode(
                    id=task.id,
                    label=task.title or task.id,
                    type="task",
                    category=task.category,
                    priority=task.priority,
                    clean_architecture_area=task.clean_architecture_area,
                    description=task.description,
                )
                for (pid, _), task in self._tasks.items()
                if pid == project_id
            ]
            nodes += [
                GraphNode(
                    id=epic.id,
                    label=epic.title or epic.id,
                    type="epic",
                    priority=epic.priority,
                    description=epic.description,
                )
                for (pid, _), epic in self._epics.items()
                if pid == project_id
            ]

            edges = [
                (edge.source_task_id, edge.target_task_id, edge.type.value, edge.weight)
                for edge in self.get_edges(project_id)
            ]
            edges += [
                (task_id, epic_id, PART_OF_EPIC, 1.0)
                for (pid, task_id), epic_id in self._epic_links.items()
                if pid == project_id
            ]

        return ProjectGraph(
            nodes=nodes,
            edges=[
                GraphEdge(id=f"edge-{i}", source=source, target=target, type=type_, weight=weight)
                for i, (source, target, type_, weight) in enumerate(edges)
            ],
        )

    def health_check(self) -> bool:
        return True

    def _build_adjacency(self, project_id: str) -> Dict[Tuple[str, str], set]:
        adjacency: Dict[Tuple[str, str], set] = {}

        def connect(a: Tuple[str, str], b: Tuple[str, str]) -> None:
            adjacency.setdefault(a, set()).add(b)
            adjacency.setdefault(b, set()).add(a)

        for edge in self.get_edges(project_id):
            connect(("task", edge.source_task_id), ("task", edge.target_task_id))
        for (pid, task_id), epic_id in self._epic_links.items():
            if pid == project_id:
                connect(("task", task_id), ("epic", epic_id))

        # Only keep nodes that still exist
        return {
            node: {n for n in linked if self._node_exists(project_id, n)}
            for node, linked in adjacency.items()
            if self._node_exists(project_id, node)
        }

    def _node_exists(self, project_id: str, node: Tuple[str, str]) -> bool:
        kind, node_id = node
        store = self._tasks if kind == "task" else self._epics
        return (project_id, node_id) in store

    def _save(self) -> None:
        if not self._filepath:
            return
        data = {
            "tasks": [task.model_dump() for task in self._tasks.values()],
            "epics": [epic.model_dump() for epic in self._epics.values()],
            "edges": [edge.model_dump(mode="json") for edge in self._edges.values()],
            "epic_links": [
                {"project_id": pid, "task_id": task_id, "epic_id": epic_id}
                for (pid, task_id), epic_id in self._epic_links.items()
            ],
        }
        Path(self._filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(self._filepath, "w") as f:
            json.dump(data, f)
