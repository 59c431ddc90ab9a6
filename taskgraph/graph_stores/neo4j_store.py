from dataclasses import dataclass
from typing import Any, List

from loguru import logger
from neo4j import GraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from taskgraph.domain.relationships import (
    PART_OF_EPIC,
    GraphEdge,
    GraphNode,
    GraphSearchResult,
    ProjectGraph,
    RelatedNode,
    RelationshipType,
    summarize_relationships,
)
from taskgraph.domain.task import Epic, Task
from taskgraph.errors import ExternalStoreError, NotFoundError
from taskgraph.graph_stores.base import GraphStore


@dataclass(slots=True)
class Neo4jConfig:
    uri: str
    user: str
    password: str
    database: str = "neo4j"
    related_limit: int = 20


class Neo4jGraphStore(GraphStore):
    """Neo4j-backed graph store.

    Tasks and epics are merged on ``(id, projectId)``. Relationship types cannot
    be parameterized in Cypher, so only ``RelationshipType`` members are ever
    interpolated into a query.
    """

    def __init__(self, cfg: Neo4jConfig):
        self.cfg = cfg
        if not cfg.password:
            logger.warning("NEO4J_PASSWORD not set, connection may fail")
        logger.info(f"Connecting to Neo4j at {cfg.uri} as {cfg.user} (database: {cfg.database})")
        self._driver = GraphDatabase.driver(cfg.uri, auth=(cfg.user, cfg.password))

    def close(self) -> None:
        self._driver.close()

    def ensure_schema(self) -> None:
        stmts = [
            "CREATE INDEX task_key IF NOT EXISTS FOR (t:Task) ON (t.id, t.projectId)",
            "CREATE INDEX epic_key IF NOT EXISTS FOR (e:Epic) ON (e.id, e.projectId)",
        ]
        for q in stmts:
            self._run(q)

    def upsert_task_node(self, task: Task) -> None:
        self._run(
            """
            MERGE (t:Task {id: $id, projectId: $projectId})
            SET t.title = $title,
                t.description = $description,
                t.category = $category,
                t.priority = $priority,
                t.cleanArchitectureArea = $cleanArchitectureArea,
                t.epicId = $epicId,
                t.createdAt = $createdAt,
                t.updatedAt = datetime()
            """,
            id=task.id,
            projectId=task.project_id,
            title=task.title,
            description=task.description,
            category=task.category,
            priority=task.priority,
            cleanArchitectureArea=task.clean_architecture_area,
            epicId=task.epic_id,
            createdAt=task.created_at,
        )

    def upsert_epic_node(self, epic: Epic) -> None:
        self._run(
            """
            MERGE (e:Epic {id: $id, projectId: $projectId})
            SET e.title = $title,
                e.description = $description,
                e.priority = $priority,
                e.createdAt = $createdAt,
                e.updatedAt = datetime()
            """,
            id=epic.id,
            projectId=epic.project_id,
            title=epic.title,
            description=epic.description,
            priority=epic.priority,
            createdAt=epic.created_at,
        )

    def link_task_to_epic(self, task_id: str, epic_id: str, project_id: str) -> None:
        rows = self._run(
            f"""
            MATCH (t:Task {{id: $taskId, projectId: $projectId}})
            MATCH (e:Epic {{id: $epicId, projectId: $projectId}})
            OPTIONAL MATCH (t)-[old:{PART_OF_EPIC}]->(previous:Epic)
            WHERE previous <> e
            DELETE old
            WITH DISTINCT t, e
            MERGE (t)-[r:{PART_OF_EPIC}]->(e)
            ON CREATE SET r.createdAt = datetime()
            RETURN count(r) as linked
            """,
            taskId=task_id,
            epicId=epic_id,
            projectId=project_id,
        )
        if not rows or rows[0]["linked"] == 0:
            raise NotFoundError(f"Task {task_id} or epic {epic_id} not found in {project_id}")

    def upsert_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
        weight: float,
    ) -> None:
        rel_type = RelationshipType(relationship_type).value
        rows = self._run(
            f"""
            MATCH (source:Task {{id: $sourceId, projectId: $projectId}})
            MATCH (target:Task {{id: $targetId, projectId: $projectId}})
            MERGE (source)-[r:{rel_type}]->(target)
            ON CREATE SET r.createdAt = datetime()
            SET r.weight = $weight,
                r.updatedAt = datetime()
            RETURN count(r) as written
            """,
            sourceId=source_task_id,
            targetId=target_task_id,
            projectId=project_id,
            weight=weight,
        )
        if not rows or rows[0]["written"] == 0:
            raise NotFoundError(
                f"Cannot write {rel_type} edge {source_task_id} -> {target_task_id}: "
                f"endpoint task not found in {project_id}"
            )

    def delete_edge(
        self,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType,
        project_id: str,
    ) -> bool:
        rel_type = RelationshipType(relationship_type).value
        rows = self._run(
            f"""
            MATCH (source:Task {{id: $sourceId, projectId: $projectId}})
                  -[r:{rel_type}]->
                  (target:Task {{id: $targetId, projectId: $projectId}})
            DELETE r
            RETURN count(r) as deleted
            """,
            sourceId=source_task_id,
            targetId=target_task_id,
            projectId=project_id,
        )
        return bool(rows) and rows[0]["deleted"] > 0

    def delete_task(self, task_id: str, project_id: str) -> bool:
        rows = self._run(
            """
            MATCH (t:Task {id: $taskId, projectId: $projectId})
            DETACH DELETE t
            RETURN count(t) as deleted
            """,
            taskId=task_id,
            projectId=project_id,
        )
        return bool(rows) and rows[0]["deleted"] > 0

    def delete_epic(self, epic_id: str, project_id: str) -> bool:
        rows = self._run(
            """
            MATCH (e:Epic {id: $epicId, projectId: $projectId})
            DETACH DELETE e
            RETURN count(e) as deleted
            """,
            epicId=epic_id,
            projectId=project_id,
        )
        return bool(rows) and rows[0]["deleted"] > 0

    def get_task_with_relationships(
        self, task_id: str, project_id: str
    ) -> GraphSearchResult | None:
        rows = self._run(
            """
            MATCH (t:Task {id: $taskId, projectId: $projectId})
            OPTIONAL MATCH (t)-[r]->(related)
            OPTIONAL MATCH (t)<-[r2]-(incoming)
            RETURN t,
                   collect(DISTINCT {type: type(r), weight: r.weight, node: related,
                                     labels: labels(related)}) as outRels,
                   collect(DISTINCT {type: type(r2), weight: r2.weight, node: incoming,
                                     labels: labels(incoming)}) as inRels
            """,
            taskId=task_id,
            projectId=project_id,
        )
        if not rows:
            return None

        record = rows[0]
        relationships = []
        for rel in list(record["outRels"] or []) + list(record["inRels"] or []):
            if not rel.get("node") or not rel.get("type"):
                continue
            props = dict(rel["node"])
            if "Epic" in (rel.get("labels") or []):
                relationships.append(
                    RelatedNode(type=rel["type"], related_epic=_epic_from_props(props))
                )
            else:
                relationships.append(
                    RelatedNode(
                        type=rel["type"],
                        related_task=_task_from_props(props),
                        weight=rel.get("weight"),
                    )
                )

        return GraphSearchResult(
            task=_task_from_props(dict(record["t"])),
            relationships=relationships,
            context_summary=summarize_relationships(relationships),
        )

    def find_related_tasks(self, task_id: str, project_id: str, depth: int = 2) -> List[Task]:
        depth = max(1, min(int(depth), 5))
        rows = self._run(
            f"""
            MATCH (t:Task {{id: $taskId, projectId: $projectId}})
            MATCH (t)-[*1..{depth}]-(related:Task {{projectId: $projectId}})
            WHERE related.id <> $taskId
            RETURN DISTINCT related
            LIMIT $limit
            """,
            taskId=task_id,
            projectId=project_id,
            limit=self.cfg.related_limit,
        )
        return [_task_from_props(dict(row["related"])) for row in rows]

    def get_project_graph(self, project_id: str) -> ProjectGraph:
        node_rows = self._run(
            """
            MATCH (n)
            WHERE n.projectId = $projectId AND (n:Task OR n:Epic)
            RETURN n, labels(n) as labels
            """,
            projectId=project_id,
        )
        nodes = []
        for row in node_rows:
            props = dict(row["n"])
            is_epic = "Epic" in row["labels"]
            nodes.append(
                GraphNode(
                    id=props["id"],
                    label=props.get("title") or props["id"],
                    type="epic" if is_epic else "task",
                    category=props.get("category"),
                    priority=props.get("priority"),
                    clean_architecture_area=props.get("cleanArchitectureArea"),
                    description=props.get("description"),
                )
            )

        edge_rows = self._run(
            """
            MATCH (a)-[r]->(b)
            WHERE a.projectId = $projectId AND b.projectId = $projectId
            RETURN a.id as source, b.id as target, type(r) as type, r.weight as weight
            """,
            projectId=project_id,
        )
        edges = [
            GraphEdge(
                id=f"edge-{i}",
                source=row["source"],
                target=row["target"],
                type=row["type"],
                weight=row["weight"] if row["weight"] is not None else 1.0,
            )
            for i, row in enumerate(edge_rows)
        ]
        return ProjectGraph(nodes=nodes, edges=edges)

    def health_check(self) -> bool:
        try:
            self._run("RETURN 1")
            return True
        except ExternalStoreError as e:
            logger.error(f"Neo4j health check failed: {e}")
            return False

    def _run(self, cypher: str, **params: Any) -> list[dict[str, Any]]:
        try:
            with self._driver.session(database=self.cfg.database) as s:
                res = s.run(cypher, **params)
                return [dict(r) for r in res]
        except (Neo4jError, DriverError) as e:
            raise ExternalStoreError(f"Neo4j query failed: {e}") from e


def _task_from_props(props: dict[str, Any]) -> Task:
    return Task(
        id=props["id"],
        title=props.get("title") or "",
        description=props.get("description") or "",
        category=props.get("category") or "backend",
        priority=props.get("priority") or "medium",
        clean_architecture_area=props.get("cleanArchitectureArea") or "infrastructure",
        project_id=props["projectId"],
        epic_id=props.get("epicId"),
        created_at=str(props.get("createdAt") or ""),
    )


def _epic_from_props(props: dict[str, Any]) -> Epic:
    return Epic(
        id=props["id"],
        title=props.get("title") or "",
        description=props.get("description") or "",
        priority=props.get("priority") or "medium",
        project_id=props["projectId"],
        created_at=str(props.get("createdAt") or ""),
    )
