from fastapi import APIRouter, HTTPException, Query
from loguru import logger
from pydantic import BaseModel

from taskgraph.domain.relationships import ProjectGraph
from taskgraph.domain.task import Epic, Task, TaskMetadata
from taskgraph.errors import ValidationError
from taskgraph.search import GraphSearchService, format_for_llm_context
from taskgraph.synchronization.orchestrator import TaskRelationshipSynchronizer
from taskgraph.synchronization.pipeline import SyncOutcome


class TaskWriteRequest(BaseModel):
    task: Task
    content: str | None = None
    metadata: TaskMetadata | None = None


class TaskUpdateRequest(TaskWriteRequest):
    dependencies: list[str] | None = None


class RelationshipRequest(BaseModel):
    # Left optional so that missing fields surface as our own 400, not a schema 422
    source_task_id: str = ""
    target_task_id: str = ""
    relationship_type: str = ""
    project_id: str = ""
    weight: float | None = None


def _bad_request(e: ValidationError) -> HTTPException:
    logger.warning(f"Rejected request: {e}")
    return HTTPException(status_code=400, detail=str(e))


def _create_task_endpoints(router: APIRouter, synchronizer: TaskRelationshipSynchronizer) -> None:
    prefix = synchronizer.resolver.explicit_id_prefix

    def document_id(task_id: str) -> str:
        if not task_id or task_id.startswith(prefix):
            return task_id
        return f"{prefix}{task_id}"

    @router.post("/api/tasks")
    def task_written(body: TaskWriteRequest) -> SyncOutcome:
        task = body.task.model_copy(update={"id": document_id(body.task.id)})
        try:
            return synchronizer.on_task_written(task, body.content, body.metadata)
        except ValidationError as e:
            raise _bad_request(e) from e

    @router.put("/api/tasks/{task_id}")
    def task_updated(task_id: str, body: TaskUpdateRequest) -> SyncOutcome:
        task = body.task.model_copy(update={"id": document_id(task_id)})
        try:
            return synchronizer.on_task_updated(
                task, body.content, dependencies=body.dependencies, metadata=body.metadata
            )
        except ValidationError as e:
            raise _bad_request(e) from e

    @router.delete("/api/tasks/{task_id}")
    def task_deleted(task_id: str, project_id: str = Query(...)) -> SyncOutcome:
        try:
            return synchronizer.on_task_deleted(document_id(task_id), project_id)
        except ValidationError as e:
            raise _bad_request(e) from e


def _create_epic_endpoints(router: APIRouter, synchronizer: TaskRelationshipSynchronizer) -> None:
    @router.post("/api/epics")
    def epic_written(epic: Epic) -> SyncOutcome:
        try:
            return synchronizer.on_epic_written(epic)
        except ValidationError as e:
            raise _bad_request(e) from e

    @router.delete("/api/epics/{epic_id}")
    def epic_deleted(
        epic_id: str,
        project_id: str = Query(...),
        task_ids: list[str] = Query(default=[]),
    ) -> SyncOutcome:
        try:
            return synchronizer.on_epic_deleted(epic_id, project_id, task_ids)
        except ValidationError as e:
            raise _bad_request(e) from e


def _create_relationship_endpoints(
    router: APIRouter, synchronizer: TaskRelationshipSynchronizer
) -> None:
    def run_command(op: str, body: RelationshipRequest) -> SyncOutcome:
        try:
            outcome = synchronizer.on_relationship_command(
                op,  # type: ignore[arg-type]
                body.source_task_id,
                body.target_task_id,
                body.relationship_type,
                body.project_id,
                body.weight,
            )
        except ValidationError as e:
            raise _bad_request(e) from e

        if not outcome.success:
            not_found = any(f.error_type == "NotFoundError" for f in outcome.failures)
            raise HTTPException(
                status_code=404 if not_found else 500,
                detail=outcome.model_dump(mode="json"),
            )
        return outcome

    @router.post("/api/relationships")
    def create_relationship(body: RelationshipRequest) -> SyncOutcome:
        return run_command("create", body)

    @router.delete("/api/relationships")
    def delete_relationship(body: RelationshipRequest) -> SyncOutcome:
        return run_command("delete", body)


def get_endpoints_router(
    *,
    synchronizer: TaskRelationshipSynchronizer,
    search_service: GraphSearchService,
) -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    def health_check():
        stores = synchronizer.health_check()
        return {"status": "healthy" if all(stores.values()) else "degraded", **stores}

    _create_task_endpoints(router, synchronizer)
    _create_epic_endpoints(router, synchronizer)
    _create_relationship_endpoints(router, synchronizer)

    @router.get("/api/graph")
    def project_graph(project_id: str = Query(...)) -> ProjectGraph:
        try:
            return synchronizer.graph_store.get_project_graph(project_id)
        except Exception as e:
            logger.error(f"Error fetching graph data for project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch graph data") from e

    @router.get("/api/search")
    def search(query: str, project_id: str):
        if not query:
            raise HTTPException(status_code=400, detail="No query provided")
        try:
            results = search_service.search(query, project_id)
        except Exception as e:
            logger.error(f"Error searching project {project_id}: {e}")
            raise HTTPException(status_code=500, detail="Internal server error") from e
        return {
            "results": [r.model_dump(mode="json") for r in results],
            "context": format_for_llm_context(results),
        }

    return router
