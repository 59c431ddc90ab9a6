"""Orchestration of relationship synchronization for task mutations."""

from typing import Iterable, Literal

from loguru import logger

from taskgraph.domain.relationships import RelationshipType
from taskgraph.domain.task import Epic, Task, TaskMetadata
from taskgraph.errors import ValidationError
from taskgraph.graph_stores.base import GraphStore
from taskgraph.similarity_stores.base import SimilarityStore

from .pipeline import StepFailure, StepResult, SyncOutcome, SyncPipeline
from .relationship_extraction import DependencyExtractor, EdgeSynchronizer, ReferenceResolver

RelationshipOp = Literal["create", "delete"]


class TaskRelationshipSynchronizer:
    """Keeps the similarity index and the relationship graph in step with task mutations.

    The synchronizer holds no state between calls; everything lives in the two
    stores. Each call runs a short pipeline whose steps fail independently, so
    relationship enrichment is best effort and never undoes the task's own node.
    """

    def __init__(
        self,
        *,
        similarity_store: SimilarityStore,
        graph_store: GraphStore,
        dependency_threshold: float = 0.6,
        similarity_threshold: float = 0.7,
        explicit_id_prefix: str = "task-",
        search_top_k: int = 5,
        corpus_suffix: str = "-tasks-rag",
        extractor: DependencyExtractor | None = None,
    ):
        """Initialize the synchronizer with its stores.

        Args:
            similarity_store: Store holding one corpus of task content per project
            graph_store: Store holding task/epic nodes and their edges
            dependency_threshold: Minimum (exclusive) score to resolve a free-text dependency
            similarity_threshold: Minimum (exclusive) score to link two tasks as SIMILAR_TO
            explicit_id_prefix: Prefix that marks a reference as an explicit task ID
            search_top_k: Number of similarity results considered per query
            corpus_suffix: Suffix appended to the project ID to name its corpus
            extractor: Dependency extractor, defaults to the built-in trigger phrases
        """
        self.similarity_store = similarity_store
        self.graph_store = graph_store
        self.search_top_k = search_top_k
        self.corpus_suffix = corpus_suffix

        self.extractor = extractor or DependencyExtractor()
        self.resolver = ReferenceResolver(
            similarity_store,
            threshold=dependency_threshold,
            explicit_id_prefix=explicit_id_prefix,
            top_k=search_top_k,
        )
        self.edge_synchronizer = EdgeSynchronizer(
            graph_store, similarity_threshold=similarity_threshold
        )

    def corpus_name(self, project_id: str) -> str:
        return f"{project_id}{self.corpus_suffix}"

    def on_task_written(
        self,
        task: Task,
        content: str | None = None,
        metadata: TaskMetadata | None = None,
    ) -> SyncOutcome:
        """Synchronize a created or updated task.

        Args:
            task: The task whose record was just written
            content: Text to index and scan; defaults to a rendering of the task
            metadata: Optional explicit dependency references

        Returns:
            SyncOutcome listing the failures of each step
        """
        return self._task_pipeline("task_written", task, content, metadata).run()

    def on_task_updated(
        self,
        task: Task,
        content: str | None = None,
        dependencies: list[str] | None = None,
        metadata: TaskMetadata | None = None,
    ) -> SyncOutcome:
        """Synchronize an updated task, then link it to each entry of its dependency list.

        Dependency edges are only ever added; entries dropped from the list keep their edges.
        """
        pipeline = self._task_pipeline("task_updated", task, content, metadata)
        if dependencies:
            pipeline.add_step(
                "dependency_list", lambda: self._link_dependency_list(task, dependencies)
            )
        return pipeline.run()

    def on_relationship_command(
        self,
        op: RelationshipOp,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType | str,
        project_id: str,
        weight: float | None = None,
    ) -> SyncOutcome:
        """Create or delete one explicitly stated edge, bypassing extraction and resolution.

        Raises:
            ValidationError: when an ID is missing, the type or op is unknown,
                or the weight is out of range. No store is touched.
        """
        rel_type = self._validate_command(
            op, source_task_id, target_task_id, relationship_type, project_id, weight
        )
        step = f"{op}_relationship"

        if op == "create":
            result = self.edge_synchronizer.upsert(
                source_task_id,
                target_task_id,
                rel_type,
                project_id,
                1.0 if weight is None else weight,
            )
        else:
            result = self.edge_synchronizer.delete(
                source_task_id, target_task_id, rel_type, project_id
            )

        failures = [] if result.success else [StepFailure.from_edge(step, result)]
        return SyncOutcome(
            operation=step,
            subject_id=source_task_id,
            success=result.success,
            steps=[StepResult(step=step, success=result.success, failures=failures)],
        )

    def on_task_deleted(self, task_id: str, project_id: str) -> SyncOutcome:
        """Remove a task from the similarity corpus and the graph.

        Missing documents or nodes are reported as failed steps, never raised.
        """
        if not task_id or not project_id:
            raise ValidationError("task_id and project_id are required")

        corpus = self.corpus_name(project_id)

        def delete_document() -> list[StepFailure]:
            if self.similarity_store.delete_document(corpus, task_id):
                return []
            return [_not_found("delete_document", f"Document {task_id} not found in {corpus}")]

        def delete_node() -> list[StepFailure]:
            if self.graph_store.delete_task(task_id, project_id):
                return []
            return [_not_found("delete_task_node", f"Task {task_id} not found in graph")]

        outcome = (
            SyncPipeline("task_deleted", task_id)
            .add_step("delete_document", delete_document)
            .add_step("delete_task_node", delete_node)
            .run()
        )
        outcome.success = not outcome.failures
        return outcome

    def on_epic_written(self, epic: Epic) -> SyncOutcome:
        if not epic.id or not epic.project_id:
            raise ValidationError("epic id and project_id are required")
        return (
            SyncPipeline("epic_written", epic.id)
            .add_step("upsert_epic_node", lambda: self.graph_store.upsert_epic_node(epic))
            .run()
        )

    def on_epic_deleted(
        self, epic_id: str, project_id: str, task_ids: Iterable[str] = ()
    ) -> SyncOutcome:
        """Delete an epic and cascade to its tasks.

        A task that is already gone is reported and skipped; the cascade continues.
        The outcome succeeds when the epic node itself was deleted.
        """
        if not epic_id or not project_id:
            raise ValidationError("epic_id and project_id are required")
        task_ids = list(task_ids)
        if not all(task_ids):
            raise ValidationError("task_ids must not contain empty IDs")

        outcome = SyncOutcome(operation="epic_deleted", subject_id=epic_id)
        for task_id in task_ids:
            outcome.merge(self.on_task_deleted(task_id, project_id))

        def delete_epic() -> list[StepFailure]:
            if self.graph_store.delete_epic(epic_id, project_id):
                return []
            return [_not_found("delete_epic_node", f"Epic {epic_id} not found in graph")]

        epic_outcome = SyncPipeline("epic_deleted", epic_id).add_step(
            "delete_epic_node", delete_epic
        ).run()
        outcome.merge(epic_outcome)
        outcome.success = all(step.success for step in epic_outcome.steps)
        return outcome

    def sweep_project(self, project_id: str, tasks: Iterable[Task]) -> SyncOutcome:
        """Backfill SIMILAR_TO edges for existing tasks of a project, querying by title."""
        pipeline = SyncPipeline("similarity_backfill", project_id)
        for task in tasks:
            query = task.title or task.to_content()
            pipeline.add_step(
                f"similarity_sweep:{task.id}",
                lambda task=task, query=query: self._sweep_similar(task, query),
            )
        return pipeline.run()

    def health_check(self) -> dict[str, bool]:
        return {
            "similarity_store": _safe_health(self.similarity_store.health_check),
            "graph_store": _safe_health(self.graph_store.health_check),
        }

    def _task_pipeline(
        self,
        operation: str,
        task: Task,
        content: str | None,
        metadata: TaskMetadata | None,
    ) -> SyncPipeline:
        if not task.id or not task.project_id:
            raise ValidationError("task id and project_id are required")

        content = content or task.to_content()
        logger.info(f"Synchronizing relationships for task {task.id} in project {task.project_id}")

        return (
            SyncPipeline(operation, task.id)
            .add_step("upsert_task_node", lambda: self._upsert_task_node(task))
            .add_step("index_content", lambda: self._index_content(task, content))
            .add_step("similarity_sweep", lambda: self._sweep_similar(task, content))
            .add_step(
                "dependency_inference", lambda: self._infer_dependencies(task, content, metadata)
            )
        )

    def _upsert_task_node(self, task: Task) -> list[StepFailure]:
        self.graph_store.upsert_task_node(task)
        if not task.epic_id:
            return []
        try:
            self.graph_store.link_task_to_epic(task.id, task.epic_id, task.project_id)
        except Exception as e:
            logger.error(f"Failed to link task {task.id} to epic {task.epic_id}: {e}")
            return [
                StepFailure.from_exception("upsert_task_node", e, detail=f"epic {task.epic_id}")
            ]
        return []

    def _index_content(self, task: Task, content: str) -> None:
        self.similarity_store.upsert_document(self.corpus_name(task.project_id), task.id, content)

    def _sweep_similar(self, task: Task, query: str) -> list[StepFailure]:
        matches = self.similarity_store.search(
            query, self.corpus_name(task.project_id), top_k=self.search_top_k
        )
        logger.info(f"Found {len(matches)} similar tasks for {task.id}")
        results = self.edge_synchronizer.upsert_similar(task.id, matches, task.project_id)
        return [
            StepFailure.from_edge("similarity_sweep", result)
            for result in results
            if not result.success
        ]

    def _infer_dependencies(
        self, task: Task, content: str, metadata: TaskMetadata | None
    ) -> list[StepFailure]:
        candidates = self.extractor.extract(content, metadata)
        logger.info(f"Detected {len(candidates)} potential dependencies for {task.id}")

        resolved, errors = self.resolver.resolve_all(
            candidates, source_task_id=task.id, corpus=self.corpus_name(task.project_id)
        )
        failures = [
            StepFailure(
                step="dependency_inference",
                error_type=error.error_type,
                error=error.error,
                detail=error.candidate.target_reference,
            )
            for error in errors
        ]

        for candidate, target in resolved:
            result = self.edge_synchronizer.upsert(
                task.id, target.target_task_id, candidate.type, task.project_id, target.weight
            )
            if not result.success:
                failures.append(StepFailure.from_edge("dependency_inference", result))

        return failures

    def _link_dependency_list(self, task: Task, dependencies: list[str]) -> list[StepFailure]:
        failures = []
        for dependency in dependencies:
            try:
                target = self.resolver.resolve(
                    dependency,
                    source_task_id=task.id,
                    corpus=self.corpus_name(task.project_id),
                )
            except Exception as e:
                logger.error(f'Error resolving dependency "{dependency}": {e}')
                failures.append(StepFailure.from_exception("dependency_list", e, detail=dependency))
                continue
            if not target:
                continue

            result = self.edge_synchronizer.upsert(
                task.id,
                target.target_task_id,
                RelationshipType.DEPENDS_ON,
                task.project_id,
                target.weight,
            )
            if not result.success:
                failures.append(StepFailure.from_edge("dependency_list", result))
        return failures

    @staticmethod
    def _validate_command(
        op: str,
        source_task_id: str,
        target_task_id: str,
        relationship_type: RelationshipType | str,
        project_id: str,
        weight: float | None,
    ) -> RelationshipType:
        if op not in ("create", "delete"):
            raise ValidationError(f"Invalid op {op!r}. Must be one of: create, delete")
        if not source_task_id or not target_task_id or not relationship_type or not project_id:
            raise ValidationError(
                "source_task_id, target_task_id, relationship_type, and project_id are required"
            )
        try:
            rel_type = RelationshipType(relationship_type)
        except ValueError as e:
            valid = ", ".join(t.value for t in RelationshipType)
            raise ValidationError(
                f"Invalid relationship_type {relationship_type!r}. Must be one of: {valid}"
            ) from e
        if source_task_id == target_task_id:
            raise ValidationError("A task cannot have a relationship with itself")
        if weight is not None and not 0.0 <= weight <= 1.0:
            raise ValidationError(f"weight must be between 0 and 1, got {weight}")
        return rel_type


def _not_found(step: str, message: str) -> StepFailure:
    return StepFailure(step=step, error_type="NotFoundError", error=message)


def _safe_health(check) -> bool:
    try:
        return bool(check())
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return False
