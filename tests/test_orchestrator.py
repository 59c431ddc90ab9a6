import pytest

from taskgraph.domain.relationships import RelationshipType, SimilarityMatch
from taskgraph.domain.task import Epic, Task, TaskMetadata
from taskgraph.errors import ValidationError
from taskgraph.synchronization.orchestrator import TaskRelationshipSynchronizer
from tests.fakes import FakeGraphStore, FakeSimilarityStore

PROJECT_ID = "project-1"
CORPUS = "project-1-tasks-rag"


def _edge_set(graph_store: FakeGraphStore) -> set[tuple[str, str, str, float]]:
    return {
        (e.source_task_id, e.target_task_id, e.type.value, e.weight)
        for e in graph_store.edges.values()
    }


def test_task_written_full_flow(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    fake_graph_store: FakeGraphStore,
    test_tasks: dict[str, Task],
) -> None:
    """Test indexing, the similarity sweep and dependency inference for one task write."""
    task = test_tasks["task-a"]
    content = task.description
    fake_similarity_store.results = {
        content: [
            SimilarityMatch(id="task-a", relevance_score=1.0),
            SimilarityMatch(id="task-b", relevance_score=0.8),
            SimilarityMatch(id="task-c", relevance_score=0.65),
        ],
        "Setup DB": [SimilarityMatch(id="task-b", relevance_score=0.9)],
        "Deploy API": [SimilarityMatch(id="task-c", relevance_score=0.7)],
    }

    outcome = synchronizer.on_task_written(task, content)

    assert outcome.success
    assert outcome.failures == []
    assert [s.step for s in outcome.steps] == [
        "upsert_task_node",
        "index_content",
        "similarity_sweep",
        "dependency_inference",
    ]
    assert fake_graph_store.tasks["task-a"] == task
    assert fake_similarity_store.documents[CORPUS]["task-a"] == content
    assert _edge_set(fake_graph_store) == {
        ("task-a", "task-b", "SIMILAR_TO", 0.8),
        ("task-b", "task-a", "SIMILAR_TO", 0.8),
        ("task-a", "task-b", "DEPENDS_ON", 0.9),
        ("task-a", "task-c", "BLOCKS", 0.7),
    }


def test_task_written_defaults_content_to_task_rendering(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    test_tasks: dict[str, Task],
) -> None:
    task = test_tasks["task-b"]

    synchronizer.on_task_written(task)

    indexed = fake_similarity_store.documents[CORPUS]["task-b"]
    assert indexed == task.to_content()
    assert indexed.startswith("Task: Setup DB\n\nDescription: Create the database schema")


def test_fault_isolation_when_similarity_store_unreachable(
    fake_graph_store: FakeGraphStore, test_tasks: dict[str, Task]
) -> None:
    """Test that the task node is written and the outcome succeeds with recorded failures."""
    synchronizer = TaskRelationshipSynchronizer(
        similarity_store=FakeSimilarityStore(unreachable=True), graph_store=fake_graph_store
    )
    task = test_tasks["task-a"]

    outcome = synchronizer.on_task_written(task)

    assert outcome.success
    assert "task-a" in fake_graph_store.tasks
    failed_steps = {f.step for f in outcome.failures}
    assert {"index_content", "similarity_sweep", "dependency_inference"} <= failed_steps
    assert all(f.error_type == "ExternalStoreError" for f in outcome.failures)


def test_metadata_explicit_ids_skip_search(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    fake_graph_store: FakeGraphStore,
) -> None:
    task = Task(id="task-x", title="Refactor", project_id=PROJECT_ID)
    metadata = TaskMetadata(depends_on=["task-123"], blocks=["task-456"])

    outcome = synchronizer.on_task_written(task, "Refactor the repository layer", metadata)

    assert outcome.success
    assert _edge_set(fake_graph_store) == {
        ("task-x", "task-123", "DEPENDS_ON", 1.0),
        ("task-x", "task-456", "BLOCKS", 1.0),
    }
    # Only the similarity sweep queried the store
    assert fake_similarity_store.queries == [("Refactor the repository layer", CORPUS)]


def test_task_written_links_epic(
    synchronizer: TaskRelationshipSynchronizer, fake_graph_store: FakeGraphStore
) -> None:
    task = Task(id="task-x", title="Login", project_id=PROJECT_ID, epic_id="epic-1")

    synchronizer.on_task_written(task)

    assert fake_graph_store.epic_links == {"task-x": "epic-1"}


def test_task_written_requires_ids(synchronizer: TaskRelationshipSynchronizer) -> None:
    with pytest.raises(ValidationError):
        synchronizer.on_task_written(Task(id="task-x", project_id=""))


def test_task_updated_links_dependency_list(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    fake_graph_store: FakeGraphStore,
) -> None:
    """Test that dependency list entries resolve by explicit ID or by similarity."""
    fake_similarity_store.results = {
        "Setup DB": [SimilarityMatch(id="task-b", relevance_score=0.85)],
        "Unknown work": [SimilarityMatch(id="task-c", relevance_score=0.4)],
    }
    task = Task(id="task-a", title="Login", project_id=PROJECT_ID)

    outcome = synchronizer.on_task_updated(
        task, "Login form", dependencies=["task-9", "Setup DB", "Unknown work"]
    )

    assert outcome.success
    assert outcome.steps[-1].step == "dependency_list"
    assert _edge_set(fake_graph_store) == {
        ("task-a", "task-9", "DEPENDS_ON", 1.0),
        ("task-a", "task-b", "DEPENDS_ON", 0.85),
    }


def test_relationship_command_create_and_delete(
    synchronizer: TaskRelationshipSynchronizer, fake_graph_store: FakeGraphStore
) -> None:
    created = synchronizer.on_relationship_command(
        "create", "task-a", "task-b", "RELATED_TO", PROJECT_ID
    )

    assert created.success
    assert created.operation == "create_relationship"
    assert _edge_set(fake_graph_store) == {("task-a", "task-b", "RELATED_TO", 1.0)}

    deleted = synchronizer.on_relationship_command(
        "delete", "task-a", "task-b", RelationshipType.RELATED_TO, PROJECT_ID
    )

    assert deleted.success
    assert fake_graph_store.edges == {}


def test_relationship_command_delete_missing(
    synchronizer: TaskRelationshipSynchronizer,
) -> None:
    outcome = synchronizer.on_relationship_command(
        "delete", "task-a", "task-b", "BLOCKS", PROJECT_ID
    )

    assert not outcome.success
    assert outcome.failures[0].error_type == "NotFoundError"


def test_relationship_command_store_failure(test_tasks: dict[str, Task]) -> None:
    graph_store = FakeGraphStore(failing_edges={("task-a", "task-b")})
    synchronizer = TaskRelationshipSynchronizer(
        similarity_store=FakeSimilarityStore(), graph_store=graph_store
    )

    outcome = synchronizer.on_relationship_command(
        "create", "task-a", "task-b", "DEPENDS_ON", PROJECT_ID, 0.5
    )

    assert not outcome.success
    assert outcome.failures[0].error_type == "ExternalStoreError"


@pytest.mark.parametrize(
    "op,source,target,rel_type,weight",
    [
        ("update", "task-a", "task-b", "DEPENDS_ON", None),
        ("create", "", "task-b", "DEPENDS_ON", None),
        ("create", "task-a", "", "DEPENDS_ON", None),
        ("create", "task-a", "task-b", "", None),
        ("create", "task-a", "task-b", "PART_OF", None),
        ("create", "task-a", "task-a", "DEPENDS_ON", None),
        ("create", "task-a", "task-b", "DEPENDS_ON", 1.5),
    ],
)
def test_relationship_command_validation(
    synchronizer: TaskRelationshipSynchronizer,
    fake_graph_store: FakeGraphStore,
    op: str,
    source: str,
    target: str,
    rel_type: str,
    weight: float | None,
) -> None:
    """Test that invalid commands are rejected before any store write."""
    with pytest.raises(ValidationError):
        synchronizer.on_relationship_command(
            op, source, target, rel_type, PROJECT_ID, weight  # type: ignore[arg-type]
        )

    assert fake_graph_store.edge_writes == []


def test_task_deleted(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    fake_graph_store: FakeGraphStore,
    test_tasks: dict[str, Task],
) -> None:
    synchronizer.on_task_written(test_tasks["task-b"])

    outcome = synchronizer.on_task_deleted("task-b", PROJECT_ID)

    assert outcome.success
    assert "task-b" not in fake_graph_store.tasks
    assert fake_similarity_store.documents[CORPUS] == {}


def test_task_deleted_missing_reports_not_found(
    synchronizer: TaskRelationshipSynchronizer,
) -> None:
    outcome = synchronizer.on_task_deleted("task-missing", PROJECT_ID)

    assert not outcome.success
    assert [f.step for f in outcome.failures] == ["delete_document", "delete_task_node"]
    assert {f.error_type for f in outcome.failures} == {"NotFoundError"}


def test_epic_deleted_cascade_continues_past_missing_task(
    synchronizer: TaskRelationshipSynchronizer,
    fake_graph_store: FakeGraphStore,
    test_tasks: dict[str, Task],
) -> None:
    """Test that one missing task does not abort the cascade or fail the epic deletion."""
    synchronizer.on_epic_written(Epic(id="epic-1", title="Auth", project_id=PROJECT_ID))
    synchronizer.on_task_written(test_tasks["task-b"])
    synchronizer.on_task_written(test_tasks["task-c"])

    outcome = synchronizer.on_epic_deleted(
        "epic-1", PROJECT_ID, ["task-b", "task-missing", "task-c"]
    )

    assert outcome.success
    assert fake_graph_store.epics == {}
    assert "task-b" not in fake_graph_store.tasks
    assert "task-c" not in fake_graph_store.tasks
    assert {f.detail or f.error for f in outcome.failures} == {
        f"Document task-missing not found in {CORPUS}",
        "Task task-missing not found in graph",
    }


def test_epic_deleted_missing_epic(synchronizer: TaskRelationshipSynchronizer) -> None:
    outcome = synchronizer.on_epic_deleted("epic-missing", PROJECT_ID)

    assert not outcome.success
    assert outcome.failures[0].step == "delete_epic_node"


def test_sweep_project_queries_by_title(
    synchronizer: TaskRelationshipSynchronizer,
    fake_similarity_store: FakeSimilarityStore,
    fake_graph_store: FakeGraphStore,
    test_tasks: dict[str, Task],
) -> None:
    fake_similarity_store.results = {
        "Setup DB": [SimilarityMatch(id="task-c", relevance_score=0.72)],
    }

    outcome = synchronizer.sweep_project(PROJECT_ID, test_tasks.values())

    assert [s.step for s in outcome.steps] == [
        "similarity_sweep:task-a",
        "similarity_sweep:task-b",
        "similarity_sweep:task-c",
    ]
    assert [q for q, _ in fake_similarity_store.queries] == [
        "Build login endpoint",
        "Setup DB",
        "Deploy API",
    ]
    assert _edge_set(fake_graph_store) == {
        ("task-b", "task-c", "SIMILAR_TO", 0.72),
        ("task-c", "task-b", "SIMILAR_TO", 0.72),
    }


def test_health_check(fake_graph_store: FakeGraphStore) -> None:
    synchronizer = TaskRelationshipSynchronizer(
        similarity_store=FakeSimilarityStore(unreachable=True), graph_store=fake_graph_store
    )

    assert synchronizer.health_check() == {"similarity_store": False, "graph_store": True}


def test_epic_deleted_rejects_empty_task_id_before_deleting(
    synchronizer: TaskRelationshipSynchronizer,
    fake_graph_store: FakeGraphStore,
    test_tasks: dict[str, Task],
) -> None:
    """Test that an empty ID anywhere in the cascade is rejected before any deletion."""
    synchronizer.on_epic_written(Epic(id="epic-1", title="Auth", project_id=PROJECT_ID))
    synchronizer.on_task_written(test_tasks["task-a"])

    with pytest.raises(ValidationError):
        synchronizer.on_epic_deleted("epic-1", PROJECT_ID, ["task-a", ""])

    assert "task-a" in fake_graph_store.tasks
    assert "epic-1" in fake_graph_store.epics
