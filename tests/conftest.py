import pytest
from fastapi.testclient import TestClient

from taskgraph.api import create_app
from taskgraph.domain.task import Task
from taskgraph.graph_stores.local_store import LocalGraphStore
from taskgraph.search import GraphSearchService
from taskgraph.synchronization.orchestrator import TaskRelationshipSynchronizer
from tests.fakes import FakeGraphStore, FakeSimilarityStore

PROJECT_ID = "project-1"


@pytest.fixture
def test_tasks() -> dict[str, Task]:
    return {
        "task-a": Task(
            id="task-a",
            title="Build login endpoint",
            description="This depends on 'Setup DB' and blocks 'Deploy API'.",
            project_id=PROJECT_ID,
        ),
        "task-b": Task(
            id="task-b",
            title="Setup DB",
            description="Create the database schema",
            project_id=PROJECT_ID,
        ),
        "task-c": Task(
            id="task-c",
            title="Deploy API",
            description="Ship the API to production",
            category="devops",
            project_id=PROJECT_ID,
        ),
    }


@pytest.fixture
def fake_similarity_store() -> FakeSimilarityStore:
    return FakeSimilarityStore()


@pytest.fixture
def fake_graph_store() -> FakeGraphStore:
    return FakeGraphStore()


@pytest.fixture
def synchronizer(
    fake_similarity_store: FakeSimilarityStore, fake_graph_store: FakeGraphStore
) -> TaskRelationshipSynchronizer:
    return TaskRelationshipSynchronizer(
        similarity_store=fake_similarity_store, graph_store=fake_graph_store
    )


@pytest.fixture
def local_graph_store(test_tasks: dict[str, Task]) -> LocalGraphStore:
    """In-memory graph store already holding the test task nodes."""
    store = LocalGraphStore()
    for task in test_tasks.values():
        store.upsert_task_node(task)
    return store


@pytest.fixture
def test_client(
    fake_similarity_store: FakeSimilarityStore, local_graph_store: LocalGraphStore
) -> TestClient:
    """Create test client with a fake similarity store and an in-memory graph store."""
    app = create_app(
        synchronizer=TaskRelationshipSynchronizer(
            similarity_store=fake_similarity_store, graph_store=local_graph_store
        ),
        search_service=GraphSearchService(
            similarity_store=fake_similarity_store, graph_store=local_graph_store
        ),
    )
    return TestClient(app)
