from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from taskgraph.api.endpoints import get_endpoints_router
from taskgraph.search import GraphSearchService
from taskgraph.synchronization.orchestrator import TaskRelationshipSynchronizer


def create_app(
    *,
    synchronizer: TaskRelationshipSynchronizer,
    search_service: GraphSearchService,
) -> FastAPI:
    """Create FastAPI app."""
    app = FastAPI(title="taskgraph")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(
        router=get_endpoints_router(synchronizer=synchronizer, search_service=search_service)
    )

    return app
