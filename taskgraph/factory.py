"""Build stores and services from settings."""

from taskgraph.config import Settings
from taskgraph.embedders.base import Embedder
from taskgraph.graph_stores.base import GraphStore
from taskgraph.graph_stores.local_store import LocalGraphStore
from taskgraph.search import GraphSearchService
from taskgraph.similarity_stores.base import SimilarityStore
from taskgraph.synchronization.orchestrator import TaskRelationshipSynchronizer


def get_embedder(settings: Settings) -> Embedder:
    if settings.embedder == "openai":
        from taskgraph.embedders.openai_embedder import OpenAIEmbedder

        return OpenAIEmbedder(
            api_key=settings.openai_api_key, model=settings.openai_embedding_model
        )

    from taskgraph.embedders.voyage_embedder import VoyageEmbedder

    return VoyageEmbedder(api_key=settings.voyage_ai_api_key, model=settings.voyage_model)


def get_graph_store(settings: Settings) -> GraphStore:
    if settings.graph_backend == "neo4j":
        from taskgraph.graph_stores.neo4j_store import Neo4jConfig, Neo4jGraphStore

        store = Neo4jGraphStore(
            Neo4jConfig(
                uri=settings.neo4j_uri,
                user=settings.neo4j_username,
                password=settings.neo4j_password,
                database=settings.neo4j_database,
                related_limit=settings.related_tasks_limit,
            )
        )
        store.ensure_schema()
        return store

    return LocalGraphStore(
        filepath=settings.local_graph_store_path, related_limit=settings.related_tasks_limit
    )


def get_synchronizer(
    settings: Settings, *, similarity_store: SimilarityStore, graph_store: GraphStore
) -> TaskRelationshipSynchronizer:
    return TaskRelationshipSynchronizer(
        similarity_store=similarity_store,
        graph_store=graph_store,
        dependency_threshold=settings.dependency_threshold,
        similarity_threshold=settings.similarity_threshold,
        explicit_id_prefix=settings.explicit_task_id_prefix,
        search_top_k=settings.search_top_k,
        corpus_suffix=settings.corpus_suffix,
    )


def get_search_service(
    settings: Settings, *, similarity_store: SimilarityStore, graph_store: GraphStore
) -> GraphSearchService:
    return GraphSearchService(
        similarity_store=similarity_store,
        graph_store=graph_store,
        corpus_suffix=settings.corpus_suffix,
        top_k=settings.search_top_k,
        relationship_depth=settings.related_tasks_depth,
    )
