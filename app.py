import sys

from loguru import logger

from taskgraph.api import create_app
from taskgraph.config import settings
from taskgraph.factory import get_embedder, get_graph_store, get_search_service, get_synchronizer
from taskgraph.similarity_stores.local_store import LocalSimilarityStore

logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])

logger.info(
    f"Initializing task relationship synchronizer "
    f"({settings.embedder} embeddings, {settings.graph_backend} graph store)"
)
similarity_store = LocalSimilarityStore(
    embedder=get_embedder(settings), filepath=settings.local_similarity_store_path
)
graph_store = get_graph_store(settings)
app = create_app(
    synchronizer=get_synchronizer(
        settings, similarity_store=similarity_store, graph_store=graph_store
    ),
    search_service=get_search_service(
        settings, similarity_store=similarity_store, graph_store=graph_store
    ),
)
