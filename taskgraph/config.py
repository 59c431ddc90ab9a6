from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Relationship inference
    dependency_threshold: float = 0.6
    similarity_threshold: float = 0.7
    explicit_task_id_prefix: str = "task-"
    search_top_k: int = 5
    corpus_suffix: str = "-tasks-rag"

    # Graph queries
    related_tasks_depth: int = 2
    related_tasks_limit: int = 20

    # Embedding settings
    embedder: Literal["voyage", "openai"] = "voyage"
    voyage_ai_api_key: str = ""
    voyage_model: str = "voyage-3"
    openai_api_key: str = ""
    openai_embedding_model: str = "text-embedding-3-large"

    # Store settings
    graph_backend: Literal["local", "neo4j"] = "local"
    local_similarity_store_path: str = "data/similarity.json"
    local_graph_store_path: str = "data/graph.json"
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_username: str = "neo4j"
    neo4j_password: str = ""
    neo4j_database: str = "neo4j"

    log_level: str = "INFO"  # Can be DEBUG, INFO, WARNING, ERROR, CRITICAL


settings = Settings()
