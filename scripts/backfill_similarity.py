"""CLI for creating SIMILAR_TO relationships between the existing tasks of a project"""

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from taskgraph.config import settings
from taskgraph.domain.task import Task
from taskgraph.factory import get_embedder, get_graph_store, get_synchronizer
from taskgraph.similarity_stores.local_store import LocalSimilarityStore


def load_tasks(tasks_file: Path) -> list[Task]:
    """Load tasks from a JSON file holding a list of task objects."""
    with open(tasks_file, "r", encoding="utf-8") as f:
        return [Task.model_validate(item) for item in json.load(f)]


def main(project_id: str, tasks_file: str, index_content: bool) -> int:
    tasks = [t for t in load_tasks(Path(tasks_file)) if t.project_id == project_id]
    logger.info(f"Processing project {project_id} ({len(tasks)} tasks)")

    similarity_store = LocalSimilarityStore(
        embedder=get_embedder(settings), filepath=settings.local_similarity_store_path
    )
    graph_store = get_graph_store(settings)
    synchronizer = get_synchronizer(
        settings, similarity_store=similarity_store, graph_store=graph_store
    )

    if index_content:
        corpus = synchronizer.corpus_name(project_id)
        for task in tasks:
            graph_store.upsert_task_node(task)
            similarity_store.upsert_document(corpus, task.id, task.to_content())

    outcome = synchronizer.sweep_project(project_id, tasks)
    for failure in outcome.failures:
        logger.warning(f"{failure.step}: {failure.error_type}: {failure.error}")

    logger.info(
        f"Backfill complete: {len(outcome.steps)} tasks swept, {len(outcome.failures)} failures"
    )
    return 1 if outcome.failures else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--project-id", type=str, required=True, help="Project to backfill")
    parser.add_argument(
        "--tasks-file", type=str, required=True, help="JSON file with the project's tasks"
    )
    parser.add_argument(
        "--index-content",
        action="store_true",
        help="Also (re)index task nodes and content before sweeping",
    )

    args = parser.parse_args()

    logger.configure(handlers=[{"sink": sys.stderr, "level": settings.log_level}])
    sys.exit(
        main(
            project_id=args.project_id,
            tasks_file=args.tasks_file,
            index_content=args.index_content,
        )
    )
