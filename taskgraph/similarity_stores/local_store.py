import json
import threading
from pathlib import Path
from typing import Annotated, Dict

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from pydantic import BaseModel, BeforeValidator, PlainSerializer

from taskgraph.domain.relationships import SimilarityMatch
from taskgraph.embedders.base import Embedder
from taskgraph.errors import ExternalStoreError
from taskgraph.similarity_stores.base import SimilarityDocument, SimilarityStore


def nd_array_before_validator(x: list[float]) -> NDArray[np.float32]:
    return np.array(x, dtype=np.float32)


def nd_array_serializer(x: NDArray[np.float32]) -> list[float]:
    return x.tolist()  # type: ignore


NumPyArray = Annotated[
    np.ndarray,
    BeforeValidator(nd_array_before_validator),
    PlainSerializer(nd_array_serializer, return_type=list),
]


class EmbeddedDocument(SimilarityDocument):
    vector: NumPyArray

    model_config = {"arbitrary_types_allowed": True}


class LocalSimilarityStore(SimilarityStore):
    """Local similarity store that keeps embedded documents in a JSON file.

    Documents are grouped by corpus name; each project owns one corpus. Scores
    are cosine similarities clipped into ``[0, 1]``.
    """

    def __init__(self, embedder: Embedder, filepath: str | Path | None = None) -> None:
        """Initialize LocalSimilarityStore.

        Args:
            embedder: Embedder used for both documents and queries.
            filepath: Path to the store file. If provided and exists, will auto-load.
                     If provided and doesn't exist, every write is saved to this path.
                     If not provided, the store lives in memory only.
        """
        self.embedder = embedder
        self._filepath = str(filepath) if filepath else None
        self._lock = threading.Lock()
        self._corpora: Dict[str, Dict[str, EmbeddedDocument]] = {}

        if self._filepath and Path(self._filepath).exists():
            with open(self._filepath, "r") as f:
                data = json.load(f)
            self._corpora = {
                corpus: {doc_id: EmbeddedDocument(**doc) for doc_id, doc in documents.items()}
                for corpus, documents in data.get("corpora", {}).items()
            }

    def search(self, query: str, corpus: str, top_k: int = 5) -> list[SimilarityMatch]:
        """Rank the documents of a corpus against free text, best match first."""
        with self._lock:
            documents = list(self._corpora.get(corpus, {}).values())
        if not documents or not query.strip():
            return []

        try:
            query_vector = np.array(self.embedder.embed(query, input_type="query"))
        except Exception as e:
            raise ExternalStoreError(f"Failed to embed query: {e}") from e

        similarities = []
        for document in documents:
            similarity = _cosine_similarity(query_vector, np.array(document.vector))
            similarities.append((similarity, document))

        similarities.sort(key=lambda x: x[0], reverse=True)
        return [
            SimilarityMatch(id=document.id, content=document.content, relevance_score=score)
            for score, document in similarities[:top_k]
        ]

    def upsert_document(self, corpus: str, document_id: str, content: str) -> SimilarityDocument:
        """Add a document to a corpus or replace the content of an existing one."""
        try:
            vector = self.embedder.embed(content, input_type="document")
        except Exception as e:
            raise ExternalStoreError(f"Failed to embed document {document_id}: {e}") from e

        document = EmbeddedDocument(id=document_id, corpus=corpus, content=content, vector=vector)
        with self._lock:
            self._corpora.setdefault(corpus, {})[document_id] = document
            self._save()

        logger.debug(f"Stored document {document_id} in corpus {corpus}")
        return SimilarityDocument(id=document_id, corpus=corpus, content=content)

    def delete_document(self, corpus: str, document_id: str) -> bool:
        """Delete a document. Returns False when the document does not exist."""
        with self._lock:
            documents = self._corpora.get(corpus, {})
            if document_id not in documents:
                return False
            del documents[document_id]
            self._save()
        return True

    def delete_corpus(self, corpus: str) -> bool:
        """Delete a whole corpus. Returns False when the corpus does not exist."""
        with self._lock:
            if corpus not in self._corpora:
                return False
            del self._corpora[corpus]
            self._save()
        return True

    def get_document_ids(self, corpus: str) -> set[str]:
        """Get the IDs of all documents in a corpus."""
        with self._lock:
            return set(self._corpora.get(corpus, {}))

    def health_check(self) -> bool:
        return True

    def _save(self) -> None:
        if not self._filepath:
            return
        data = {
            "corpora": {
                corpus: {doc_id: doc.model_dump() for doc_id, doc in documents.items()}
                for corpus, documents in self._corpora.items()
            }
        }
        Path(self._filepath).parent.mkdir(parents=True, exist_ok=True)
        with open(self._filepath, "w") as f:
            json.dump(data, f)


def _cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, 0.0, 1.0))
