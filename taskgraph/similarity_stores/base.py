from typing import Protocol

from pydantic import BaseModel

from taskgraph.domain.relationships import SimilarityMatch


class SimilarityDocument(BaseModel):
    """Handle for a document stored in a similarity corpus."""

    id: str
    corpus: str
    content: str


class SimilarityStore(Protocol):
    def search(self, query: str, corpus: str, top_k: int = 5) -> list[SimilarityMatch]:
        """Rank the documents of a corpus against free text, best match first."""
        ...

    def upsert_document(self, corpus: str, document_id: str, content: str) -> SimilarityDocument:
        """Add a document to a corpus or replace the content of an existing one."""
        ...

    def delete_document(self, corpus: str, document_id: str) -> bool:
        """Delete a document. Returns False when the document does not exist."""
        ...

    def health_check(self) -> bool:
        """Check that the store can be reached."""
        ...
