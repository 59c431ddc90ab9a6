"""Task and epic domain models."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Task(BaseModel):
    """A migration task as seen by the relationship synchronizer.

    The task record itself is owned by the task-record store; the synchronizer
    only reads it to build graph nodes and similarity documents.

    Attributes:
        id: Identifier, unique within the project (e.g. ``task-abc123``)
        title: Short task title
        description: Free-text description, scanned for dependency hints
        category: Work category such as ``backend`` or ``frontend``
        priority: Priority label such as ``low``, ``medium`` or ``high``
        clean_architecture_area: Architecture layer the task touches
        project_id: Owning project
        epic_id: Optional epic the task belongs to
        created_at: ISO-8601 creation timestamp
    """

    id: str
    title: str = ""
    description: str = ""
    category: str = "backend"
    priority: str = "medium"
    clean_architecture_area: str = "infrastructure"
    project_id: str
    epic_id: str | None = None
    created_at: str = Field(default_factory=_utc_now)

    def to_content(self) -> str:
        """Render the task as the text indexed in the similarity store."""
        parts = [
            f"Task: {self.title}" if self.title else "",
            f"Description: {self.description}" if self.description else "",
            f"Category: {self.category}" if self.category else "",
            f"Priority: {self.priority}" if self.priority else "",
            (
                f"Architecture Layer: {self.clean_architecture_area}"
                if self.clean_architecture_area
                else ""
            ),
        ]
        return "\n\n".join(part for part in parts if part)


class Epic(BaseModel):
    """An epic grouping several tasks."""

    id: str
    title: str = ""
    description: str = ""
    priority: str = "medium"
    project_id: str
    created_at: str = Field(default_factory=_utc_now)


class TaskMetadata(BaseModel):
    """Structured references declared on a task, e.g. from the task creation form."""

    depends_on: list[str] = []
    blocks: list[str] = []
