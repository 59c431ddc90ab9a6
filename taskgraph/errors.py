"""Error taxonomy for relationship synchronization."""


class TaskGraphError(Exception):
    """Base class for all task graph errors."""


class ValidationError(TaskGraphError, ValueError):
    """A command is missing required fields or names an unknown relationship type."""


class ExternalStoreError(TaskGraphError):
    """A similarity or graph store call failed."""


class NotFoundError(ExternalStoreError):
    """The document, node or edge addressed by a store call does not exist."""
