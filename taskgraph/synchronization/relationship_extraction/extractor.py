"""Extraction of dependency hints from free-text task content."""

import re

from taskgraph.domain.relationships import CandidateDependency, RelationshipType
from taskgraph.domain.task import TaskMetadata

# Captures the phrase after a trigger up to a period, newline or quote.
# An opening quote right after the trigger is skipped.
_PHRASE = r"[\"'`]?([^\"'`\n.]+)[\"'`]?"

# Trigger phrases and the relationship type they imply, scanned in order.
DEPENDENCY_PATTERNS: list[tuple[re.Pattern[str], RelationshipType]] = [
    (re.compile(rf"depends on {_PHRASE}", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (re.compile(rf"requires {_PHRASE}", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (
        re.compile(rf"after {_PHRASE} is (?:done|completed|finished)", re.IGNORECASE),
        RelationshipType.DEPENDS_ON,
    ),
    (re.compile(rf"needs {_PHRASE} first", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (re.compile(rf"blocked by {_PHRASE}", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (re.compile(rf"waiting for {_PHRASE}", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (re.compile(rf"prerequisite:?\s*{_PHRASE}", re.IGNORECASE), RelationshipType.DEPENDS_ON),
    (re.compile(rf"blocks {_PHRASE}", re.IGNORECASE), RelationshipType.BLOCKS),
    (re.compile(rf"is required for {_PHRASE}", re.IGNORECASE), RelationshipType.BLOCKS),
    (re.compile(rf"must be done before {_PHRASE}", re.IGNORECASE), RelationshipType.BLOCKS),
    (re.compile(rf"prerequisite for {_PHRASE}", re.IGNORECASE), RelationshipType.BLOCKS),
]

MIN_REFERENCE_LENGTH = 3
MAX_REFERENCE_LENGTH = 100


class DependencyExtractor:
    """Finds DEPENDS_ON and BLOCKS hints in task content."""

    def __init__(
        self, patterns: list[tuple[re.Pattern[str], RelationshipType]] | None = None
    ) -> None:
        self.patterns = patterns if patterns is not None else DEPENDENCY_PATTERNS

    def extract(
        self, content: str | None, metadata: TaskMetadata | None = None
    ) -> list[CandidateDependency]:
        """Extract candidate dependencies from content and structured metadata.

        Structured references come first and are kept verbatim. Free-text
        references follow in pattern order and are dropped when their length is
        outside the noise bounds.

        Args:
            content: Free-text task content
            metadata: Optional explicit ``depends_on``/``blocks`` references

        Returns:
            Ordered list of candidates; empty when nothing matched
        """
        candidates = []

        if metadata:
            candidates += [
                CandidateDependency(type=RelationshipType.DEPENDS_ON, target_reference=ref)
                for ref in metadata.depends_on
            ]
            candidates += [
                CandidateDependency(type=RelationshipType.BLOCKS, target_reference=ref)
                for ref in metadata.blocks
            ]

        if not isinstance(content, str) or not content:
            return candidates

        for pattern, relationship_type in self.patterns:
            for match in pattern.finditer(content):
                reference = match.group(1).strip()
                if MIN_REFERENCE_LENGTH < len(reference) < MAX_REFERENCE_LENGTH:
                    candidates.append(
                        CandidateDependency(type=relationship_type, target_reference=reference)
                    )

        return candidates
