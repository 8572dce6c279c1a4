from dataclasses import dataclass, field
from typing import Any

from mongoref.lib.Occurrence import Occurrence

# Reason recorded when a well-formed reference refers to a document that does not exist.
MISSING_TARGET_REASON = "missing target"


@dataclass(frozen=True)
class Violation:
    """
    A specific reference that lacks integrity.
    """
    source_collection_name: str = field()
    source_document_object_id: Any = field()
    source_field_path: str = field()
    target_database_name: Any = field()
    target_collection_name: Any = field()
    target_id: Any = field()
    reason: str = field()

    @classmethod
    def from_occurrence(cls, occurrence: Occurrence, reason: str = MISSING_TARGET_REASON) -> "Violation":
        r"""Returns a violation describing the specified occurrence of a reference."""
        return cls(source_collection_name=occurrence.source_collection_name,
                   source_document_object_id=occurrence.source_document_object_id,
                   source_field_path=occurrence.source_field_path,
                   target_database_name=occurrence.target_database_name,
                   target_collection_name=occurrence.target_collection_name,
                   target_id=occurrence.target_id,
                   reason=reason)
