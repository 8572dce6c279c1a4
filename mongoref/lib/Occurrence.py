from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Occurrence:
    """
    A reference, as it occurs within a specific field of a specific document.

    Note: `frozen` means the instances are immutable.
    """
    source_collection_name: str = field()  # e.g. "biosample_set"
    source_document_object_id: Any = field()  # e.g. ObjectId("...")
    source_field_path: str = field()  # e.g. "associated_studies.0"
    target_database_name: Any = field()  # e.g. "" (reminder: an empty string means the source document's database)
    target_collection_name: Any = field()  # e.g. "study_set" (reminder: could be a non-string, in a broken reference)
    target_id: Any = field()  # e.g. ObjectId("...")
