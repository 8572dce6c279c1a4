import logging
from collections.abc import Mapping
from typing import Any

from mongoref.lib.Occurrence import Occurrence
from mongoref.lib.OccurrenceList import OccurrenceList
from mongoref.lib.Resolver import resolve
from mongoref.lib.Session import Session
from mongoref.lib.Violation import Violation
from mongoref.lib.ViolationList import ViolationList
from mongoref.lib.constants import REF_FIELD_NAME, ID_FIELD_NAME, DB_FIELD_NAME, PRIMARY_KEY_FIELD_NAME
from mongoref.lib.errors import InvalidDbTypeError, InvalidRefTypeError
from mongoref.lib.helpers import find_references_in_document, get_reference_fields

logger = logging.getLogger(__name__)


class Scanner:
    r"""
    A class that can be used to check whether the references within documents refer to documents that exist.

    Occurrences and violations found by all calls to `scan_document` accumulate in the `occurrences` and
    `violations` lists.
    """

    def __init__(self, session: Session):
        self.session = session
        self.occurrences = OccurrenceList()
        self.violations = ViolationList()

    def scan_document(self, collection_name: str, document: Mapping) -> int:
        r"""
        Resolves each reference within the specified document, recording an occurrence for each reference and a
        violation for each one that does not resolve. Returns the number of violations found in the document.
        """
        num_violations = 0
        for field_path, value in find_references_in_document(document):
            fields = get_reference_fields(value)
            occurrence = Occurrence(source_collection_name=collection_name,
                                    source_document_object_id=document.get(PRIMARY_KEY_FIELD_NAME),
                                    source_field_path=field_path,
                                    target_database_name=fields.get(DB_FIELD_NAME, ""),
                                    target_collection_name=fields[REF_FIELD_NAME],
                                    target_id=fields[ID_FIELD_NAME])
            self.occurrences.append(occurrence)

            violation = self._check(occurrence, value)
            if violation is not None:
                logger.debug("Violation in %s: %s", collection_name, violation)
                self.violations.append(violation)
                num_violations += 1

        return num_violations

    def _check(self, occurrence: Occurrence, reference: Any) -> Violation | None:
        try:
            target_document = resolve(self.session, reference)
        except (InvalidRefTypeError, InvalidDbTypeError) as error:
            return Violation.from_occurrence(occurrence, reason=f"{type(error).__name__} (code {error.code})")

        if target_document is None:
            return Violation.from_occurrence(occurrence)
        return None
