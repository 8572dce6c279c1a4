from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from bson.dbref import DBRef
from bson.son import SON

from mongoref.lib.IdentifierSource import IdentifierSource, SourceKind
from mongoref.lib.constants import REF_FIELD_NAME, ID_FIELD_NAME, DB_FIELD_NAME, PRIMARY_KEY_FIELD_NAME
from mongoref.lib.errors import (
    EmptyCollectionNameError,
    InvalidDbTypeError,
    InvalidRefTypeError,
    MissingIdError,
    UnsupportedSourceError,
)


@dataclass(frozen=True, eq=False)
class Reference(Mapping):
    """
    A reference to a document in a collection, possibly in another database.

    Instances are read-only mappings whose keys are `$ref`, `$id` and (if a database name was specified) `$db`,
    in that order; which is the shape in which references are stored within other documents.

    Note: `frozen` means the instances are immutable.
    Note: `eq=False` lets the `Mapping` base class do the comparing, so an instance equals any mapping having the
          same keys and values (e.g. the same reference as loaded from the database as a plain `dict`).
    """
    collection: str = field()  # e.g. "study_set"
    id: Any = field()  # e.g. ObjectId("...")
    database: Optional[str] = field(default=None)  # e.g. "nmdc"

    def __post_init__(self):
        if not isinstance(self.collection, str):
            raise InvalidRefTypeError(f"{REF_FIELD_NAME} field must be a string, not {type(self.collection).__name__}")
        if self.collection == "":
            raise EmptyCollectionNameError(f"{REF_FIELD_NAME} field must not be empty")
        if self.database is not None and not isinstance(self.database, str):
            raise InvalidDbTypeError(f"{DB_FIELD_NAME} field must be a string, not {type(self.database).__name__}")

    @classmethod
    def create(cls,
               identifier_source: Any,
               collection_name: str,
               database_name: Optional[str] = None) -> "Reference":
        r"""
        Builds a reference to the document having the specified identifier, in the specified collection.

        The identifier source can be:
        - an identifier (e.g. an `ObjectId`), which becomes the `$id` as-is;
        - a document (e.g. a `dict`, or any object that isn't an identifier), whose `_id` becomes the `$id`;
        - a resource handle (e.g. an open file), which is not supported.

        Raises `MissingIdError` if the source is a document lacking an `_id`, and `UnsupportedSourceError` if the
        source is a resource handle.
        """
        source = IdentifierSource.classify(identifier_source)

        if source.kind is SourceKind.RESOURCE:
            raise UnsupportedSourceError(f"Don't know what to do with a resource handle ({source.type_name})")
        elif source.kind is SourceKind.DOCUMENT:
            if not source.has_primary_key(PRIMARY_KEY_FIELD_NAME):
                raise MissingIdError(f"Cannot find {PRIMARY_KEY_FIELD_NAME} key in the {source.type_name}")
            identifier = source.get_primary_key(PRIMARY_KEY_FIELD_NAME)
        else:
            identifier = source.value

        return cls(collection=collection_name, id=identifier, database=database_name)

    def _items(self) -> list[tuple[str, Any]]:
        items = [(REF_FIELD_NAME, self.collection), (ID_FIELD_NAME, self.id)]
        if self.database is not None:
            items.append((DB_FIELD_NAME, self.database))
        return items

    def __getitem__(self, key: str) -> Any:
        for item_key, item_value in self._items():
            if item_key == key:
                return item_value
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        return iter([key for key, _ in self._items()])

    def __len__(self) -> int:
        return len(self._items())

    def __hash__(self) -> int:
        return hash((self.collection, self.id, self.database))

    def as_doc(self) -> SON:
        r"""Returns the reference as a `SON` document (i.e. an ordered `dict`) ready to be stored in a document."""
        return SON(self._items())

    def as_dbref(self) -> DBRef:
        r"""Returns the reference as the `DBRef` type that pymongo encodes and decodes natively."""
        return DBRef(self.collection, self.id, self.database)
