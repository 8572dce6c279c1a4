import datetime
import io
import re
import socket
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from bson.binary import Binary
from bson.code import Code
from bson.datetime_ms import DatetimeMS
from bson.decimal128 import Decimal128
from bson.int64 import Int64
from bson.max_key import MaxKey
from bson.min_key import MinKey
from bson.objectid import ObjectId
from bson.regex import Regex
from bson.timestamp import Timestamp
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.command_cursor import CommandCursor
from pymongo.cursor import Cursor
from pymongo.database import Database

# Types whose instances can be used, as they are, as the `_id` of a document.
IDENTIFIER_TYPES = (
    ObjectId,
    str,
    bytes,
    int,
    float,
    bool,
    type(None),
    datetime.datetime,
    DatetimeMS,
    uuid.UUID,
    re.Pattern,
    Binary,
    Code,
    Decimal128,
    Int64,
    Timestamp,
    Regex,
    MinKey,
    MaxKey,
)

# Types whose instances are handles to an operating system or database resource, rather than data.
RESOURCE_TYPES = (
    io.IOBase,
    socket.socket,
    MongoClient,
    Database,
    Collection,
    Cursor,
    CommandCursor,
)


class SourceKind(Enum):
    RAW = "raw"  # an identifier value
    DOCUMENT = "document"  # something that may contain an `_id`
    RESOURCE = "resource"  # something that has no `_id` and never will


@dataclass(frozen=True)
class IdentifierSource:
    """
    A value from which a reference's `$id` can be taken, tagged with the kind of value it is.

    Note: The value is held as-is (never copied), so the `$id` taken from it is the very same object.
    """
    kind: SourceKind = field()
    value: Any = field()

    @classmethod
    def classify(cls, value: Any) -> "IdentifierSource":
        r"""
        Returns an `IdentifierSource` wrapping the specified value and tagged with its kind.

        Resource handles are checked first, since some of them (e.g. pymongo's `Collection`) would otherwise
        pass for ordinary objects.
        """
        if isinstance(value, RESOURCE_TYPES):
            kind = SourceKind.RESOURCE
        elif isinstance(value, IDENTIFIER_TYPES):
            kind = SourceKind.RAW
        else:
            kind = SourceKind.DOCUMENT
        return cls(kind=kind, value=value)

    @property
    def type_name(self) -> str:
        r"""Returns a human-readable name of the type of the wrapped value (e.g. "dict")."""
        return type(self.value).__name__

    def has_primary_key(self, key: str) -> bool:
        r"""Returns `True` if the wrapped document-like value has the specified field (key or attribute)."""
        if isinstance(self.value, Mapping):
            return key in self.value
        if isinstance(self.value, (list, tuple)):
            return False
        return hasattr(self.value, key)

    def get_primary_key(self, key: str) -> Any:
        r"""Returns the value of the specified field of the wrapped document-like value."""
        if isinstance(self.value, Mapping):
            return self.value[key]
        return getattr(self.value, key)
