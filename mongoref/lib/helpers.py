from collections.abc import Mapping
from typing import Any, Iterator, Optional

from bson.dbref import DBRef
from pymongo import MongoClient, timeout
from rich.progress import (
    Progress,
    TextColumn,
    MofNCompleteColumn,
    BarColumn,
    TimeElapsedColumn,
    TimeRemainingColumn
)

from mongoref.lib.Session import MongoSession
from mongoref.lib.constants import REF_FIELD_NAME, ID_FIELD_NAME, console

# Types whose instances can never be references, no matter what.
SCALAR_TYPES = (str, bytes, bytearray, int, float, complex, bool, type(None))


def connect_to_database(mongo_uri: str, database_name: str, verbose: bool = True) -> MongoClient:
    """
    Returns a Mongo client. Raises an exception if the database is not accessible.
    """
    mongo_client: MongoClient = MongoClient(host=mongo_uri, directConnection=True)

    try:
        with (timeout(5)):  # if any message exchange takes > 5 seconds, this will raise an exception
            (host, port_number) = mongo_client.address

            if verbose:
                console.print(f'Connected to MongoDB server: "{host}:{port_number}"')

            # Check whether the database exists on the MongoDB server.
            if database_name not in mongo_client.list_database_names():
                raise ValueError(f'Database "{database_name}" not found on the MongoDB server.')
    except Exception:
        mongo_client.close()
        raise

    return mongo_client


def open_session(mongo_uri: str, database_name: str, verbose: bool = True) -> MongoSession:
    """
    Returns a session bound to the specified database. Closing the session closes its connection to the server.
    """
    mongo_client = connect_to_database(mongo_uri, database_name, verbose=verbose)
    return MongoSession(database=mongo_client.get_database(database_name), owns_client=True)


def get_reference_fields(value: Any) -> Optional[Mapping]:
    r"""
    Returns a mapping through which the fields of the specified value can be looked up by name; or `None` if the
    value is a scalar (i.e. something that has no fields at all).

    Examples:
    - `{"$ref": "c", "$id": 1}` -> the `dict` itself
    - `DBRef("c", 1)` -> `{"$ref": "c", "$id": 1}`
    - `42` -> `None`
    """
    if isinstance(value, SCALAR_TYPES):
        return None
    if isinstance(value, Mapping):  # includes `Reference`, `SON`, and `RawBSONDocument` instances
        return value
    if isinstance(value, DBRef):
        return value.as_doc()
    if isinstance(value, (list, tuple, set, frozenset)):
        return {}  # an aggregate, but one without named fields
    if hasattr(value, "__dict__"):
        return vars(value)
    return None


def is_reference(value: Any) -> bool:
    r"""
    Returns `True` if the specified value has both a `$ref` and an `$id` field; else returns `False`.

    Note: This only checks whether those fields are present. It does not check their types; `resolve` does that.
    """
    fields = get_reference_fields(value)
    if fields is None:
        return False
    return REF_FIELD_NAME in fields and ID_FIELD_NAME in fields


def find_references_in_document(document: Mapping, path: str = "") -> Iterator[tuple[str, Any]]:
    r"""
    Yields a `(field_path, value)` tuple for each reference nested (at any depth) within the specified document.

    The field path uses dot notation, with list items identified by their index (e.g. `"authors.0"`). References
    nested within references are not searched for.
    """
    for key, value in document.items():
        field_path = f"{path}.{key}" if path else str(key)
        yield from _find_references_in_value(value, field_path)


def _find_references_in_value(value: Any, field_path: str) -> Iterator[tuple[str, Any]]:
    if is_reference(value):
        yield field_path, value
    elif isinstance(value, Mapping):
        yield from find_references_in_document(value, path=field_path)
    elif isinstance(value, list):
        for index, item in enumerate(value):
            yield from _find_references_in_value(item, f"{field_path}.{index}")


def init_progress_bar() -> Progress:
    r"""
    Initialize a progress bar that shows the elapsed time, M-of-N completed count, and more.

    Reference: https://rich.readthedocs.io/en/stable/progress.html?highlight=progress#columns
    """
    custom_progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        TextColumn("[red]{task.fields[num_violations]}[/red] violations in"),
        MofNCompleteColumn(),
        TextColumn("documents"),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        BarColumn(),
        TimeElapsedColumn(),
        TextColumn("elapsed"),
        TimeRemainingColumn(elapsed_when_finished=True),
        TextColumn("{task.fields[remaining_time_label]}"),
        console=console,
        refresh_per_second=1,
    )

    return custom_progress


def get_lowercase_key(key_value_pair: tuple) -> str:
    r"""Returns the key from a `(key, value)` tuple, in lowercase."""
    return key_value_pair[0].lower()
