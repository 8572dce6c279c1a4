import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from mongoref.lib.Session import Session
from mongoref.lib.constants import REF_FIELD_NAME, ID_FIELD_NAME, DB_FIELD_NAME, PRIMARY_KEY_FIELD_NAME
from mongoref.lib.errors import InvalidDbTypeError, InvalidRefTypeError
from mongoref.lib.helpers import get_reference_fields

logger = logging.getLogger(__name__)


@contextmanager
def switched_database(session: Session, database_name: Optional[str]) -> Iterator[Session]:
    r"""
    Yields a session bound to the specified database.

    If no database name is specified, or the specified one is the one the session is already bound to, yields the
    session itself. Otherwise, yields a new session, which is closed upon exiting the context (whether it exits
    normally or due to an exception). The session passed in is never closed.
    """
    if database_name is None or database_name == session.name:
        yield session
        return

    logger.debug('Switching from database "%s" to database "%s"', session.name, database_name)
    switched_session = session.select_database(database_name)
    try:
        yield switched_session
    finally:
        switched_session.close()


def resolve(session: Session, reference: Any) -> Optional[Any]:
    r"""
    Returns the document the specified reference refers to; or `None` if there is no such document, or if the
    specified value is not a reference at all (i.e. it lacks a `$ref` or an `$id` field).

    If the reference has a `$db` field naming a database other than the one the session is bound to, the document
    is looked up in that other database, via a session that only exists for the duration of this call.

    Raises `InvalidRefTypeError` if the `$ref` field is not a string, and `InvalidDbTypeError` if the `$db` field
    is present but is not a string. Those checks are made before the session is used at all. Any exception raised
    by the session or collection is propagated as-is.

    References:
    - https://www.mongodb.com/docs/manual/reference/database-references/#dbrefs
    """
    fields = get_reference_fields(reference)
    if fields is None or REF_FIELD_NAME not in fields or ID_FIELD_NAME not in fields:
        return None

    collection_name = fields[REF_FIELD_NAME]
    if not isinstance(collection_name, str):
        raise InvalidRefTypeError(f"{REF_FIELD_NAME} field must be a string, not {type(collection_name).__name__}")

    database_name = fields.get(DB_FIELD_NAME)
    if DB_FIELD_NAME in fields and not isinstance(database_name, str):
        raise InvalidDbTypeError(f"{DB_FIELD_NAME} field must be a string, not {type(database_name).__name__}")

    with switched_database(session, database_name) as active_session:
        collection = active_session.select_collection(collection_name)
        query_filter = {PRIMARY_KEY_FIELD_NAME: fields[ID_FIELD_NAME]}
        logger.debug('Looking up %r in collection "%s" of database "%s"',
                     query_filter, collection_name, active_session.name)
        return collection.find_one(query_filter)
