import logging
from collections.abc import Mapping
from typing import Any, Optional, Protocol, runtime_checkable

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database

from mongoref.lib.errors import SessionClosedError

logger = logging.getLogger(__name__)


@runtime_checkable
class CollectionHandle(Protocol):
    r"""A handle to a collection, in which a document can be looked up."""

    def find_one(self, filter: Mapping) -> Optional[Mapping]:
        ...


@runtime_checkable
class Session(Protocol):
    r"""
    A handle to one database on a database server.

    Note: pymongo's `Collection` already satisfies the `CollectionHandle` protocol. The `MongoSession` class (below)
          makes a pymongo `Database` satisfy this one.
    """

    @property
    def name(self) -> str:
        ...

    def select_database(self, name: str) -> "Session":
        ...

    def select_collection(self, name: str) -> CollectionHandle:
        ...

    def close(self) -> None:
        ...


class MongoSession:
    r"""
    A `Session` bound to a pymongo `Database`.

    A session either borrows its client (the default), or owns it, in which case closing the session also closes
    the client (i.e. the connection to the MongoDB server).
    """

    def __init__(self, database: Database, owns_client: bool = False):
        self._database: Optional[Database] = database
        self._owns_client = owns_client
        self._name = database.name

    @property
    def name(self) -> str:
        return self._name

    @property
    def database(self) -> Database:
        if self._database is None:
            raise SessionClosedError(f'Session bound to database "{self._name}" has been closed')
        return self._database

    @property
    def is_closed(self) -> bool:
        return self._database is None

    def select_database(self, name: str) -> "MongoSession":
        r"""
        Returns a new session bound to the specified database, on the same client as this session.

        The new session inherits this session's codec options, read preference, write concern and read concern;
        and borrows (rather than owns) the client.
        """
        current_database = self.database
        client: MongoClient = current_database.client
        database = client.get_database(name,
                                       codec_options=current_database.codec_options,
                                       read_preference=current_database.read_preference,
                                       write_concern=current_database.write_concern,
                                       read_concern=current_database.read_concern)
        logger.debug('Opened session bound to database "%s"', name)
        return MongoSession(database=database)

    def select_collection(self, name: str) -> Collection:
        return self.database.get_collection(name)

    def close(self) -> None:
        r"""
        Releases this session's handle to its database and, if the session owns its client, closes the client.

        Closing a session more than once has no further effect.
        """
        if self._database is None:
            return
        client = self._database.client
        self._database = None
        if self._owns_client:
            client.close()
        logger.debug('Closed session bound to database "%s"', self._name)

    def __enter__(self) -> "MongoSession":
        return self

    def __exit__(self, exc_type: Any, exc_value: Any, traceback: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else "open"
        return f"MongoSession(name={self._name!r}, {state})"
