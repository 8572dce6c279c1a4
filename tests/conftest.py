from typing import Any, Optional

import pytest


class FakeCollection:
    """
    An in-memory collection that records each lookup made in it.
    """

    def __init__(self, session: "FakeSession", name: str, documents: list[dict], error: Optional[Exception] = None):
        self.session = session
        self.name = name
        self.documents = documents
        self.error = error

    def find_one(self, filter: dict) -> Optional[dict]:
        self.session.calls.append(("find_one", self.session.database_name, self.name, filter))
        if self.error is not None:
            raise self.error
        for document in self.documents:
            if all(document.get(key) == value for key, value in filter.items()):
                return document
        return None

    def count_documents(self, filter: dict) -> int:
        return len(self.documents)

    def find(self, filter: dict) -> list[dict]:
        return list(self.documents)


class FakeDatabase:
    """
    The parts of a pymongo `Database` that the `scan` command uses, over the data of a `FakeSession`.
    """

    def __init__(self, session: "FakeSession"):
        self.session = session

    def list_collection_names(self) -> list[str]:
        return list(self.session.databases.get(self.session.database_name, {}))

    def get_collection(self, name: str) -> FakeCollection:
        documents = self.session.databases.get(self.session.database_name, {}).get(name, [])
        return FakeCollection(self.session, name, documents)


class FakeSession:
    """
    An in-memory session that records each call made to it (and to any session or collection it hands out).

    `databases` maps database names to collection names to lists of documents. All sessions derived from the
    same session share that data and the same call log.
    """

    def __init__(self,
                 name: str,
                 databases: dict[str, dict[str, list[dict]]],
                 calls: Optional[list[tuple]] = None,
                 error: Optional[Exception] = None):
        self.database_name = name
        self.databases = databases
        self.calls = [] if calls is None else calls
        self.error = error
        self.closed = False
        self.selected_sessions: list["FakeSession"] = []

    @property
    def database(self) -> FakeDatabase:
        return FakeDatabase(self)

    @property
    def name(self) -> str:
        self.calls.append(("name", self.database_name))
        return self.database_name

    def select_database(self, name: str) -> "FakeSession":
        self.calls.append(("select_database", name))
        session = FakeSession(name, self.databases, calls=self.calls, error=self.error)
        self.selected_sessions.append(session)
        return session

    def select_collection(self, name: str) -> FakeCollection:
        assert not self.closed, "session used after being closed"
        self.calls.append(("select_collection", self.database_name, name))
        documents = self.databases.get(self.database_name, {}).get(name, [])
        return FakeCollection(self, name, documents, error=self.error)

    def close(self) -> None:
        self.calls.append(("close", self.database_name))
        self.closed = True

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def databases() -> dict[str, dict[str, list[dict]]]:
    return {
        "A": {
            "c": [{"_id": 1, "name": "one in A"}, {"_id": 2, "name": "two in A"}],
            "study_set": [{"_id": "s1", "part_of": {"$ref": "study_set", "$id": "s0"}}],
        },
        "B": {
            "c": [{"_id": 1, "name": "one in B"}],
        },
    }


@pytest.fixture
def session(databases) -> FakeSession:
    return FakeSession("A", databases)
