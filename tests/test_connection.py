from unittest.mock import MagicMock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

import mongoref.lib.helpers
from mongoref.lib.helpers import connect_to_database, open_session


def make_client_class(monkeypatch, database_names: list[str]) -> MagicMock:
    client = MagicMock()
    client.address = ("localhost", 27017)
    client.list_database_names.return_value = database_names
    client.get_database.return_value.name = "A"
    client_class = MagicMock(return_value=client)
    monkeypatch.setattr(mongoref.lib.helpers, "MongoClient", client_class)
    return client_class


def test_connect_to_database(monkeypatch):
    client_class = make_client_class(monkeypatch, ["A", "B"])

    mongo_client = connect_to_database("mongodb://localhost:27017", "A", verbose=False)

    assert mongo_client is client_class.return_value
    client_class.assert_called_once_with(host="mongodb://localhost:27017", directConnection=True)
    mongo_client.close.assert_not_called()


def test_connect_to_missing_database_closes_client(monkeypatch):
    client_class = make_client_class(monkeypatch, ["B"])

    with pytest.raises(ValueError, match='Database "A" not found'):
        connect_to_database("mongodb://localhost:27017", "A", verbose=False)

    client_class.return_value.close.assert_called_once_with()


def test_connect_to_unreachable_server_closes_client(monkeypatch):
    client_class = make_client_class(monkeypatch, ["A"])
    client_class.return_value.list_database_names.side_effect = ServerSelectionTimeoutError("timed out")

    with pytest.raises(ServerSelectionTimeoutError):
        connect_to_database("mongodb://localhost:27017", "A", verbose=False)

    client_class.return_value.close.assert_called_once_with()


def test_open_session_owns_client(monkeypatch):
    client_class = make_client_class(monkeypatch, ["A"])
    mongo_client = client_class.return_value

    with open_session("mongodb://localhost:27017", "A", verbose=False) as session:
        assert session.name == "A"
        assert session.database is mongo_client.get_database.return_value
        mongo_client.get_database.assert_called_once_with("A")
        mongo_client.close.assert_not_called()

    mongo_client.close.assert_called_once_with()
