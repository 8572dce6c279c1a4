import io
from collections import OrderedDict
from dataclasses import FrozenInstanceError

import pytest
from bson.datetime_ms import DatetimeMS
from bson.dbref import DBRef
from bson.objectid import ObjectId
from bson.son import SON

from mongoref.lib.Reference import Reference
from mongoref.lib.errors import (
    EmptyCollectionNameError,
    InvalidDbTypeError,
    InvalidRefTypeError,
    MalformedSourceError,
    MissingIdError,
    UnsupportedSourceError,
)


class Study:
    def __init__(self, _id, name):
        self._id = _id
        self.name = name


def test_create_from_identifier():
    object_id = ObjectId()
    reference = Reference.create(object_id, "coll")

    assert reference["$ref"] == "coll"
    assert reference["$id"] == object_id
    assert "$db" not in reference
    assert list(reference.keys()) == ["$ref", "$id"]
    assert len(reference) == 2


def test_create_with_database_name():
    reference = Reference.create(7, "coll", "other_db")

    assert list(reference.items()) == [("$ref", "coll"), ("$id", 7), ("$db", "other_db")]
    assert reference.database == "other_db"


@pytest.mark.parametrize("identifier", ["abc", 0, 1.5, None, True, b"\x00\x01", DatetimeMS(0)])
def test_create_from_scalar_identifiers(identifier):
    assert Reference.create(identifier, "coll")["$id"] is identifier


def test_create_from_document_uses_its_id():
    assert Reference.create({"_id": 7, "name": "x"}, "coll")["$id"] == 7
    assert Reference.create(SON([("name", "x"), ("_id", 8)]), "coll")["$id"] == 8
    assert Reference.create(OrderedDict(_id=9), "coll")["$id"] == 9


def test_create_from_object_uses_its_id_attribute():
    assert Reference.create(Study(_id="s1", name="x"), "study_set")["$id"] == "s1"


def test_create_shares_identifier_with_source():
    identifier = {"compound": ["key"]}
    document = {"_id": identifier}

    reference = Reference.create(document, "coll")

    assert reference["$id"] is identifier
    assert document["_id"] is identifier  # the source still has its identifier


def test_create_fails_when_document_lacks_id():
    with pytest.raises(MissingIdError) as exc_info:
        Reference.create({"name": "x"}, "coll")

    assert isinstance(exc_info.value, MalformedSourceError)
    assert exc_info.value.code == 20
    assert "_id" in str(exc_info.value)


@pytest.mark.parametrize("source", [[1, 2], ("_id", 1), object()])
def test_create_fails_for_other_aggregates_lacking_id(source):
    with pytest.raises(MissingIdError):
        Reference.create(source, "coll")


def test_create_fails_for_resource_handles():
    with io.StringIO("_id") as file:
        with pytest.raises(UnsupportedSourceError) as exc_info:
            Reference.create(file, "coll")

    assert isinstance(exc_info.value, MalformedSourceError)
    assert exc_info.value.code == 21


def test_missing_id_and_unsupported_source_are_distinguishable():
    assert not issubclass(MissingIdError, UnsupportedSourceError)
    assert not issubclass(UnsupportedSourceError, MissingIdError)
    assert MissingIdError.code != UnsupportedSourceError.code


def test_create_validates_names():
    with pytest.raises(InvalidRefTypeError):
        Reference.create(1, 5)
    with pytest.raises(EmptyCollectionNameError):
        Reference.create(1, "")
    with pytest.raises(InvalidDbTypeError):
        Reference.create(1, "coll", 5)


def test_reference_is_immutable():
    reference = Reference.create(1, "coll")

    with pytest.raises(FrozenInstanceError):
        reference.collection = "other"
    with pytest.raises(TypeError):
        reference["$ref"] = "other"


def test_reference_equals_mapping_with_same_fields():
    reference = Reference.create(1, "coll", "db")

    assert reference == {"$ref": "coll", "$id": 1, "$db": "db"}
    assert reference != {"$ref": "coll", "$id": 1}
    assert reference == Reference(collection="coll", id=1, database="db")
    assert hash(reference) == hash(Reference(collection="coll", id=1, database="db"))


def test_reference_conversions():
    object_id = ObjectId()
    reference = Reference.create(object_id, "coll", "db")

    document = reference.as_doc()
    assert isinstance(document, SON)
    assert list(document.keys()) == ["$ref", "$id", "$db"]

    dbref = reference.as_dbref()
    assert dbref == DBRef("coll", object_id, "db")
    assert dict(reference) == dbref.as_doc().to_dict()
