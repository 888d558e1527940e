import json
import os
from types import SimpleNamespace

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from finboard.config import Settings
from finboard.errors import DocumentNotFound, StoreError
from finboard.store import JsonDocumentStore, MongoDocumentStore, open_store

SEED = os.path.join(os.path.dirname(__file__), "..", "data", "seed.json")


def make_store(tmp_path):
    return JsonDocumentStore(str(tmp_path / "db.json"))


def test_insert_and_find_all(tmp_path):
    store = make_store(tmp_path)
    doc_id = store.insert("hack", {"type": "expense", "amount": 600})

    docs = store.find_all("hack")
    assert len(docs) == 1
    assert docs[0]["_id"] == doc_id
    assert docs[0]["amount"] == 600


def test_missing_collection_is_empty(tmp_path):
    store = make_store(tmp_path)
    assert store.find_all("goals") == []
    assert store.count("goals") == 0
    assert store.list_collections() == []


def test_file_created_on_first_write(tmp_path):
    store = JsonDocumentStore(str(tmp_path / "nested" / "db.json"))
    assert not os.path.exists(store.path)
    store.insert("budgets", {"category": "Food"})
    with open(store.path, encoding="utf-8") as f:
        assert list(json.load(f)) == ["budgets"]


def test_find_one(tmp_path):
    store = make_store(tmp_path)
    first = store.insert("hack", {"amount": 1})
    store.insert("hack", {"amount": 2})
    assert store.find_one("hack", first)["amount"] == 1


def test_update_merges_fields(tmp_path):
    store = make_store(tmp_path)
    doc_id = store.insert("goals", {"name": "Car", "target_amount": 500000})

    modified = store.update("goals", doc_id, {"current_amount": 1000})

    assert modified == 1
    doc = store.find_one("goals", doc_id)
    assert doc == {"_id": doc_id, "name": "Car", "target_amount": 500000, "current_amount": 1000}


def test_update_without_change_reports_zero(tmp_path):
    store = make_store(tmp_path)
    doc_id = store.insert("goals", {"name": "Car"})
    assert store.update("goals", doc_id, {"name": "Car"}) == 0


def test_update_cannot_overwrite_id(tmp_path):
    store = make_store(tmp_path)
    doc_id = store.insert("goals", {"name": "Car"})
    store.update("goals", doc_id, {"_id": "other", "name": "Bike"})
    assert store.find_one("goals", doc_id)["name"] == "Bike"


def test_missing_document_raises(tmp_path):
    store = make_store(tmp_path)
    store.insert("hack", {"amount": 1})
    with pytest.raises(DocumentNotFound):
        store.find_one("hack", "nope")
    with pytest.raises(DocumentNotFound):
        store.update("hack", "nope", {"amount": 2})
    with pytest.raises(DocumentNotFound):
        store.delete("hack", "nope")


def test_delete(tmp_path):
    store = make_store(tmp_path)
    keep = store.insert("hack", {"amount": 1})
    drop = store.insert("hack", {"amount": 2})

    assert store.delete("hack", drop) == 1
    assert [d["_id"] for d in store.find_all("hack")] == [keep]


def test_bulk_operations(tmp_path):
    store = make_store(tmp_path)
    ids = store.insert_many("hack", [{"amount": 1}, {"amount": 2}, {"amount": 3}])
    assert len(set(ids)) == 3
    assert store.delete_many("hack", ids[:2]) == 2
    assert store.count("hack") == 1


def test_corrupt_file_raises_store_error(tmp_path):
    path = tmp_path / "db.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        JsonDocumentStore(str(path)).find_all("hack")


def test_seed_file_loads():
    store = JsonDocumentStore(SEED)
    assert set(store.list_collections()) == {"hack", "goals", "budgets"}
    assert store.count("hack") >= 10
    assert store.find_one("budgets", "b1")["category"] == "Food"


def test_mongo_invalid_id_is_not_found():
    with pytest.raises(DocumentNotFound):
        MongoDocumentStore._object_id("hack", "not-an-object-id")


def test_open_store_json(tmp_path):
    store = open_store(Settings(store="json", data_path=str(tmp_path / "x.json")))
    assert isinstance(store, JsonDocumentStore)


def test_open_store_unknown_backend():
    with pytest.raises(StoreError):
        open_store(Settings(store="redis"))


def test_dump(tmp_path):
    store = make_store(tmp_path)
    store.insert("hack", {"amount": 1})
    store.insert("goals", {"name": "Car"})
    dumped = store.dump()
    assert set(dumped) == {"hack", "goals"}
    assert dumped["goals"][0]["name"] == "Car"


class FakeCollection:
    def __init__(self):
        self.docs = []

    def insert_one(self, doc):
        doc = {**doc, "_id": ObjectId()}
        self.docs.append(doc)
        return SimpleNamespace(inserted_id=doc["_id"])

    def find(self, query):
        return list(self.docs)

    def find_one(self, query):
        return next((d for d in self.docs if d["_id"] == query["_id"]), None)

    def update_one(self, query, update):
        doc = self.find_one(query)
        if doc is None:
            return SimpleNamespace(matched_count=0, modified_count=0)
        changed = {k: v for k, v in update["$set"].items() if doc.get(k) != v}
        doc.update(changed)
        return SimpleNamespace(matched_count=1, modified_count=int(bool(changed)))

    def delete_one(self, query):
        doc = self.find_one(query)
        if doc is not None:
            self.docs.remove(doc)
        return SimpleNamespace(deleted_count=int(doc is not None))


class FakeDatabase(dict):
    def __missing__(self, name):
        self[name] = FakeCollection()
        return self[name]

    def command(self, name):
        raise ServerSelectionTimeoutError("no server")


class FakeClient:
    def __init__(self):
        self.database = FakeDatabase()

    def get_database(self, name):
        return self.database


def test_mongo_store_stringifies_ids():
    store = MongoDocumentStore("mongodb://unused", "sunhack", client=FakeClient())
    doc_id = store.insert("hack", {"_id": "ignored", "amount": 5})
    docs = store.find_all("hack")
    assert docs == [{"_id": doc_id, "amount": 5}]
    assert ObjectId.is_valid(doc_id)


def test_mongo_ping_failure_is_store_error():
    store = MongoDocumentStore("mongodb://unused", "sunhack", client=FakeClient())
    with pytest.raises(StoreError, match="Could not connect"):
        store.ping()


def test_mongo_update_reports_modified_count():
    store = MongoDocumentStore("mongodb://unused", "sunhack", client=FakeClient())
    doc_id = store.insert("goals", {"name": "Car", "current_amount": 0})

    assert store.update("goals", doc_id, {"_id": "x", "current_amount": 500}) == 1
    assert store.update("goals", doc_id, {"current_amount": 500}) == 0
    assert store.find_one("goals", doc_id) == {"_id": doc_id, "name": "Car", "current_amount": 500}


def test_mongo_missing_document_raises():
    store = MongoDocumentStore("mongodb://unused", "sunhack", client=FakeClient())
    missing = str(ObjectId())
    with pytest.raises(DocumentNotFound):
        store.find_one("hack", missing)
    with pytest.raises(DocumentNotFound):
        store.update("hack", missing, {"amount": 1})
    with pytest.raises(DocumentNotFound):
        store.delete("hack", missing)


def test_mongo_delete():
    store = MongoDocumentStore("mongodb://unused", "sunhack", client=FakeClient())
    doc_id = store.insert("hack", {"amount": 1})
    assert store.delete("hack", doc_id) == 1
    assert store.find_all("hack") == []


def test_unserialisable_value_is_store_error(tmp_path):
    store = make_store(tmp_path)
    store.insert("hack", {"amount": 1})

    with pytest.raises(StoreError, match="Cannot write"):
        store.insert("hack", {"amount": object()})

    assert os.listdir(tmp_path) == ["db.json"]
    assert store.count("hack") == 1
