import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List
from uuid import uuid4

from bson.errors import InvalidId
from bson.objectid import ObjectId
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from finboard.config import Settings
from finboard.errors import DocumentNotFound, StoreError

logger = logging.getLogger(__name__)


class DocumentStore(ABC):
    """Schemaless collections of dict documents.

    Every document handed back carries its id as a string under "_id".
    Reading a collection that was never written returns an empty list.
    """

    @abstractmethod
    def insert(self, collection: str, data: dict) -> str:
        pass

    @abstractmethod
    def find_all(self, collection: str) -> List[dict]:
        pass

    @abstractmethod
    def find_one(self, collection: str, doc_id: str) -> dict:
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: dict) -> int:
        """Merge `data` into the document ($set semantics), return modified count."""

    @abstractmethod
    def delete(self, collection: str, doc_id: str) -> int:
        pass

    @abstractmethod
    def list_collections(self) -> List[str]:
        pass

    def count(self, collection: str) -> int:
        return len(self.find_all(collection))

    def insert_many(self, collection: str, documents: Iterable[dict]) -> List[str]:
        return [self.insert(collection, doc) for doc in documents]

    def delete_many(self, collection: str, ids: Iterable[str]) -> int:
        return sum(self.delete(collection, doc_id) for doc_id in ids)

    def dump(self) -> Dict[str, List[dict]]:
        return {name: self.find_all(name) for name in self.list_collections()}


class JsonDocumentStore(DocumentStore):
    """Whole database kept in one JSON file: {"collection": [doc, ...]}."""

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> Dict[str, List[dict]]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"{self.path} does not hold a collection mapping")
        return data

    def _write(self, data: Dict[str, List[dict]]) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StoreError(f"Cannot write {self.path}: {e}") from e

    @staticmethod
    def _index(docs: List[dict], collection: str, doc_id: str) -> int:
        for i, doc in enumerate(docs):
            if doc.get("_id") == doc_id:
                return i
        raise DocumentNotFound(collection, doc_id)

    def insert(self, collection: str, data: dict) -> str:
        db = self._read()
        doc_id = uuid4().hex
        db.setdefault(collection, []).append({**data, "_id": doc_id})
        self._write(db)
        logger.debug("inserted %s into %s", doc_id, collection)
        return doc_id

    def find_all(self, collection: str) -> List[dict]:
        return [dict(doc) for doc in self._read().get(collection, [])]

    def find_one(self, collection: str, doc_id: str) -> dict:
        docs = self._read().get(collection, [])
        return dict(docs[self._index(docs, collection, doc_id)])

    def update(self, collection: str, doc_id: str, data: dict) -> int:
        db = self._read()
        docs = db.get(collection, [])
        i = self._index(docs, collection, doc_id)
        merged = {**docs[i], **{k: v for k, v in data.items() if k != "_id"}}
        if merged == docs[i]:
            return 0
        docs[i] = merged
        self._write(db)
        logger.debug("updated %s in %s", doc_id, collection)
        return 1

    def delete(self, collection: str, doc_id: str) -> int:
        db = self._read()
        docs = db.get(collection, [])
        del docs[self._index(docs, collection, doc_id)]
        self._write(db)
        logger.debug("deleted %s from %s", doc_id, collection)
        return 1

    def list_collections(self) -> List[str]:
        return list(self._read().keys())


class MongoDocumentStore(DocumentStore):
    def __init__(self, uri: str, db_name: str, client: MongoClient = None):
        self.client = client if client is not None else MongoClient(uri, serverSelectionTimeoutMS=5000)
        self.db = self.client.get_database(db_name)

    @staticmethod
    def _object_id(collection: str, doc_id: str) -> ObjectId:
        try:
            return ObjectId(doc_id)
        except (InvalidId, TypeError):
            raise DocumentNotFound(collection, doc_id)

    @staticmethod
    def _out(doc: dict) -> dict:
        return {**doc, "_id": str(doc["_id"])}

    def ping(self) -> None:
        try:
            self.db.command("ping")
        except PyMongoError as e:
            logger.error("MongoDB ping failed: %s", e)
            raise StoreError(f"Could not connect to MongoDB: {e}") from e

    def insert(self, collection: str, data: dict) -> str:
        payload = {k: v for k, v in data.items() if k != "_id"}
        try:
            result = self.db[collection].insert_one(payload)
        except PyMongoError as e:
            logger.error("insert into %s failed: %s", collection, e)
            raise StoreError(str(e)) from e
        return str(result.inserted_id)

    def find_all(self, collection: str) -> List[dict]:
        try:
            return [self._out(doc) for doc in self.db[collection].find({})]
        except PyMongoError as e:
            logger.error("read of %s failed: %s", collection, e)
            raise StoreError(str(e)) from e

    def find_one(self, collection: str, doc_id: str) -> dict:
        try:
            doc = self.db[collection].find_one({"_id": self._object_id(collection, doc_id)})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if doc is None:
            raise DocumentNotFound(collection, doc_id)
        return self._out(doc)

    def update(self, collection: str, doc_id: str, data: dict) -> int:
        payload = {k: v for k, v in data.items() if k != "_id"}
        try:
            result = self.db[collection].update_one(
                {"_id": self._object_id(collection, doc_id)}, {"$set": payload}
            )
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if result.matched_count == 0:
            raise DocumentNotFound(collection, doc_id)
        return result.modified_count

    def delete(self, collection: str, doc_id: str) -> int:
        try:
            result = self.db[collection].delete_one({"_id": self._object_id(collection, doc_id)})
        except PyMongoError as e:
            raise StoreError(str(e)) from e
        if result.deleted_count == 0:
            raise DocumentNotFound(collection, doc_id)
        return result.deleted_count

    def list_collections(self) -> List[str]:
        try:
            return self.db.list_collection_names()
        except PyMongoError as e:
            raise StoreError(str(e)) from e


def open_store(settings: Settings) -> DocumentStore:
    if settings.store == "mongo":
        logger.info("using MongoDB store %s", settings.mongo_db_name)
        return MongoDocumentStore(settings.mongo_uri, settings.mongo_db_name)
    if settings.store == "json":
        logger.info("using JSON store at %s", settings.data_path)
        return JsonDocumentStore(settings.data_path)
    raise StoreError(f"Unknown store backend: {settings.store}")
