"""Acceso a MongoDB a nivel de documento.

Cada operación es un único viaje al servidor y no hay transacciones. Los
documentos se devuelven con el ``_id`` convertido a ``id`` (texto) y cualquier
error del driver se transforma en StoreError con el mensaje literal.
"""
from typing import Any, Dict, List, Optional, Sequence, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.errors import NotFoundError, StoreError


def to_object_id(id_str: str) -> Optional[ObjectId]:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        return None


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not doc:
        return doc
    d = dict(doc)
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    return d


def _strip_id(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in ("_id", "id")}


class MongoGateway:
    def __init__(self, database):
        self.db = database

    async def get_by_id(self, collection: str, id_str: str) -> Optional[Dict[str, Any]]:
        oid = to_object_id(id_str)
        if oid is None:
            return None
        try:
            doc = await self.db[collection].find_one({"_id": oid})
        except PyMongoError as e:
            raise StoreError(str(e))
        return serialize(doc)

    async def find_one(self, collection: str, filters: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            doc = await self.db[collection].find_one(filters)
        except PyMongoError as e:
            raise StoreError(str(e))
        return serialize(doc)

    async def update(self, collection: str, id_str: str, full_record: Dict[str, Any]) -> Dict[str, Any]:
        """Reemplaza el documento completo (no es un $set parcial)."""
        oid = to_object_id(id_str)
        if oid is None:
            raise NotFoundError(f"Record {id_str} not found")
        try:
            doc = await self.db[collection].find_one_and_replace(
                {"_id": oid},
                _strip_id(full_record),
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreError(str(e))
        if doc is None:
            raise NotFoundError(f"Record {id_str} not found")
        return serialize(doc)

    async def insert(self, collection: str, record: Dict[str, Any]) -> Dict[str, str]:
        try:
            result = await self.db[collection].insert_one(_strip_id(record))
        except PyMongoError as e:
            raise StoreError(str(e))
        return {"id": str(result.inserted_id)}

    async def query(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        sort: Optional[Sequence[Tuple[str, int]]] = None,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        try:
            cursor = self.db[collection].find(filters or {})
            if sort:
                cursor = cursor.sort(list(sort))
            if skip:
                cursor = cursor.skip(skip)
            if limit:
                cursor = cursor.limit(limit)
            records = []
            async for doc in cursor:
                records.append(serialize(doc))
            return records
        except PyMongoError as e:
            raise StoreError(str(e))

    async def delete_many(self, collection: str, ids: List[str]) -> int:
        oids = [oid for oid in (to_object_id(i) for i in ids) if oid is not None]
        if not oids:
            return 0
        try:
            result = await self.db[collection].delete_many({"_id": {"$in": oids}})
        except PyMongoError as e:
            raise StoreError(str(e))
        return result.deleted_count

    async def count(self, collection: str, filters: Optional[Dict[str, Any]] = None) -> int:
        try:
            return await self.db[collection].count_documents(filters or {})
        except PyMongoError as e:
            raise StoreError(str(e))

    async def distinct(self, collection: str, key: str) -> List[Any]:
        try:
            return await self.db[collection].distinct(key)
        except PyMongoError as e:
            raise StoreError(str(e))


def get_gateway() -> MongoGateway:
    from app.config.database import db
    return MongoGateway(db)
