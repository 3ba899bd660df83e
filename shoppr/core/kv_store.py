"""Flat key-value store used for users, username reservations and surveys."""

import logging
from typing import Any, Protocol

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Associative store with JSON-compatible values."""

    async def get(self, key: str) -> Any | None: ...

    async def set(self, key: str, value: Any) -> None: ...

    async def set_if_absent(self, key: str, value: Any) -> bool:
        """Store ``value`` only when ``key`` is unused. Returns True if stored."""
        ...

    async def delete(self, key: str) -> None: ...


class MongoKeyValueStore:
    """
    Key-value store on a single MongoDB collection.

    Each key is a document ``{"_id": key, "value": value}``; the unique ``_id``
    index makes ``set_if_absent`` atomic across processes.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str):
        self.db = db
        self.collection = db[collection_name]

    async def get(self, key: str) -> Any | None:
        document = await self.collection.find_one({"_id": key})
        return document["value"] if document else None

    async def set(self, key: str, value: Any) -> None:
        await self.collection.update_one({"_id": key}, {"$set": {"value": value}}, upsert=True)

    async def set_if_absent(self, key: str, value: Any) -> bool:
        try:
            await self.collection.insert_one({"_id": key, "value": value})
        except DuplicateKeyError:
            logger.debug(f"Key already present: {key}")
            return False
        return True

    async def delete(self, key: str) -> None:
        await self.collection.delete_one({"_id": key})

