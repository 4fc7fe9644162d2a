"""
Database access

The API talks to storage only through VideoStore, so tests can hand the app
an in-memory store. MongoVideoStore is the production implementation.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from errors import StoreError

logger = logging.getLogger(__name__)


class VideoStore(ABC):
    """Find/insert/update/delete operations the handlers rely on"""

    @abstractmethod
    def find_all(self) -> List[Dict[str, Any]]:
        """All documents, newest createdAt first"""

    @abstractmethod
    def find_one(self, video_id: str) -> Optional[Dict[str, Any]]:
        """Document by id, or None when the id does not resolve"""

    @abstractmethod
    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        """Insert and return the document including its new _id"""

    @abstractmethod
    def push(self, video_id: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """Atomically append value to a list field; None when id unknown"""

    @abstractmethod
    def delete_one(self, video_id: str) -> bool:
        """True when a document was removed"""

    @abstractmethod
    def delete_matching(self, url_pattern: str) -> int:
        """Delete every document whose playbackUrl (or legacy url) matches the regex"""

    @abstractmethod
    def state(self) -> str:
        """Connection state label for the health endpoint. Never raises."""

    def close(self) -> None:
        pass


def _object_id(video_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(video_id)
    except (InvalidId, TypeError):
        return None


class MongoVideoStore(VideoStore):
    """VideoStore backed by a single long-lived MongoClient"""

    def __init__(self, database_url: str, database_name: str, collection: str = "videos",
                 timeout_ms: int = 10000, client: Optional[MongoClient] = None):
        # MongoClient connects lazily and is safe to share across threads
        self.client = client or MongoClient(
            database_url,
            serverSelectionTimeoutMS=timeout_ms,
            connectTimeoutMS=timeout_ms,
            socketTimeoutMS=timeout_ms,
            tz_aware=True,
        )
        self.db = self.client[database_name]
        self.collection = self.db[collection]

    def find_all(self) -> List[Dict[str, Any]]:
        try:
            return list(self.collection.find().sort("createdAt", DESCENDING))
        except PyMongoError as e:
            logger.error(f"List error: {e}")
            raise StoreError("Failed to fetch videos")

    def find_one(self, video_id: str) -> Optional[Dict[str, Any]]:
        _id = _object_id(video_id)
        if _id is None:
            return None
        try:
            return self.collection.find_one({"_id": _id})
        except PyMongoError as e:
            logger.error(f"Lookup error for {video_id}: {e}")
            raise StoreError("Failed to fetch video")

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(document)
        try:
            result = self.collection.insert_one(data)
        except PyMongoError as e:
            logger.error(f"Insert error: {e}")
            raise StoreError("Failed to create video")
        data["_id"] = result.inserted_id
        return data

    def push(self, video_id: str, field: str, value: Any) -> Optional[Dict[str, Any]]:
        _id = _object_id(video_id)
        if _id is None:
            return None
        try:
            return self.collection.find_one_and_update(
                {"_id": _id},
                {"$push": {field: value}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Append to {field} failed for {video_id}: {e}")
            raise StoreError("Failed to update video")

    def delete_one(self, video_id: str) -> bool:
        _id = _object_id(video_id)
        if _id is None:
            return False
        try:
            result = self.collection.delete_one({"_id": _id})
        except PyMongoError as e:
            logger.error(f"Delete error for {video_id}: {e}")
            raise StoreError("Failed to delete video")
        return result.deleted_count > 0

    def delete_matching(self, url_pattern: str) -> int:
        regex = {"$regex": url_pattern, "$options": "i"}
        try:
            result = self.collection.delete_many({"$or": [{"playbackUrl": regex}, {"url": regex}]})
        except PyMongoError as e:
            logger.error(f"Bulk delete error: {e}")
            raise StoreError("Failed to delete videos")
        return result.deleted_count

    def state(self) -> str:
        # Read from the driver's background monitor, no round trip
        description = self.client.topology_description
        if description.has_readable_server():
            return "connected"
        servers = list(description.server_descriptions().values())
        if any(server.error is not None for server in servers):
            return "disconnected"
        return "connecting"

    def close(self) -> None:
        self.client.close()
