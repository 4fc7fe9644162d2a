import copy
import re
from datetime import datetime, timezone

import pytest
from bson import ObjectId
from bson.errors import InvalidId
from fastapi.testclient import TestClient

from config import Settings
from database import VideoStore
from main import create_app

API_KEY = "creator-secret"


class InMemoryVideoStore(VideoStore):
    """VideoStore over a dict, counting every write"""

    def __init__(self):
        self.documents = {}
        self.writes = 0
        self.closed = False

    def _get(self, video_id):
        try:
            return self.documents.get(ObjectId(video_id))
        except (InvalidId, TypeError):
            return None

    def find_all(self):
        docs = sorted(self.documents.values(), key=lambda d: d["createdAt"], reverse=True)
        return copy.deepcopy(docs)

    def find_one(self, video_id):
        doc = self._get(video_id)
        return copy.deepcopy(doc) if doc else None

    def insert(self, document):
        self.writes += 1
        data = copy.deepcopy(document)
        data["_id"] = ObjectId()
        self.documents[data["_id"]] = data
        return copy.deepcopy(data)

    def push(self, video_id, field, value):
        doc = self._get(video_id)
        if doc is None:
            return None
        self.writes += 1
        doc.setdefault(field, []).append(copy.deepcopy(value))
        return copy.deepcopy(doc)

    def delete_one(self, video_id):
        doc = self._get(video_id)
        if doc is None:
            return False
        self.writes += 1
        del self.documents[doc["_id"]]
        return True

    def delete_matching(self, url_pattern):
        regex = re.compile(url_pattern, re.IGNORECASE)
        doomed = [
            _id for _id, doc in self.documents.items()
            if regex.search(doc.get("playbackUrl") or doc.get("url") or "")
        ]
        for _id in doomed:
            del self.documents[_id]
        self.writes += 1
        return len(doomed)

    def state(self):
        return "connected"

    def close(self):
        self.closed = True

    def add_legacy(self, **fields):
        """Insert a document the way older revisions stored it"""
        data = {"createdAt": datetime(2024, 1, 1, tzinfo=timezone.utc)}
        data.update(fields)
        data["_id"] = ObjectId()
        self.documents[data["_id"]] = data
        return str(data["_id"])


@pytest.fixture
def store():
    return InMemoryVideoStore()


@pytest.fixture
def settings(tmp_path):
    return Settings(static_dirs=[str(tmp_path / "public")])


@pytest.fixture
def client(store, settings):
    return TestClient(create_app(settings=settings, store=store))


@pytest.fixture
def secured_client(store, settings):
    settings.api_key = API_KEY
    return TestClient(create_app(settings=settings, store=store))
