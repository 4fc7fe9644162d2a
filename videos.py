"""
Video records: normalization, validation, exposure, and the handlers that
tie them to the store.

Clients from different front-end versions send different field names
(url/playbackUrl, ageRating/age). Everything is folded into one canonical
shape before validation, and documents are mapped back to one client shape
on the way out.
"""

import logging
import math
import re
import secrets
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from database import VideoStore
from errors import AuthError, NotFoundError, UnsupportedFilterError, ValidationError
from schemas import Comment, Video, VideoOut, utcnow

logger = logging.getLogger(__name__)

DEFAULTS = {
    "publisher": "EduTalk",
    "producer": "Admin",
    "genre": "General",
    "age": "PG",
}

# YouTube-style hosts, any subdomain
EXTERNAL_HOST_PATTERN = r"(^|[/.@])(youtube\.com|youtu\.be|youtube-nocookie\.com)([/:?#]|$)"
_EXTERNAL_HOST_RE = re.compile(EXTERNAL_HOST_PATTERN, re.IGNORECASE)

PROVIDER_FILTERS = {"youtube": EXTERNAL_HOST_PATTERN}

_FALSE_STRINGS = {"", "0", "false", "no", "off"}

MIN_RATING = 1
MAX_RATING = 5


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _first(payload: Mapping[str, Any], *keys: str) -> str:
    """First non-blank value among keys, trimmed"""
    for key in keys:
        value = _text(payload.get(key))
        if value:
            return value
    return ""


def coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def is_external_url(url: str) -> bool:
    return bool(url) and _EXTERNAL_HOST_RE.search(url) is not None


def normalize_video(payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Fold a create payload into the canonical draft.

    Never raises; missing required fields come back as "" and are
    rejected by validate_video.
    """
    payload = payload if isinstance(payload, Mapping) else {}
    return {
        "title": _first(payload, "title"),
        "publisher": _first(payload, "publisher") or DEFAULTS["publisher"],
        "producer": _first(payload, "producer") or DEFAULTS["producer"],
        "genre": _first(payload, "genre") or DEFAULTS["genre"],
        "age": _first(payload, "age", "ageRating") or DEFAULTS["age"],
        "playbackUrl": _first(payload, "playbackUrl", "url"),
        "external": coerce_bool(payload.get("external", False)),
    }


def normalize_comment_text(value: Any) -> str:
    if isinstance(value, Mapping):
        value = value.get("text")
    return _text(value)


def coerce_rating(value: Any) -> Optional[int]:
    """Integral finite number (or numeric string) as int, else None"""
    if isinstance(value, Mapping):
        value = value.get("value")
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and (not math.isfinite(value) or not value.is_integer()):
        return None
    return int(value)


def validate_video(draft: Mapping[str, Any]) -> None:
    missing = [name for name in ("title", "playbackUrl") if not _text(draft.get(name))]
    if missing:
        raise ValidationError("missing_required_field", f"{' and '.join(missing)} required")


def validate_rating(value: Any) -> int:
    rating = coerce_rating(value)
    if rating is None or not MIN_RATING <= rating <= MAX_RATING:
        raise ValidationError("out_of_range", f"rating must be a whole number from {MIN_RATING} to {MAX_RATING}")
    return rating


def validate_comment(value: Any) -> str:
    text = normalize_comment_text(value)
    if not text:
        raise ValidationError("empty_text", "comment text is required")
    return text


def _list(value: Any) -> list:
    return value if isinstance(value, (list, tuple)) else []


def _timestamp(*candidates: Any) -> datetime:
    for value in candidates:
        if isinstance(value, datetime):
            return value
    return utcnow()


def expose_video(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Client shape of a stored document; legacy keys folded, internals dropped"""
    playback_url = _first(document, "playbackUrl", "url")
    # Entries older revisions stored in other shapes are skipped
    ratings = [
        rating for rating in (coerce_rating(r) for r in _list(document.get("ratings")))
        if rating is not None and MIN_RATING <= rating <= MAX_RATING
    ]
    comments = [
        Comment(text=_text(c.get("text")), createdAt=_timestamp(c.get("createdAt"), document.get("createdAt")))
        for c in _list(document.get("comments"))
        if isinstance(c, Mapping) and _text(c.get("text"))
    ]
    external = document.get("external")
    created_at = document.get("createdAt")
    video = VideoOut(
        id=str(document.get("_id", document.get("id", ""))),
        title=_text(document.get("title")),
        publisher=_first(document, "publisher") or DEFAULTS["publisher"],
        producer=_first(document, "producer") or DEFAULTS["producer"],
        genre=_first(document, "genre") or DEFAULTS["genre"],
        age=_first(document, "age", "ageRating") or DEFAULTS["age"],
        playbackUrl=playback_url,
        external=bool(external) if external is not None else is_external_url(playback_url),
        comments=comments,
        ratings=ratings,
        ratingCount=len(ratings),
        averageRating=round(sum(ratings) / len(ratings), 2) if ratings else None,
        createdAt=created_at if isinstance(created_at, datetime) else None,
    )
    return video.model_dump(mode="json")


class VideoService:
    """List/create/comment/rate/delete operations over an injected store"""

    def __init__(self, store: VideoStore, api_key: str = ""):
        self.store = store
        self.api_key = api_key or ""

    def authorize(self, presented_key: Optional[str]) -> None:
        if not self.api_key:
            return
        if not presented_key or not secrets.compare_digest(
            presented_key.encode("utf-8"), self.api_key.encode("utf-8")
        ):
            raise AuthError("Unauthorized")

    def list_videos(self) -> List[Dict[str, Any]]:
        return [expose_video(doc) for doc in self.store.find_all()]

    def get_video(self, video_id: str) -> Dict[str, Any]:
        document = self.store.find_one(video_id)
        if document is None:
            raise NotFoundError(f"Video {video_id} not found")
        return expose_video(document)

    def create_video(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        draft = normalize_video(payload)
        validate_video(draft)
        # Hosting is decided by the URL, never by the client flag
        draft["external"] = is_external_url(draft["playbackUrl"])
        document = self.store.insert(Video(**draft).model_dump())
        logger.info(f"Created video {document['_id']} ({draft['title']!r})")
        return expose_video(document)

    def add_comment(self, video_id: str, payload: Any) -> Dict[str, Any]:
        text = validate_comment(payload)
        comment = Comment(text=text).model_dump()
        document = self.store.push(video_id, "comments", comment)
        if document is None:
            raise NotFoundError(f"Video {video_id} not found")
        return expose_video(document)

    def add_rating(self, video_id: str, payload: Any) -> Dict[str, Any]:
        rating = validate_rating(payload)
        document = self.store.push(video_id, "ratings", rating)
        if document is None:
            raise NotFoundError(f"Video {video_id} not found")
        return expose_video(document)

    def delete_video(self, video_id: str) -> None:
        if not self.store.delete_one(video_id):
            raise NotFoundError(f"Video {video_id} not found")
        logger.info(f"Deleted video {video_id}")

    def bulk_delete(self, provider: Optional[str]) -> int:
        tag = _text(provider).lower()
        pattern = PROVIDER_FILTERS.get(tag)
        if pattern is None:
            raise UnsupportedFilterError(f"Unsupported provider filter: {provider!r}")
        deleted = self.store.delete_matching(pattern)
        logger.info(f"Bulk delete provider={tag} removed {deleted} video(s)")
        return deleted

    def health(self) -> Dict[str, str]:
        return {"status": "ok", "dbState": self.store.state()}
