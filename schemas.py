"""
Database Schemas

MongoDB document shapes for the VideoShare backend, as Pydantic models.
Collection name comes from config (default "videos").

Field names are camelCase because documents are returned to the front end
almost as stored.
"""

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Comment(BaseModel):
    """One entry of a video's comment thread"""
    text: str = Field(..., min_length=1, description="Trimmed comment text")
    createdAt: datetime = Field(default_factory=utcnow, description="When the comment was posted")


class Video(BaseModel):
    """
    Videos collection schema
    Collection name: "videos"
    """
    title: str = Field(..., min_length=1, description="Video title")
    publisher: str = Field("EduTalk", description="Publishing organisation")
    producer: str = Field("Admin", description="Producer or uploader")
    genre: str = Field("General", description="Genre label")
    age: str = Field("PG", description="Age rating label, e.g. PG, 13, 18")
    playbackUrl: str = Field(..., min_length=1, description="URL the player loads")
    external: bool = Field(False, description="Hosted on a third-party video platform")
    comments: List[Comment] = Field(default_factory=list, description="Append-only comment thread")
    ratings: List[int] = Field(default_factory=list, description="Append-only star ratings, 1-5")
    createdAt: datetime = Field(default_factory=utcnow, description="Creation timestamp")


class VideoOut(BaseModel):
    """Client-facing shape of a video"""
    id: str
    title: str
    publisher: str
    producer: str
    genre: str
    age: str
    playbackUrl: str
    external: bool
    comments: List[Comment] = Field(default_factory=list)
    ratings: List[int] = Field(default_factory=list)
    ratingCount: int = 0
    averageRating: Optional[float] = None
    createdAt: Optional[datetime] = None
