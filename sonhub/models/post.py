"""
Community Post Model

Explicit record type for community posts as consumed by the scoring engine.
Remote documents are validated here, at the ingestion boundary, so scoring
functions never deal with missing or malformed fields.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PostStatus(str, Enum):
    """Moderation status of a post."""

    APPROVED = "approved"
    PENDING = "pending"
    REJECTED = "rejected"


class CommunityPost(BaseModel):
    """A community post with its engagement counters and optional score annotations."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    author_id: str = Field("", alias="authorId")
    is_admin: bool = Field(False, alias="isAdmin")
    like_count: int = Field(0, ge=0, alias="likeCount")
    comment_count: int = Field(0, ge=0, alias="commentCount")
    share_count: int = Field(0, ge=0, alias="shareCount")
    timestamp_millis: float = Field(..., alias="timestamp", description="Creation time in epoch milliseconds")
    status: PostStatus = PostStatus.PENDING
    content: str = ""

    engagement_score: Optional[float] = Field(None, alias="engagementScore")
    trending_score: Optional[float] = Field(None, alias="trendingScore")

    @field_validator("like_count", "comment_count", "share_count", mode="before")
    @classmethod
    def _default_missing_counter(cls, value: Any) -> Any:
        # Firestore documents written before a counter existed store null
        return 0 if value is None else value

    @field_validator("is_admin", mode="before")
    @classmethod
    def _default_missing_flag(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("content", mode="before")
    @classmethod
    def _default_missing_content(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("timestamp_millis", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        """Accept datetimes (including Firestore timestamps) and epoch milliseconds."""
        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.timestamp() * 1000
        if isinstance(value, dict) and "seconds" in value:
            return float(value["seconds"]) * 1000 + float(value.get("nanoseconds", 0)) / 1_000_000
        return value

    @property
    def is_approved(self) -> bool:
        return self.status == PostStatus.APPROVED

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "CommunityPost":
        """
        Build a post from a remote document.

        Args:
            doc_id: Document ID in the remote store
            data: Document field map (camelCase field names)

        Returns:
            Validated CommunityPost

        Raises:
            pydantic.ValidationError: If the document has no timestamp or invalid counters
        """
        return cls.model_validate({**data, "id": doc_id})

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-compatible dictionary."""
        return self.model_dump(mode="json")
