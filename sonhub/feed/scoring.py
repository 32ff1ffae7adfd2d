"""
Feed Scoring Module

Pure functions that score community posts and order a feed by a selected
strategy. The current time is always passed in, never read from a clock here.
"""

import math
import re
import logging
from enum import Enum
from typing import Iterable, List, Optional, Union

from sonhub.models.post import CommunityPost

# Configure logging
logger = logging.getLogger(__name__)

MILLIS_PER_HOUR = 3_600_000

LIKE_WEIGHT = 1
COMMENT_WEIGHT = 3
SHARE_WEIGHT = 5
ENGAGEMENT_DECAY_HOURS = 24
ENGAGEMENT_ADMIN_BONUS = 2

TRENDING_WINDOW_HOURS = 48
TRENDING_COMMENT_WEIGHT = 2
TRENDING_SHARE_WEIGHT = 3
TRENDING_ADMIN_BONUS = 1.5
RECENCY_BONUS_HOURS = 6
RECENCY_BONUS = 1.3

UNREAD_WINDOW_HOURS = 24

_HASHTAG_PATTERN = re.compile(r"#\w+")


class FeedStrategy(str, Enum):
    RECENT = "recent"
    TRENDING = "trending"
    POPULAR = "popular"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: Union["FeedStrategy", str, None]) -> "FeedStrategy":
        """Unknown or missing names fall back to RECENT."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.RECENT


def hours_since(post: CommunityPost, now_ms: float) -> float:
    """Hours between the post timestamp and now; negative for future timestamps."""
    return (now_ms - post.timestamp_millis) / MILLIS_PER_HOUR


def engagement_score(post: CommunityPost, now_ms: float) -> float:
    """
    Total interaction volume decayed exponentially by age.

    Args:
        post: Post snapshot
        now_ms: Current time in epoch milliseconds

    Returns:
        Engagement score (0 for a post with no interactions)
    """
    hours = hours_since(post, now_ms)
    time_decay = math.exp(-hours / ENGAGEMENT_DECAY_HOURS)

    raw = (post.like_count * LIKE_WEIGHT
           + post.comment_count * COMMENT_WEIGHT
           + post.share_count * SHARE_WEIGHT)
    admin_bonus = ENGAGEMENT_ADMIN_BONUS if post.is_admin else 1

    return raw * time_decay * admin_bonus


def trending_score(post: CommunityPost, now_ms: float) -> float:
    """
    Interaction velocity over the last 48 hours; 0 for older posts.

    Args:
        post: Post snapshot
        now_ms: Current time in epoch milliseconds

    Returns:
        Trending score
    """
    hours = hours_since(post, now_ms)
    if hours > TRENDING_WINDOW_HOURS:
        return 0.0

    recent_engagement = (post.like_count
                         + post.comment_count * TRENDING_COMMENT_WEIGHT
                         + post.share_count * TRENDING_SHARE_WEIGHT)
    time_boost = max(0.0, TRENDING_WINDOW_HOURS - hours) / TRENDING_WINDOW_HOURS
    velocity = recent_engagement / max(hours, 1)

    admin_bonus = TRENDING_ADMIN_BONUS if post.is_admin else 1
    recency_bonus = RECENCY_BONUS if hours < RECENCY_BONUS_HOURS else 1

    return velocity * time_boost * admin_bonus * recency_bonus


def score_post(post: CommunityPost, now_ms: float) -> CommunityPost:
    """Return a copy of the post annotated with both scores."""
    return post.model_copy(update={
        "engagement_score": engagement_score(post, now_ms),
        "trending_score": trending_score(post, now_ms),
    })


def extract_hashtags(content: str) -> List[str]:
    """Lower-cased hashtags (including the leading '#') in order of appearance."""
    if not content:
        return []
    return [tag.lower() for tag in _HASHTAG_PATTERN.findall(content)]


def _normalize_hashtag(hashtag: str) -> str:
    tag = hashtag.strip().lower()
    return tag if tag.startswith("#") else f"#{tag}"


def _engagement(post: CommunityPost, now_ms: Optional[float]) -> float:
    if post.engagement_score is not None:
        return post.engagement_score
    if now_ms is None:
        raise ValueError(f"Post {post.id} has no engagement score and no now_ms was given")
    return engagement_score(post, now_ms)


def _trending(post: CommunityPost, now_ms: Optional[float]) -> float:
    if post.trending_score is not None:
        return post.trending_score
    if now_ms is None:
        raise ValueError(f"Post {post.id} has no trending score and no now_ms was given")
    return trending_score(post, now_ms)


def select_view(posts: Iterable[CommunityPost],
                strategy: Union[FeedStrategy, str] = FeedStrategy.RECENT,
                hashtag: Optional[str] = None,
                now_ms: Optional[float] = None) -> List[CommunityPost]:
    """
    Filter and order posts for display.

    Only approved posts are kept. Sorting is stable, so posts with equal scores
    or timestamps keep their original relative order.

    Args:
        posts: Posts to select from
        strategy: "recent" (default), "trending", "popular" or "admin"
        hashtag: Optional tag filter, with or without the leading '#'
        now_ms: Required only when some post lacks precomputed scores

    Returns:
        New list of posts in display order
    """
    strategy = FeedStrategy.parse(strategy)
    selected = [post for post in posts if post.is_approved]

    if hashtag:
        tag = _normalize_hashtag(hashtag)
        selected = [post for post in selected if tag in extract_hashtags(post.content)]

    if strategy == FeedStrategy.TRENDING:
        scored = [(post, _trending(post, now_ms)) for post in selected]
        scored = [(post, score) for post, score in scored if score > 0]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return [post for post, _ in scored]

    if strategy == FeedStrategy.POPULAR:
        return sorted(selected, key=lambda post: _engagement(post, now_ms), reverse=True)

    if strategy == FeedStrategy.ADMIN:
        return [post for post in selected if post.is_admin]

    return sorted(selected, key=lambda post: post.timestamp_millis, reverse=True)


def count_unread(posts: Iterable[CommunityPost], user_id: str, now_ms: float) -> int:
    """Approved posts from the last 24 hours written by someone other than user_id."""
    cutoff = now_ms - UNREAD_WINDOW_HOURS * MILLIS_PER_HOUR
    return sum(
        1 for post in posts
        if post.is_approved and post.timestamp_millis > cutoff and post.author_id != user_id
    )
