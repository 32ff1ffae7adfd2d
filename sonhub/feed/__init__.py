"""
Feed Package

Scoring engine and paginated loader for the community feed.
"""

from sonhub.feed.scoring import (
    FeedStrategy,
    engagement_score,
    trending_score,
    score_post,
    select_view,
    extract_hashtags,
    count_unread,
)
from sonhub.feed.loader import FeedLoader, LoaderState, POSTS_PER_PAGE
