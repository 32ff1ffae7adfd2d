"""
Report Generator Module
Creates summary reports and statistics for loaded community feeds.
"""

import pandas as pd
import json
import logging
from datetime import datetime
from typing import Dict, Any, Iterable, List, Optional
from pathlib import Path

from sonhub.feed.scoring import engagement_score, extract_hashtags, trending_score
from sonhub.models.post import CommunityPost

logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    'id', 'author_id', 'is_admin', 'status', 'like_count', 'comment_count',
    'share_count', 'timestamp_millis', 'engagement_score', 'trending_score', 'hashtags'
]


class FeedReportGenerator:
    """Generates summary reports and statistics for a feed."""

    def __init__(self, logs_dir: str = "logs"):
        self.logs_dir = Path(logs_dir)

    def build_frame(self, posts: Iterable[CommunityPost], now_ms: Optional[float] = None) -> pd.DataFrame:
        """
        Tabulate posts with their scores and hashtags.

        Scores already attached to a post are used as-is; missing ones are
        computed from now_ms.
        """
        rows = []
        for post in posts:
            engagement = post.engagement_score
            trending = post.trending_score
            if (engagement is None or trending is None) and now_ms is None:
                raise ValueError(f"Post {post.id} is not scored and no now_ms was given")
            rows.append({
                'id': post.id,
                'author_id': post.author_id,
                'is_admin': post.is_admin,
                'status': post.status.value,
                'like_count': post.like_count,
                'comment_count': post.comment_count,
                'share_count': post.share_count,
                'timestamp_millis': post.timestamp_millis,
                'engagement_score': engagement if engagement is not None else engagement_score(post, now_ms),
                'trending_score': trending if trending is not None else trending_score(post, now_ms),
                'hashtags': extract_hashtags(post.content),
            })
        return pd.DataFrame(rows, columns=FRAME_COLUMNS)

    def generate_summary_stats(self, df: pd.DataFrame, top_n: int = 5) -> Dict[str, Any]:
        """Generate summary statistics for a feed DataFrame."""

        if df.empty:
            return {
                'total_posts': 0,
                'approved_posts': 0,
                'admin_posts': 0,
                'trending_posts': 0,
                'average_engagement': 0.0,
                'max_engagement': 0.0,
                'status_breakdown': {},
                'top_posts': []
            }

        top_posts = df.sort_values('engagement_score', ascending=False, kind='stable').head(top_n)

        return {
            'total_posts': int(len(df)),
            'approved_posts': int((df['status'] == 'approved').sum()),
            'admin_posts': int(df['is_admin'].sum()),
            'trending_posts': int((df['trending_score'] > 0).sum()),
            'average_engagement': float(df['engagement_score'].mean()),
            'max_engagement': float(df['engagement_score'].max()),
            'status_breakdown': {k: int(v) for k, v in df['status'].value_counts().items()},
            'top_posts': top_posts['id'].tolist()
        }

    def top_hashtags(self, df: pd.DataFrame, n: int = 10) -> List[Dict[str, Any]]:
        """Most frequent hashtags across the feed, most common first."""
        if df.empty:
            return []

        tags = df['hashtags'].explode().dropna()
        if tags.empty:
            return []

        counts = tags.value_counts().head(n)
        return [{'hashtag': tag, 'count': int(count)} for tag, count in counts.items()]

    def write_json_log(self, summary: Dict[str, Any], hashtags: List[Dict[str, Any]]) -> str:
        """Write structured JSON log."""

        self.logs_dir.mkdir(parents=True, exist_ok=True)
        log_data = {
            'generated_at': datetime.now().isoformat(),
            'feed_summary': summary,
            'top_hashtags': hashtags
        }

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_path = self.logs_dir / f"feed_report_{timestamp}.json"

        try:
            with open(log_path, 'w') as f:
                json.dump(log_data, f, indent=2, default=str)

            logger.info(f"JSON log written to {log_path}")
            return str(log_path)

        except Exception as e:
            logger.error(f"Error writing JSON log: {str(e)}")
            raise

    def print_console_summary(self, summary: Dict[str, Any], hashtags: List[Dict[str, Any]]) -> None:
        """Print human-readable summary to console."""

        print("\n" + "=" * 60)
        print("           COMMUNITY FEED SUMMARY")
        print("=" * 60)

        print(f"Total Posts: {summary['total_posts']}")
        print(f"Approved Posts: {summary['approved_posts']}")
        print(f"Admin Posts: {summary['admin_posts']}")
        print(f"Trending Posts: {summary['trending_posts']}")
        print(f"Average Engagement: {summary['average_engagement']:.2f}")

        if hashtags:
            print("\nTOP HASHTAGS:")
            print("-" * 40)
            for entry in hashtags:
                print(f"  {entry['hashtag']}: {entry['count']}")

        print("=" * 60)
