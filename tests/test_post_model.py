"""
Unit tests for the CommunityPost model.
Tests validation of remote documents at the ingestion boundary.
"""
import unittest
from datetime import datetime, timezone

from pydantic import ValidationError

from sonhub.models.post import CommunityPost, PostStatus


class TestCommunityPost(unittest.TestCase):
    """Test cases for CommunityPost."""

    def test_from_document_camel_case(self):
        """Test Firestore field names map onto the model."""
        post = CommunityPost.from_document("doc-1", {
            "authorId": "user-1",
            "isAdmin": True,
            "likeCount": 3,
            "commentCount": 2,
            "shareCount": 1,
            "timestamp": 1_700_000_000_000,
            "status": "approved",
            "content": "Sunday #worship",
            "authorName": "Grace",
        })

        self.assertEqual(post.id, "doc-1")
        self.assertEqual(post.author_id, "user-1")
        self.assertTrue(post.is_admin)
        self.assertEqual((post.like_count, post.comment_count, post.share_count), (3, 2, 1))
        self.assertEqual(post.timestamp_millis, 1_700_000_000_000)
        self.assertTrue(post.is_approved)

    def test_missing_fields_get_defaults(self):
        """Test absent or null counters and flags default to zero and False."""
        post = CommunityPost.from_document("doc-2", {
            "timestamp": 1_700_000_000_000,
            "likeCount": None,
            "isAdmin": None,
            "content": None,
        })

        self.assertEqual(post.like_count, 0)
        self.assertEqual(post.comment_count, 0)
        self.assertFalse(post.is_admin)
        self.assertEqual(post.content, "")
        self.assertEqual(post.status, PostStatus.PENDING)
        self.assertFalse(post.is_approved)

    def test_missing_timestamp_rejected(self):
        """Test a post without a timestamp cannot be scored and is rejected."""
        with self.assertRaises(ValidationError):
            CommunityPost.from_document("doc-3", {"likeCount": 1})

    def test_negative_counter_rejected(self):
        """Test counters must be non-negative."""
        with self.assertRaises(ValidationError):
            CommunityPost.from_document("doc-4", {"timestamp": 1, "likeCount": -1})

    def test_unknown_status_rejected(self):
        """Test only known moderation statuses are accepted."""
        with self.assertRaises(ValidationError):
            CommunityPost.from_document("doc-5", {"timestamp": 1, "status": "deleted"})

    def test_datetime_timestamp(self):
        """Test datetimes are converted to epoch milliseconds."""
        moment = datetime(2024, 1, 1, tzinfo=timezone.utc)
        post = CommunityPost.from_document("doc-6", {"timestamp": moment})
        self.assertEqual(post.timestamp_millis, moment.timestamp() * 1000)

        naive = CommunityPost.from_document("doc-7", {"timestamp": datetime(2024, 1, 1)})
        self.assertEqual(naive.timestamp_millis, moment.timestamp() * 1000)

    def test_seconds_nanoseconds_timestamp(self):
        """Test serialized Firestore timestamps are accepted."""
        post = CommunityPost.from_document("doc-8", {
            "timestamp": {"seconds": 1_700_000_000, "nanoseconds": 500_000_000}
        })
        self.assertEqual(post.timestamp_millis, 1_700_000_000_500)

    def test_to_dict_round_trip(self):
        """Test to_dict output validates back into an equal post."""
        post = CommunityPost(id="p1", timestamp_millis=5.0, status=PostStatus.APPROVED,
                             like_count=2, engagement_score=1.5)
        data = post.to_dict()

        self.assertEqual(data["status"], "approved")
        self.assertEqual(CommunityPost.model_validate(data), post)


if __name__ == '__main__':
    unittest.main()
