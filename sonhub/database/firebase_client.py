"""
Firebase Database Client Module

Provides a narrow interface to Firestore for the feed loader: equality-filtered,
ordered, limited queries with cursor-based pagination.
"""

import os
import logging
from typing import Dict, List, Any, Optional
from pathlib import Path

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

# Configure logging
logger = logging.getLogger(__name__)


class FirebaseClient:
    """
    Firestore client for feed queries.

    One instance is created by the application's composition root and passed to
    the consumers that need it.
    """

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 project_id: Optional[str] = None,
                 app_name: Optional[str] = None):
        """Initialize Firebase client with credentials.

        Args:
            credentials_path: Path to Firebase service account JSON file (optional)
            project_id: Optional project ID to override default
            app_name: Optional Firebase app name; the default app otherwise

        Raises:
            ConnectionError: If the Firebase app cannot be initialized
        """
        self._app = None
        self._db = None

        # Check for existing Firebase apps
        try:
            self._app = firebase_admin.get_app(app_name) if app_name else firebase_admin.get_app()
            logger.info(f"Using existing Firebase app: {self._app.name}")
            self._db = firestore.client(app=self._app)
            return
        except ValueError:
            # No existing app, proceed with initialization
            pass

        try:
            creds = self._load_credentials(credentials_path)

            options = {}
            if project_id:
                options['projectId'] = project_id
            if creds is not None and getattr(creds, 'project_id', None):
                logger.info(f"Using project ID from credentials: {creds.project_id}")
                options['projectId'] = creds.project_id

            kwargs = {"options": options or None}
            if app_name:
                kwargs["name"] = app_name
            self._app = firebase_admin.initialize_app(creds, **kwargs)
            self._db = firestore.client(app=self._app)

        except Exception as e:
            logger.error(f"Firebase initialization failed: {str(e)}")
            raise ConnectionError(f"Could not connect to Firebase: {str(e)}") from e

        logger.info("Successfully connected to Firestore database")

    def _load_credentials(self, credentials_path=None):
        """
        Load Firebase credentials from an explicit path or the environment.

        Args:
            credentials_path: Optional explicit path to credentials file

        Returns:
            Firebase credentials object or None for application default credentials

        Raises:
            ValueError: If a credentials file exists but is invalid
        """
        candidates = []
        if credentials_path:
            candidates.append(("argument", credentials_path))
        for env_var in ['FIREBASE_CREDENTIALS', 'GOOGLE_APPLICATION_CREDENTIALS']:
            env_path = os.environ.get(env_var)
            if env_path:
                candidates.append((f"{env_var} env", env_path))
        candidates.append(("default path", str(Path.home() / ".config" / "firebase" / "service-account.json")))

        for source, path in candidates:
            if not os.path.isfile(path):
                continue
            try:
                logger.info(f"Loading Firebase credentials from {source}: {path}")
                creds = credentials.Certificate(path)
            except Exception as e:
                logger.error(f"Invalid credentials at {path}: {str(e)}")
                raise ValueError(f"Invalid credentials at {path}: {str(e)}") from e

            if not getattr(creds, 'project_id', None):
                logger.error(f"Credentials at {path} are invalid (missing project_id)")
                raise ValueError(f"Invalid credentials at {path}: missing project_id")
            return creds

        logger.info("Using application default credentials")
        return None

    def _build_query(self, collection: str, filters: Optional[List[Dict]] = None,
                     order_by: Optional[str] = None, direction: str = "ASCENDING"):
        query = self._db.collection(collection)

        if filters:
            for filter_dict in filters:
                field = filter_dict.get("field")
                op = filter_dict.get("op", "==")
                value = filter_dict.get("value")
                query = query.where(filter=FieldFilter(field, op, value))

        if order_by:
            direction_obj = firestore.Query.ASCENDING if direction == "ASCENDING" else firestore.Query.DESCENDING
            query = query.order_by(order_by, direction=direction_obj)

        return query

    def query_page(self, collection: str,
                   filters: Optional[List[Dict]] = None,
                   order_by: Optional[str] = None,
                   direction: str = "ASCENDING",
                   limit: int = 10,
                   start_after: Any = None) -> List[Any]:
        """Fetch one page of document snapshots.

        Args:
            collection: Collection name
            filters: List of filter dictionaries with field, op, value
            order_by: Field to order results by
            direction: "ASCENDING" or "DESCENDING"
            limit: Maximum number of documents to return
            start_after: Snapshot of the last document of the previous page

        Returns:
            List of document snapshots (each with .id and .to_dict())

        Raises:
            Exception: Any Firestore error, unchanged, so callers can tell a
                failed page apart from an empty one
        """
        query = self._build_query(collection, filters, order_by, direction)
        if start_after is not None:
            query = query.start_after(start_after)
        query = query.limit(limit)

        snapshots = list(query.stream())
        logger.debug(f"Fetched {len(snapshots)} documents from {collection}")
        return snapshots

    def get_documents(self, collection: str,
                      filters: Optional[List[Dict]] = None,
                      limit: Optional[int] = None) -> List[Dict]:
        """Get documents as dictionaries, each including its "id".

        Raises:
            Exception: Any Firestore error, unchanged
        """
        query = self._build_query(collection, filters)
        if limit:
            query = query.limit(limit)
        return [doc.to_dict() | {"id": doc.id} for doc in query.stream()]

    @property
    def db(self) -> firestore.Client:
        """Access to raw Firestore client for advanced operations."""
        return self._db
