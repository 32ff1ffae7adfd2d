"""
Database module initialization

This package handles connectivity to the remote document store.
"""

from sonhub.database.firebase_client import FirebaseClient

__all__ = ['FirebaseClient']
