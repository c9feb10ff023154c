"""Shared libraries for the case analysis service.

This package contains reusable components:
- common: configuration
- caching: Redis client and the latest-analysis cache
- firebase: Firebase Admin initialization and Firestore client
- firestore: Firestore collection helpers
- models: Pydantic models for Firestore documents
"""
