"""
FastAPI RESTful API for the Books service.

This module provides a small REST API for:
- Creating, listing, reading, replacing, patching and deleting books
- Health checks against the MongoDB store
"""
