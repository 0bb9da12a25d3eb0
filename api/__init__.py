"""
FastAPI RESTful API for the Library Book Catalog.

This package provides a REST API for:
- Listing books, optionally filtered by availability
- Creating, reading, updating and deleting individual books
- Tracking who has a book checked out and when it is due
"""
