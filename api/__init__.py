"""
FastAPI RESTful API for the Library Book Tracker.

This module provides a small REST API for:
- Adding, updating and deleting books
- Looking books up by genre, title and publication year
- Backfilling the availability flag on legacy records
"""
