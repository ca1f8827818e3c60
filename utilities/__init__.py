"""
Shared utilities for the Library Book Tracker API.
"""
