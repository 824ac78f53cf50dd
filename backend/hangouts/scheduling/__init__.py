"""Availability projection, common slot search and request lifecycle."""
