"""Hangout Scheduler - find meeting times that fit every participant's calendar."""

__version__ = "1.0.0"
